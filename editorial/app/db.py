# editorial/app/db.py
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from editorial.app.settings import DATABASE_URL, SQL_ECHO


def make_engine(url: str = DATABASE_URL, echo: bool = SQL_ECHO, **extra) -> Engine:
    engine_kwargs = dict(future=True, echo=echo)
    if url.startswith("sqlite"):
        # requests are served from a thread pool
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        # better resiliency for networked DBs
        engine_kwargs["pool_pre_ping"] = True
    engine_kwargs.update(extra)
    return create_engine(url, **engine_kwargs)


def sessionmaker_from_engine(bind: Engine) -> sessionmaker:
    return sessionmaker(
        bind=bind,
        autoflush=False,
        autocommit=False,
        future=True,
        expire_on_commit=False,
    )


engine = make_engine()
SessionLocal = sessionmaker_from_engine(engine)


@contextmanager
def session_scope(factory: Optional[sessionmaker] = None):
    """One transaction: commit on success, roll back everything on any error."""
    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(bind: Optional[Engine] = None) -> None:
    """Create missing tables; existing ones are left untouched."""
    from editorial.app.models import Base  # register tables

    Base.metadata.create_all(bind or engine)
