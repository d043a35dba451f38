# editorial/app/models.py
from __future__ import annotations

import datetime as dt
from enum import Enum

from sqlalchemy import (
    Column,
    String,
    DateTime,
    Integer,
    Text,
    Index,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class SourceState(int, Enum):
    ABORTED = -1
    WORKING = 0
    DONE = 1

    @property
    def label(self) -> str:
        return self.name.lower()


# -----------------------------
# People
# -----------------------------
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)

    def __repr__(self):
        return f"<User id={self.id} name={self.name!r}>"


# -----------------------------
# Sources & keywords
# -----------------------------
class Source(Base):
    __tablename__ = "sources"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Stored canonical (scheme + host + path); duplicates are detected, not prevented
    url = Column(String(2048), nullable=False, index=True)
    title = Column(String(1024), nullable=False, default="")

    author_id = Column(
        Integer,
        ForeignKey("users.id"),
        index=True,
        nullable=False,
    )

    comment = Column(Text, nullable=False, default="")
    content_md = Column(Text, nullable=False, default="")

    # 0: working, 1: done, -1: aborted
    state = Column(Integer, nullable=False, default=int(SourceState.WORKING), index=True)

    updated_at = Column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_sources_author_state", "author_id", "state"),
    )

    def __repr__(self):
        t = (self.title or "")[:40]
        return f"<Source id={self.id} state={self.state} title={t!r}>"


class Keyword(Base):
    __tablename__ = "keywords"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Canonical token, see editorial.keywords.normalize
    token = Column(String(255), nullable=False, unique=True)

    def __repr__(self):
        return f"<Keyword id={self.id} token={self.token!r}>"


class SourceKeyword(Base):
    __tablename__ = "sources_keywords"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_id = Column(
        Integer,
        ForeignKey("sources.id"),
        index=True,
        nullable=False,
    )
    keyword_id = Column(
        Integer,
        ForeignKey("keywords.id"),
        index=True,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("source_id", "keyword_id", name="uq_source_keyword_once"),
    )
