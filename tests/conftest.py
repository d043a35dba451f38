"""
Shared fixtures: in-memory store, wired services, fake LLM.
"""

import pytest
from unittest.mock import MagicMock
from sqlalchemy.pool import StaticPool

from editorial.app.db import init_db, make_engine, sessionmaker_from_engine
from editorial.app.models import SourceState
from editorial.ingestion.dedup import DuplicateDetector
from editorial.sources.lifecycle import SourceLifecycle
from editorial.sources.users import UserDirectory


@pytest.fixture
def engine():
    """One shared in-memory SQLite connection per test."""
    eng = make_engine("sqlite://", echo=False, poolclass=StaticPool)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker_from_engine(engine)


@pytest.fixture
def users(session_factory):
    return UserDirectory(session_factory)


@pytest.fixture
def lifecycle(session_factory):
    return SourceLifecycle(session_factory)


@pytest.fixture
def detector(session_factory):
    return DuplicateDetector(session_factory)


@pytest.fixture
def author(users):
    return users.register("alice")


@pytest.fixture
def make_source(lifecycle, author):
    """Create a source (Working unless `state` is given) and return its id."""

    def _make(url, keywords=(), title="Title", comment="", state=None, author_id=None):
        sid = lifecycle.create(author_id or author.id, url, title, comment, "", list(keywords))
        if state is not None and state != SourceState.WORKING:
            lifecycle.change_state(sid, state)
        return sid

    return _make


@pytest.fixture
def mock_llm():
    """Stands in for StructuredLLM; set `.complete.return_value` per test."""
    llm = MagicMock()
    llm.complete.return_value = {
        "title_translation": "",
        "keywords": [],
        "keywords_translated": [],
    }
    return llm
