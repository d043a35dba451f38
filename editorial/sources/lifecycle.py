# editorial/sources/lifecycle.py
from __future__ import annotations

import datetime as dt
import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import sessionmaker

from editorial.app.db import session_scope
from editorial.app.errors import InvalidInput, NotFound
from editorial.app.models import SourceState
from editorial.app.settings import MAX_COMMENT_BYTES, MAX_KEYWORDS_PER_SOURCE, MAX_RESULTS
from editorial.keywords.normalize import normalize, normalize_token
from editorial.sources import repository as repo
from editorial.sources.repository import KeywordCount, SearchHit, SourceRecord, StateCounts

log = logging.getLogger(__name__)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _check_text(field: str, value) -> str:
    if not isinstance(value, str):
        raise InvalidInput(field, "must be a string")
    return value


def check_comment(comment) -> str:
    comment = _check_text("comment", comment)
    size = len(comment.encode("utf-8"))
    if size > MAX_COMMENT_BYTES:
        raise InvalidInput("comment", f"too long ({size} bytes, max {MAX_COMMENT_BYTES})")
    return comment


def _check_id(field: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidInput(field, "must be a positive integer")
    return value


def check_keywords(raw_keywords) -> List[str]:
    """Normalized tokens for a new source; a bare string or None is rejected."""
    if raw_keywords is None or isinstance(raw_keywords, (str, bytes)):
        raise InvalidInput("keywords", "must be a list of strings")
    tokens = normalize(raw_keywords)
    if len(tokens) > MAX_KEYWORDS_PER_SOURCE:
        raise InvalidInput(
            "keywords", f"too many ({len(tokens)}, max {MAX_KEYWORDS_PER_SOURCE})"
        )
    return tokens


class SourceLifecycle:
    """Creates, edits, transitions and lists sources."""

    def __init__(self, session_factory: Optional[sessionmaker] = None, max_results: int = MAX_RESULTS):
        self.session_factory = session_factory
        self.max_results = max_results

    # ---------- writes ----------
    def create(
        self,
        author_id: int,
        url: str,
        title: str,
        comment: str,
        content_md: str,
        raw_keywords: Iterable[str],
    ) -> int:
        """
        Insert a Working source with its normalized keyword set.

        Everything is validated before the store is touched. The source row,
        any new keyword rows and the links are written in one transaction;
        a failure at any step leaves nothing behind.
        """
        author_id = _check_id("author_id", author_id)
        url = _check_text("url", url).strip()
        if not url:
            raise InvalidInput("url", "required")
        title = _check_text("title", title)
        comment = check_comment(comment)
        content_md = _check_text("content_md", content_md)
        tokens = check_keywords(raw_keywords)

        with session_scope(self.session_factory) as sess:
            if repo.get_user(sess, author_id) is None:
                raise NotFound("user", author_id)
            src = repo.insert_source(sess, author_id, url, title, comment, content_md, now=_utcnow())
            ids = repo.ensure_keywords(sess, tokens)
            repo.link_keywords(sess, src.id, (ids[t] for t in tokens))
            source_id = src.id

        log.info("created source id=%s author=%s keywords=%d", source_id, author_id, len(tokens))
        return source_id

    def update(
        self,
        source_id: int,
        state: Optional[SourceState] = None,
        title: Optional[str] = None,
        comment: Optional[str] = None,
        content_md: Optional[str] = None,
    ) -> bool:
        """
        Apply a state change and/or content edits in one transaction.

        Every supplied field is validated before the store is touched, so a
        rejected request changes nothing. Keywords are never touched.
        """
        source_id = _check_id("source_id", source_id)
        changes = {}
        if state is not None:
            if not isinstance(state, SourceState):
                raise InvalidInput("state", "must be a SourceState")
            changes["state"] = int(state)
        if title is not None:
            changes["title"] = _check_text("title", title)
        if comment is not None:
            changes["comment"] = check_comment(comment)
        if content_md is not None:
            changes["content_md"] = _check_text("content_md", content_md)
        if not changes:
            raise InvalidInput("source", "nothing to update")

        with session_scope(self.session_factory) as sess:
            src = repo.get_source(sess, source_id)
            if src is None:
                raise NotFound("source", source_id)
            for k, v in changes.items():
                setattr(src, k, v)
            src.updated_at = _utcnow()
        log.info("updated source id=%s fields=%s", source_id, sorted(changes))
        return True

    def update_content(
        self,
        source_id: int,
        title: Optional[str] = None,
        comment: Optional[str] = None,
        content_md: Optional[str] = None,
    ) -> bool:
        """Change only the supplied fields; keywords and state are left alone."""
        return self.update(source_id, title=title, comment=comment, content_md=content_md)

    def change_state(self, source_id: int, new_state: SourceState) -> bool:
        """Any state may follow any other."""
        if not isinstance(new_state, SourceState):
            raise InvalidInput("state", "must be a SourceState")
        return self.update(source_id, state=new_state)

    # ---------- reads ----------
    def get_by_id(self, source_id: int) -> SourceRecord:
        with session_scope(self.session_factory) as sess:
            rec = repo.load_record(sess, source_id)
        if rec is None:
            raise NotFound("source", source_id)
        return rec

    def list_by_author(self, author_id: int, state: SourceState) -> List[SourceRecord]:
        with session_scope(self.session_factory) as sess:
            return repo.list_by_author(sess, author_id, state, self.max_results)

    def search_by_keywords(self, candidate_keywords: Iterable[str], state: SourceState) -> List[SearchHit]:
        """Most matching keywords first, then newest."""
        tokens = normalize(candidate_keywords)
        if not tokens:
            return []
        with session_scope(self.session_factory) as sess:
            return repo.search_by_keywords(sess, tokens, state, self.max_results)

    def state_counts(self, author_id: Optional[int] = None, keyword: Optional[str] = None) -> StateCounts:
        if (author_id is None) == (keyword is None):
            raise InvalidInput("filter", "give exactly one of author_id or keyword")
        if keyword is not None:
            token = normalize_token(_check_text("keyword", keyword))
            if not token:
                return StateCounts()
            with session_scope(self.session_factory) as sess:
                return repo.state_counts_for_keyword(sess, token)
        with session_scope(self.session_factory) as sess:
            return repo.state_counts_for_author(sess, author_id)

    def keyword_counts(self) -> List[KeywordCount]:
        with session_scope(self.session_factory) as sess:
            return repo.keyword_counts(sess)
