# editorial/sources/submission.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from editorial.app.errors import DuplicateSourceError, InvalidInput
from editorial.app.models import SourceState
from editorial.app.settings import WORKING_SOURCES_LIMIT
from editorial.ingestion.canonicalize import canonicalize_url
from editorial.ingestion.dedup import DuplicateCheck, DuplicateDetector
from editorial.sources.lifecycle import SourceLifecycle, check_comment, check_keywords

log = logging.getLogger(__name__)


@dataclass
class Submission:
    author_id: int
    url: str
    title: str
    comment: str = ""
    content_md: str = ""
    keywords: List[str] = field(default_factory=list)
    confirm_url_duplicate: bool = False
    confirm_keyword_duplicate: bool = False


@dataclass
class Accepted:
    id: int
    url: str
    had_query: bool


def blocking_reason(matches: DuplicateCheck, had_query: bool, sub: Submission) -> str:
    """
    Empty string when the submission may proceed.

    A URL collision can only be overridden when the submitted URL carried
    query parameters (same path, different query is often a distinct page).
    """
    if matches.url_matches:
        if not had_query:
            return "url_match_not_overridable"
        if not sub.confirm_url_duplicate:
            return "url_match_unconfirmed"
    if matches.keyword_matches and not sub.confirm_keyword_duplicate:
        return "keyword_match_unconfirmed"
    return ""


class SubmissionGate:
    def __init__(
        self,
        detector: DuplicateDetector,
        lifecycle: SourceLifecycle,
        working_limit: int = WORKING_SOURCES_LIMIT,
    ):
        self.detector = detector
        self.lifecycle = lifecycle
        self.working_limit = working_limit

    def submit(self, sub: Submission) -> Accepted:
        if isinstance(sub.author_id, bool) or not isinstance(sub.author_id, int) or sub.author_id <= 0:
            raise InvalidInput("author_id", "must be a positive integer")
        canon = canonicalize_url(sub.url if isinstance(sub.url, str) else "")
        if not canon.value:
            raise InvalidInput("url", "not a valid http(s) URL")
        if not isinstance(sub.title, str) or not sub.title.strip():
            raise InvalidInput("title", "required")
        comment = check_comment(sub.comment.strip() if isinstance(sub.comment, str) else sub.comment)
        check_keywords(sub.keywords)

        counts = self.lifecycle.state_counts(author_id=sub.author_id)
        if self.working_limit and counts.working >= self.working_limit:
            raise InvalidInput(
                "author_id", f"working source limit reached ({self.working_limit})"
            )

        matches = self.detector.check(canon.value, sub.keywords, SourceState.WORKING)
        reason = blocking_reason(matches, canon.had_query, sub)
        if reason:
            log.info("submission blocked author=%s reason=%s", sub.author_id, reason)
            raise DuplicateSourceError(reason, matches)

        source_id = self.lifecycle.create(
            sub.author_id,
            canon.value,
            sub.title.strip(),
            comment,
            sub.content_md,
            sub.keywords,
        )
        return Accepted(id=source_id, url=canon.value, had_query=canon.had_query)
