# editorial/ingestion/dedup.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from sqlalchemy.orm import sessionmaker

from editorial.app.db import session_scope
from editorial.app.models import SourceState
from editorial.keywords.normalize import normalize
from editorial.sources import repository as repo
from editorial.sources.repository import MatchRow

log = logging.getLogger(__name__)


@dataclass
class DuplicateCheck:
    url_matches: List[MatchRow] = field(default_factory=list)
    keyword_matches: List[MatchRow] = field(default_factory=list)

    @property
    def has_matches(self) -> bool:
        return bool(self.url_matches or self.keyword_matches)


class DuplicateDetector:
    """
    Best-effort collision warnings for a new submission.

    Reads run outside any write transaction; two concurrent submissions of
    the same URL can both see "no duplicate". Detection only, never prevention.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory

    def check(
        self,
        url: str,
        candidate_keywords: Iterable[str],
        state: SourceState = SourceState.WORKING,
    ) -> DuplicateCheck:
        """
        `url` is compared verbatim against stored URLs; callers pass the
        canonical form. Keywords are normalized here.
        """
        tokens = normalize(candidate_keywords)
        result = DuplicateCheck()
        with session_scope(self.session_factory) as sess:
            url_hit = repo.find_url_match(sess, url, state)
            if url_hit is not None:
                result.url_matches.append(url_hit)
            if tokens:
                result.keyword_matches = repo.find_keyword_matches(sess, tokens, state)

        log.info(
            "duplicate check state=%s url_matches=%d keyword_matches=%d tokens=%d",
            state.label, len(result.url_matches), len(result.keyword_matches), len(tokens),
        )
        return result
