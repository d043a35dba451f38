# editorial/sources/repository.py
"""
Relational queries over users, sources and keywords.

Every function takes an open Session and never commits; transaction
boundaries belong to the caller (see editorial.app.db.session_scope).
Values only ever reach the database as bound parameters.
"""
from __future__ import annotations

import datetime as dt
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select, func, desc, insert
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from editorial.app.errors import StoreError
from editorial.app.models import Keyword, Source, SourceKeyword, SourceState, User


# -----------------------------
# Records handed to callers
# -----------------------------
@dataclass
class SourceRecord:
    id: int
    url: str
    title: str
    author_id: int
    author_name: str
    comment: str
    content_md: str
    state: SourceState
    updated_at: Optional[dt.datetime]
    keywords: List[str] = field(default_factory=list)


@dataclass
class MatchRow:
    source_id: int
    title: str
    url: str
    comment: str
    author_id: int
    author_name: str
    updated_at: Optional[dt.datetime]
    keywords: str  # comma-joined, sorted, unique


@dataclass
class SearchHit:
    source: SourceRecord
    matched_keywords: str
    match_count: int


@dataclass
class StateCounts:
    working: int = 0
    done: int = 0
    aborted: int = 0


@dataclass
class KeywordCount:
    keyword: str
    count: int


# -----------------------------
# Users
# -----------------------------
def get_user(sess: Session, user_id: int) -> Optional[User]:
    return sess.get(User, user_id)


def find_user_by_name(sess: Session, name: str) -> Optional[User]:
    return sess.execute(select(User).where(User.name == name)).scalars().first()


def list_users(sess: Session) -> List[User]:
    return list(sess.execute(select(User).order_by(User.id)).scalars().all())


def insert_user(sess: Session, name: str) -> User:
    user = User(name=name)
    sess.add(user)
    sess.flush()
    return user


# -----------------------------
# Keywords
# -----------------------------
def _insert_ignore_stmt(sess: Session, tokens: Sequence[str]):
    rows = [{"token": t} for t in tokens]
    dialect = sess.get_bind().dialect.name
    if dialect == "sqlite":
        return sqlite_insert(Keyword).values(rows).on_conflict_do_nothing(index_elements=["token"])
    if dialect == "postgresql":
        return pg_insert(Keyword).values(rows).on_conflict_do_nothing(index_elements=["token"])
    if dialect in ("mysql", "mariadb"):
        return insert(Keyword).values(rows).prefix_with("IGNORE")
    return None


def ensure_keywords(sess: Session, tokens: Sequence[str]) -> Dict[str, int]:
    """
    Insert-if-absent every token and return token -> keyword id.

    A concurrent writer inserting the same token is tolerated: the conflict
    is ignored and the existing row is read back under the unique constraint.
    """
    if not tokens:
        return {}
    stmt = _insert_ignore_stmt(sess, tokens)
    if stmt is not None:
        sess.execute(stmt)
    else:
        existing = set(
            sess.execute(select(Keyword.token).where(Keyword.token.in_(tokens))).scalars().all()
        )
        for token in tokens:
            if token in existing:
                continue
            try:
                with sess.begin_nested():
                    sess.add(Keyword(token=token))
            except IntegrityError:
                # Race: another writer inserted the same token after our read.
                pass

    found = sess.execute(
        select(Keyword.token, Keyword.id).where(Keyword.token.in_(tokens))
    ).all()
    mapping = {token: kid for token, kid in found}
    missing = [t for t in tokens if t not in mapping]
    if missing:
        raise StoreError(f"keyword rows could not be resolved: {missing}")
    return mapping


def link_keywords(sess: Session, source_id: int, keyword_ids: Iterable[int]) -> None:
    rows = [{"source_id": source_id, "keyword_id": kid} for kid in dict.fromkeys(keyword_ids)]
    if rows:
        sess.execute(insert(SourceKeyword), rows)


def keyword_tokens_for(
    sess: Session,
    source_ids: Sequence[int],
    only: Optional[Sequence[str]] = None,
) -> Dict[int, List[str]]:
    """Sorted tokens per source id; `only` restricts to a candidate token set."""
    out: Dict[int, List[str]] = defaultdict(list)
    if not source_ids:
        return out
    sel = (
        select(SourceKeyword.source_id, Keyword.token)
        .join(Keyword, Keyword.id == SourceKeyword.keyword_id)
        .where(SourceKeyword.source_id.in_(list(source_ids)))
    )
    if only is not None:
        sel = sel.where(Keyword.token.in_(list(only)))
    for source_id, token in sess.execute(sel).all():
        out[source_id].append(token)
    for tokens in out.values():
        tokens.sort()
    return out


def keyword_counts(sess: Session) -> List[KeywordCount]:
    """Distinct non-aborted sources per token, busiest first, ties by token."""
    cnt = func.count(func.distinct(SourceKeyword.source_id)).label("count")
    sel = (
        select(Keyword.token, cnt)
        .join(SourceKeyword, SourceKeyword.keyword_id == Keyword.id)
        .join(Source, Source.id == SourceKeyword.source_id)
        .where(Source.state >= int(SourceState.WORKING))
        .group_by(Keyword.token)
        .order_by(desc(cnt), Keyword.token)
    )
    return [KeywordCount(keyword=t, count=int(c)) for t, c in sess.execute(sel).all()]


# -----------------------------
# Sources
# -----------------------------
def insert_source(
    sess: Session,
    author_id: int,
    url: str,
    title: str,
    comment: str,
    content_md: str,
    now: Optional[dt.datetime] = None,
) -> Source:
    src = Source(
        url=url,
        title=title,
        author_id=author_id,
        comment=comment,
        content_md=content_md,
        state=int(SourceState.WORKING),
        updated_at=now or dt.datetime.now(dt.timezone.utc),
    )
    sess.add(src)
    sess.flush()
    return src


def get_source(sess: Session, source_id: int) -> Optional[Source]:
    return sess.get(Source, source_id)


def _records(sess: Session, ids: Sequence[int], keyword_filter: Optional[Sequence[str]] = None):
    """Load sources + author names for `ids`, preserving the order of `ids`."""
    if not ids:
        return [], {}
    rows = sess.execute(
        select(Source, User.name)
        .join(User, User.id == Source.author_id)
        .where(Source.id.in_(list(ids)))
    ).all()
    by_id = {src.id: (src, name) for src, name in rows}
    tokens = keyword_tokens_for(sess, list(by_id), only=keyword_filter)
    ordered = [by_id[i] for i in ids if i in by_id]
    return ordered, tokens


def to_record(src: Source, author_name: str, keywords: Sequence[str]) -> SourceRecord:
    return SourceRecord(
        id=src.id,
        url=src.url,
        title=src.title or "",
        author_id=src.author_id,
        author_name=author_name or "",
        comment=src.comment or "",
        content_md=src.content_md or "",
        state=SourceState(src.state),
        updated_at=src.updated_at,
        keywords=list(keywords),
    )


def to_match_row(src: Source, author_name: str, keywords: Sequence[str]) -> MatchRow:
    return MatchRow(
        source_id=src.id,
        title=src.title or "",
        url=src.url,
        comment=src.comment or "",
        author_id=src.author_id,
        author_name=author_name or "",
        updated_at=src.updated_at,
        keywords=",".join(keywords),
    )


def load_record(sess: Session, source_id: int) -> Optional[SourceRecord]:
    ordered, tokens = _records(sess, [source_id])
    if not ordered:
        return None
    src, name = ordered[0]
    return to_record(src, name, tokens.get(src.id, []))


def find_url_match(sess: Session, url: str, state: SourceState) -> Optional[MatchRow]:
    """Newest source whose stored URL equals `url` exactly, in `state`."""
    source_id = sess.execute(
        select(Source.id)
        .where(Source.url == url, Source.state == int(state))
        .order_by(desc(Source.id))
        .limit(1)
    ).scalar()
    if source_id is None:
        return None
    ordered, tokens = _records(sess, [source_id])
    src, name = ordered[0]
    return to_match_row(src, name, tokens.get(src.id, []))


def _matching_source_ids(
    sess: Session,
    tokens: Sequence[str],
    state: SourceState,
    ranked: bool,
    limit: Optional[int] = None,
):
    match_count = func.count(func.distinct(SourceKeyword.keyword_id)).label("match_count")
    sel = (
        select(Source.id, match_count)
        .join(SourceKeyword, SourceKeyword.source_id == Source.id)
        .join(Keyword, Keyword.id == SourceKeyword.keyword_id)
        .where(Keyword.token.in_(list(tokens)), Source.state == int(state))
        .group_by(Source.id)
    )
    if ranked:
        sel = sel.order_by(desc(match_count), desc(Source.id))
    else:
        sel = sel.order_by(desc(Source.id))
    if limit:
        sel = sel.limit(limit)
    return [(sid, int(n)) for sid, n in sess.execute(sel).all()]


def find_keyword_matches(sess: Session, tokens: Sequence[str], state: SourceState) -> List[MatchRow]:
    """One row per source sharing any token, newest first; no match-count ranking."""
    if not tokens:
        return []
    ids = [sid for sid, _ in _matching_source_ids(sess, tokens, state, ranked=False)]
    ordered, matched = _records(sess, ids, keyword_filter=tokens)
    return [to_match_row(src, name, matched.get(src.id, [])) for src, name in ordered]


def search_by_keywords(
    sess: Session,
    tokens: Sequence[str],
    state: SourceState,
    limit: int,
) -> List[SearchHit]:
    if not tokens:
        return []
    ranked = _matching_source_ids(sess, tokens, state, ranked=True, limit=limit)
    counts = dict(ranked)
    ordered, matched = _records(sess, [sid for sid, _ in ranked], keyword_filter=tokens)
    all_tokens = keyword_tokens_for(sess, [src.id for src, _ in ordered])
    hits: List[SearchHit] = []
    for src, name in ordered:
        hits.append(
            SearchHit(
                source=to_record(src, name, all_tokens.get(src.id, [])),
                matched_keywords=",".join(matched.get(src.id, [])),
                match_count=counts[src.id],
            )
        )
    return hits


def list_by_author(sess: Session, author_id: int, state: SourceState, limit: int) -> List[SourceRecord]:
    ids = sess.execute(
        select(Source.id)
        .where(Source.author_id == author_id, Source.state == int(state))
        .order_by(desc(Source.id))
        .limit(limit)
    ).scalars().all()
    ordered, tokens = _records(sess, list(ids))
    return [to_record(src, name, tokens.get(src.id, [])) for src, name in ordered]


def _fold_counts(rows) -> StateCounts:
    counts = StateCounts()
    for state, n in rows:
        try:
            label = SourceState(int(state)).label
        except ValueError:
            continue
        setattr(counts, label, int(n))
    return counts


def state_counts_for_author(sess: Session, author_id: int) -> StateCounts:
    sel = (
        select(Source.state, func.count(Source.id))
        .where(Source.author_id == author_id)
        .group_by(Source.state)
    )
    return _fold_counts(sess.execute(sel).all())


def state_counts_for_keyword(sess: Session, token: str) -> StateCounts:
    sel = (
        select(Source.state, func.count(func.distinct(Source.id)))
        .join(SourceKeyword, SourceKeyword.source_id == Source.id)
        .join(Keyword, Keyword.id == SourceKeyword.keyword_id)
        .where(Keyword.token == token)
        .group_by(Source.state)
    )
    return _fold_counts(sess.execute(sel).all())
