"""
SubmissionGate: canonical URLs, duplicate overrides, working limit.
"""

import pytest
from unittest.mock import MagicMock

from editorial.app.errors import DuplicateSourceError, InvalidInput
from editorial.app.models import SourceState
from editorial.ingestion.dedup import DuplicateCheck
from editorial.sources.repository import MatchRow
from editorial.sources.submission import Submission, SubmissionGate, blocking_reason


@pytest.fixture
def gate(detector, lifecycle):
    return SubmissionGate(detector, lifecycle, working_limit=20)


def _sub(author, url, **kw):
    kw.setdefault("title", "A story")
    return Submission(author_id=author.id, url=url, **kw)


def _row(source_id=1):
    return MatchRow(source_id, "t", "https://a.example/", "", 1, "alice", None, "")


# ── pure decision ──

class TestBlockingReason:
    def test_no_matches(self):
        assert blocking_reason(DuplicateCheck(), False, Submission(1, "u", "t")) == ""

    def test_url_without_query_never_overridable(self):
        matches = DuplicateCheck(url_matches=[_row()])
        sub = Submission(1, "u", "t", confirm_url_duplicate=True, confirm_keyword_duplicate=True)
        assert blocking_reason(matches, False, sub) == "url_match_not_overridable"

    def test_url_with_query_needs_confirmation(self):
        matches = DuplicateCheck(url_matches=[_row()])
        assert blocking_reason(matches, True, Submission(1, "u", "t")) == "url_match_unconfirmed"
        ok = Submission(1, "u", "t", confirm_url_duplicate=True)
        assert blocking_reason(matches, True, ok) == ""

    def test_keyword_match_needs_confirmation(self):
        matches = DuplicateCheck(keyword_matches=[_row()])
        assert blocking_reason(matches, False, Submission(1, "u", "t")) == "keyword_match_unconfirmed"
        ok = Submission(1, "u", "t", confirm_keyword_duplicate=True)
        assert blocking_reason(matches, False, ok) == ""


# ── gate against a real store ──

class TestSubmit:
    def test_accepts_and_stores_canonical_url(self, gate, lifecycle, author):
        accepted = gate.submit(_sub(author, "https://a.example/p?utm=1#x", keywords=["AI"], comment="  c  "))
        assert accepted.url == "https://a.example/p"
        assert accepted.had_query is True
        rec = lifecycle.get_by_id(accepted.id)
        assert rec.url == "https://a.example/p"
        assert rec.comment == "c"
        assert rec.keywords == ["ai"]

    @pytest.mark.parametrize("url", ["not a url", "", "ftp://a.example/x"])
    def test_invalid_url(self, gate, author, url):
        with pytest.raises(InvalidInput) as exc:
            gate.submit(_sub(author, url))
        assert exc.value.field == "url"

    def test_title_required(self, gate, author):
        with pytest.raises(InvalidInput) as exc:
            gate.submit(_sub(author, "https://a.example/p", title="   "))
        assert exc.value.field == "title"

    def test_bad_author_id(self, gate):
        with pytest.raises(InvalidInput) as exc:
            gate.submit(Submission(author_id=0, url="https://a.example/p", title="t"))
        assert exc.value.field == "author_id"

    def test_same_url_blocked_even_if_confirmed(self, gate, author):
        gate.submit(_sub(author, "https://a.example/p"))
        with pytest.raises(DuplicateSourceError) as exc:
            gate.submit(_sub(author, "https://a.example/p", confirm_url_duplicate=True))
        assert exc.value.reason == "url_match_not_overridable"
        assert len(exc.value.matches.url_matches) == 1

    def test_query_variant_needs_confirmation(self, gate, author):
        gate.submit(_sub(author, "https://a.example/p"))
        with pytest.raises(DuplicateSourceError) as exc:
            gate.submit(_sub(author, "https://a.example/p?page=2"))
        assert exc.value.reason == "url_match_unconfirmed"
        accepted = gate.submit(_sub(author, "https://a.example/p?page=2", confirm_url_duplicate=True))
        assert accepted.url == "https://a.example/p"

    def test_keyword_overlap_needs_confirmation(self, gate, author):
        gate.submit(_sub(author, "https://a.example/1", keywords=["Election"]))
        with pytest.raises(DuplicateSourceError) as exc:
            gate.submit(_sub(author, "https://a.example/2", keywords=["election"]))
        assert exc.value.reason == "keyword_match_unconfirmed"
        gate.submit(_sub(author, "https://a.example/2", keywords=["election"], confirm_keyword_duplicate=True))

    def test_only_working_sources_collide(self, gate, lifecycle, author):
        first = gate.submit(_sub(author, "https://a.example/p", keywords=["x"]))
        lifecycle.change_state(first.id, SourceState.DONE)
        assert gate.submit(_sub(author, "https://a.example/p", keywords=["x"])).id != first.id

    def test_oversized_comment_reported_before_duplicate(self, gate, author):
        gate.submit(_sub(author, "https://a.example/p", keywords=["x"]))
        with pytest.raises(InvalidInput) as exc:
            gate.submit(_sub(author, "https://a.example/p", keywords=["x"], comment="x" * 4001))
        assert exc.value.field == "comment"

    def test_too_many_keywords_reported_before_duplicate(self, gate, author):
        gate.submit(_sub(author, "https://a.example/p"))
        with pytest.raises(InvalidInput) as exc:
            gate.submit(_sub(author, "https://a.example/p", keywords=[f"k{i}" for i in range(201)]))
        assert exc.value.field == "keywords"

    def test_field_errors_skip_the_store(self, author):
        detector, lifecycle = MagicMock(), MagicMock()
        gate = SubmissionGate(detector, lifecycle)
        with pytest.raises(InvalidInput):
            gate.submit(_sub(author, "https://a.example/p", comment="x" * 4001))
        lifecycle.state_counts.assert_not_called()
        detector.check.assert_not_called()

    def test_working_limit(self, detector, lifecycle, author):
        gate = SubmissionGate(detector, lifecycle, working_limit=2)
        first = gate.submit(_sub(author, "https://a.example/1"))
        gate.submit(_sub(author, "https://a.example/2"))
        with pytest.raises(InvalidInput) as exc:
            gate.submit(_sub(author, "https://a.example/3"))
        assert exc.value.field == "author_id"
        lifecycle.change_state(first.id, SourceState.ABORTED)
        gate.submit(_sub(author, "https://a.example/3"))
