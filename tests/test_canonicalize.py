"""
URL canonicalization: query/fragment stripping and the query flag.
"""

import pytest

from editorial.ingestion.canonicalize import INVALID, canonicalize_url


class TestCanonicalizeUrl:
    def test_query_and_fragment_removed(self):
        canon = canonicalize_url("https://a.example/p?x=1#f")
        assert canon.value == "https://a.example/p"
        assert canon.had_query is True

    def test_plain_url_unchanged(self):
        canon = canonicalize_url("https://a.example/p")
        assert canon == ("https://a.example/p", False)

    def test_fragment_only(self):
        assert canonicalize_url("https://a.example/p#top") == ("https://a.example/p", False)

    def test_empty_query_does_not_count(self):
        assert canonicalize_url("https://a.example/p?") == ("https://a.example/p", False)

    def test_bare_host_gets_root_path(self):
        assert canonicalize_url("http://a.example").value == "http://a.example/"

    def test_host_and_scheme_lowercased(self):
        assert canonicalize_url("HTTPS://A.Example/Path").value == "https://a.example/Path"

    def test_port_kept(self):
        assert canonicalize_url("http://a.example:8080/x?q").value == "http://a.example:8080/x"

    def test_surrounding_whitespace(self):
        assert canonicalize_url("  https://a.example/p  ").value == "https://a.example/p"

    @pytest.mark.parametrize("raw", [
        "not a url",
        "",
        "   ",
        "ftp://a.example/file",
        "mailto:someone@a.example",
        "https://",
        "//a.example/p",
        "http://a.example:99999/",
        None,
    ])
    def test_invalid(self, raw):
        assert canonicalize_url(raw) == INVALID

    def test_idempotent(self):
        once = canonicalize_url("https://a.example/p?x=1#f").value
        assert canonicalize_url(once).value == once
