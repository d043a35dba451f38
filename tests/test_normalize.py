"""
Keyword normalization: canonical tokens, dedup order, non-Latin text.
"""

import pytest

from editorial.keywords.normalize import normalize, normalize_token


class TestNormalizeToken:
    @pytest.mark.parametrize("raw, expected", [
        ("Foo Bar", "foo-bar"),
        (" FOO_BAR ", "foo-bar"),
        ("foo-bar", "foo-bar"),
        ("C++ / Rust", "c-rust"),
        ("machine\tlearning", "machine-learning"),
        ("--edge--", "edge"),
        ("U.S.", "u-s"),
    ])
    def test_ascii_forms(self, raw, expected):
        assert normalize_token(raw) == expected

    def test_ideographic_space_becomes_hyphen(self):
        assert normalize_token("東京　オリンピック") == "東京-オリンピック"

    def test_japanese_letters_untouched(self):
        assert normalize_token("生成AI") == "生成ai"

    @pytest.mark.parametrize("raw, expected", [
        ("東京・大阪", "東京-大阪"),
        ("欧州連合（EU）", "欧州連合-eu"),
        ("日本、米国", "日本-米国"),
        ("「選挙」。", "選挙"),
        ("EU／UK", "eu-uk"),
    ])
    def test_unicode_punctuation(self, raw, expected):
        assert normalize_token(raw) == expected

    def test_full_width_latin_not_folded(self):
        assert normalize_token("ＡＩ") == "ＡＩ"

    @pytest.mark.parametrize("raw", ["", "   ", "--", "!!!", "　"])
    def test_nothing_survives(self, raw):
        assert normalize_token(raw) == ""


class TestNormalize:
    def test_equivalent_forms_collapse(self):
        assert normalize(["Foo Bar", "foo-bar", " FOO_BAR "]) == ["foo-bar"]

    def test_empty_tokens_dropped(self):
        assert normalize(["", "   ", "--"]) == []

    def test_first_seen_order(self):
        assert normalize(["Zeta", "alpha", "ZETA", "Beta"]) == ["zeta", "alpha", "beta"]

    def test_case_variants_and_full_width(self):
        assert normalize(["AI", "ai", "ＡＩ"]) == ["ai", "ＡＩ"]

    def test_bracketed_translation_joins_hyphenated_form(self):
        assert normalize(["欧州連合（EU）", "欧州連合 EU", "欧州連合-eu"]) == ["欧州連合-eu"]

    def test_non_strings_skipped(self):
        assert normalize(["x", None, 3, ["y"]]) == ["x"]

    def test_none_and_bare_string(self):
        assert normalize(None) == []
        assert normalize("Single Word") == ["single-word"]

    def test_idempotent(self):
        sample = ["Foo Bar", "C++", "東京　大学", "ＡＩ", "a--b", "Élan Vital", "x_y.z"]
        once = normalize(sample)
        assert normalize(once) == once

    def test_output_has_no_edge_or_double_hyphens(self):
        for token in normalize(["-a-", "a  b", "a - b", "a__b", "(a)(b)"]):
            assert not token.startswith("-")
            assert not token.endswith("-")
            assert "--" not in token
