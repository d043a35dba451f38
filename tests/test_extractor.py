"""
Pre-fill extraction: metadata first, then page HTML, then the markdown body.
"""

from editorial.ingestion.extractor import (
    description_from_markdown,
    extract_prefill,
    first_meta,
    meta_from_html,
    title_from_markdown,
)

MD = """Site navigation

# Central bank holds rates

The board kept the policy rate unchanged
and signalled patience.

## Details

More text.
"""


class TestMetadata:
    def test_og_before_plain(self):
        meta = {"title": "Plain", "og:title": "Open Graph"}
        assert extract_prefill("", meta)["title"] == "Open Graph"

    def test_camel_case_keys(self):
        meta = {"ogTitle": "T", "ogDescription": "D"}
        assert extract_prefill("", meta) == {"title": "T", "description": "D"}

    def test_list_values_joined(self):
        assert first_meta({"title": ["A", "B"]}, ["title"]) == "A B"

    def test_blank_values_skipped(self):
        assert first_meta({"og:title": "  ", "title": "Fallback"}, ["og:title", "title"]) == "Fallback"


class TestHtml:
    def test_meta_tags_and_title(self):
        html = (
            "<html><head><title> Page </title>"
            '<meta property="og:description" content=" From OG ">'
            "</head><body></body></html>"
        )
        meta = meta_from_html(html)
        assert meta["title"] == "Page"
        assert meta["og:description"] == "From OG"

    def test_html_used_when_metadata_missing(self):
        html = '<html><head><meta name="twitter:title" content="Tweet title"></head></html>'
        assert extract_prefill("", {}, html)["title"] == "Tweet title"

    def test_empty_html(self):
        assert meta_from_html("") == {}


class TestMarkdownFallback:
    def test_title_from_first_h1(self):
        assert title_from_markdown(MD) == "Central bank holds rates"

    def test_description_skips_headings(self):
        assert description_from_markdown("# T\n\n## Sub\n\nBody text.") == "Body text."

    def test_description_joins_soft_breaks(self):
        assert description_from_markdown("# T\n\nline one\nline two") == "line one line two"

    def test_description_skips_code_fence(self):
        assert description_from_markdown("```\ncode\n```\n\nProse.") == "Prose."

    def test_prefill_from_markdown_only(self):
        out = extract_prefill(MD, None)
        assert out["title"] == "Central bank holds rates"
        assert out["description"] == "Site navigation"

    def test_nothing_available(self):
        assert extract_prefill("   ", None) == {"title": "", "description": ""}
