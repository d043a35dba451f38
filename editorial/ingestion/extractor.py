# editorial/ingestion/extractor.py
"""Title / description pre-fill from crawl metadata, page HTML and markdown."""
import re
from typing import Any, Dict, Optional

from bs4 import BeautifulSoup

TITLE_KEYS = ("og:title", "ogTitle", "twitter:title", "title")
DESCRIPTION_KEYS = ("og:description", "ogDescription", "twitter:description", "description")

_HEADING_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_ANY_HEADING_RE = re.compile(r"^#{1,6}[ \t]+")
_FENCE_RE = re.compile(r"^(```|~~~)")


def _meta_text(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        value = " ".join(str(v) for v in value)
    if isinstance(value, bool) or isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return ""


def first_meta(metadata: Optional[Dict[str, Any]], keys) -> str:
    metadata = metadata or {}
    for k in keys:
        text = _meta_text(metadata.get(k))
        if text:
            return text
    return ""


def meta_from_html(html: str) -> Dict[str, str]:
    """og:/twitter:/plain meta tags and <title> from raw HTML."""
    out: Dict[str, str] = {}
    if not html:
        return out
    soup = BeautifulSoup(html, "lxml")
    for tag in soup.find_all("meta"):
        key = tag.get("property") or tag.get("name")
        content = tag.get("content")
        if key and content and key not in out:
            out[key] = content.strip()
    if "title" not in out and soup.title and soup.title.string:
        out["title"] = soup.title.string.strip()
    return out


def title_from_markdown(md: str) -> str:
    m = _HEADING_RE.search(md or "")
    return m.group(1).strip() if m else ""


def description_from_markdown(md: str) -> str:
    """First paragraph that is neither a heading nor a code fence, soft breaks joined."""
    for paragraph in re.split(r"\n\s*\n", (md or "").strip()):
        lines = [ln.strip() for ln in paragraph.splitlines()]
        # a heading line directly followed by text still yields the text
        while lines and _ANY_HEADING_RE.match(lines[0]):
            lines.pop(0)
        if not lines or _FENCE_RE.match(lines[0]):
            continue
        text = " ".join(ln for ln in lines if ln)
        if text:
            return text
    return ""


def extract_prefill(markdown: str, metadata: Optional[Dict[str, Any]], html: str = "") -> Dict[str, str]:
    has_content = bool((markdown or "").strip())
    title = first_meta(metadata, TITLE_KEYS)
    description = first_meta(metadata, DESCRIPTION_KEYS)
    if (not title or not description) and html:
        page_meta = meta_from_html(html)
        title = title or first_meta(page_meta, TITLE_KEYS)
        description = description or first_meta(page_meta, DESCRIPTION_KEYS)
    if not title and has_content:
        title = title_from_markdown(markdown)
    if not description and has_content:
        description = description_from_markdown(markdown)
    return {"title": title, "description": description}
