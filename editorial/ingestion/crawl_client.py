import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from crawl4ai import AsyncWebCrawler, CrawlerRunConfig

from editorial.app.errors import InvalidInput, RequestFailed, ResponseMissingField
from editorial.app.settings import SCRAPE_TIMEOUT
from editorial.ingestion.canonicalize import canonicalize_url
from editorial.ingestion.extractor import extract_prefill

log = logging.getLogger(__name__)

SERVICE = "crawl4ai"


@dataclass
class CrawlConfig:
    user_agent: Optional[str] = None
    timeout: float = SCRAPE_TIMEOUT  # seconds, whole crawl


@dataclass
class ScrapeResult:
    markdown: str
    title: str
    description: str


def _markdown_text(markdown: Any) -> Optional[str]:
    # Newer crawl4ai returns a MarkdownGenerationResult, older ones a str.
    if markdown is None:
        return None
    if isinstance(markdown, str):
        return markdown
    raw = getattr(markdown, "raw_markdown", None)
    return raw if isinstance(raw, str) else str(markdown)


class Crawl4AIClient:
    """Wrapper around AsyncWebCrawler to expose a sync .scrape() for pre-fill."""

    def __init__(self, cfg: Optional[CrawlConfig] = None):
        self.cfg = cfg or CrawlConfig()

    async def _crawl(self, url: str):
        run_cfg = CrawlerRunConfig(
            page_timeout=int(self.cfg.timeout * 1000),
            excluded_tags=["img"],
            user_agent=self.cfg.user_agent,
        )
        async with AsyncWebCrawler() as crawler:
            return await crawler.arun(url=url, config=run_cfg)

    def scrape(self, url: str) -> ScrapeResult:
        """Markdown body plus a best-effort title/description. One attempt, bounded by the timeout."""
        if not canonicalize_url(url).value:
            raise InvalidInput("url", "not a valid http(s) URL")
        url = url.strip()

        async def _run():
            return await asyncio.wait_for(self._crawl(url), timeout=self.cfg.timeout)

        try:
            result = asyncio.run(_run())
        except asyncio.TimeoutError as e:
            raise RequestFailed(SERVICE, f"timed out after {self.cfg.timeout:.0f}s: {url}") from e
        except Exception as e:
            log.warning("crawl failed for %s: %s", url, e)
            raise RequestFailed(SERVICE, f"{type(e).__name__}: {e}") from e

        if not getattr(result, "success", False):
            reason = getattr(result, "error_message", None) or "unknown error"
            raise RequestFailed(SERVICE, f"{url}: {reason}")

        markdown = _markdown_text(getattr(result, "markdown", None))
        if markdown is None:
            raise ResponseMissingField(SERVICE, "markdown")
        prefill = extract_prefill(markdown, getattr(result, "metadata", None), getattr(result, "html", "") or "")
        return ScrapeResult(markdown=markdown, title=prefill["title"], description=prefill["description"])
