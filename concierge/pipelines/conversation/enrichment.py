"""Link extraction and screenshot enrichment for assistant answers."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List

from concierge.application.interfaces import ScreenshotCaptureInterface
from concierge.domain.models import Screenshot
from concierge.telemetry import SCREENSHOT_CAPTURES

logger = logging.getLogger("concierge.pipelines.conversation")

_URL_PATTERN = re.compile(r"https?://[^\s\"'<>()\[\]{}]+", re.IGNORECASE)
_TRAILING_PUNCTUATION = ".,;:!?"


def extract_urls(text: str | None) -> List[str]:
    """Return unique http(s) URLs in order of first appearance."""

    seen: dict[str, None] = {}
    for match in _URL_PATTERN.findall(text or ""):
        url = match.rstrip(_TRAILING_PUNCTUATION)
        if url and url not in seen:
            seen[url] = None
    return list(seen)


class LinkScreenshotEnricher:
    def __init__(self, capture: ScreenshotCaptureInterface) -> None:
        self._capture = capture

    async def capture_with_fallback(
        self, urls: Iterable[str], max_results: int
    ) -> List[Screenshot]:
        """Capture URLs one by one until ``max_results`` succeed.

        A failing URL is logged and skipped; the next candidate is tried.
        """

        screenshots: List[Screenshot] = []
        if max_results <= 0:
            return screenshots

        for url in urls:
            try:
                screenshot_url = await self._capture.capture(url)
            except Exception as exc:
                SCREENSHOT_CAPTURES.labels(outcome="failed").inc()
                logger.warning("Screenshot capture failed for %s: %s", url, exc)
                continue

            SCREENSHOT_CAPTURES.labels(outcome="captured").inc()
            screenshots.append(Screenshot(original_url=url, screenshot_url=screenshot_url))
            if len(screenshots) >= max_results:
                break

        return screenshots

    async def enrich(self, text: str, max_results: int) -> List[Screenshot]:
        return await self.capture_with_fallback(extract_urls(text), max_results)


__all__ = ["LinkScreenshotEnricher", "extract_urls"]
