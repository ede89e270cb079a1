"""Firecrawl scrape API adapter used to screenshot links."""

from __future__ import annotations

import logging

import httpx

from concierge.application.interfaces import ScreenshotCaptureInterface
from concierge.config.settings import settings

logger = logging.getLogger(__name__)


class ScreenshotCaptureError(RuntimeError):
    """Raised when Firecrawl does not return a screenshot for a URL."""


class FirecrawlScreenshotClient(ScreenshotCaptureInterface):
    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        max_age_ms: int | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        config = settings.firecrawl
        self._base_url = (base_url or config.base_url).rstrip("/")
        if api_key is None and config.api_key is not None:
            api_key = config.api_key.get_secret_value()
        self._api_key = api_key or ""
        self._max_age_ms = max_age_ms if max_age_ms is not None else config.max_age_ms
        self._timeout = timeout_seconds or config.timeout_seconds
        self._transport = transport

    async def capture(self, url: str) -> str:
        endpoint = f"{self._base_url}/v1/scrape"
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        payload = {
            "url": url,
            "formats": ["screenshot"],
            "onlyMainContent": True,
            "maxAge": self._max_age_ms,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.post(endpoint, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ScreenshotCaptureError(f"Firecrawl request failed for {url}: {exc}") from exc

        if not isinstance(data, dict) or not data.get("success"):
            raise ScreenshotCaptureError(f"Firecrawl scrape was unsuccessful for {url}")
        body = data.get("data")
        screenshot = body.get("screenshot") if isinstance(body, dict) else None
        if not screenshot:
            raise ScreenshotCaptureError(f"Firecrawl returned no screenshot for {url}")

        logger.debug("Captured screenshot for %s", url)
        return str(screenshot)


__all__ = ["FirecrawlScreenshotClient", "ScreenshotCaptureError"]
