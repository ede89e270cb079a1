from __future__ import annotations

import pytest

from concierge.pipelines.conversation import LinkScreenshotEnricher, extract_urls


def test_extract_urls_dedupes_in_order_and_strips_delimiters():
    text = (
        "See https://a.example/menu, then <a href=\"https://b.example/x\">B</a>. "
        "Again https://a.example/menu and (http://c.example/path)."
    )

    assert extract_urls(text) == [
        "https://a.example/menu",
        "https://b.example/x",
        "http://c.example/path",
    ]


def test_extract_urls_handles_empty_text():
    assert extract_urls("") == []
    assert extract_urls(None) == []


@pytest.mark.asyncio
async def test_failed_capture_falls_back_to_next_url(capture):
    capture.failing.add("https://a.example")
    enricher = LinkScreenshotEnricher(capture)

    screenshots = await enricher.capture_with_fallback(
        ["https://a.example", "https://b.example", "https://c.example"], 2
    )

    assert [shot.original_url for shot in screenshots] == [
        "https://b.example",
        "https://c.example",
    ]
    assert capture.calls == ["https://a.example", "https://b.example", "https://c.example"]


@pytest.mark.asyncio
async def test_capture_stops_once_the_cap_is_reached(capture):
    enricher = LinkScreenshotEnricher(capture)

    screenshots = await enricher.capture_with_fallback(
        ["https://a.example", "https://b.example", "https://c.example"], 2
    )

    assert len(screenshots) == 2
    assert capture.calls == ["https://a.example", "https://b.example"]


@pytest.mark.asyncio
async def test_zero_cap_never_calls_the_capture_service(capture):
    enricher = LinkScreenshotEnricher(capture)

    assert await enricher.capture_with_fallback(["https://a.example"], 0) == []
    assert capture.calls == []


@pytest.mark.asyncio
async def test_enrich_extracts_links_from_answer_text(capture):
    enricher = LinkScreenshotEnricher(capture)

    screenshots = await enricher.enrich("<a href='https://a.example/menu'>menu</a>", 2)

    assert [shot.original_url for shot in screenshots] == ["https://a.example/menu"]
