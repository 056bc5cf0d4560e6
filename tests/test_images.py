"""Tests for image lookup across Unsplash and Google image search."""

from __future__ import annotations

import asyncio

import httpx

from info_commander.config import ImageConfig, SearchConfig
from info_commander.images import ImageResolver
from info_commander.search import SearchClient


class _DummySearch:
    def __init__(self, url: str | None = "https://img.example.com/g.jpg", exc: Exception | None = None):
        self.url = url
        self.exc = exc
        self.keywords: list[str] = []

    async def search_image(self, keyword: str) -> str | None:
        self.keywords.append(keyword)
        if self.exc is not None:
            raise self.exc
        return self.url


def _unsplash_transport(status: int = 200, results: list | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "api.unsplash.com"
        assert request.url.params["client_id"] == "unsplash-key"
        if status != 200:
            return httpx.Response(status)
        return httpx.Response(200, json={"results": results if results is not None else []})

    return httpx.MockTransport(handler)


def test_news_image_goes_to_google():
    search = _DummySearch()
    resolver = ImageResolver(ImageConfig(unsplash_access_key="unsplash-key"), search=search)

    url = asyncio.run(resolver.resolve("Taipei 101", "news"))

    assert url == "https://img.example.com/g.jpg"
    assert search.keywords == ["Taipei 101"]


def test_concept_image_prefers_unsplash():
    search = _DummySearch()
    transport = _unsplash_transport(results=[{"urls": {"regular": "https://images.unsplash.com/1"}}])
    resolver = ImageResolver(ImageConfig(unsplash_access_key="unsplash-key"), search=search, transport=transport)

    url = asyncio.run(resolver.resolve("artificial intelligence", "concept"))

    assert url == "https://images.unsplash.com/1"
    assert search.keywords == []


def test_concept_image_falls_back_to_google_on_empty_unsplash():
    search = _DummySearch()
    resolver = ImageResolver(
        ImageConfig(unsplash_access_key="unsplash-key"),
        search=search,
        transport=_unsplash_transport(results=[]),
    )

    assert asyncio.run(resolver.resolve("abstract", "concept")) == "https://img.example.com/g.jpg"
    assert search.keywords == ["abstract"]


def test_concept_image_falls_back_to_google_on_unsplash_error():
    search = _DummySearch()
    resolver = ImageResolver(
        ImageConfig(unsplash_access_key="unsplash-key"),
        search=search,
        transport=_unsplash_transport(status=401),
    )

    assert asyncio.run(resolver.resolve("abstract", "concept")) == "https://img.example.com/g.jpg"


def test_concept_image_null_unsplash_url_is_a_miss():
    search = _DummySearch(url=None)
    resolver = ImageResolver(
        ImageConfig(unsplash_access_key="unsplash-key"),
        search=search,
        transport=_unsplash_transport(results=[{"urls": {"regular": None}}]),
    )

    assert asyncio.run(resolver.resolve("ai", "concept")) is None
    assert search.keywords == ["ai"]


def test_concept_without_unsplash_key_uses_google():
    search = _DummySearch()
    resolver = ImageResolver(ImageConfig(), search=search)

    assert asyncio.run(resolver.resolve("abstract", "concept")) == "https://img.example.com/g.jpg"


def test_provider_failure_reads_as_miss():
    resolver = ImageResolver(ImageConfig(), search=_DummySearch(exc=RuntimeError("down")))

    assert asyncio.run(resolver.resolve("x")) is None


def test_disabled_or_blank_keyword_returns_none():
    search = _DummySearch()

    assert asyncio.run(ImageResolver(ImageConfig(enabled=False), search=search).resolve("x")) is None
    assert asyncio.run(ImageResolver(ImageConfig(), search=search).resolve("  ")) is None
    assert search.keywords == []


def test_unconfigured_google_search_returns_none():
    resolver = ImageResolver(ImageConfig(), search=SearchClient(SearchConfig()))

    assert asyncio.run(resolver.resolve("x")) is None
