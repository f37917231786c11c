"""Tests for the httpx-based fetcher."""

import httpx
import pytest

from linkcrawl.constants import DEFAULT_USER_AGENT
from linkcrawl.engine import CrawlEngine
from linkcrawl.events import EventType
from linkcrawl.http_client import FetchError, FetchResponse, HttpFetcher


SEED = "https://example.com/"


def make_fetcher(handler, user_agent=DEFAULT_USER_AGENT):
    return HttpFetcher(user_agent=user_agent, transport=httpx.MockTransport(handler))


class CountingStream(httpx.AsyncByteStream):
    """Response body that records how many bytes were pulled from it."""

    def __init__(self, chunks, chunk_size=64 * 1024):
        self.chunks = chunks
        self.chunk = b"\0" * chunk_size
        self.bytes_read = 0

    async def __aiter__(self):
        for _ in range(self.chunks):
            self.bytes_read += len(self.chunk)
            yield self.chunk

    async def aclose(self):
        pass


class TestHttpFetcher:
    """Test cases for HttpFetcher."""

    @pytest.mark.asyncio
    async def test_error_status_is_a_response(self):
        """4xx/5xx must come back as responses, never exceptions."""
        fetcher = make_fetcher(lambda request: httpx.Response(
            404, headers={"content-type": "text/html"}, text="missing"
        ))
        async with fetcher:
            response = await fetcher.fetch("https://example.com/gone")

        assert response.status_code == 404
        assert response.text == "missing"

    @pytest.mark.asyncio
    async def test_sends_identifying_user_agent(self):
        seen = {}

        def handler(request):
            seen["ua"] = request.headers.get("user-agent")
            seen["method"] = request.method
            return httpx.Response(200)

        async with make_fetcher(handler, user_agent="TestBot/2.0") as fetcher:
            await fetcher.fetch("https://example.com/", method="HEAD")

        assert seen == {"ua": "TestBot/2.0", "method": "HEAD"}

    @pytest.mark.asyncio
    async def test_reports_content_type_and_body(self):
        def handler(request):
            return httpx.Response(
                200,
                headers={"content-type": "text/html; charset=utf-8"},
                text="<a href='/x'>x</a>",
            )

        async with make_fetcher(handler) as fetcher:
            response = await fetcher.fetch("https://example.com/")

        assert isinstance(response, FetchResponse)
        assert response.is_html
        assert "<a href='/x'>" in response.text

    @pytest.mark.asyncio
    async def test_body_not_read_when_not_requested(self):
        async with make_fetcher(lambda request: httpx.Response(200, text="big body")) as fetcher:
            response = await fetcher.fetch("https://example.com/", read_body=False)

        assert response.status_code == 200
        assert response.text == ""

    @pytest.mark.asyncio
    async def test_follows_redirects(self):
        def handler(request):
            if request.url.path == "/old":
                return httpx.Response(301, headers={"location": "https://example.com/new"})
            return httpx.Response(200, text="new")

        async with make_fetcher(handler) as fetcher:
            response = await fetcher.fetch("https://example.com/old")

        assert response.status_code == 200
        assert response.url == "https://example.com/new"

    @pytest.mark.asyncio
    async def test_non_html_body_is_never_downloaded(self):
        body = CountingStream(chunks=200)

        def handler(request):
            return httpx.Response(
                200, headers={"content-type": "application/octet-stream"}, stream=body
            )

        async with make_fetcher(handler) as fetcher:
            response = await fetcher.fetch("https://example.com/big.iso")

        assert response.status_code == 200
        assert response.text == ""
        assert body.bytes_read == 0

    @pytest.mark.asyncio
    async def test_crawl_skips_download_of_non_html_page(self, sink, fast_config):
        body = CountingStream(chunks=200)

        def handler(request):
            if request.url.path == "/big.iso":
                return httpx.Response(
                    200, headers={"content-type": "application/octet-stream"}, stream=body
                )
            return httpx.Response(
                200,
                headers={"content-type": "text/html; charset=utf-8"},
                text='<a href="/big.iso">download</a>',
            )

        async with make_fetcher(handler) as fetcher:
            engine = CrawlEngine(SEED, sink, config=fast_config, fetcher=fetcher)
            await engine.start()

        assert [p.url for p in sink.of(EventType.PROGRESS)] == [
            SEED, "https://example.com/big.iso",
        ]
        assert body.bytes_read == 0

    @pytest.mark.asyncio
    async def test_client_is_opened_on_first_request(self):
        fetcher = make_fetcher(lambda request: httpx.Response(200))
        assert not fetcher.is_open

        await fetcher.fetch(SEED, method="HEAD")
        assert fetcher.is_open

        await fetcher.aclose()
        assert not fetcher.is_open

    @pytest.mark.asyncio
    async def test_close_without_requests(self):
        fetcher = HttpFetcher()
        await fetcher.aclose()
        assert not fetcher.is_open

    @pytest.mark.asyncio
    async def test_connection_error_raises_fetch_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_fetcher(handler) as fetcher:
            with pytest.raises(FetchError) as exc_info:
                await fetcher.fetch("https://down.example.com/")

        assert exc_info.value.url == "https://down.example.com/"
        assert "Connection error" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout_raises_fetch_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_fetcher(handler) as fetcher:
            with pytest.raises(FetchError) as exc_info:
                await fetcher.fetch("https://slow.example.com/", timeout=5.0)

        assert "timeout" in exc_info.value.message.lower()

    def test_is_html(self):
        assert FetchResponse("u", 200, "TEXT/HTML").is_html
        assert not FetchResponse("u", 200, "application/pdf").is_html
        assert not FetchResponse("u", 200, "").is_html
