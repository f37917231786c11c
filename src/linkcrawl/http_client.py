"""HTTP fetch adapter built on httpx.

Every status code is returned as a normal response; only transport-level
problems (DNS, refused connections, timeouts, bad URLs) raise ``FetchError``.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

from linkcrawl.constants import DEFAULT_USER_AGENT, PAGE_FETCH_TIMEOUT_SECONDS
from linkcrawl.models import CrawlerError

logger = logging.getLogger(__name__)


class FetchError(CrawlerError):
    """Raised when a request produced no HTTP response at all."""

    def __init__(self, url: str, message: str):
        self.url = url
        self.message = message
        super().__init__(f"{url}: {message}")


@dataclass
class FetchResponse:
    """Minimal view of an HTTP response."""
    url: str
    status_code: int
    content_type: str = ""
    text: str = ""

    @property
    def is_html(self) -> bool:
        return "text/html" in self.content_type.lower()


class Fetcher(Protocol):
    """What the engine and verifier need from an HTTP client."""

    async def fetch(
        self,
        url: str,
        method: str = "GET",
        timeout: float = PAGE_FETCH_TIMEOUT_SECONDS,
        read_body: bool = True,
    ) -> FetchResponse:
        ...


class HttpFetcher:
    """Async fetcher sharing one httpx connection pool per session.

    The underlying ``httpx.AsyncClient`` is opened on the first request, so a
    fetcher that is created but never used holds no connections.
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the fetcher.

        Args:
            user_agent: Identifying header sent with every request
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.user_agent = user_agent
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_open(self) -> bool:
        """Whether a client connection pool is currently open."""
        return self._client is not None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
                transport=self._transport,
            )
        return self._client

    async def fetch(
        self,
        url: str,
        method: str = "GET",
        timeout: float = PAGE_FETCH_TIMEOUT_SECONDS,
        read_body: bool = True,
    ) -> FetchResponse:
        """Issue a single request.

        Args:
            url: Absolute URL
            method: "GET" or "HEAD"
            timeout: Per-request timeout in seconds
            read_body: Download and decode the body of HTML responses; other
                content types are never read (ignored for HEAD)

        Returns:
            FetchResponse for any status code, carrying the final URL after
            redirects

        Raises:
            FetchError: On transport failure
        """
        try:
            async with self._get_client().stream(method, url, timeout=timeout) as response:
                result = FetchResponse(
                    url=str(response.url),
                    status_code=response.status_code,
                    content_type=response.headers.get("content-type", ""),
                )
                if read_body and method.upper() != "HEAD" and result.is_html:
                    await response.aread()
                    result.text = response.text
                return result
        except httpx.TimeoutException:
            raise FetchError(url, f"Request timeout after {timeout}s")
        except httpx.ConnectError as e:
            raise FetchError(url, f"Connection error: {e}")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(url, str(e) or type(e).__name__)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
