# tests/fakes.py
"""In-memory fakes for link checker tests.

FakeFetcher stands in for HttpFetcher with a fixed table of routes so that
crawls are deterministic and never touch the network.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from linkcrawl.events import EventType
from linkcrawl.http_client import FetchError, FetchResponse


@dataclass
class FakeRoute:
    """Canned response for one URL."""
    status: int = 200
    body: str = ""
    content_type: str = "text/html; charset=utf-8"
    head_status: Optional[int] = None  # Defaults to ``status``
    error: Optional[str] = None  # Raise FetchError instead of answering
    final_url: Optional[str] = None  # Where redirects ended up


def html_page(*hrefs: str) -> str:
    anchors = "".join(f'<a href="{href}">link</a>' for href in hrefs)
    return f"<html><head><title>t</title></head><body>{anchors}</body></html>"


class FakeFetcher:
    """In-memory fetcher keyed by exact URL."""

    def __init__(self, routes: Optional[Dict[str, FakeRoute]] = None):
        self.routes: Dict[str, FakeRoute] = dict(routes or {})
        self.requests: List[dict] = []
        self.gates: Dict[str, asyncio.Event] = {}
        self.on_fetch: Optional[Callable[[str, str], None]] = None
        self.closed = False

    def add_page(self, url: str, *hrefs: str, status: int = 200) -> None:
        self.routes[url] = FakeRoute(status=status, body=html_page(*hrefs))

    def add(self, url: str, **kwargs) -> None:
        self.routes[url] = FakeRoute(**kwargs)

    @property
    def calls(self) -> List[tuple]:
        return [(r["method"], r["url"]) for r in self.requests]

    def methods_for(self, url: str) -> List[str]:
        return [method for method, u in self.calls if u == url]

    async def fetch(self, url, method="GET", timeout=10.0, read_body=True):
        self.requests.append(
            {"method": method, "url": url, "timeout": timeout, "read_body": read_body}
        )
        if self.on_fetch is not None:
            self.on_fetch(method, url)

        gate = self.gates.get(url)
        if gate is not None:
            await gate.wait()
        else:
            await asyncio.sleep(0)

        route = self.routes.get(url)
        if route is None:
            raise FetchError(url, "Connection error: name does not resolve")
        if route.error:
            raise FetchError(url, route.error)

        status = route.status
        if method == "HEAD" and route.head_status is not None:
            status = route.head_status

        return FetchResponse(
            url=route.final_url or url,
            status_code=status,
            content_type=route.content_type,
            text=route.body if method != "HEAD" else "",
        )

    async def aclose(self):
        self.closed = True


class RecordingSink:
    """Sink that keeps every event in order."""

    def __init__(self):
        self.events: List[tuple] = []

    def emit(self, event, payload):
        self.events.append((event, payload))

    def of(self, event: EventType) -> list:
        return [payload for e, payload in self.events if e is event]

    @property
    def names(self) -> List[str]:
        return [e.value for e, _ in self.events]


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until ``predicate()`` holds."""
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.001)
    await asyncio.wait_for(_poll(), timeout)
