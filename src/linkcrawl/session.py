"""Session registry: at most one running crawl per channel.

A channel is whatever identifies a remote caller (a socket id, a websocket
object, or the literal "cli"). Starting a crawl on a channel stops the crawl
already running there; disconnecting a channel stops its crawl.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Hashable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from linkcrawl.config import CrawlConfig
from linkcrawl.engine import CrawlEngine
from linkcrawl.events import EventSink, EventType
from linkcrawl.http_client import Fetcher

logger = logging.getLogger(__name__)

FetcherFactory = Callable[[CrawlConfig], Fetcher]


class CrawlOptions(BaseModel):
    """Per-session overrides a caller may send."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    max_pages: Optional[int] = Field(
        default=None,
        alias="maxPages",
        ge=1,
        description="Maximum frontier pages to fetch",
    )

    max_depth: Optional[int] = Field(
        default=None,
        alias="maxDepth",
        ge=0,
        description="Depth at which link extraction stops (seed is 0)",
    )

    allowed_domains: List[str] = Field(
        default_factory=list,
        alias="allowedDomains",
        description="Extra domains (and their subdomains) treated as internal",
    )


class CrawlRequest(BaseModel):
    """A start-crawl command."""

    model_config = ConfigDict(extra="ignore")

    url: str = Field(description="Seed URL")
    options: CrawlOptions = Field(default_factory=CrawlOptions)

    @classmethod
    def from_payload(cls, data: Any) -> "CrawlRequest":
        """Accept either a bare URL string or a ``{"url", "options"}`` mapping.

        Raises:
            pydantic.ValidationError: If the payload has the wrong shape
        """
        if isinstance(data, str):
            return cls(url=data)
        return cls.model_validate(data)


class SessionRegistry:
    """Maps channels to their active CrawlEngine."""

    def __init__(
        self,
        base_config: Optional[CrawlConfig] = None,
        fetcher_factory: Optional[FetcherFactory] = None,
    ):
        """Initialize the registry.

        Args:
            base_config: Defaults that request options are applied on top of
            fetcher_factory: Builds a fetcher for each session; when omitted
                every engine opens (and closes) its own HttpFetcher
        """
        self.base_config = base_config or CrawlConfig()
        self.fetcher_factory = fetcher_factory
        self._engines: Dict[Hashable, CrawlEngine] = {}
        self._tasks: Dict[Hashable, asyncio.Task] = {}

    def start_crawl(
        self, channel: Hashable, data: Any, sink: EventSink
    ) -> Optional[asyncio.Task]:
        """Start a crawl on ``channel``, replacing any crawl already there.

        Must be called from a running event loop.

        Returns:
            The task running the session, or None if the request was rejected
        """
        self._stop_engine(channel)

        try:
            request = CrawlRequest.from_payload(data)
        except ValidationError as e:
            logger.warning(f"Rejected crawl request on {channel!r}: {e}")
            sink.emit(EventType.ERROR, "Invalid crawl request.")
            return None

        if not request.url.startswith("http"):
            sink.emit(EventType.ERROR, "Invalid URL. It must start with http or https.")
            return None

        config = self.base_config.with_options(
            max_pages=request.options.max_pages,
            max_depth=request.options.max_depth,
            allowed_domains=request.options.allowed_domains,
        )
        fetcher = self.fetcher_factory(config) if self.fetcher_factory else None
        engine = CrawlEngine(request.url, sink, config=config, fetcher=fetcher)

        task = asyncio.create_task(
            self._run_session(engine, fetcher), name=f"crawl {request.url}"
        )
        self._engines[channel] = engine
        self._tasks[channel] = task
        task.add_done_callback(lambda t, ch=channel, e=engine: self._forget(ch, e))

        logger.info(f"Started crawl of {request.url} on {channel!r}")
        return task

    def stop_crawl(self, channel: Hashable, sink: Optional[EventSink] = None) -> None:
        """Stop the crawl running on ``channel``, if any."""
        self._stop_engine(channel)
        if sink is not None:
            sink.emit(EventType.LOG, "Crawl stopped by user.")

    def disconnect(self, channel: Hashable) -> None:
        """Handle a caller going away: stop its crawl and forget it."""
        self._stop_engine(channel)
        self._engines.pop(channel, None)
        self._tasks.pop(channel, None)
        logger.info(f"Channel {channel!r} disconnected")

    def get(self, channel: Hashable) -> Optional[CrawlEngine]:
        return self._engines.get(channel)

    def active_channels(self) -> List[Hashable]:
        return [ch for ch, engine in self._engines.items() if engine.is_running]

    async def wait(self, channel: Hashable) -> None:
        """Wait for the session on ``channel`` to end."""
        task = self._tasks.get(channel)
        if task is not None:
            await task

    async def _run_session(self, engine: CrawlEngine, fetcher: Optional[Fetcher]):
        try:
            return await engine.start()
        finally:
            # Factory-built fetchers belong to the registry, not the engine
            if fetcher is not None and hasattr(fetcher, "aclose"):
                await fetcher.aclose()

    def _stop_engine(self, channel: Hashable) -> None:
        engine = self._engines.get(channel)
        if engine is not None:
            engine.stop()

    def _forget(self, channel: Hashable, engine: CrawlEngine) -> None:
        # A newer session may already own the channel
        if self._engines.get(channel) is engine:
            del self._engines[channel]
            self._tasks.pop(channel, None)
