"""Breadth-first link-checking crawl engine."""

import asyncio
import logging
from collections import deque
from typing import Deque, List, Optional, Set

from linkcrawl.config import CrawlConfig
from linkcrawl.constants import HTTP_ERROR_THRESHOLD
from linkcrawl.events import EventSink, EventType
from linkcrawl.http_client import FetchError, Fetcher, HttpFetcher
from linkcrawl.link_extractor import extract_links
from linkcrawl.models import (
    BrokenLink,
    CrawlerError,
    CrawlReport,
    CrawlTarget,
    EngineState,
    ErrorMarker,
    ExternalWorkItem,
    LinkSource,
    LinkStatus,
    PageOrigin,
    ProgressUpdate,
)
from linkcrawl.scheduler import ExternalCheckScheduler
from linkcrawl.url_utils import (
    InvalidSeedUrlError,
    hostname_of,
    is_allowed,
    resolve,
    validate_seed_url,
)
from linkcrawl.verifier import LinkVerifier

logger = logging.getLogger(__name__)


class CrawlEngine:
    """Crawls one site breadth-first and reports every broken link it finds.

    Pages on allowed domains (the seed's host, its subdomains, and any
    configured extras) are fetched and mined for links up to ``max_depth``.
    Links to other hosts are never crawled, only verified through an
    ExternalCheckScheduler. Progress and findings stream to the sink as they
    happen.

    An engine runs exactly one session: create a new one for every crawl.
    """

    def __init__(
        self,
        seed_url: str,
        sink: EventSink,
        config: Optional[CrawlConfig] = None,
        fetcher: Optional[Fetcher] = None,
        verifier: Optional[LinkVerifier] = None,
    ):
        """Initialize the engine.

        Args:
            seed_url: Where the crawl starts
            sink: Receives log/progress/broken-link/error/finished events
            config: Budgets and timeouts (defaults to CrawlConfig())
            fetcher: HTTP fetcher; when omitted the engine opens its own
                HttpFetcher and closes it at the end of the session
            verifier: External link verifier (defaults to one sharing the fetcher)
        """
        self.raw_seed_url = seed_url
        self.sink = sink
        self.config = config or CrawlConfig()

        self._owns_fetcher = fetcher is None
        self.fetcher: Fetcher = fetcher or HttpFetcher(user_agent=self.config.user_agent)
        self.verifier = verifier or LinkVerifier(self.fetcher, timeout=self.config.link_timeout)

        try:
            self.seed_url: Optional[str] = validate_seed_url(seed_url)
            self._seed_error: Optional[str] = None
        except InvalidSeedUrlError as e:
            self.seed_url = None
            self._seed_error = str(e)

        self.allowed_domains: Set[str] = set(self.config.allowed_domains)
        if self.seed_url:
            self.allowed_domains.add(hostname_of(self.seed_url))

        # Crawl state
        self.frontier: Deque[CrawlTarget] = deque()
        self._frontier_urls: Set[str] = set()
        self.visited: Set[str] = set()
        self.checked_links: Set[str] = set()
        self.broken_links: List[BrokenLink] = []
        self.pages_crawled = 0

        self.state = EngineState.IDLE
        self._stop_requested = False
        self._finished = False

        self.scheduler = ExternalCheckScheduler(
            self.verifier,
            on_broken=self._record_broken,
            is_running=lambda: self.is_running,
            max_concurrency=self.config.max_concurrency,
        )

    @property
    def is_running(self) -> bool:
        return self.state is EngineState.RUNNING and not self._stop_requested

    def stop(self) -> None:
        """Ask the session to wind down at its next check point."""
        if not self._stop_requested:
            logger.info(f"Stop requested for crawl of {self.seed_url or self.raw_seed_url}")
        self._stop_requested = True

    async def start(self) -> List[BrokenLink]:
        """Run the session to completion, cancellation, or failure.

        Returns:
            Broken links found, in the order they were reported

        Raises:
            CrawlerError: If this engine has already been started
        """
        if self.state is not EngineState.IDLE:
            raise CrawlerError("A CrawlEngine can only be started once; create a new one")

        try:
            if self._seed_error:
                logger.error(self._seed_error)
                self._emit(EventType.ERROR, self._seed_error)
                return []

            if self._stop_requested:
                self.state = EngineState.CANCELLED
                return []

            self.state = EngineState.RUNNING
            try:
                await self._crawl()
            except Exception:
                logger.exception(f"Internal error while crawling {self.seed_url}")
                self.state = EngineState.FAILED
                self._finished = True
                self._emit(EventType.ERROR, "Internal crawler error")
        finally:
            await self._shutdown()

        return list(self.broken_links)

    async def _crawl(self) -> None:
        self._enqueue(CrawlTarget(url=self.seed_url, depth=0))
        self._emit(
            EventType.LOG,
            f"Starting crawl: {self.seed_url} (max depth: {self.config.max_depth}, "
            f"max pages: {self.config.max_pages})",
        )

        while self.frontier and self.is_running and self.pages_crawled < self.config.max_pages:
            target = self.frontier.popleft()
            self._frontier_urls.discard(target.url)

            if target.url in self.visited:
                continue

            await self._process_page(target)

            # Politeness delay
            await asyncio.sleep(self.config.page_delay)

        # Wait for external checks to finish
        while not self.scheduler.idle:
            if not self.is_running:
                break
            await asyncio.sleep(self.config.drain_poll_interval)
            self.scheduler.drain()

        self.state = EngineState.CANCELLED if self._stop_requested else EngineState.COMPLETED
        self._finished = True

        report = CrawlReport(
            seed_url=self.seed_url,
            pages_crawled=self.pages_crawled,
            broken_links=tuple(self.broken_links),
            state=self.state,
        )
        self._emit(EventType.FINISHED, report)
        self._emit(
            EventType.LOG,
            f"Crawl {self.state.value}: {self.pages_crawled} pages, "
            f"{len(self.broken_links)} broken links.",
        )

    async def _process_page(self, target: CrawlTarget) -> None:
        """Fetch one frontier page, then queue or submit the links on it."""
        url, depth = target.url, target.depth

        self.visited.add(url)
        self.pages_crawled += 1

        self._emit(
            EventType.PROGRESS,
            ProgressUpdate(
                url=url,
                count=self.pages_crawled,
                queue_size=len(self.frontier),
                depth=depth,
            ),
        )
        self._emit(EventType.LOG, f"Crawling (depth {depth}): {url}")

        try:
            response = await self.fetcher.fetch(
                url, method="GET", timeout=self.config.page_timeout
            )
        except FetchError as e:
            logger.warning(f"Failed to fetch {url}: {e.message}")
            self._emit(EventType.ERROR, f"Error fetching {url}: {e.message}")
            self._report_broken(url, ErrorMarker.TRANSPORT, PageOrigin.FRONTIER)
            return

        if response.status_code >= HTTP_ERROR_THRESHOLD:
            self._report_broken(url, response.status_code, PageOrigin.FRONTIER)
            return

        if not response.is_html:
            logger.debug(f"Skipping non-HTML page {url} ({response.content_type!r})")
            return

        # Max depth reached: page was checked but is not mined for links
        if depth >= self.config.max_depth:
            return

        # Relative hrefs resolve against where redirects actually landed
        page_url = response.url or url

        queued = submitted = 0
        for href in extract_links(response.text, page_url):
            link = resolve(href, page_url)
            if link is None:
                logger.debug(f"Discarding unresolvable href {href!r} on {url}")
                continue

            if link in self.checked_links:
                continue
            self.checked_links.add(link)

            if is_allowed(hostname_of(link), self.allowed_domains):
                if link not in self.visited and link not in self._frontier_urls:
                    self._enqueue(CrawlTarget(url=link, depth=depth + 1))
                    queued += 1
            else:
                self.scheduler.submit(ExternalWorkItem(url=link, source=url))
                submitted += 1

        logger.debug(f"{url}: queued {queued} pages, submitted {submitted} external links")

    def _enqueue(self, target: CrawlTarget) -> None:
        self.frontier.append(target)
        self._frontier_urls.add(target.url)

    def _report_broken(self, url: str, status: LinkStatus, source: LinkSource) -> None:
        self._record_broken(BrokenLink(url=url, status=status, source=source))

    def _record_broken(self, link: BrokenLink) -> None:
        if self._finished:
            # Verification that outlived a stopped session
            logger.debug(f"Dropping late result for {link.url}; session already finished")
            return
        self.broken_links.append(link)
        self._emit(EventType.BROKEN_LINK, link)

    def _emit(self, event: EventType, payload) -> None:
        self.sink.emit(event, payload)

    async def _shutdown(self) -> None:
        # In-flight verifications are allowed to complete before the client closes
        await self.scheduler.join()
        if self._owns_fetcher:
            await self.fetcher.aclose()
