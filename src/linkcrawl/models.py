"""Data models for link checking."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from linkcrawl.constants import HTTP_ERROR_THRESHOLD


class CrawlerError(Exception):
    """Base exception for the link checker."""


class PageOrigin(Enum):
    """Marks a broken link that is a frontier page, not a link found on one."""
    FRONTIER = "frontier"


class ErrorMarker(Enum):
    """Status recorded when no HTTP status was received at all."""
    TRANSPORT = "error"


class EngineState(Enum):
    """Lifecycle of a single crawl session."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


LinkStatus = Union[int, ErrorMarker]
LinkSource = Union[str, PageOrigin]


@dataclass(frozen=True)
class CrawlTarget:
    """One frontier entry. Seed is depth 0, each hop adds 1."""
    url: str
    depth: int


@dataclass(frozen=True)
class ExternalWorkItem:
    """An off-site link waiting for verification."""
    url: str
    source: str


@dataclass(frozen=True)
class BrokenLink:
    """A link (or frontier page) that answered >= 400 or not at all."""
    url: str
    status: LinkStatus
    source: LinkSource

    @property
    def is_frontier_failure(self) -> bool:
        return self.source is PageOrigin.FRONTIER

    @property
    def is_transport_error(self) -> bool:
        return self.status is ErrorMarker.TRANSPORT

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "status": self.status.value if isinstance(self.status, ErrorMarker) else self.status,
            "source": None if self.is_frontier_failure else self.source,
            "frontier": self.is_frontier_failure,
        }


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of checking one link.

    ``status`` is the final HTTP status when one was received; ``error`` holds
    the transport failure message otherwise.
    """
    url: str
    status: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def from_status(cls, url: str, status: int) -> "VerificationOutcome":
        return cls(url=url, status=status)

    @classmethod
    def transport_error(cls, url: str, message: str) -> "VerificationOutcome":
        return cls(url=url, error=message)

    @property
    def ok(self) -> bool:
        return self.error is None and self.status is not None and self.status < HTTP_ERROR_THRESHOLD

    @property
    def is_broken(self) -> bool:
        return not self.ok

    @property
    def broken_status(self) -> LinkStatus:
        """Status to record on a BrokenLink."""
        if self.error is not None or self.status is None:
            return ErrorMarker.TRANSPORT
        return self.status


@dataclass(frozen=True)
class ProgressUpdate:
    """Emitted each time a frontier page is dequeued for processing."""
    url: str
    count: int
    queue_size: int
    depth: int

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "count": self.count,
            "queueSize": self.queue_size,
            "depth": self.depth,
        }


@dataclass(frozen=True)
class CrawlReport:
    """Payload of the terminal ``finished`` event."""
    seed_url: str
    pages_crawled: int
    broken_links: tuple[BrokenLink, ...] = field(default_factory=tuple)
    state: EngineState = EngineState.COMPLETED

    def to_dict(self) -> dict:
        return {
            "seedUrl": self.seed_url,
            "pagesCrawled": self.pages_crawled,
            "state": self.state.value,
            "brokenLinks": [link.to_dict() for link in self.broken_links],
        }
