"""Live, cancellable website link checker."""

__version__ = "0.1.0"

from linkcrawl.config import CrawlConfig
from linkcrawl.engine import CrawlEngine
from linkcrawl.events import EventSink, EventType, JsonLinesSink, LoggingSink
from linkcrawl.http_client import FetchError, FetchResponse, HttpFetcher
from linkcrawl.link_extractor import extract_links
from linkcrawl.models import (
    BrokenLink,
    CrawlerError,
    CrawlReport,
    CrawlTarget,
    EngineState,
    ErrorMarker,
    ExternalWorkItem,
    PageOrigin,
    ProgressUpdate,
    VerificationOutcome,
)
from linkcrawl.output_manager import OutputManager
from linkcrawl.scheduler import ExternalCheckScheduler
from linkcrawl.session import CrawlOptions, CrawlRequest, SessionRegistry
from linkcrawl.url_utils import (
    InvalidSeedUrlError,
    is_allowed,
    normalize,
    resolve,
    validate_seed_url,
)
from linkcrawl.verifier import LinkVerifier

__all__ = [
    # Core
    "CrawlEngine",
    "ExternalCheckScheduler",
    "LinkVerifier",
    "SessionRegistry",
    # URL helpers
    "normalize",
    "resolve",
    "is_allowed",
    "validate_seed_url",
    "extract_links",
    # Models
    "BrokenLink",
    "CrawlReport",
    "CrawlTarget",
    "EngineState",
    "ErrorMarker",
    "ExternalWorkItem",
    "PageOrigin",
    "ProgressUpdate",
    "VerificationOutcome",
    "CrawlOptions",
    "CrawlRequest",
    # Events
    "EventSink",
    "EventType",
    "JsonLinesSink",
    "LoggingSink",
    # Infrastructure
    "CrawlConfig",
    "HttpFetcher",
    "FetchResponse",
    "OutputManager",
    # Errors
    "CrawlerError",
    "FetchError",
    "InvalidSeedUrlError",
]
