from dotenv import load_dotenv
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional
import os

from linkcrawl.constants import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_PAGES,
    DEFAULT_USER_AGENT,
    DRAIN_POLL_INTERVAL_SECONDS,
    LINK_CHECK_TIMEOUT_SECONDS,
    MAX_CONCURRENT_LINK_CHECKS,
    PAGE_FETCH_TIMEOUT_SECONDS,
    POLITENESS_DELAY_SECONDS,
)

load_dotenv()  # Loads variables from .env file

ENV_PREFIX = "LINKCRAWL_"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


def _env_number(name: str, default, cast):
    value = _env(name)
    if value is None:
        return default
    try:
        return cast(value)
    except ValueError:
        return default  # Keep default if conversion fails


def parse_domains(raw: Optional[Iterable[str]]) -> frozenset[str]:
    """Normalize a collection of domain names (lowercased, blanks dropped)."""
    if not raw:
        return frozenset()
    if isinstance(raw, str):
        raw = raw.split(",")
    return frozenset(d.strip().lower().rstrip(".") for d in raw if d and d.strip())


@dataclass(frozen=True)
class CrawlConfig:
    """Configuration for one link-check session.

    Fixed at session start. The seed URL's hostname is added to
    ``allowed_domains`` by the engine, so it never needs to be listed here.
    """
    max_pages: int = DEFAULT_MAX_PAGES
    max_depth: int = DEFAULT_MAX_DEPTH
    allowed_domains: frozenset[str] = field(default_factory=frozenset)
    max_concurrency: int = MAX_CONCURRENT_LINK_CHECKS
    page_timeout: float = PAGE_FETCH_TIMEOUT_SECONDS
    link_timeout: float = LINK_CHECK_TIMEOUT_SECONDS
    page_delay: float = POLITENESS_DELAY_SECONDS
    drain_poll_interval: float = DRAIN_POLL_INTERVAL_SECONDS
    user_agent: str = DEFAULT_USER_AGENT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "CrawlConfig":
        """Load configuration from environment variables.

        Environment variables are prefixed with LINKCRAWL_,
        e.g. LINKCRAWL_MAX_PAGES=100 or LINKCRAWL_ALLOWED_DOMAINS=a.com,b.org

        Returns:
            CrawlConfig with values from environment
        """
        return cls(
            max_pages=_env_number("MAX_PAGES", DEFAULT_MAX_PAGES, int),
            max_depth=_env_number("MAX_DEPTH", DEFAULT_MAX_DEPTH, int),
            allowed_domains=parse_domains(_env("ALLOWED_DOMAINS")),
            page_timeout=_env_number("PAGE_TIMEOUT", PAGE_FETCH_TIMEOUT_SECONDS, float),
            link_timeout=_env_number("LINK_TIMEOUT", LINK_CHECK_TIMEOUT_SECONDS, float),
            page_delay=_env_number("PAGE_DELAY", POLITENESS_DELAY_SECONDS, float),
            drain_poll_interval=_env_number(
                "DRAIN_POLL_INTERVAL", DRAIN_POLL_INTERVAL_SECONDS, float
            ),
            user_agent=_env("USER_AGENT", DEFAULT_USER_AGENT),
            log_level=_env("LOG_LEVEL", "INFO"),
        )

    def with_options(
        self,
        max_pages: Optional[int] = None,
        max_depth: Optional[int] = None,
        allowed_domains: Optional[Iterable[str]] = None,
    ) -> "CrawlConfig":
        """Return a copy with per-session overrides applied.

        Args:
            max_pages: Page budget (None keeps the current value)
            max_depth: Depth ceiling (None keeps the current value)
            allowed_domains: Extra domains merged into the configured ones

        Returns:
            New CrawlConfig
        """
        changes = {}
        if max_pages is not None:
            changes["max_pages"] = max_pages
        if max_depth is not None:
            changes["max_depth"] = max_depth
        if allowed_domains:
            changes["allowed_domains"] = self.allowed_domains | parse_domains(allowed_domains)
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        data = {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }
        data["allowed_domains"] = sorted(self.allowed_domains)
        return data
