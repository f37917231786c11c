# src/linkcrawl/constants.py
"""Centralized constants for the link checker.

This module contains magic numbers and fixed values shared across modules.
For values that can be overridden per session or from the environment, see
config.py and CrawlConfig.
"""

# =============================================================================
# Crawl Budget Constants
# =============================================================================

# Maximum number of frontier pages fetched in one session
DEFAULT_MAX_PAGES = 50

# Link extraction stops once a page sits at this depth (seed page is depth 0)
DEFAULT_MAX_DEPTH = 3


# =============================================================================
# Network Constants
# =============================================================================

# Timeout for fetching a frontier page (seconds)
PAGE_FETCH_TIMEOUT_SECONDS = 10.0

# Timeout for each HEAD/GET request made while verifying an external link
LINK_CHECK_TIMEOUT_SECONDS = 5.0

# Identifying header sent with every request
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; LinkChecker/1.0)"

# Statuses at or above this value count as broken
HTTP_ERROR_THRESHOLD = 400

# Only these schemes are crawled or verified
ALLOWED_SCHEMES = frozenset(("http", "https"))

# Ports dropped during normalization
DEFAULT_PORTS = {"http": 80, "https": 443}


# =============================================================================
# Scheduling Constants
# =============================================================================

# Ceiling on simultaneous external link verifications (not client-configurable)
MAX_CONCURRENT_LINK_CHECKS = 5

# Politeness pause after each processed frontier page (seconds)
POLITENESS_DELAY_SECONDS = 0.5

# Poll interval while waiting for external checks to drain (seconds)
DRAIN_POLL_INTERVAL_SECONDS = 0.5


# =============================================================================
# Output Constants
# =============================================================================

DEFAULT_OUTPUT_DIR = "crawls"
REPORT_FILENAME = "broken_links.json"
SUMMARY_FILENAME = "summary.txt"
