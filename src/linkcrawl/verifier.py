"""Reachability checks for individual links."""

import logging

from linkcrawl.constants import HTTP_ERROR_THRESHOLD, LINK_CHECK_TIMEOUT_SECONDS
from linkcrawl.http_client import FetchError, Fetcher
from linkcrawl.models import VerificationOutcome

logger = logging.getLogger(__name__)


class LinkVerifier:
    """Checks whether a URL answers with a non-error status.

    Tries HEAD first. Some origins reject or mishandle HEAD (405 and friends)
    but serve GET fine, so any HEAD status >= 400 gets one GET before a
    verdict is reached. The GET body is never downloaded.
    """

    def __init__(self, fetcher: Fetcher, timeout: float = LINK_CHECK_TIMEOUT_SECONDS):
        self.fetcher = fetcher
        self.timeout = timeout

    async def verify(self, url: str) -> VerificationOutcome:
        """Check a single URL.

        Args:
            url: Absolute http(s) URL

        Returns:
            VerificationOutcome (ok, broken with status, or transport error)
        """
        try:
            response = await self.fetcher.fetch(
                url, method="HEAD", timeout=self.timeout, read_body=False
            )
            if response.status_code >= HTTP_ERROR_THRESHOLD:
                logger.debug(f"HEAD {url} -> {response.status_code}, retrying with GET")
                response = await self.fetcher.fetch(
                    url, method="GET", timeout=self.timeout, read_body=False
                )
        except FetchError as e:
            logger.debug(f"Link check failed for {url}: {e.message}")
            return VerificationOutcome.transport_error(url, e.message)

        return VerificationOutcome.from_status(url, response.status_code)
