"""Anchor href extraction from HTML."""

from typing import Iterator
from urllib.parse import urljoin

from bs4 import BeautifulSoup, SoupStrainer

# Parse only the tags we need
LINK_STRAINER = SoupStrainer(["a", "base"])


def extract_links(html: str, base_url: str) -> Iterator[str]:
    """Yield href values from <a> tags, in document order.

    When the document declares ``<base href>``, hrefs are yielded already
    joined against it so that later resolution against the page URL is a
    no-op. Otherwise hrefs are yielded as written.

    Args:
        html: Raw HTML
        base_url: URL the HTML was fetched from

    Yields:
        Absolute or relative href strings (empty ones are skipped)
    """
    soup = BeautifulSoup(html, "html.parser", parse_only=LINK_STRAINER)

    document_base = None
    base_tag = soup.find("base", href=True)
    if base_tag and base_tag["href"].strip():
        try:
            document_base = urljoin(base_url, base_tag["href"].strip())
        except ValueError:
            document_base = None

    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href:
            continue
        if document_base:
            try:
                href = urljoin(document_base, href)
            except ValueError:
                continue
        yield href
