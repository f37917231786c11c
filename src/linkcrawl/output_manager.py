"""Output manager for writing link-check reports into timestamped directories."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from linkcrawl.constants import DEFAULT_OUTPUT_DIR, REPORT_FILENAME, SUMMARY_FILENAME
from linkcrawl.models import CrawlReport

logger = logging.getLogger(__name__)


class OutputManager:
    """Manages organized output of crawl reports with timestamps and directories."""

    def __init__(self, base_output_dir: str = DEFAULT_OUTPUT_DIR):
        """Initialize output manager.

        Args:
            base_output_dir: Base directory for all crawl outputs
        """
        self.base_output_dir = Path(base_output_dir)
        self.base_output_dir.mkdir(parents=True, exist_ok=True)

    def create_crawl_directory(self, start_url: str, timestamp: Optional[datetime] = None) -> Path:
        """Create a timestamped directory for this crawl.

        Args:
            start_url: The starting URL that was crawled
            timestamp: Optional timestamp (defaults to now)

        Returns:
            Path to the created directory

        Example structure:
            crawls/
            └── example.com/
                └── 2025-11-23_143022/
                    ├── broken_links.json
                    └── summary.txt
        """
        if timestamp is None:
            timestamp = datetime.now()

        # Clean domain for filesystem
        domain = urlparse(start_url).netloc or "unknown"
        domain = domain.replace(":", "_").replace("/", "_")

        timestamp_str = timestamp.strftime("%Y-%m-%d_%H%M%S")

        crawl_dir = self.base_output_dir / domain / timestamp_str
        crawl_dir.mkdir(parents=True, exist_ok=True)
        return crawl_dir

    def save_report(
        self,
        report: CrawlReport,
        config: Optional[dict] = None,
        timestamp: Optional[datetime] = None,
    ) -> Path:
        """Write a finished crawl report to disk.

        Args:
            report: Payload of the session's finished event
            config: Optional configuration snapshot to store alongside
            timestamp: Optional timestamp for the directory name

        Returns:
            Path to the crawl directory
        """
        crawl_dir = self.create_crawl_directory(report.seed_url, timestamp)

        data = report.to_dict()
        if config is not None:
            data["config"] = config

        report_path = crawl_dir / REPORT_FILENAME
        with open(report_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        summary_path = crawl_dir / SUMMARY_FILENAME
        summary_path.write_text(self.format_summary(report), encoding="utf-8")

        logger.info(f"Report written to {crawl_dir}")
        return crawl_dir

    @staticmethod
    def format_summary(report: CrawlReport) -> str:
        """Render a plain-text summary of a report."""
        lines = [
            "=" * 60,
            f"Link check for: {report.seed_url}",
            "=" * 60,
            f"Status:         {report.state.value}",
            f"Pages crawled:  {report.pages_crawled}",
            f"Broken links:   {len(report.broken_links)}",
            "",
        ]

        for link in report.broken_links:
            entry = link.to_dict()
            origin = "frontier page" if link.is_frontier_failure else f"on {link.source}"
            lines.append(f"  [{entry['status']}] {link.url} ({origin})")

        return "\n".join(lines) + "\n"
