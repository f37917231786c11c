"""Session events and the sinks that receive them.

The engine calls ``sink.emit(event, payload)`` synchronously, so a sink sees
events in exactly the order they were emitted.
"""

import json
import logging
import sys
from enum import Enum
from typing import Any, Protocol, TextIO

from linkcrawl.models import BrokenLink, CrawlReport, ProgressUpdate

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Names of the events a session emits."""
    LOG = "log"
    PROGRESS = "progress"
    BROKEN_LINK = "broken-link"
    ERROR = "error"
    FINISHED = "finished"


class EventSink(Protocol):
    """Anything that can receive session events."""

    def emit(self, event: EventType, payload: Any) -> None:
        ...


def payload_to_wire(payload: Any) -> Any:
    """Convert an event payload to its JSON-ready form."""
    if hasattr(payload, "to_dict"):
        return payload.to_dict()
    return payload


class LoggingSink:
    """Sink that writes every event to a logger."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def emit(self, event: EventType, payload: Any) -> None:
        if event is EventType.PROGRESS:
            p: ProgressUpdate = payload
            self.log.debug(
                f"[{p.count}] depth={p.depth} queue={p.queue_size} {p.url}"
            )
        elif event is EventType.BROKEN_LINK:
            link: BrokenLink = payload
            origin = "frontier page" if link.is_frontier_failure else f"linked from {link.source}"
            status = link.to_dict()["status"]
            self.log.warning(f"✗ {status} {link.url} ({origin})")
        elif event is EventType.ERROR:
            self.log.error(payload)
        elif event is EventType.FINISHED:
            report: CrawlReport = payload
            self.log.info(
                f"Finished: {report.pages_crawled} pages crawled, "
                f"{len(report.broken_links)} broken links"
            )
        else:
            self.log.info(payload)


class JsonLinesSink:
    """Sink that writes one JSON object per event to a text stream."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream or sys.stdout

    def emit(self, event: EventType, payload: Any) -> None:
        line = json.dumps(
            {"event": event.value, "data": payload_to_wire(payload)},
            ensure_ascii=False,
        )
        self.stream.write(line + "\n")
        self.stream.flush()
