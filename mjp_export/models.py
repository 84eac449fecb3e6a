"""
Work-set data model: feeds, work items, captured artifacts, queue building.
"""

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("mjp_export")


class Direction(str, Enum):
    OUTGOING = "OUTGOING"
    INCOMING = "INCOMING"


@dataclass(frozen=True)
class Feed:
    """One listing endpoint and the SPA routes its messages live under."""
    name: str
    direction: Direction
    url: str
    list_location: str
    detail_template: str

    def detail_location(self, message_uuid: str) -> str:
        return self.detail_template.format(uuid=message_uuid)


@dataclass(frozen=True)
class WorkItem:
    id: str
    detail_location: str
    list_location: str
    direction: Direction


@dataclass(frozen=True)
class CapturedArtifact:
    content: str | bytes
    filename: str
    mime_type: str


def build_feeds(api_base: str) -> tuple[Feed, Feed]:
    """Return the (outgoing, incoming) feeds for the given API base URL."""
    base = api_base.rstrip("/")
    outgoing = Feed(
        name="OUTGOING",
        direction=Direction.OUTGOING,
        url=f"{base}/outgoing",
        list_location="#/postausgang",
        detail_template="#/postausgang/detail/{uuid}",
    )
    incoming = Feed(
        name="INCOMING",
        direction=Direction.INCOMING,
        url=f"{base}/incoming",
        list_location="#/posteingang",
        detail_template="#/posteingang/detail/{uuid}",
    )
    return outgoing, incoming


def _items_for(feed: Feed, records: list[dict]) -> list[WorkItem]:
    items = []
    for record in records:
        uuid = record.get("messageUuid") if isinstance(record, dict) else None
        if not uuid:
            logger.warning(f"[{feed.name}] Record without messageUuid ignored: {record!r}")
            continue
        items.append(WorkItem(
            id=uuid,
            detail_location=feed.detail_location(uuid),
            list_location=feed.list_location,
            direction=feed.direction,
        ))
    return items


def build_queue(
    outgoing: Feed,
    outgoing_records: list[dict],
    incoming: Feed,
    incoming_records: list[dict],
) -> list[WorkItem]:
    """
    Build the processing queue: every outgoing message first, then every
    incoming one, each in the order the API returned them (ascending
    creation time).
    """
    return _items_for(outgoing, outgoing_records) + _items_for(incoming, incoming_records)
