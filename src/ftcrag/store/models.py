"""Domain models for the in-memory knowledge store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Document:
    id: str
    title: str
    content: str
    source_url: str
    season_tag: str
    source_priority: int
    last_updated: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys of the cache file / query output."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "sourceURL": self.source_url,
            "seasonTag": self.season_tag,
            "sourcePriority": self.source_priority,
            "lastUpdated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Document:
        stamp = str(data["lastUpdated"])
        if stamp.endswith(("Z", "z")):
            stamp = stamp[:-1] + "+00:00"
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            content=str(data["content"]),
            source_url=str(data["sourceURL"]),
            season_tag=str(data.get("seasonTag", "")),
            source_priority=int(data["sourcePriority"]),
            last_updated=datetime.fromisoformat(stamp),
        )


@dataclass
class Chunk:
    """A text window of one Document, with the parent's metadata copied in.

    ``embedding`` is the only field attached after creation; everything else
    mirrors the parent at the time the chunk was cut.
    """

    id: str
    document_id: str
    text: str
    title: str
    source_url: str
    season_tag: str
    source_priority: int
    chunk_index: int
    total_chunks: int
    embedding: list[float] | None = None
