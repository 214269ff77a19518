"""The bookmark record and its column codec."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from .display import get_domain


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp from the database into an aware datetime.

    Postgres emits ``+00:00`` offsets but the realtime feed sometimes uses a
    trailing ``Z``; naive values are assumed to be UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class Bookmark:
    """A saved URL/title pair owned by one user. Never mutated after creation."""

    id: str
    url: str
    title: str
    owner: str
    created_at: datetime

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Bookmark:
        """Build a bookmark from a ``bookmarks`` row (raises KeyError if incomplete)."""
        return cls(
            id=str(record["id"]),
            url=str(record["url"]),
            title=str(record["title"]),
            owner=str(record["user_id"]),
            created_at=parse_timestamp(record["created_at"]),
        )

    def to_record(self) -> dict[str, str]:
        """Return the row mapping using the table's column names."""
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "user_id": self.owner,
            "created_at": self.created_at.isoformat(),
        }

    def to_dict(self) -> dict[str, str]:
        """JSON-ready form for the web frontend, with the display domain."""
        data = self.to_record()
        data["domain"] = get_domain(self.url)
        return data
