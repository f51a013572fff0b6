# livrini/models/notification.py

"""In-app notification model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return datetime.now()
        # Compare against naive local "now" throughout
        return parsed.astimezone().replace(tzinfo=None) if parsed.tzinfo else parsed
    return datetime.now()


@dataclass
class Notification:
    """A notification shown in the bell panel."""

    id: str
    type: str
    title: str
    message: str
    created_at: datetime
    read: bool = False

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Notification":
        return cls(
            id=str(payload.get("_id") or payload.get("id") or ""),
            type=str(payload.get("type") or "info"),
            title=str(payload.get("title") or payload.get("titre") or ""),
            message=str(payload.get("message") or ""),
            created_at=_parse_datetime(payload.get("createdAt")),
            read=bool(payload.get("read") or payload.get("lu") or False),
        )
