from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence


@dataclass(slots=True)
class EmailMessage:
    """Simplified representation of a Gmail message inside a thread."""

    id: str
    thread_id: str | None
    labels: List[str] = field(default_factory=list)
    headers: List[Dict[str, str]] = field(default_factory=list)
    snippet: str = ""

    @classmethod
    def from_api(cls, payload: Mapping) -> "EmailMessage":
        return cls(
            id=payload["id"],
            thread_id=payload.get("threadId"),
            labels=list(payload.get("labelIds", []) or []),
            headers=list((payload.get("payload") or {}).get("headers", []) or []),
            snippet=payload.get("snippet", ""),
        )

    def header(self, name: str) -> Optional[str]:
        """Return the first header called ``name`` (case-insensitive)."""

        wanted = name.lower()
        for item in self.headers:
            if item.get("name", "").lower() == wanted:
                return item.get("value", "")
        return None

    @property
    def subject(self) -> str:
        return self.header("Subject") or ""

    def has_label(self, label_id: str) -> bool:
        return label_id in self.labels


@dataclass(slots=True)
class EmailThread:
    id: str
    messages: List[EmailMessage] = field(default_factory=list)

    @classmethod
    def from_api(cls, payload: Mapping) -> "EmailThread":
        messages: Sequence[Mapping] = payload.get("messages", []) or []
        return cls(id=payload["id"], messages=[EmailMessage.from_api(item) for item in messages])

    @property
    def first_message(self) -> Optional[EmailMessage]:
        return self.messages[0] if self.messages else None
