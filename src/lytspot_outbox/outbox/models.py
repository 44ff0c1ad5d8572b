"""Domain models for queued form submissions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class MessageKind(str, Enum):
    """Form submission kinds; each one maps to a delivery endpoint."""

    CONTACT = "contact"
    BUDGET = "budget"

    @property
    def endpoint(self) -> str:
        return f"/api/{self.value}"

    @classmethod
    def parse(cls, value: MessageKind | str) -> MessageKind:
        if isinstance(value, MessageKind):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as error:
            allowed = ", ".join(kind.value for kind in cls)
            raise ValueError(
                f"Unknown message kind: {value!r}. Expected one of: {allowed}.",
            ) from error


class SubmissionStatus(str, Enum):
    """What happened to a form submission from the visitor's point of view."""

    SENT = "sent"
    QUEUED = "queued"


@dataclass(slots=True, frozen=True)
class QueuedMessage:
    """One submission waiting for delivery."""

    kind: MessageKind
    payload: dict[str, Any]
    enqueued_at: int

    def to_record(self) -> dict[str, Any]:
        return {"type": self.kind.value, "data": self.payload, "timestamp": self.enqueued_at}

    @classmethod
    def from_record(cls, record: object) -> QueuedMessage:
        """Build a message from its stored form, raising ``ValueError`` if malformed."""

        if not isinstance(record, dict):
            raise ValueError(f"Queued entry must be an object, got {type(record).__name__}")
        data = record.get("data")
        if not isinstance(data, dict):
            raise ValueError("Queued entry 'data' must be an object")
        timestamp = record.get("timestamp")
        if isinstance(timestamp, bool) or not isinstance(timestamp, int | float):
            raise ValueError("Queued entry 'timestamp' must be a number")
        return cls(
            kind=MessageKind.parse(str(record.get("type", ""))),
            payload=data,
            enqueued_at=int(timestamp),
        )


@dataclass(slots=True)
class FlushSummary:
    """Counters for one flush invocation."""

    attempted: int = 0
    delivered: int = 0
    failed: int = 0
    remaining: int = 0
    skipped: bool = False
    aborted: bool = False


@dataclass(slots=True)
class SubmissionResult:
    """Result of a form submission handed back to the UI."""

    status: SubmissionStatus
    user_message: str
