"""Form submission with fallback to the durable queue."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from lytspot_outbox.outbox.models import MessageKind, SubmissionResult, SubmissionStatus
from lytspot_outbox.outbox.queue import DeliveryTransport, MessageQueue, deliver
from lytspot_outbox.storage.key_value import StorageError

logger = logging.getLogger(__name__)

SENT_MESSAGE = "Message sent successfully!"
QUEUED_MESSAGE = "Message received! It will be processed shortly."

REQUIRED_FIELDS: dict[MessageKind, tuple[str, ...]] = {
    MessageKind.CONTACT: ("name", "email", "message"),
}


class InvalidSubmissionError(ValueError):
    """Form payload the backend would reject regardless of availability."""

    def __init__(self, kind: MessageKind, missing: tuple[str, ...]) -> None:
        super().__init__(
            f"Missing required {kind.value} field(s): {', '.join(missing)}",
        )
        self.kind = kind
        self.missing = missing


def validate_payload(kind: MessageKind, payload: Mapping[str, Any]) -> None:
    missing = tuple(
        name
        for name in REQUIRED_FIELDS.get(kind, ())
        if not isinstance(payload.get(name), str) or not payload[name].strip()
    )
    if missing:
        raise InvalidSubmissionError(kind, missing)


class FormSubmitter:
    """Sends a submission right away and queues it when that fails.

    The visitor always sees a success-style message: a queued submission is
    reported as received, not as an error.
    """

    def __init__(self, *, transport: DeliveryTransport, queue: MessageQueue) -> None:
        self.transport = transport
        self.queue = queue

    def submit(self, kind: MessageKind | str, payload: Mapping[str, Any]) -> SubmissionResult:
        message_kind = MessageKind.parse(kind)
        validate_payload(message_kind, payload)

        result = deliver(self.transport, message_kind, payload)
        if result.is_success:
            return SubmissionResult(status=SubmissionStatus.SENT, user_message=SENT_MESSAGE)

        logger.info(
            "Immediate %s delivery failed (%s), queueing",
            message_kind.value,
            result.error or f"HTTP {result.status_code}",
        )
        try:
            self.queue.enqueue(message_kind, payload)
        except StorageError:
            logger.exception("Could not persist %s submission", message_kind.value)
        return SubmissionResult(status=SubmissionStatus.QUEUED, user_message=QUEUED_MESSAGE)
