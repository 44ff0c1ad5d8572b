"""Durable outbox for contact and budget form submissions."""

from lytspot_outbox.outbox.models import (
    FlushSummary,
    MessageKind,
    QueuedMessage,
    SubmissionResult,
    SubmissionStatus,
)
from lytspot_outbox.outbox.prober import AvailabilityProber, ProbeRunSummary
from lytspot_outbox.outbox.queue import MessageQueue
from lytspot_outbox.outbox.submitter import FormSubmitter, InvalidSubmissionError

__all__ = [
    "AvailabilityProber",
    "FlushSummary",
    "FormSubmitter",
    "InvalidSubmissionError",
    "MessageKind",
    "MessageQueue",
    "ProbeRunSummary",
    "QueuedMessage",
    "SubmissionResult",
    "SubmissionStatus",
]
