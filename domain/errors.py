# domain/errors.py

from typing import Optional


class OrderSubmissionError(Exception):
    """Base class for everything that can go wrong with one submission."""


class ValidationError(OrderSubmissionError):
    """Missing or malformed input. The caller can fix and resubmit."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class RenderError(OrderSubmissionError):
    """The deduction form could not be produced. Never fatal."""


class NotificationError(OrderSubmissionError):
    """The confirmation email could not be delivered. Fatal."""


class LedgerError(OrderSubmissionError):
    """The ledger row could not be appended. Logged and dropped."""
