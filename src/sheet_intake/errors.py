from __future__ import annotations


class IntakeError(Exception):
    """Base class for faults converted to result objects at the public seams."""


class ValidationError(IntakeError):
    """Bad input (file type, unknown sheet, malformed payload). Nothing was written."""


class LockTimeoutError(IntakeError):
    """The submission lock could not be acquired within the bounded wait."""


class StoreWriteError(IntakeError):
    """A table could not be resolved or written. The primary table may already be updated."""


class NotificationError(IntakeError):
    """The confirmation email could not be composed or delivered."""
