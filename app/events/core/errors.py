"""Error types for the change-event pipeline."""


class EventError(Exception):
    """Base exception for event system errors."""
    pass


class ChangeRecordDecodeError(EventError, ValueError):
    """Raised when a payload on the changes topic cannot be turned into a ChangeRecord."""
    pass


class ConsumerStateError(EventError):
    """Raised when a consumer operation is attempted in the wrong state."""
    pass
