"""Exception hierarchy for search and delivery failures.

These exceptions never cross a component boundary: the window resolver
and the delivery manager convert them into outcome values.
"""


class AlertError(Exception):
    """Base class for all scheduled alert errors."""


class SearchError(AlertError):
    """The search backend failed or returned an unusable response."""


class CursorValueError(AlertError):
    """A record is missing its cursor value, or the value is not a timestamp."""

    def __init__(self, field: str, raw: object = None) -> None:
        self.field = field
        self.raw = raw
        if raw is None:
            message = f"Record has no value for cursor field '{field}'"
        else:
            message = f"Cannot parse cursor field '{field}' value {raw!r} as a timestamp"
        super().__init__(message)


class TransportError(AlertError):
    """The mail transport could not deliver a message."""
