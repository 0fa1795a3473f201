"""Timestamp normalization in an explicit calendar.

All parsing, formatting and comparison of window bounds goes through a
``TimestampNormalizer``. The process's local timezone is never consulted:
a raw value without an offset is interpreted in the normalizer's own zone,
and every formatted value is expressed in UTC.
"""

from datetime import date, datetime, timezone, tzinfo
from typing import Union

TimestampLike = Union[str, datetime, date]


class TimestampNormalizer:
    """Parse and format timestamps in a single fixed calendar.

    Formatting truncates to whole seconds, so a sub-second index date and a
    second-precision execution time compare on equal terms. The formatted
    strings sort lexicographically in time order; they are the form used
    both for window comparisons and for range filters.

    Args:
        naive_tz: Zone assumed for values that carry no offset.
    """

    def __init__(self, naive_tz: tzinfo = timezone.utc) -> None:
        self.naive_tz = naive_tz

    def parse(self, raw: TimestampLike) -> datetime:
        """Parse ``raw`` into an aware UTC datetime.

        Raises:
            ValueError: if ``raw`` is not a recognizable timestamp.
        """
        if isinstance(raw, datetime):
            value = raw
        elif isinstance(raw, date):
            value = datetime(raw.year, raw.month, raw.day)
        else:
            text = str(raw).strip()
            if not text:
                raise ValueError("empty timestamp")
            if text[-1] in "Zz":
                text = text[:-1] + "+00:00"
            value = datetime.fromisoformat(text)
        if value.tzinfo is None:
            value = value.replace(tzinfo=self.naive_tz)
        try:
            return value.astimezone(timezone.utc)
        except OverflowError as e:
            raise ValueError(f"timestamp out of range: {raw!r}") from e

    def format(self, value: TimestampLike) -> str:
        # strftime does not zero-pad years below 1000 on every platform
        parsed = self.parse(value)
        return f"{parsed.year:04d}-{parsed:%m-%dT%H:%M:%S}Z"

    def __repr__(self) -> str:
        return f"<TimestampNormalizer naive_tz={self.naive_tz}>"


UTC = TimestampNormalizer()
