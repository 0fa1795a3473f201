"""Incremental result windows for scheduled searches.

Given the results of a saved search sorted newest first on a cursor field,
and the time the subscription last ran, the resolver decides whether any
record is new and, if so, which records fall inside the window
``[last_execution_time, newest_record_time]``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from ..config.settings import DEFAULT_DATE_FIELD
from ..core.exceptions import CursorValueError
from ..core.models import SavedQuery, SubscriptionRun
from ..core.timestamps import UTC, TimestampNormalizer
from ..search.base import RecordRef, ResultPage, SearchClient
from ..utils.logging import get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Cursor policies
# ---------------------------------------------------------------------------

class CursorPolicy(ABC):
    """Chooses the record field that orders results and bounds the window."""

    @abstractmethod
    def cursor_field(self) -> str:
        raise NotImplementedError

    def sort_clause(self) -> str:
        return f"{self.cursor_field()} desc"


class DefaultCursorPolicy(CursorPolicy):
    """Always use the first-indexed date."""

    def cursor_field(self) -> str:
        return DEFAULT_DATE_FIELD


class ConfiguredCursorPolicy(CursorPolicy):
    """Use a configured field, falling back to the default when unset or blank."""

    def __init__(self, field_name: Optional[str]) -> None:
        self.field_name = (field_name or "").strip() or DEFAULT_DATE_FIELD

    def cursor_field(self) -> str:
        return self.field_name


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Window:
    """Inclusive time range on ``field``, bounds in normalized ISO-8601 form."""

    field: str
    start: str
    end: str

    def range_filter(self) -> str:
        return f"{self.field}:[{self.start} TO {self.end}]"


@dataclass(frozen=True)
class NewRecords:
    window: Window
    records: Tuple[RecordRef, ...]


@dataclass(frozen=True)
class NoChange:
    reason: str
    newest: Optional[str] = None


@dataclass(frozen=True)
class QueryError:
    message: str
    cause: Optional[BaseException] = field(default=None, compare=False)


Resolution = Union[NewRecords, NoChange, QueryError]


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class WindowResolver:
    """Compute the notification window for one subscription run.

    Args:
        normalizer: Calendar used for every parse, format and comparison.
        assume_sorted: When True, the result page is trusted to be sorted
            newest first and the scan stops at the first stale record. When
            False every record is inspected and filtered individually.
    """

    def __init__(
        self,
        normalizer: TimestampNormalizer = UTC,
        assume_sorted: bool = True,
    ) -> None:
        self.normalizer = normalizer
        self.assume_sorted = assume_sorted

    def _cursor_value(self, record: RecordRef, field_name: str) -> str:
        raw = record.value_of(field_name, True, "desc")
        if raw is None or not str(raw).strip():
            raise CursorValueError(field_name)
        try:
            return self.normalizer.format(raw)
        except (TypeError, ValueError) as e:
            raise CursorValueError(field_name, raw) from e

    def resolve(
        self,
        run: SubscriptionRun,
        results: ResultPage,
        query: Optional[SavedQuery] = None,
    ) -> Resolution:
        """Decide which of ``results`` are new since ``run.last_execution_time``.

        ``query``, when given, receives the window as a hidden range filter so
        that links built from it only show records inside the window. The
        already-fetched ``results`` are not affected by that filter.
        """
        if not results:
            return NoChange(reason="no results")

        field_name = run.cursor_field
        last = self.normalizer.format(run.last_execution_time)
        try:
            newest = self._cursor_value(results[0], field_name)
        except CursorValueError as e:
            return QueryError(message=str(e), cause=e)

        if newest < last:
            logger.info(f"No new results: {newest} < {last}")
            return NoChange(reason="no new results", newest=newest)
        logger.info(f"New results: {newest} >= {last}")

        try:
            records = self._collect(results, field_name, last)
        except CursorValueError as e:
            return QueryError(message=str(e), cause=e)

        window = Window(field=field_name, start=last, end=newest)
        if query is not None:
            query.add_hidden_filter(window.range_filter())
        return NewRecords(window=window, records=tuple(records))

    def _collect(self, results: ResultPage, field_name: str, last: str) -> List[RecordRef]:
        new_records: List[RecordRef] = []
        for record in results:
            if self._cursor_value(record, field_name) < last:
                if self.assume_sorted:
                    break
                continue
            new_records.append(record)
        return new_records

    async def fetch_and_resolve(
        self,
        run: SubscriptionRun,
        query: SavedQuery,
        search_client: SearchClient,
        sort: Optional[str] = None,
    ) -> Resolution:
        """Run ``query`` newest first on the cursor field and resolve the window."""
        sort = sort or f"{run.cursor_field} desc"
        try:
            results = await search_client.execute_query(query, sort=sort, limit=run.result_limit)
        except Exception as e:
            return QueryError(message=f"Search failed: {e}", cause=e)
        return self.resolve(run, results, query)
