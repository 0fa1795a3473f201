"""Base classes and interfaces for search backends."""

from abc import ABC, abstractmethod
from typing import Optional, Protocol, Sequence, runtime_checkable

from ..core.models import SavedQuery


@runtime_checkable
class RecordRef(Protocol):
    """Opaque handle to a matched record."""

    def value_of(
        self,
        field: str,
        prefer_first_of_sorted: bool = True,
        sort_direction: str = "desc",
    ) -> Optional[str]:
        """
        Return the raw value of ``field``.

        Args:
            field: Field name
            prefer_first_of_sorted: For multi-valued fields, sort the values
                and return the first one
            sort_direction: ``"desc"`` (newest first) or ``"asc"``

        Returns:
            Raw string value, or None when the record has no such field
        """
        ...


# Sorted descending by the cursor field; ordering is supplied by the backend.
ResultPage = Sequence[RecordRef]


class SearchClient(ABC):
    """Abstract base class for search backends."""

    @abstractmethod
    async def execute_query(self, query: SavedQuery, sort: str, limit: int) -> ResultPage:
        """
        Execute a saved query, applying its visible and hidden filters.

        Args:
            query: Saved search definition
            sort: Sort clause, e.g. ``"first_indexed desc"``
            limit: Maximum number of records to return

        Returns:
            Records in the requested sort order

        Raises:
            SearchError: if the backend fails or returns a malformed response
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Clean up resources."""

    async def __aenter__(self) -> "SearchClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
