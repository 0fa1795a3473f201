"""Shared fakes for the search backend and mail transport."""

from typing import Any, Dict, List, Optional

from ssa.core.models import SavedQuery
from ssa.notify.transport import MailTransport
from ssa.search.base import SearchClient
from ssa.search.records import SolrRecord


def rec(record_id: str, first_indexed: Any, **fields: Any) -> SolrRecord:
    return SolrRecord({"id": record_id, "first_indexed": first_indexed, "title": f"Title {record_id}", **fields})


class ExplodingRecord:
    """A record that must never be inspected."""

    def value_of(self, field, prefer_first_of_sorted=True, sort_direction="desc"):
        raise AssertionError(f"record past the cutoff was read ({field})")


class FakeSearchClient(SearchClient):
    """Returns canned pages and records every call."""

    def __init__(self, pages: Optional[Dict[str, list]] = None, default: Optional[list] = None, error: Optional[Exception] = None):
        super().__init__()
        self.pages = pages or {}
        self.default = default if default is not None else []
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def execute_query(self, query: SavedQuery, sort: str, limit: int):
        self.calls.append({"query": query.query, "filters": query.all_filters(), "sort": sort, "limit": limit})
        if self.error is not None:
            raise self.error
        return list(self.pages.get(query.query, self.default))


class FakeTransport(MailTransport):
    """Fails the first ``failures`` sends, then succeeds."""

    def __init__(self, failures: int = 0, error: Optional[Exception] = None):
        self.failures = failures
        self.error = error
        self.sent: List[Dict[str, str]] = []
        self.send_calls = 0
        self.reset_calls = 0
        self.closed = False

    def send(self, to, sender, subject, body):
        self.send_calls += 1
        if self.send_calls <= self.failures:
            raise self.error or ConnectionError(f"relay unavailable (attempt {self.send_calls})")
        self.sent.append({"to": to, "from": sender, "subject": subject, "body": body})

    def reset_connection(self):
        self.reset_calls += 1

    def close(self):
        self.closed = True
