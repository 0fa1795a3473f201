"""Unit tests for core data models and unsubscribe keys."""

from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import pytest
from pydantic import ValidationError

from ssa.core.ids import generate_subscription_id, unsubscribe_key, unsubscribe_link, verify_unsubscribe_key
from ssa.core.models import RenderedDigest, SavedQuery, Subscription, SubscriptionRun


class TestSavedQuery:
    """Tests for SavedQuery."""

    def test_defaults(self) -> None:
        query = SavedQuery()
        assert query.query == "*:*"
        assert query.filters == []
        assert query.hidden_filters == []

    def test_hidden_filter_deduplicated(self) -> None:
        query = SavedQuery(filters=["format:Book"])
        query.add_hidden_filter("first_indexed:[A TO B]")
        query.add_hidden_filter("first_indexed:[A TO B]")
        assert query.all_filters() == ["format:Book", "first_indexed:[A TO B]"]

    def test_to_link_carries_all_filters(self) -> None:
        query = SavedQuery(query="vienna history", filters=["format:Book"], sort="first_indexed desc")
        query.add_hidden_filter("first_indexed:[2021-04-16T14:00:00Z TO 2021-04-18T09:00:00Z]")
        link = query.to_link("https://catalog.example.org/")
        parsed = urlparse(link)
        params = parse_qs(parsed.query)
        assert parsed.path == "/Search/Results"
        assert params["lookfor"] == ["vienna history"]
        assert params["filter[]"] == ["format:Book"]
        assert params["hiddenFilters[]"] == ["first_indexed:[2021-04-16T14:00:00Z TO 2021-04-18T09:00:00Z]"]
        assert params["sort"] == ["first_indexed desc"]


class TestSubscription:
    """Tests for Subscription."""

    def test_naive_timestamps_are_utc(self) -> None:
        sub = Subscription(
            subscription_id="s1",
            email="reader@example.org",
            query=SavedQuery(),
            last_notification_sent=datetime(2021, 4, 16, 14, 0),
        )
        assert sub.last_notification_sent.tzinfo == timezone.utc
        assert sub.frequency_days == 7
        assert sub.is_active

    def test_frequency_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Subscription(
                subscription_id="s1",
                query=SavedQuery(),
                frequency_days=0,
                last_notification_sent=datetime(2021, 4, 16, tzinfo=timezone.utc),
            )


class TestSubscriptionRun:
    """Tests for SubscriptionRun."""

    def test_run_is_immutable(self) -> None:
        run = SubscriptionRun(last_execution_time=datetime(2021, 4, 16, tzinfo=timezone.utc))
        with pytest.raises(ValidationError):
            run.cursor_field = "publishDate"

    def test_digest_fields(self) -> None:
        digest = RenderedDigest(subject="s", body="b")
        assert (digest.subject, digest.body) == ("s", "b")


class TestUnsubscribeKeys:
    """Tests for unsubscribe link generation."""

    def test_key_roundtrip(self) -> None:
        key = unsubscribe_key("s1", "secret")
        assert verify_unsubscribe_key("s1", key, "secret")
        assert not verify_unsubscribe_key("s2", key, "secret")
        assert not verify_unsubscribe_key("s1", key, "other")

    def test_link(self) -> None:
        link = unsubscribe_link("https://catalog.example.org/", "s1", "secret")
        params = parse_qs(urlparse(link).query)
        assert link.startswith("https://catalog.example.org/Search/Unsubscribe?")
        assert params["id"] == ["s1"]
        assert params["key"] == [unsubscribe_key("s1", "secret")]

    def test_generated_ids_unique(self) -> None:
        assert len({generate_subscription_id() for _ in range(50)}) == 50
