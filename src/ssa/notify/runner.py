"""Batch runner evaluating every scheduled search once.

The runner is the only loop over subscriptions. Cursor selection and
delivery are injected as policies; each subscription ends in exactly one
``SubscriptionOutcome`` and no exception escapes a single evaluation.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional

from rich.console import Console

from ..config.settings import Settings, settings as default_settings
from ..core.ids import unsubscribe_link
from ..core.models import RenderedDigest, SavedQuery, Subscription, SubscriptionRun, utcnow
from ..core.timestamps import UTC
from ..search.base import SearchClient
from ..store.subscriptions import SubscriptionStore
from ..utils.logging import get_logger
from .delivery import BoundedRetryDelivery, DeliveryPolicy, DeliveryResult, Failed
from .digest import DigestRenderer
from .transport import MailTransport, SmtpTransport
from .window import (
    ConfiguredCursorPolicy,
    CursorPolicy,
    NewRecords,
    NoChange,
    QueryError,
    WindowResolver,
)

logger = get_logger(__name__)

DISABLED_NOTICE = (
    'Config "schedule_searches" is set to "false". '
    "Set SCHEDULE_SEARCHES=true to use the email alert system."
)


class OutcomeStatus(Enum):
    NOT_DUE = "not_due"
    NO_RECIPIENT = "no_recipient"
    NO_CHANGE = "no_change"
    QUERY_ERROR = "query_error"
    SENT = "sent"
    DELIVERY_FAILED = "delivery_failed"
    ERROR = "error"


FAILURE_STATUSES = {
    OutcomeStatus.QUERY_ERROR,
    OutcomeStatus.DELIVERY_FAILED,
    OutcomeStatus.ERROR,
}


@dataclass
class SubscriptionOutcome:
    subscription_id: str
    status: OutcomeStatus
    detail: Optional[str] = None
    new_records: int = 0
    range_filter: Optional[str] = None


@dataclass
class BatchReport:
    """Summary of one batch run."""

    enabled: bool = True
    started_at: datetime = field(default_factory=utcnow)
    outcomes: List[SubscriptionOutcome] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in OutcomeStatus}
        for outcome in self.outcomes:
            counts[outcome.status.value] += 1
        return counts

    @property
    def failures(self) -> List[SubscriptionOutcome]:
        return [o for o in self.outcomes if o.status in FAILURE_STATUSES]

    @property
    def succeeded(self) -> bool:
        return not self.failures


class NotificationRunner:
    """Evaluate scheduled searches and deliver digests of new records.

    Args:
        search_client: Search backend shared by all evaluations.
        store: Subscription store; last notification times are advanced here.
        transport_factory: Creates one mail transport per delivery, so a
            connection reset never affects another evaluation.
        cursor_policy: Chooses the cursor field (defaults to configuration).
        delivery_policy: Delivery strategy (defaults to one bounded retry).
        renderer: Digest renderer.
        resolver: Window resolver.
        config: Settings object, mainly for tests.
        console: Rich console for operator-facing notices.
    """

    def __init__(
        self,
        search_client: SearchClient,
        store: SubscriptionStore,
        transport_factory: Optional[Callable[[], MailTransport]] = None,
        cursor_policy: Optional[CursorPolicy] = None,
        delivery_policy: Optional[DeliveryPolicy] = None,
        renderer: Optional[DigestRenderer] = None,
        resolver: Optional[WindowResolver] = None,
        config: Optional[Settings] = None,
        console: Optional[Console] = None,
    ) -> None:
        self.config = config or default_settings
        self.search_client = search_client
        self.store = store
        self.transport_factory = transport_factory or SmtpTransport
        self.cursor_policy = cursor_policy or ConfiguredCursorPolicy(
            self.config.scheduled_search_date_field
        )
        self.delivery_policy = delivery_policy or BoundedRetryDelivery()
        self.renderer = renderer or DigestRenderer(site_title=self.config.site_title)
        self.resolver = resolver or WindowResolver()
        self.console = console or Console(stderr=True)

    @staticmethod
    def is_due(subscription: Subscription, now: datetime) -> bool:
        last = UTC.parse(subscription.last_notification_sent)
        return last + timedelta(days=subscription.frequency_days) <= UTC.parse(now)

    async def run(
        self,
        subscriptions: Optional[List[Subscription]] = None,
        now: Optional[datetime] = None,
    ) -> BatchReport:
        """Evaluate all active subscriptions once."""
        if not self.config.schedule_searches:
            logger.warning(DISABLED_NOTICE)
            self.console.print(f"[yellow]{DISABLED_NOTICE}[/yellow]")
            return BatchReport(enabled=False)

        now = UTC.parse(now or utcnow())
        unreadable: List[SubscriptionOutcome] = []
        if subscriptions is None:

            def record_unreadable(sid: str, error: Exception) -> None:
                unreadable.append(
                    SubscriptionOutcome(sid, OutcomeStatus.ERROR, detail=f"Unreadable subscription: {error}")
                )

            subscriptions = self.store.list(active_only=True, on_error=record_unreadable)
        report = BatchReport(started_at=now)
        logger.info(f"Processing {len(subscriptions)} scheduled searches")

        semaphore = asyncio.Semaphore(self.config.max_concurrency)

        async def bounded(subscription: Subscription) -> SubscriptionOutcome:
            async with semaphore:
                return await self.evaluate(subscription, now)

        evaluated = await asyncio.gather(*(bounded(s) for s in subscriptions))
        report.outcomes = unreadable + list(evaluated)
        logger.info("Scheduled search batch finished", extra={"counts": report.counts()})
        return report

    async def evaluate(self, subscription: Subscription, now: datetime) -> SubscriptionOutcome:
        """Evaluate one subscription; never raises."""
        sid = subscription.subscription_id
        try:
            return await self._evaluate(subscription, now)
        except Exception as e:
            logger.exception(f"Unexpected error processing search {sid}: {e}")
            return SubscriptionOutcome(sid, OutcomeStatus.ERROR, detail=str(e))

    async def _evaluate(self, subscription: Subscription, now: datetime) -> SubscriptionOutcome:
        sid = subscription.subscription_id
        if not self.is_due(subscription, now):
            logger.debug(f"Search {sid} is not due yet")
            return SubscriptionOutcome(sid, OutcomeStatus.NOT_DUE)
        if not subscription.email:
            logger.warning(f"Search {sid} has no recipient; skipping")
            return SubscriptionOutcome(sid, OutcomeStatus.NO_RECIPIENT)

        run = SubscriptionRun(
            cursor_field=self.cursor_policy.cursor_field(),
            last_execution_time=subscription.last_notification_sent,
            result_limit=subscription.query.limit or self.config.result_limit,
        )
        # Hidden filters are per run; the stored definition stays untouched.
        query = subscription.query.model_copy(deep=True)
        resolution = await self.resolver.fetch_and_resolve(
            run, query, self.search_client, sort=self.cursor_policy.sort_clause()
        )

        if isinstance(resolution, QueryError):
            logger.error(f"Error processing search {sid}: {resolution.message}")
            return SubscriptionOutcome(sid, OutcomeStatus.QUERY_ERROR, detail=resolution.message)
        if isinstance(resolution, NoChange):
            logger.info(f"No new results for search {sid}: {resolution.reason}")
            return SubscriptionOutcome(sid, OutcomeStatus.NO_CHANGE, detail=resolution.reason)
        if isinstance(resolution, NewRecords):
            return await self._notify(subscription, query, resolution, now)
        raise TypeError(f"Unexpected window resolution: {resolution!r}")

    async def _notify(
        self,
        subscription: Subscription,
        query: SavedQuery,
        resolution: NewRecords,
        now: datetime,
    ) -> SubscriptionOutcome:
        sid = subscription.subscription_id
        digest = self.renderer.render(
            subscription,
            resolution.records,
            resolution.window,
            results_link=query.to_link(self.config.base_url),
            unsubscribe_link=unsubscribe_link(
                self.config.base_url, sid, self.config.unsubscribe_secret
            ),
        )
        result = await asyncio.to_thread(self._deliver, subscription.email, digest)
        range_filter = resolution.window.range_filter()
        if isinstance(result, Failed):
            return SubscriptionOutcome(
                sid,
                OutcomeStatus.DELIVERY_FAILED,
                detail=result.message,
                new_records=len(resolution.records),
                range_filter=range_filter,
            )

        self.store.mark_notified(sid, now)
        logger.info(f"Sent {len(resolution.records)} new results for search {sid}")
        return SubscriptionOutcome(
            sid,
            OutcomeStatus.SENT,
            new_records=len(resolution.records),
            range_filter=range_filter,
        )

    def _deliver(self, to: str, digest: RenderedDigest) -> DeliveryResult:
        transport = self.transport_factory()
        try:
            return self.delivery_policy.deliver(transport, digest, to, self.config.sender_email)
        finally:
            transport.close()
