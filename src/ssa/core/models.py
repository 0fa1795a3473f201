"""Core domain models for saved searches and subscriptions."""

from datetime import datetime, timezone
from typing import Optional, List
from urllib.parse import urlencode
from pydantic import BaseModel, Field, field_validator

from ..config.settings import DEFAULT_DATE_FIELD


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SavedQuery(BaseModel):
    """A stored search definition.

    ``hidden_filters`` are applied to the query and to result links but are
    never displayed to the user; the window resolver adds the notification
    range here.
    """

    query: str = Field("*:*", description="Main query string")
    filters: List[str] = Field(default_factory=list)
    hidden_filters: List[str] = Field(default_factory=list)
    sort: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1)

    def add_hidden_filter(self, fq: str) -> None:
        if fq not in self.hidden_filters:
            self.hidden_filters.append(fq)

    def all_filters(self) -> List[str]:
        return [*self.filters, *self.hidden_filters]

    def to_link(self, base_url: str) -> str:
        """Render a results URL carrying every visible and hidden filter."""
        params = [("lookfor", self.query)]
        params.extend(("filter[]", fq) for fq in self.filters)
        params.extend(("hiddenFilters[]", fq) for fq in self.hidden_filters)
        if self.sort:
            params.append(("sort", self.sort))
        return f"{base_url.rstrip('/')}/Search/Results?{urlencode(params)}"


class Subscription(BaseModel):
    """A saved search with a destination mailbox and notification schedule."""

    subscription_id: str
    email: Optional[str] = None
    query: SavedQuery
    frequency_days: int = Field(7, ge=1, description="1 = daily, 7 = weekly")
    last_notification_sent: datetime
    created_at: datetime = Field(default_factory=utcnow)
    is_active: bool = True

    @field_validator("last_notification_sent", "created_at")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        """Stored timestamps without an offset are UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class SubscriptionRun(BaseModel):
    """Inputs for one evaluation of one subscription."""

    model_config = {"frozen": True}

    cursor_field: str = DEFAULT_DATE_FIELD
    last_execution_time: datetime
    result_limit: int = Field(50, ge=1)


class RenderedDigest(BaseModel):
    """A rendered notification message."""

    subject: str
    body: str
