"""Plain-text digest rendering."""

from typing import Optional, Sequence

from ..config.settings import settings
from ..core.models import RenderedDigest, Subscription
from ..search.base import RecordRef
from .window import Window


class DigestRenderer:
    """Render a digest listing the new records of one subscription.

    Replace this with a template-based renderer for HTML mail.
    """

    def __init__(self, site_title: Optional[str] = None, title_field: str = "title") -> None:
        self.site_title = site_title or settings.site_title
        self.title_field = title_field

    def subject(self) -> str:
        return f"{self.site_title}: Scheduled Alert Results"

    def _describe(self, record: RecordRef) -> str:
        title = record.value_of(self.title_field, False)
        if title:
            return title
        return record.value_of("id", False) or "Untitled record"

    def render(
        self,
        subscription: Subscription,
        records: Sequence[RecordRef],
        window: Window,
        results_link: str,
        unsubscribe_link: str,
    ) -> RenderedDigest:
        lines = [
            f"{len(records)} new result(s) for your saved search \"{subscription.query.query}\"",
            f"Added between {window.start} and {window.end}.",
            "",
        ]
        lines.extend(f"- {self._describe(record)}" for record in records)
        lines.extend([
            "",
            f"View all new results: {results_link}",
            "",
            f"To stop receiving these alerts: {unsubscribe_link}",
        ])
        return RenderedDigest(subject=self.subject(), body="\n".join(lines))
