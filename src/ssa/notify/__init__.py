"""Window resolution, digest delivery and the batch runner.

A batch run loads the active scheduled searches, resolves the window of
new records for each one, renders a digest and hands it to the delivery
policy. Only delivered digests advance a subscription's last notification
time.
"""

from .delivery import BoundedRetryDelivery, DeliveryPolicy, Failed, Sent, SingleAttemptDelivery  # noqa: F401
from .runner import BatchReport, NotificationRunner, OutcomeStatus, SubscriptionOutcome  # noqa: F401
from .window import (  # noqa: F401
    ConfiguredCursorPolicy,
    CursorPolicy,
    DefaultCursorPolicy,
    NewRecords,
    NoChange,
    QueryError,
    Window,
    WindowResolver,
)
