"""ID generation and unsubscribe-key utilities."""

import hashlib
import hmac
import uuid
from urllib.parse import urlencode


def generate_subscription_id() -> str:
    """Generate a new subscription ID."""
    return uuid.uuid4().hex[:16]


def unsubscribe_key(subscription_id: str, secret: str) -> str:
    """Derive the unsubscribe key for a subscription."""
    return hashlib.sha256(f"{subscription_id}{secret}".encode()).hexdigest()


def verify_unsubscribe_key(subscription_id: str, key: str, secret: str) -> bool:
    return hmac.compare_digest(unsubscribe_key(subscription_id, secret), key)


def unsubscribe_link(base_url: str, subscription_id: str, secret: str) -> str:
    params = urlencode({"id": subscription_id, "key": unsubscribe_key(subscription_id, secret)})
    return f"{base_url.rstrip('/')}/Search/Unsubscribe?{params}"
