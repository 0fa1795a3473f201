"""Scheduled search alerts.

Incremental change detection for saved searches and email delivery of
new-result digests.
"""

__version__ = "0.1.0"
