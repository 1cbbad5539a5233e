"""
Review Trust Notifications
==========================

Admin alerts for reviews flagged as suspicious.
"""

from .dispatcher import (
    AdminNotifier,
    NotificationDispatchError,
    NotificationDispatcher,
    build_suspicious_review_payload,
)
from .slack_notifier import SlackNotifier

__all__ = [
    "AdminNotifier",
    "NotificationDispatchError",
    "NotificationDispatcher",
    "build_suspicious_review_payload",
    "SlackNotifier",
]
