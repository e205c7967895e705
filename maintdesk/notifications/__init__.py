"""Push subscription registry and notification dispatch."""

from .dispatcher import NotificationDispatcher, NotificationMessage
from .registry import SubscriptionEntry, SubscriptionRegistry
from .webpush import DisabledPushSender, PushSender, WebPushSender

__all__ = [
    "DisabledPushSender",
    "NotificationDispatcher",
    "NotificationMessage",
    "PushSender",
    "SubscriptionEntry",
    "SubscriptionRegistry",
    "WebPushSender",
]
