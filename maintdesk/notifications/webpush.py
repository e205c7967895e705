from __future__ import annotations

import asyncio
from typing import Protocol

from pywebpush import webpush

from .registry import SubscriptionEntry


class PushSender(Protocol):
    async def send(self, entry: SubscriptionEntry, payload: str) -> None:
        ...


class WebPushSender:
    """Deliver payloads over the Web Push protocol with VAPID authentication.

    ``pywebpush`` is blocking, so each delivery runs in a worker thread and is bounded by
    ``timeout`` seconds.
    """

    def __init__(self, *, private_key: str, subject: str, timeout: float = 10.0) -> None:
        self._private_key = private_key
        self._subject = subject
        self._timeout = timeout

    async def send(self, entry: SubscriptionEntry, payload: str) -> None:
        await asyncio.to_thread(
            webpush,
            subscription_info=entry.subscription_info(),
            data=payload,
            vapid_private_key=self._private_key,
            vapid_claims={"sub": self._subject},
            timeout=self._timeout,
        )


class DisabledPushSender:
    """Sender used when no VAPID key is configured; every delivery fails."""

    async def send(self, entry: SubscriptionEntry, payload: str) -> None:
        raise RuntimeError("Web push is not configured")
