"""Best-effort fan-out of ticket notifications to registered push endpoints."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

from opentelemetry import trace

from maintdesk.core.metrics import (
    NOTIFICATION_DELIVERIES,
    NOTIFICATION_DISPATCH_DURATION,
    NOTIFICATION_FAILURES,
    MetricsRegistry,
    register_default_metrics,
)

from .registry import SubscriptionEntry, SubscriptionRegistry
from .webpush import PushSender

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True, slots=True)
class NotificationMessage:
    title: str
    body: str
    ticket_id: int | None = None

    def to_payload(self) -> str:
        data: dict[str, Any] = {"title": self.title, "body": self.body}
        if self.ticket_id is not None:
            data["ticket_id"] = self.ticket_id
        return json.dumps(data)


class NotificationDispatcher:
    """Deliver a message to every endpoint of a target subject.

    Delivery is at-most-once: each endpoint gets a single attempt, failures are logged and
    counted, then dropped. Nothing raised by a sender ever reaches the caller.
    """

    def __init__(
        self,
        registry: SubscriptionRegistry,
        sender: PushSender,
        *,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._registry = registry
        self._sender = sender
        self._metrics = register_default_metrics(metrics or MetricsRegistry())
        self._pending: set[asyncio.Task[int]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def notify(self, target: str, message: NotificationMessage) -> int:
        entries = self._registry.list_for(target)
        if not entries:
            logger.debug("No push endpoints registered for %s", target)
            return 0

        payload = message.to_payload()
        with tracer.start_as_current_span("notifications.notify") as span:
            span.set_attribute("notification.target", target)
            span.set_attribute("notification.endpoints", len(entries))
            with self._metrics.distribution(NOTIFICATION_DISPATCH_DURATION).time():
                results = await asyncio.gather(*(self._deliver(entry, payload) for entry in entries))
        delivered = sum(1 for ok in results if ok)
        logger.info("Delivered notification to %d/%d endpoints of %s", delivered, len(entries), target)
        return delivered

    async def _deliver(self, entry: SubscriptionEntry, payload: str) -> bool:
        try:
            await self._sender.send(entry, payload)
        except Exception:
            self._metrics.counter(NOTIFICATION_FAILURES).inc()
            logger.warning("Failed to send notification to %s via %s", entry.owner, entry.endpoint, exc_info=True)
            return False
        self._metrics.counter(NOTIFICATION_DELIVERIES).inc()
        return True

    def schedule(self, target: str, message: NotificationMessage) -> asyncio.Task[int] | None:
        """Run :meth:`notify` detached from the caller.

        Returns the task when an event loop is running; otherwise delivers synchronously and
        returns ``None``.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._notify_blocking(target, message)
            return None

        task = loop.create_task(self.notify(target, message), name=f"notify:{target}")
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _notify_blocking(self, target: str, message: NotificationMessage) -> None:
        try:
            asyncio.run(self.notify(target, message))
        except Exception:
            logger.exception("Notification dispatch for %s failed", target)

    def _on_done(self, task: asyncio.Task[int]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("Notification task %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Notification task %s failed", task.get_name(), exc_info=exc)

    async def drain(self) -> None:
        """Wait for every scheduled dispatch to finish."""
        while True:
            running = [task for task in self._pending if not task.done()]
            if not running:
                return
            await asyncio.gather(*running, return_exceptions=True)
