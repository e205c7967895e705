from __future__ import annotations

import asyncio

import pytest

from maintdesk.core.metrics import NOTIFICATION_DELIVERIES, NOTIFICATION_FAILURES, MetricsRegistry
from maintdesk.notifications import (
    DisabledPushSender,
    NotificationDispatcher,
    NotificationMessage,
    SubscriptionEntry,
    SubscriptionRegistry,
)


class RecordingSender:
    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()
        self.attempts: list[tuple[str, str]] = []

    async def send(self, entry: SubscriptionEntry, payload: str) -> None:
        self.attempts.append((entry.endpoint, payload))
        if entry.endpoint in self.failing:
            raise ConnectionError("endpoint gone")


def _registry(*endpoints: str, owner: str = "u1") -> SubscriptionRegistry:
    registry = SubscriptionRegistry()
    for endpoint in endpoints:
        registry.register(owner, SubscriptionEntry(owner=owner, endpoint=endpoint))
    return registry


MESSAGE = NotificationMessage(title="Ticket Update", body="Ticket ID 4 has been assigned to you.", ticket_id=4)


@pytest.mark.asyncio
async def test_notify_without_endpoints_attempts_nothing():
    sender = RecordingSender()
    dispatcher = NotificationDispatcher(SubscriptionRegistry(), sender)

    assert await dispatcher.notify("nobody", MESSAGE) == 0
    assert sender.attempts == []


@pytest.mark.asyncio
async def test_every_endpoint_is_attempted_and_failures_are_counted():
    metrics = MetricsRegistry()
    sender = RecordingSender(failing={"https://push.example/b"})
    dispatcher = NotificationDispatcher(
        _registry("https://push.example/a", "https://push.example/b", "https://push.example/c"),
        sender,
        metrics=metrics,
    )

    delivered = await dispatcher.notify("u1", MESSAGE)

    assert delivered == 2
    assert len(sender.attempts) == 3
    assert metrics.counter(NOTIFICATION_DELIVERIES).value() == 2
    assert metrics.counter(NOTIFICATION_FAILURES).value() == 1


@pytest.mark.asyncio
async def test_schedule_runs_detached_and_drain_waits():
    sender = RecordingSender()
    dispatcher = NotificationDispatcher(_registry("https://push.example/a"), sender)

    task = dispatcher.schedule("u1", MESSAGE)

    assert isinstance(task, asyncio.Task)
    assert sender.attempts == []
    await dispatcher.drain()
    assert task.result() == 1
    assert dispatcher.pending == 0
    assert sender.attempts[0][1] == MESSAGE.to_payload()


@pytest.mark.asyncio
async def test_disabled_sender_failures_never_reach_caller():
    metrics = MetricsRegistry()
    dispatcher = NotificationDispatcher(_registry("https://push.example/a"), DisabledPushSender(), metrics=metrics)

    assert await dispatcher.notify("u1", MESSAGE) == 0
    assert metrics.counter(NOTIFICATION_FAILURES).value() == 1


def test_schedule_without_running_loop_delivers_inline():
    sender = RecordingSender()
    dispatcher = NotificationDispatcher(_registry("https://push.example/a"), sender)

    assert dispatcher.schedule("u1", MESSAGE) is None
    assert len(sender.attempts) == 1


def test_payload_carries_title_body_and_ticket():
    assert MESSAGE.to_payload() == (
        '{"title": "Ticket Update", "body": "Ticket ID 4 has been assigned to you.", "ticket_id": 4}'
    )
