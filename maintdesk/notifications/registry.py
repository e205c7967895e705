from __future__ import annotations

import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SubscriptionEntry:
    """A push endpoint registered by one subject."""

    owner: str
    endpoint: str
    keys: Mapping[str, str] = field(default_factory=dict)
    expiration_time: int | None = None

    def subscription_info(self) -> dict[str, Any]:
        """Shape expected by the Web Push protocol helpers."""
        info: dict[str, Any] = {"endpoint": self.endpoint, "keys": dict(self.keys)}
        if self.expiration_time is not None:
            info["expirationTime"] = self.expiration_time
        return info


class SubscriptionRegistry:
    """Per-subject push endpoints held in process memory.

    Registration is append-if-absent keyed by the endpoint string. Each owner has its own
    lock, so registrations for the same owner serialise while different owners proceed
    independently.
    """

    def __init__(self) -> None:
        self._entries: dict[str, list[SubscriptionEntry]] = {}
        self._owner_locks: dict[str, Lock] = {}
        self._locks_guard = Lock()

    def _lock_for(self, owner: str) -> Lock:
        with self._locks_guard:
            lock = self._owner_locks.get(owner)
            if lock is None:
                lock = self._owner_locks[owner] = Lock()
            return lock

    def register(self, owner: str, entry: SubscriptionEntry) -> bool:
        if entry.owner != owner:
            raise ValueError("Subscription entry belongs to a different owner")
        with self._lock_for(owner):
            entries = self._entries.setdefault(owner, [])
            if any(existing.endpoint == entry.endpoint for existing in entries):
                logger.debug("Subscription already exists for %s", owner)
                return False
            entries.append(entry)
        logger.info("Subscription saved for %s: %s", owner, entry.endpoint)
        return True

    def list_for(self, owner: str) -> tuple[SubscriptionEntry, ...]:
        with self._lock_for(owner):
            return tuple(self._entries.get(owner, ()))

    def __len__(self) -> int:
        with self._locks_guard:
            owners = list(self._entries)
        return sum(len(self.list_for(owner)) for owner in owners)
