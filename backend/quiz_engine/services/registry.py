from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, TypeVar

from quiz_engine.core.errors import ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _Entry(Generic[T]):
    owner_id: int
    item: T
    touched_at: float


class OwnedRegistry(Generic[T]):
    """Process-local store for in-progress objects (authoring drafts, taking sessions).

    Entries are keyed by an opaque id and bound to the user that created them.
    Nothing here is durable: a restart drops every draft and session, which
    matches abandoning them. Entries untouched for ``ttl_seconds`` are swept
    on the next add/get, so a user who navigates away without discarding
    does not leave the entry behind for good.
    """

    def __init__(self, kind: str, *, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.kind = kind
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._items: Dict[str, _Entry[T]] = {}
        self._lock = threading.Lock()

    def _sweep_locked(self, now: float) -> None:
        if not self.ttl_seconds:
            return
        expired = [k for k, e in self._items.items() if now - e.touched_at > self.ttl_seconds]
        for k in expired:
            del self._items[k]
        if expired:
            logger.info("expired %s idle %s(s)", len(expired), self.kind)

    def add(self, owner_id: int, item: T) -> str:
        key = uuid.uuid4().hex
        self.put(key, owner_id, item)
        logger.debug("%s %s opened for user %s", self.kind, key, owner_id)
        return key

    def put(self, key: str, owner_id: int, item: T) -> None:
        now = self._clock()
        with self._lock:
            self._sweep_locked(now)
            self._items[key] = _Entry(owner_id=int(owner_id), item=item, touched_at=now)

    def _check(self, key: str, entry: Optional[_Entry[T]], owner_id: int) -> None:
        if entry is None:
            raise NotFoundError(f"{self.kind.capitalize()} not found", details={"id": key})
        if entry.owner_id != int(owner_id):
            raise ForbiddenError(f"This {self.kind} belongs to another user.", details={"id": key})

    def get(self, key: str, owner_id: int) -> T:
        now = self._clock()
        with self._lock:
            self._sweep_locked(now)
            entry = self._items.get(key)
            self._check(key, entry, owner_id)
            entry.touched_at = now
        return entry.item

    def pop(self, key: str, owner_id: int) -> T:
        # Check and removal share one lock so only one caller can take an entry.
        with self._lock:
            self._sweep_locked(self._clock())
            entry = self._items.get(key)
            self._check(key, entry, owner_id)
            del self._items[key]
        return entry.item

    def discard(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def discard_where(self, owner_id: int, predicate: Callable[[T], bool]) -> int:
        """Drop the owner's entries matching ``predicate``; returns how many were dropped."""
        with self._lock:
            keys = [k for k, e in self._items.items() if e.owner_id == int(owner_id) and predicate(e.item)]
            for k in keys:
                del self._items[k]
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
