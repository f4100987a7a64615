"""
Room store interface and an in-memory asyncio implementation.

The store is the single ordering authority for a room: every write bumps the
document's revision, and subscribers receive snapshots one at a time in
write order. Documents are plain dicts; callers never get a reference to the
stored object.
"""

from __future__ import annotations

import asyncio
import contextlib
import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from itertools import count
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = structlog.get_logger()


class DocumentExistsError(Exception):
    """create() targeted an id that is already taken."""


class DocumentNotFoundError(Exception):
    """update() targeted an id that does not exist."""


class RevisionConflictError(Exception):
    """A compare-and-swap write saw a different revision than expected."""

    def __init__(self, room_id: str, expected: int | None, actual: int | None) -> None:
        self.room_id = room_id
        self.expected = expected
        self.actual = actual
        super().__init__(f"room {room_id}: expected revision {expected}, found {actual}")


@dataclass(frozen=True)
class Increment:
    """Update value that atomically adds amount to a numeric field (missing counts as 0)."""

    amount: int = 1


@dataclass(eq=False)
class Subscription:
    """Handle returned by subscribe(); pass it to unsubscribe()."""

    subscription_id: int
    room_id: str
    queue: asyncio.Queue[dict[str, Any] | None]
    task: asyncio.Task[None] | None = None
    # snapshots queued or being handled
    pending: int = 0

    def put(self, snapshot: dict[str, Any] | None) -> None:
        self.pending += 1
        self.queue.put_nowait(snapshot)


def apply_partial(doc: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of doc with dotted-path changes and increments applied."""
    result = copy.deepcopy(doc)
    for path, value in changes.items():
        *parents, leaf = path.split(".")
        target = result
        for key in parents:
            target = target.setdefault(key, {})
        if isinstance(value, Increment):
            target[leaf] = (target.get(leaf) or 0) + value.amount
        else:
            target[leaf] = copy.deepcopy(value)
    return result


class RoomStore(ABC):
    """Durable, subscribable key-value store of room documents."""

    @abstractmethod
    async def get(self, room_id: str) -> dict[str, Any] | None: ...

    @abstractmethod
    async def create(
        self,
        room_id: str,
        doc: dict[str, Any],
        *,
        replace_revision: int | None = None,
    ) -> dict[str, Any]:
        """
        Store a new document and return it with its revision set.

        Raises DocumentExistsError when the id is taken, unless replace_revision
        equals the stored revision, in which case the old document is replaced.
        """

    @abstractmethod
    async def update(
        self,
        room_id: str,
        changes: dict[str, Any],
        *,
        expected_revision: int | None = None,
    ) -> dict[str, Any]:
        """
        Apply a partial update and return the new document.

        Raises DocumentNotFoundError for a missing id and RevisionConflictError
        when expected_revision is given and does not match.
        """

    @abstractmethod
    async def delete(self, room_id: str) -> None: ...

    @abstractmethod
    async def list_ids(self) -> list[str]: ...

    @abstractmethod
    async def subscribe(
        self,
        room_id: str,
        callback: Callable[[dict[str, Any] | None], Awaitable[None]],
    ) -> Subscription:
        """Deliver the current snapshot, then every later one (None after deletion)."""

    @abstractmethod
    async def unsubscribe(self, subscription: Subscription) -> None: ...


class InMemoryRoomStore(RoomStore):
    """Process-local store; all writes are serialized by the event loop."""

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, Any]] = {}
        # revisions survive deletion so a reused id never repeats one
        self._revisions: dict[str, int] = {}
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._ids = count(1)

    async def get(self, room_id: str) -> dict[str, Any] | None:
        doc = self._docs.get(room_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def create(
        self,
        room_id: str,
        doc: dict[str, Any],
        *,
        replace_revision: int | None = None,
    ) -> dict[str, Any]:
        existing = self._docs.get(room_id)
        if existing is not None:
            if replace_revision is None:
                raise DocumentExistsError(room_id)
            if existing["revision"] != replace_revision:
                raise RevisionConflictError(room_id, replace_revision, existing["revision"])
        stored = copy.deepcopy(doc)
        return self._commit(room_id, stored)

    async def update(
        self,
        room_id: str,
        changes: dict[str, Any],
        *,
        expected_revision: int | None = None,
    ) -> dict[str, Any]:
        existing = self._docs.get(room_id)
        if existing is None:
            raise DocumentNotFoundError(room_id)
        if expected_revision is not None and existing["revision"] != expected_revision:
            raise RevisionConflictError(room_id, expected_revision, existing["revision"])
        return self._commit(room_id, apply_partial(existing, changes))

    async def delete(self, room_id: str) -> None:
        if self._docs.pop(room_id, None) is None:
            return
        self._publish(room_id, None)

    async def list_ids(self) -> list[str]:
        return list(self._docs)

    async def subscribe(
        self,
        room_id: str,
        callback: Callable[[dict[str, Any] | None], Awaitable[None]],
    ) -> Subscription:
        subscription = Subscription(subscription_id=next(self._ids), room_id=room_id, queue=asyncio.Queue())
        subscription.put(await self.get(room_id))
        subscription.task = asyncio.create_task(self._deliver(subscription, callback))
        self._subscriptions.setdefault(room_id, []).append(subscription)
        return subscription

    async def unsubscribe(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.room_id, [])
        if subscription in subscriptions:
            subscriptions.remove(subscription)
        task = subscription.task
        subscription.task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def drain(self) -> None:
        """Wait until every queued snapshot has been handled, including cascades."""
        while True:
            busy = [
                s for subs in self._subscriptions.values() for s in subs if s.task is not None and s.pending
            ]
            if not busy:
                return
            await asyncio.gather(*(s.queue.join() for s in busy))

    async def close(self) -> None:
        for subscriptions in list(self._subscriptions.values()):
            for subscription in list(subscriptions):
                await self.unsubscribe(subscription)

    def _commit(self, room_id: str, doc: dict[str, Any]) -> dict[str, Any]:
        revision = self._revisions.get(room_id, 0) + 1
        self._revisions[room_id] = revision
        doc["revision"] = revision
        self._docs[room_id] = doc
        self._publish(room_id, doc)
        return copy.deepcopy(doc)

    def _publish(self, room_id: str, doc: dict[str, Any] | None) -> None:
        for subscription in self._subscriptions.get(room_id, []):
            subscription.put(copy.deepcopy(doc) if doc is not None else None)

    @staticmethod
    async def _deliver(
        subscription: Subscription,
        callback: Callable[[dict[str, Any] | None], Awaitable[None]],
    ) -> None:
        # unsubscribe() from inside a callback clears task and ends the loop
        while subscription.task is not None:
            snapshot = await subscription.queue.get()
            try:
                await callback(snapshot)
            except Exception:
                logger.exception("snapshot callback failed", room_code=subscription.room_id)
            finally:
                subscription.pending -= 1
                subscription.queue.task_done()
