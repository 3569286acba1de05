"""
dataroom.services.subscriptions

Per-observer delivery channel for registry snapshots.

Responsibilities:
- Hold at most one pending snapshot per subscriber (slow consumers coalesce to
  the latest state instead of growing a queue).
- Compute add/remove deltas relative to what this subscriber last received.
- Guarantee that nothing is delivered after `unsubscribe()` returns.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from types import TracebackType

from dataroom.domain import ChangeKind, DocumentChange, DocumentRecord, RegistrySnapshot


class Subscription:
    def __init__(self, *, on_close: Callable[[Subscription], None]) -> None:
        self._on_close = on_close
        self._pending: RegistrySnapshot | None = None
        self._last_offered = 0
        self._delivered: RegistrySnapshot | None = None
        self._wakeup = asyncio.Event()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, snapshot: RegistrySnapshot) -> None:
        # Called by the registry with the publish lock held; never blocks.
        if self._closed or snapshot.version <= self._last_offered:
            return
        self._last_offered = snapshot.version
        self._pending = snapshot
        self._wakeup.set()

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._pending = None
        self._on_close(self)
        # Release a consumer parked in __anext__ so it can observe the close.
        self._wakeup.set()

    async def next(self, timeout: float | None = None) -> RegistrySnapshot:
        return await asyncio.wait_for(self.__anext__(), timeout)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> RegistrySnapshot:
        while True:
            if self._closed:
                raise StopAsyncIteration
            if self._pending is not None:
                snapshot, self._pending = self._pending, None
                self._wakeup.clear()
                return self._deliver(snapshot)
            await self._wakeup.wait()
            self._wakeup.clear()

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.unsubscribe()

    def _deliver(self, snapshot: RegistrySnapshot) -> RegistrySnapshot:
        previous = self._delivered.documents if self._delivered is not None else ()
        delivered = RegistrySnapshot(
            version=snapshot.version,
            documents=snapshot.documents,
            changes=_diff(previous, snapshot.documents),
        )
        self._delivered = delivered
        return delivered


def _diff(
    before: tuple[DocumentRecord, ...], after: tuple[DocumentRecord, ...]
) -> tuple[DocumentChange, ...]:
    before_ids = {d.id for d in before}
    after_ids = {d.id for d in after}
    removed = [
        DocumentChange(kind=ChangeKind.removed, document=d) for d in before if d.id not in after_ids
    ]
    added = [
        DocumentChange(kind=ChangeKind.added, document=d) for d in after if d.id not in before_ids
    ]
    return tuple(removed + added)


# --- Module Notes -----------------------------------------------------------
# Everything here runs on the event loop thread; `offer` and `unsubscribe` are
# synchronous, so no delivery can interleave with an unsubscribe.
