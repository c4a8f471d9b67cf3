from __future__ import annotations

import asyncio
from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Generic, Iterator, List, Optional, Set, TypeVar

from action_targets.core.events import EventBus
from action_targets.core.logging import get_logger

T = TypeVar("T")

COMMIT = "commit"


class StateCell(Generic[T]):
    """
    Settled state. Writes made while any transition is pending are held back
    and land together once every pending transition has finished.
    """

    def __init__(self, scheduler: "UpdateScheduler", initial: Optional[T] = None) -> None:
        self._scheduler = scheduler
        self._value = initial

    @property
    def value(self) -> Optional[T]:
        return self._value

    def set(self, value: Optional[T]) -> None:
        self._scheduler._write_state(self, value)


class OptimisticCell(StateCell[T]):
    """
    Immediate-visibility state scoped to transitions: visible as soon as it is
    written, reverted to the passthrough value once all transitions settle.
    """

    def __init__(self, scheduler: "UpdateScheduler", passthrough: Optional[T] = None) -> None:
        super().__init__(scheduler, passthrough)
        self.passthrough = passthrough

    def set(self, value: Optional[T]) -> None:
        self._scheduler._write_optimistic(self, value)


class UpdateScheduler:
    """
    Models how a UI layer batches state commits around async transitions.

    Transitions are entangled: settled writes from any of them are applied
    only when none are pending. Optimistic cells bypass that delay.
    Observers subscribe to `events` on topic "commit"; the payload is the
    reason string ("optimistic", "state", "settled").
    """

    def __init__(self) -> None:
        self.events: EventBus[str] = EventBus()
        self._log = get_logger(component="scheduler")
        self._pending: Set["asyncio.Task[Any]"] = set()
        self._deferred: List[Callable[[], None]] = []
        self._touched: List[OptimisticCell[Any]] = []
        self._batch_depth = 0
        self._held: Optional[str] = None

    def state(self, initial: Optional[T] = None) -> StateCell[T]:
        return StateCell(self, initial)

    def optimistic(self, passthrough: Optional[T] = None) -> OptimisticCell[T]:
        return OptimisticCell(self, passthrough)

    @property
    def is_pending(self) -> bool:
        return bool(self._pending)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def pending_transitions(self) -> List["asyncio.Task[Any]"]:
        return list(self._pending)

    def start_transition(self, work: Awaitable[T]) -> "asyncio.Task[T]":
        """
        Schedule `work` as a transition. Counts as pending from this call,
        before the coroutine gets its first turn on the loop.
        """
        task = asyncio.ensure_future(work)
        self._pending.add(task)
        task.add_done_callback(self._transition_done)
        return task

    async def wait_idle(self) -> None:
        """Wait until no transition is pending, including ones started meanwhile."""
        while self._pending:
            await asyncio.wait(set(self._pending))
        # Done callbacks run on the next loop turn.
        await asyncio.sleep(0)

    @contextmanager
    def batch(self) -> Iterator[None]:
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._held is not None:
                reason, self._held = self._held, None
                self.events.publish(COMMIT, reason)

    def _write_state(self, cell: StateCell[Any], value: Any) -> None:
        if self._pending:

            def apply() -> None:
                cell._value = value

            self._deferred.append(apply)
            return
        cell._value = value
        self._commit("state")

    def _write_optimistic(self, cell: OptimisticCell[Any], value: Any) -> None:
        if not self._pending:
            # Nothing to be optimistic about; the passthrough value stands.
            self._log.debug("optimistic_write_ignored")
            return
        cell._value = value
        self._touched.append(cell)
        self._commit("optimistic")

    def _transition_done(self, task: "asyncio.Task[Any]") -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self._log.warning("transition_failed", error=repr(task.exception()))
        if self._pending:
            return
        deferred, self._deferred = self._deferred, []
        touched, self._touched = self._touched, []
        with self.batch():
            for apply in deferred:
                apply()
            for cell in touched:
                cell._value = cell.passthrough
            self._commit("settled")

    def _commit(self, reason: str) -> None:
        if self._batch_depth:
            self._held = reason
            return
        self.events.publish(COMMIT, reason)
