from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from action_targets.core.events import TARGETS_STALE, Event, EventBus
from action_targets.core.logging import get_logger

Fetch = Callable[[], Awaitable[Any]]
Targets = Optional[List[str]]

_MISSING: Any = object()


class TargetNotReady(LookupError):
    """Raised by `TargetCache.peek` when a target has never resolved."""


@dataclass
class TargetEntry:
    identifier: str
    task: "asyncio.Future[Any]"
    stale: bool = False
    # Last good value from before an invalidation; backs the deferred view.
    previous: Any = field(default=_MISSING, repr=False)

    @property
    def resolved(self) -> bool:
        return self.task.done() and not self.task.cancelled() and self.task.exception() is None

    @property
    def failed(self) -> bool:
        return self.task.done() and (self.task.cancelled() or self.task.exception() is not None)


def revalidate_targets(events: EventBus[Targets], targets: Targets = None) -> None:
    """Announce that `targets` (or every target, when None) are stale."""
    events.publish(TARGETS_STALE, list(targets) if targets is not None else None)


class TargetCache:
    """
    Memoized async reads keyed by target identifier.

    A stale event naming an identifier (or naming none, meaning all) marks
    its entry stale; the next `read` starts a new fetch with whatever fetch
    function that read supplies. A failed fetch stays failed until it is
    invalidated or `retry` is called for it.
    """

    def __init__(self, events: EventBus[Targets]) -> None:
        self._entries: Dict[str, TargetEntry] = {}
        self._log = get_logger(component="target_cache")
        self._unsubscribe = events.subscribe(TARGETS_STALE, self._on_stale)

    async def read(self, identifier: str, fetch: Fetch) -> Any:
        entry = self._entries.get(identifier)
        if entry is None or entry.stale:
            entry = self._start(identifier, fetch, previous=entry)
        # Shielded so one reader giving up does not cancel the shared fetch.
        return await asyncio.shield(entry.task)

    def peek(self, identifier: str) -> Any:
        """
        Stable view while a refetch is in flight: the fresh value once ready,
        otherwise the last value resolved before the invalidation.
        """
        entry = self._entries.get(identifier)
        if entry is None:
            raise TargetNotReady(identifier)
        if entry.resolved:
            return entry.task.result()
        if entry.previous is not _MISSING:
            return entry.previous
        raise TargetNotReady(identifier)

    def is_cached(self, identifier: str) -> bool:
        entry = self._entries.get(identifier)
        return entry is not None and not entry.stale

    def invalidate(self, identifiers: Targets = None) -> List[str]:
        if identifiers is None:
            names = list(self._entries)
        else:
            names = [i for i in identifiers if i in self._entries]
        for name in names:
            self._entries[name].stale = True
        self._log.debug("targets_invalidated", targets=names)
        return names

    def retry(self, identifier: str) -> bool:
        """Drop a failed entry so the next read fetches again."""
        entry = self._entries.get(identifier)
        if entry is None or not entry.failed:
            return False
        entry.stale = True
        return True

    def close(self) -> None:
        self._unsubscribe()

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._entries

    def _start(self, identifier: str, fetch: Fetch, *, previous: Optional[TargetEntry]) -> TargetEntry:
        last_good = _MISSING
        if previous is not None:
            last_good = previous.task.result() if previous.resolved else previous.previous

        task = asyncio.ensure_future(fetch())
        entry = TargetEntry(identifier=identifier, task=task, previous=last_good)
        self._entries[identifier] = entry
        task.add_done_callback(lambda t: self._fetch_done(identifier, t))
        self._log.debug("fetch_started", target=identifier)
        return entry

    def _fetch_done(self, identifier: str, task: "asyncio.Future[Any]") -> None:
        if task.cancelled():
            self._log.warning("fetch_cancelled", target=identifier)
            return
        exc = task.exception()
        if exc is not None:
            self._log.warning("fetch_failed", target=identifier, error=repr(exc))

    def _on_stale(self, event: Event[Targets]) -> None:
        self.invalidate(event.payload)
