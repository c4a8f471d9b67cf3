from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List

from action_targets.core.events import INFLIGHT_CHANGED, Event, EventBus, Unsubscribe

Action = Callable[[Any], Awaitable[Any]]
Submission = Any


class InflightRegistry:
    """
    Per-action set of submissions that have started but not yet settled or
    been cancelled.

    Submissions are tracked by identity, so unhashable inputs (dicts, lists)
    are fine. An action with nothing in flight has no entry at all.
    Every add/remove publishes INFLIGHT_CHANGED with the action as payload.
    """

    def __init__(self, events: EventBus[Action]) -> None:
        self._events = events
        self._inflight: Dict[Action, Dict[int, Submission]] = {}

    def add(self, action: Action, submission: Submission) -> None:
        self._inflight.setdefault(action, {})[id(submission)] = submission
        self._events.publish(INFLIGHT_CHANGED, action)

    def remove(self, action: Action, submission: Submission) -> None:
        subs = self._inflight.get(action)
        if subs is not None:
            subs.pop(id(submission), None)
            if not subs:
                del self._inflight[action]
        # Published even when nothing was removed; cancellation cleanup relies on it.
        self._events.publish(INFLIGHT_CHANGED, action)

    def list(self, action: Action) -> List[Submission]:
        return list(self._inflight.get(action, {}).values())

    def actions(self) -> List[Action]:
        return list(self._inflight)

    def watch(self, action: Action, listener: Callable[[List[Submission]], None]) -> Unsubscribe:
        """
        Call `listener` with a fresh snapshot whenever `action`'s set changes.
        """

        def on_change(event: Event[Action]) -> None:
            if event.payload == action:
                listener(self.list(action))

        return self._events.subscribe(INFLIGHT_CHANGED, on_change)

    def __len__(self) -> int:
        return sum(len(subs) for subs in self._inflight.values())
