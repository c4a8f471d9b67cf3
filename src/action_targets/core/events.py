from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Generic, List, TypeVar

P = TypeVar("P")

# Payload: the action identity whose inflight set changed.
INFLIGHT_CHANGED = "inflight.changed"
# Payload: list of target identifiers, or None for "everything".
TARGETS_STALE = "targets.stale"


@dataclass(frozen=True)
class Event(Generic[P]):
    topic: str
    payload: P


Handler = Callable[[Event[P]], None]
Unsubscribe = Callable[[], None]


class _Subscription(Generic[P]):
    __slots__ = ("handler", "active")

    def __init__(self, handler: Handler[P]) -> None:
        self.handler = handler
        self.active = True


class EventBus(Generic[P]):
    """
    Minimal synchronous pub/sub. No queuing, no replay.

    Handlers registered or removed while a publish is running do not change
    who receives that publish.
    """

    def __init__(self) -> None:
        self._subs: Dict[str, List[_Subscription[P]]] = {}

    def subscribe(self, topic: str, handler: Handler[P]) -> Unsubscribe:
        sub: _Subscription[P] = _Subscription(handler)
        self._subs.setdefault(topic, []).append(sub)

        def unsubscribe() -> None:
            if not sub.active:
                return
            sub.active = False
            subs = self._subs.get(topic)
            if subs is None:
                return
            subs.remove(sub)
            if not subs:
                del self._subs[topic]

        return unsubscribe

    def publish(self, topic: str, payload: P) -> None:
        subs = list(self._subs.get(topic, []))
        if not subs:
            return
        event = Event(topic=topic, payload=payload)
        for sub in subs:
            sub.handler(event)

    def listener_count(self, topic: str) -> int:
        return len(self._subs.get(topic, []))
