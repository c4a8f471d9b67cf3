from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from action_targets.actions.dispatcher import ActionDispatcher
from action_targets.actions.inflight import Action, InflightRegistry
from action_targets.core.events import EventBus
from action_targets.core.scheduler import UpdateScheduler
from action_targets.targets.cache import TargetCache, Targets, revalidate_targets


@dataclass(frozen=True)
class CoordinationContext:
    """
    Process-wide shared state, owned explicitly and handed to whoever needs it.
    Everything runs on one event loop, so none of it is locked.
    """

    scheduler: UpdateScheduler
    inflight_events: EventBus[Action]
    target_events: EventBus[Targets]
    inflight: InflightRegistry
    targets: TargetCache

    @classmethod
    def create(cls) -> "CoordinationContext":
        inflight_events: EventBus[Action] = EventBus()
        target_events: EventBus[Targets] = EventBus()
        return cls(
            scheduler=UpdateScheduler(),
            inflight_events=inflight_events,
            target_events=target_events,
            inflight=InflightRegistry(inflight_events),
            targets=TargetCache(target_events),
        )

    def dispatcher(
        self, action: Action, targets: Optional[List[str]] = None, *, name: Optional[str] = None
    ) -> ActionDispatcher:
        return ActionDispatcher(
            action,
            inflight=self.inflight,
            scheduler=self.scheduler,
            target_events=self.target_events,
            targets=targets,
            name=name,
        )

    def revalidate(self, targets: Targets = None) -> None:
        revalidate_targets(self.target_events, targets)

    def close(self) -> None:
        self.targets.close()
