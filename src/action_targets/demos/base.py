from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console

from action_targets.config import DemoSettings
from action_targets.context import CoordinationContext


@dataclass(frozen=True)
class DemoContext:
    coordination: CoordinationContext
    console: Console
    settings: DemoSettings


class Demo:
    """
    Plug-in interface. A demo plays the part of a UI: it supplies actions and
    fetches, drives submissions and renders whatever state the core exposes.
    """

    name: str = "unnamed"
    description: str = ""

    async def run(self, ctx: DemoContext) -> None:  # pragma: no cover
        raise NotImplementedError
