from __future__ import annotations

from typing import List, Optional

from rich.console import Console

from action_targets.config import AppSettings
from action_targets.context import CoordinationContext
from action_targets.core.logging import get_logger
from action_targets.demos.base import Demo, DemoContext
from action_targets.demos.registry import default_demos


class DemoApp:
    def __init__(self, settings: AppSettings, *, console: Optional[Console] = None) -> None:
        self._settings = settings
        self._log = get_logger(app=settings.name)
        self._console = console or Console()
        self._demos = default_demos()

    @property
    def demos(self) -> List[Demo]:
        return list(self._demos)

    async def run(self, names: Optional[List[str]] = None) -> None:
        selected = self._select(names)
        self._log.info("starting", demos=[d.name for d in selected])

        for demo in selected:
            # Fresh shared state per demo so one cannot see another's cache.
            coordination = CoordinationContext.create()
            ctx = DemoContext(coordination=coordination, console=self._console, settings=self._settings.demo)
            self._log.info("demo_starting", demo=demo.name)
            try:
                await demo.run(ctx)
            finally:
                coordination.close()

        self._log.info("stopping")

    def _select(self, names: Optional[List[str]]) -> List[Demo]:
        if not names:
            return list(self._demos)
        by_name = {d.name: d for d in self._demos}
        unknown = [n for n in names if n not in by_name]
        if unknown:
            raise ValueError("unknown demo(s): %s" % ", ".join(unknown))
        return [by_name[n] for n in names]
