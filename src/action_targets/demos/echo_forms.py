from __future__ import annotations

import asyncio
from typing import Dict, List

from rich.table import Table

from action_targets.actions.dispatcher import ActionDispatcher
from action_targets.core.logging import get_logger
from action_targets.demos.base import Demo, DemoContext


class EchoFormsDemo(Demo):
    name = "forms"
    description = "Two forms sharing one slow action; resubmitting cancels the previous submit."

    async def run(self, ctx: DemoContext) -> None:
        log = get_logger(demo=self.name)
        co = ctx.coordination
        delay = ctx.settings.echo_delay_seconds

        async def echo(form: Dict[str, str]) -> str:
            await asyncio.sleep(delay)
            return str(form["value"])

        forms: List[ActionDispatcher] = [co.dispatcher(echo, name="form-%d" % i) for i in (1, 2)]

        def render(title: str) -> None:
            ctx.console.rule(title)
            ctx.console.print(_forms_table(forms))
            values = [str(s["value"]) for s in co.inflight.list(echo)]
            ctx.console.print("inflight echoes: %s" % (", ".join(values) or "none"))

        render("Ready")

        tasks = [f.submit({"value": "beef"}) for f in forms]
        render("Submitted")

        # Resubmitting form-1 supersedes its first submission.
        tasks.append(forms[0].submit({"value": "pork"}))
        log.info("resubmitted", dispatcher=forms[0].name)
        render("Resubmitted")

        await asyncio.gather(*tasks)
        await co.scheduler.wait_idle()
        render("Done")


def _forms_table(forms: List[ActionDispatcher]) -> Table:
    table = Table(title="Forms")
    table.add_column("Form")
    table.add_column("Status")
    for f in forms:
        table.add_row(f.name, _status(f))
    return table


def _status(form: ActionDispatcher) -> str:
    if form.pending is not None:
        return "Loading... %s" % form.pending["value"]
    if form.display_result is not None:
        return str(form.display_result)
    return "Waiting on you..."
