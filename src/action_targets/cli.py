from __future__ import annotations

from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from action_targets.demos.registry import default_demos, demos_by_name
from action_targets.main import main

app = typer.Typer(no_args_is_help=True)


@app.command()
def run(
    names: Optional[List[str]] = typer.Argument(None, help="Demos to run (default: all)"),
) -> None:
    """Run the console demos."""
    known = demos_by_name()
    for n in names or []:
        if n not in known:
            raise typer.BadParameter("unknown demo %r (try: %s)" % (n, ", ".join(known)))
    raise SystemExit(main(names or None))


@app.command("list")
def list_demos() -> None:
    """List available demos."""
    table = Table(title="Demos")
    table.add_column("Name")
    table.add_column("Description")
    for d in default_demos():
        table.add_row(d.name, d.description)
    Console().print(table)
