from __future__ import annotations

from typing import Dict, List

from action_targets.demos.base import Demo
from action_targets.demos.cart import CartDemo
from action_targets.demos.echo_forms import EchoFormsDemo


def default_demos() -> List[Demo]:
    return [
        CartDemo(),
        EchoFormsDemo(),
    ]


def demos_by_name() -> Dict[str, Demo]:
    return {d.name: d for d in default_demos()}
