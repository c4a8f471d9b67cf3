from __future__ import annotations

import asyncio
from typing import Any, Dict, List

import pytest

from action_targets.context import CoordinationContext


class GatedAction:
    """
    Async action whose outcome is decided by the test.
    Each submission is keyed by its "value" field.
    """

    __name__ = "gated"

    def __init__(self) -> None:
        self.calls: List[Any] = []
        self._gates: Dict[str, "asyncio.Future[Any]"] = {}

    async def __call__(self, form: Dict[str, Any]) -> Any:
        self.calls.append(form["value"])
        return await self._gate(form["value"])

    def release(self, value: str, result: Any = None) -> None:
        self._gate(value).set_result(result)

    def fail(self, value: str, exc: BaseException) -> None:
        self._gate(value).set_exception(exc)

    def _gate(self, value: str) -> "asyncio.Future[Any]":
        if value not in self._gates:
            self._gates[value] = asyncio.get_running_loop().create_future()
        return self._gates[value]


async def _spin(times: int = 5) -> None:
    for _ in range(times):
        await asyncio.sleep(0)


@pytest.fixture
def ctx():
    c = CoordinationContext.create()
    yield c
    c.close()


@pytest.fixture
def gated() -> GatedAction:
    return GatedAction()


@pytest.fixture
def make_gated():
    return GatedAction


@pytest.fixture
def spin():
    """Let pending callbacks and task steps run."""
    return _spin
