from __future__ import annotations

from typing import Callable, List

AbortListener = Callable[[], None]


class CancellationToken:
    """
    Cooperative cancellation flag. Aborting does not stop any running work;
    whoever holds the token checks `aborted` at its completion boundary.
    """

    def __init__(self) -> None:
        self._aborted = False
        self._listeners: List[AbortListener] = []

    @property
    def aborted(self) -> bool:
        return self._aborted

    def abort(self) -> None:
        if self._aborted:
            return
        self._aborted = True
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener()

    def add_listener(self, listener: AbortListener) -> None:
        if self._aborted:
            listener()
            return
        self._listeners.append(listener)
