from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from action_targets.actions.cancellation import CancellationToken
from action_targets.actions.inflight import Action, InflightRegistry, Submission
from action_targets.core.events import EventBus
from action_targets.core.logging import get_logger
from action_targets.core.scheduler import UpdateScheduler
from action_targets.targets.cache import Targets, revalidate_targets


@dataclass(frozen=True)
class ActionView:
    """What a call site renders from: submit, pending input, outcome."""

    submit: Callable[[Submission], "asyncio.Task[Any]"]
    pending: Optional[Submission]
    result: Any
    error: Optional[BaseException]


class ActionDispatcher:
    """
    Wraps one action for one call site.

    At most one submission is live per dispatcher: submitting again aborts
    the previous submission's token, drops it from the inflight registry and
    discards its eventual outcome. The action itself keeps running.

    State comes in two channels. `pending`, `early_result` and `early_error`
    are optimistic and show up immediately even while unrelated transitions
    are still running; `result` and `error` are settled and land when every
    pending transition is done. The display values prefer the optimistic one.
    """

    def __init__(
        self,
        action: Action,
        *,
        inflight: InflightRegistry,
        scheduler: UpdateScheduler,
        target_events: EventBus[Targets],
        targets: Optional[List[str]] = None,
        name: Optional[str] = None,
    ) -> None:
        self._action = action
        self._inflight = inflight
        self._scheduler = scheduler
        self._target_events = target_events
        self._targets = list(targets) if targets is not None else None
        self.name = name or getattr(action, "__name__", repr(action))
        self._log = get_logger(dispatcher=self.name)

        self._token: Optional[CancellationToken] = None
        self._live: Optional[Submission] = None
        self._pending = scheduler.optimistic()
        self._early_result = scheduler.optimistic()
        self._early_error = scheduler.optimistic()
        self._result = scheduler.state()
        self._error = scheduler.state()

    @property
    def action(self) -> Action:
        return self._action

    @property
    def targets(self) -> Optional[List[str]]:
        return list(self._targets) if self._targets is not None else None

    @property
    def pending(self) -> Optional[Submission]:
        return self._pending.value

    @property
    def early_result(self) -> Any:
        return self._early_result.value

    @property
    def result(self) -> Any:
        return self._result.value

    @property
    def display_result(self) -> Any:
        early = self._early_result.value
        return early if early is not None else self._result.value

    @property
    def early_error(self) -> Optional[BaseException]:
        return self._early_error.value

    @property
    def error(self) -> Optional[BaseException]:
        return self._error.value

    @property
    def display_error(self) -> Optional[BaseException]:
        early = self._early_error.value
        return early if early is not None else self._error.value

    def view(self) -> ActionView:
        return ActionView(
            submit=self.submit,
            pending=self.pending,
            result=self.display_result,
            error=self.display_error,
        )

    def submit(self, submission: Submission) -> "asyncio.Task[Any]":
        """
        Start the action for `submission` and return its task.

        Must be called from inside a running event loop. The returned task
        carries the action's own outcome, whether or not this submission is
        later superseded.
        """
        previous = self._live
        if self._token is not None:
            self._token.abort()

        token = CancellationToken()
        token.add_listener(lambda: self._log.debug("cancelled"))
        self._token = token
        self._live = submission

        # Not awaited here; bookkeeping below has to happen first.
        task = asyncio.ensure_future(self._action(submission))

        transition = self._scheduler.start_transition(self._settle(token, task, submission))
        transition.add_done_callback(lambda t: self._transition_cancelled(t, token, submission))
        with self._scheduler.batch():
            self._early_result.set(None)
            self._early_error.set(None)
            # Inflight listeners fire synchronously: set pending, add the new
            # submission, then drop the superseded one, so no listener sees
            # a pending value without a registry entry or the reverse.
            self._pending.set(submission)
            self._inflight.add(self._action, submission)
            if previous is not None:
                self._inflight.remove(self._action, previous)
        self._log.debug("submitted", inflight=len(self._inflight.list(self._action)))
        return task

    def cancel(self) -> None:
        """Abort the live submission, if any, without starting a new one."""
        if self._token is None:
            return
        self._token.abort()
        self._token = None
        submission, self._live = self._live, None
        if submission is not None:
            self._release(submission)

    async def _settle(self, token: CancellationToken, task: "asyncio.Task[Any]", submission: Submission) -> None:
        try:
            result = await task
        except asyncio.CancelledError:
            # This transition was cancelled rather than the action;
            # _transition_cancelled does the cleanup.
            if not task.cancelled():
                raise
            if not token.aborted:
                self._finish(token)
                self._release(submission)
                self._log.warning("action_cancelled")
            return
        except Exception as e:
            # Surfaced to the submitter through `task`; here we only record it.
            if token.aborted:
                return
            self._finish(token)
            with self._scheduler.batch():
                self._early_result.set(None)
                self._early_error.set(e)
                self._pending.set(None)
                self._result.set(None)
                self._error.set(e)
                self._inflight.remove(self._action, submission)
            self._log.warning("action_failed", error=repr(e))
            return

        # Superseded; the UI already moved on to a newer submission.
        if token.aborted:
            return

        self._finish(token)
        with self._scheduler.batch():
            self._early_result.set(result)
            self._early_error.set(None)
            self._pending.set(None)
            self._result.set(result)
            self._error.set(None)
            self._inflight.remove(self._action, submission)
        self._log.debug("settled")
        if self._targets is not None:
            self._log.debug("revalidate", targets=self._targets)
            revalidate_targets(self._target_events, self._targets)

    def _transition_cancelled(
        self, transition: "asyncio.Future[Any]", token: CancellationToken, submission: Submission
    ) -> None:
        # Covers cancellation before _settle ever ran, where its handlers cannot.
        if not transition.cancelled() or token.aborted:
            return
        token.abort()
        self._finish(token)
        self._release(submission)
        self._log.warning("transition_cancelled")

    def _finish(self, token: CancellationToken) -> None:
        if self._token is token:
            self._token = None
            self._live = None

    def _release(self, submission: Submission) -> None:
        with self._scheduler.batch():
            self._pending.set(None)
            self._inflight.remove(self._action, submission)
