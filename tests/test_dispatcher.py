import asyncio

import pytest

from action_targets.actions.cancellation import CancellationToken
from action_targets.core.events import TARGETS_STALE
from action_targets.core.scheduler import COMMIT


def test_cancellation_token_runs_listeners_once() -> None:
    token = CancellationToken()
    seen = []
    token.add_listener(lambda: seen.append("early"))
    token.abort()
    token.abort()
    token.add_listener(lambda: seen.append("late"))
    assert token.aborted
    assert seen == ["early", "late"]


@pytest.mark.asyncio
async def test_submit_registers_and_sets_pending_immediately(ctx, gated) -> None:
    d = ctx.dispatcher(gated)
    form = {"value": "x"}

    task = d.submit(form)

    assert d.pending is form
    assert ctx.inflight.list(gated)[0] is form
    gated.release("x", "X")
    assert await task == "X"
    await ctx.scheduler.wait_idle()

    assert d.pending is None
    assert ctx.inflight.list(gated) == []
    assert d.result == "X"
    assert d.display_result == "X"


@pytest.mark.asyncio
async def test_inflight_observers_see_pending_in_same_update(ctx, gated) -> None:
    d = ctx.dispatcher(gated)
    seen = []
    commits = []
    ctx.inflight.watch(gated, lambda subs: seen.append((len(subs), d.pending)))
    ctx.scheduler.events.subscribe(COMMIT, lambda e: commits.append(e.payload))
    form = {"value": "x"}

    d.submit(form)

    assert seen == [(1, form)]
    assert commits == ["optimistic"]
    gated.release("x")
    await ctx.scheduler.wait_idle()


@pytest.mark.asyncio
async def test_resubmit_discards_superseded_outcome(ctx, gated, spin) -> None:
    d = ctx.dispatcher(gated)
    x, y = {"value": "x"}, {"value": "y"}

    tx = d.submit(x)
    ty = d.submit(y)

    listed = ctx.inflight.list(gated)
    assert len(listed) == 1 and listed[0] is y
    assert d.pending is y

    # The superseded action still runs to completion for its own caller.
    gated.release("x", "X")
    assert await tx == "X"
    await spin()
    assert d.display_result is None
    assert d.pending is y

    gated.release("y", "Y")
    assert await ty == "Y"
    await ctx.scheduler.wait_idle()

    assert gated.calls == ["x", "y"]
    assert ctx.inflight.list(gated) == []
    assert d.result == "Y"
    assert d.display_result == "Y"


@pytest.mark.asyncio
async def test_superseded_failure_is_discarded(ctx, gated) -> None:
    d = ctx.dispatcher(gated)
    tx = d.submit({"value": "x"})
    ty = d.submit({"value": "y"})

    gated.fail("x", ValueError("late failure"))
    with pytest.raises(ValueError):
        await tx
    gated.release("y", "Y")
    await ty
    await ctx.scheduler.wait_idle()

    assert d.error is None
    assert d.result == "Y"


@pytest.mark.asyncio
async def test_two_call_sites_share_inflight_set(ctx, gated) -> None:
    first = ctx.dispatcher(gated, name="first")
    second = ctx.dispatcher(gated, name="second")
    a, b = {"value": "a"}, {"value": "b"}

    ta = first.submit(a)
    tb = second.submit(b)

    listed = ctx.inflight.list(gated)
    assert [s is x for s, x in zip(listed, (a, b))] == [True, True]

    gated.release("a", "A")
    gated.release("b", "B")
    await asyncio.gather(ta, tb)
    await ctx.scheduler.wait_idle()

    assert ctx.inflight.list(gated) == []
    assert first.result == "A"
    assert second.result == "B"


@pytest.mark.asyncio
async def test_early_result_shows_while_unrelated_work_is_pending(ctx, make_gated, spin) -> None:
    slow, fast = make_gated(), make_gated()
    d_slow = ctx.dispatcher(slow)
    d_fast = ctx.dispatcher(fast)

    d_slow.submit({"value": "s"})
    t = d_fast.submit({"value": "f"})
    fast.release("f", "F")
    await t
    await spin()

    assert d_fast.pending is None
    assert d_fast.early_result == "F"
    assert d_fast.result is None
    assert d_fast.display_result == "F"
    assert d_slow.pending is not None

    slow.release("s", "S")
    await ctx.scheduler.wait_idle()

    assert d_fast.early_result is None
    assert d_fast.result == "F"
    assert d_fast.display_result == "F"
    assert d_slow.display_result == "S"


@pytest.mark.asyncio
async def test_success_revalidates_configured_targets(ctx, gated) -> None:
    stale = []
    ctx.target_events.subscribe(TARGETS_STALE, lambda e: stale.append(e.payload))
    d = ctx.dispatcher(gated, ["cart", "badge"])

    t = d.submit({"value": "x"})
    gated.release("x")
    await t
    await ctx.scheduler.wait_idle()

    assert stale == [["cart", "badge"]]


@pytest.mark.asyncio
async def test_no_targets_means_no_revalidation(ctx, gated) -> None:
    stale = []
    ctx.target_events.subscribe(TARGETS_STALE, lambda e: stale.append(e.payload))
    d = ctx.dispatcher(gated)

    t = d.submit({"value": "x"})
    gated.release("x")
    await t
    await ctx.scheduler.wait_idle()

    assert stale == []


@pytest.mark.asyncio
async def test_failure_propagates_and_cleans_up(ctx) -> None:
    stale = []
    ctx.target_events.subscribe(TARGETS_STALE, lambda e: stale.append(e.payload))

    async def boom(form):
        raise ValueError("nope")

    d = ctx.dispatcher(boom, ["cart"])
    t = d.submit({"value": "x"})
    with pytest.raises(ValueError):
        await t
    await ctx.scheduler.wait_idle()

    assert d.pending is None
    assert ctx.inflight.list(boom) == []
    assert isinstance(d.error, ValueError)
    assert d.display_error is d.error
    assert d.display_result is None
    assert stale == []


@pytest.mark.asyncio
async def test_cancelled_action_task_is_cleaned_up(ctx, gated, spin) -> None:
    d = ctx.dispatcher(gated)
    t = d.submit({"value": "x"})
    await spin()

    t.cancel()
    with pytest.raises(asyncio.CancelledError):
        await t
    await ctx.scheduler.wait_idle()

    assert d.pending is None
    assert d.error is None
    assert ctx.inflight.list(gated) == []


@pytest.mark.asyncio
async def test_view_exposes_render_state(ctx, gated) -> None:
    d = ctx.dispatcher(gated)
    form = {"value": "x"}

    view = d.view()
    assert view.pending is None and view.result is None

    view.submit(form)
    assert d.view().pending is form

    gated.release("x", "X")
    await ctx.scheduler.wait_idle()
    assert d.view().result == "X"


@pytest.mark.asyncio
async def test_resubmit_keeps_pending_and_registry_in_step(ctx, gated) -> None:
    d = ctx.dispatcher(gated)
    d.submit({"value": "x"})
    seen = []

    def on_change(subs):
        pending = d.pending["value"] if d.pending is not None else None
        seen.append(([s["value"] for s in subs], pending))

    ctx.inflight.watch(gated, on_change)
    d.submit({"value": "y"})

    assert seen == [(["x", "y"], "y"), (["y"], "y")]

    gated.release("x")
    gated.release("y")
    await ctx.scheduler.wait_idle()

    assert seen[-1] == ([], None)
    for subs, pending in seen:
        assert (pending is None) == (subs == [])


@pytest.mark.asyncio
async def test_cancel_drops_live_submission(ctx, gated, make_gated, spin) -> None:
    other = make_gated()
    ctx.dispatcher(other).submit({"value": "o"})
    d = ctx.dispatcher(gated)
    t = d.submit({"value": "x"})

    d.cancel()
    assert d.pending is None
    assert ctx.inflight.list(gated) == []

    gated.release("x", "X")
    assert await t == "X"
    await spin()
    assert d.pending is None
    assert d.display_result is None

    other.release("o")
    await ctx.scheduler.wait_idle()
    assert d.result is None


@pytest.mark.asyncio
async def test_cancelled_transition_releases_submission(ctx, gated) -> None:
    d = ctx.dispatcher(gated)
    t = d.submit({"value": "x"})

    (transition,) = ctx.scheduler.pending_transitions
    transition.cancel()
    await ctx.scheduler.wait_idle()

    assert ctx.inflight.list(gated) == []
    assert d.pending is None

    gated.release("x", "X")
    assert await t == "X"

    # Nothing stale is left for the next submit to supersede.
    d.submit({"value": "y"})
    assert [s["value"] for s in ctx.inflight.list(gated)] == ["y"]
    gated.release("y", "Y")
    await ctx.scheduler.wait_idle()
    assert d.result == "Y"
