import asyncio

import pytest

from solscope.core.queue import RateLimitedQueue


def _job(log, name, *, fail=False, duration=0.0):
    async def run():
        loop = asyncio.get_running_loop()
        start = loop.time()
        if duration:
            await asyncio.sleep(duration)
        log.append((name, start, loop.time()))
        if fail:
            raise ValueError(f"{name} failed")
        return name

    return run


@pytest.mark.asyncio
async def test_jobs_run_in_fifo_order_with_delay_between_them():
    queue = RateLimitedQueue(0.05)
    log = []

    results = await asyncio.gather(*(queue.enqueue(_job(log, f"t{i}", duration=0.01)) for i in range(4)))

    assert results == ["t0", "t1", "t2", "t3"]
    assert [entry[0] for entry in log] == ["t0", "t1", "t2", "t3"]
    for previous, current in zip(log, log[1:]):
        assert current[1] - previous[2] >= 0.05 - 0.01


@pytest.mark.asyncio
async def test_failed_job_does_not_stop_later_jobs():
    queue = RateLimitedQueue(0)
    log = []

    outcomes = await asyncio.gather(
        queue.enqueue(_job(log, "a")),
        queue.enqueue(_job(log, "b", fail=True)),
        queue.enqueue(_job(log, "c")),
        return_exceptions=True,
    )

    assert outcomes[0] == "a"
    assert isinstance(outcomes[1], ValueError)
    assert outcomes[2] == "c"
    assert [entry[0] for entry in log] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_failure_is_delivered_only_to_its_caller():
    queue = RateLimitedQueue(0)
    log = []

    with pytest.raises(ValueError, match="boom failed"):
        await queue.enqueue(_job(log, "boom", fail=True))

    assert await queue.enqueue(_job(log, "after")) == "after"


@pytest.mark.asyncio
async def test_idle_and_draining_transitions():
    queue = RateLimitedQueue(0.01)
    assert queue.is_draining is False

    gate = asyncio.Event()

    async def blocked():
        await gate.wait()
        return "done"

    pending = asyncio.ensure_future(queue.enqueue(blocked))
    await asyncio.sleep(0)
    assert queue.is_draining is True

    gate.set()
    assert await pending == "done"
    await asyncio.sleep(0.05)
    assert queue.is_draining is False
    assert queue.pending == 0

    # A new enqueue after going idle restarts the drain loop.
    assert await queue.enqueue(_job([], "again")) == "again"


@pytest.mark.asyncio
async def test_cancelled_caller_is_skipped_without_running_its_job():
    queue = RateLimitedQueue(0)
    gate = asyncio.Event()
    ran = []

    async def first():
        await gate.wait()
        ran.append("first")

    async def second():
        ran.append("second")

    async def third():
        ran.append("third")
        return "third"

    first_call = asyncio.ensure_future(queue.enqueue(first))
    second_call = asyncio.ensure_future(queue.enqueue(second))
    third_call = asyncio.ensure_future(queue.enqueue(third))
    await asyncio.sleep(0)

    second_call.cancel()
    gate.set()

    await first_call
    assert await third_call == "third"
    assert second_call.cancelled()
    assert ran == ["first", "third"]


@pytest.mark.asyncio
async def test_aclose_cancels_waiting_callers():
    queue = RateLimitedQueue(0)
    gate = asyncio.Event()

    async def blocked():
        await gate.wait()

    running = asyncio.ensure_future(queue.enqueue(blocked))
    waiting = asyncio.ensure_future(queue.enqueue(blocked))
    await asyncio.sleep(0)

    await queue.aclose()
    await asyncio.gather(running, waiting, return_exceptions=True)

    assert running.cancelled()
    assert waiting.cancelled()
    assert queue.is_draining is False
    with pytest.raises(RuntimeError):
        await queue.enqueue(blocked)


@pytest.mark.asyncio
async def test_job_cancelling_itself_does_not_stall_the_queue():
    queue = RateLimitedQueue(0)
    log = []

    async def gives_up():
        raise asyncio.CancelledError()

    first = asyncio.ensure_future(queue.enqueue(gives_up))
    second = asyncio.ensure_future(queue.enqueue(_job(log, "next")))

    done, _ = await asyncio.wait({first, second}, timeout=1)

    assert done == {first, second}
    assert first.cancelled()
    assert second.result() == "next"
