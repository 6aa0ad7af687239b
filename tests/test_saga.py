import asyncio

import pytest
from kungfu import Error, LazyCoroResult, Ok, Result

from storefront import saga as S


class Journal:
    def __init__(self) -> None:
        self.entries: list[str] = []

    def action(self, name: str, *, fail: bool = False) -> LazyCoroResult[str, str]:
        async def run() -> Result[str, str]:
            if fail:
                self.entries.append(f"fail {name}")
                return Error(f"{name} failed")
            self.entries.append(f"do {name}")
            return Ok(name)

        return LazyCoroResult(run)

    async def undo(self, value: str) -> None:
        self.entries.append(f"undo {value}")


@pytest.mark.asyncio
async def test_chain_passes_values_forward() -> None:
    journal = Journal()
    chain = (
        S.step(journal.action("reserve"), compensate=journal.undo, name="reserve")
        .then(lambda prev: S.step(journal.action(f"{prev}+order"), name="order"))
    )

    match await S.run(chain):
        case Ok(done):
            assert done.value == "reserve+order"
            assert (done.steps_executed, done.compensators_recorded) == (2, 1)
        case other:
            pytest.fail(f"expected success, got {other!r}")


@pytest.mark.asyncio
async def test_error_rolls_back_completed_steps_newest_first() -> None:
    journal = Journal()
    chain = (
        S.step(journal.action("reserve"), compensate=journal.undo, name="reserve")
        .then(lambda _: S.step(journal.action("order"), compensate=journal.undo, name="order"))
        .then(lambda _: S.step(journal.action("payment", fail=True), name="payment"))
    )

    match await S.run(chain):
        case Error(failure):
            assert failure.error == "payment failed"
            assert failure.step_failed == "payment"
            assert failure.rollback_complete
            assert failure.compensators_run == 2
        case other:
            pytest.fail(f"expected failure, got {other!r}")
    assert journal.entries == ["do reserve", "do order", "fail payment", "undo order", "undo reserve"]


@pytest.mark.asyncio
async def test_failing_compensator_is_counted_and_the_rest_still_run() -> None:
    journal = Journal()

    async def broken(_: str) -> None:
        raise RuntimeError("undo failed")

    chain = (
        S.step(journal.action("reserve"), compensate=journal.undo, name="reserve")
        .then(lambda _: S.step(journal.action("order"), compensate=broken, name="order"))
        .then(lambda _: S.step(journal.action("payment", fail=True), name="payment"))
    )

    match await S.run(chain):
        case Error(failure):
            assert (failure.compensators_run, failure.compensators_failed) == (1, 1)
            assert not failure.rollback_complete
        case other:
            pytest.fail(f"expected failure, got {other!r}")
    assert journal.entries[-1] == "undo reserve"


@pytest.mark.asyncio
async def test_exception_rolls_back_then_propagates() -> None:
    journal = Journal()

    async def explode() -> Result[str, str]:
        raise LookupError("order store down")

    chain = (
        S.step(journal.action("reserve"), compensate=journal.undo, name="reserve")
        .then(lambda _: S.step(LazyCoroResult(explode), name="order"))
    )

    with pytest.raises(LookupError):
        await S.run(chain)
    assert journal.entries == ["do reserve", "undo reserve"]


@pytest.mark.asyncio
async def test_cancellation_rolls_back_completed_steps() -> None:
    journal = Journal()
    started = asyncio.Event()

    async def slow() -> Result[str, str]:
        started.set()
        await asyncio.sleep(10)
        return Ok("order")

    chain = (
        S.step(journal.action("reserve"), compensate=journal.undo, name="reserve")
        .then(lambda _: S.step(LazyCoroResult(slow), name="order"))
    )
    task = asyncio.create_task(S.run(chain))
    await started.wait()

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert journal.entries == ["do reserve", "undo reserve"]


@pytest.mark.asyncio
async def test_from_async_turns_exceptions_into_errors() -> None:
    async def charge() -> str:
        raise ConnectionError("gateway down")

    step = S.from_async(charge, on_error=lambda exc: f"charge: {exc}", name="charge")

    match await S.run(step):
        case Error(failure):
            assert failure.error == "charge: gateway down"
        case other:
            pytest.fail(f"expected failure, got {other!r}")
