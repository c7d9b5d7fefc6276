import asyncio

from songguess.debounce import Debouncer


def test_only_last_request_runs(run):
    async def scenario():
        calls = []

        async def record(term):
            calls.append(term)

        debouncer = Debouncer(0.03, record)
        for term in ("a", "ab", "abc"):
            debouncer(term)
            await asyncio.sleep(0.005)
        assert debouncer.pending
        await asyncio.sleep(0.08)
        debouncer("late")
        debouncer.cancel()
        await asyncio.sleep(0.05)
        return calls

    assert run(scenario()) == ["abc"]
