"""Tests for the batched detail loader."""

import asyncio
import math

import pytest

from card_catalog.errors import DetailFetchError
from card_catalog.loader import BatchedDetailLoader, chunked
from card_catalog.models import CardRecord, CardStub, SetInfo
from card_catalog.set_index import SetIndex


SET_INDEX = SetIndex.build(
    [SetInfo(id="A1", name="Genetic Apex"), SetInfo(id="A2", name="Space-Time Smackdown")],
    intrinsic_order=True,
)


def _stubs(n, set_id="A1"):
    return [CardStub(id=f"{set_id}-{i:03d}", local_id=f"{i:03d}", set_id=set_id) for i in range(1, n + 1)]


def _fake_fetch(failing=(), set_override=None, delays=None):
    """Build a fetch_detail coroutine that fails for ids in `failing`."""

    async def fetch(card_id):
        if delays:
            await asyncio.sleep(delays.get(card_id, 0))
        if card_id in failing:
            raise DetailFetchError(card_id, "404 Not Found")
        set_id = set_override if set_override is not None else card_id.split("-")[0]
        return CardRecord(
            id=card_id,
            local_id=card_id.split("-")[1],
            name=f"Card {card_id}",
            rarity="One Diamond",
            set_id=set_id,
            source="test",
        )

    return fetch


def test_chunked():
    assert [len(c) for c in chunked(_stubs(7), 3)] == [3, 3, 1]
    assert chunked([], 3) == []
    with pytest.raises(ValueError):
        chunked(_stubs(2), 0)


def test_rejects_non_positive_batch_size():
    with pytest.raises(ValueError):
        BatchedDetailLoader(_fake_fetch(), batch_size=0)


@pytest.mark.parametrize("n,batch,failing", [
    (10, 3, {"A1-002", "A1-009"}),
    (5, 5, set()),
    (7, 100, {"A1-001"}),
    (4, 1, {"A1-001", "A1-002", "A1-003", "A1-004"}),
])
async def test_drops_failures_and_reports_progress(n, batch, failing):
    events = []
    loader = BatchedDetailLoader(_fake_fetch(failing), batch_size=batch)
    result = await loader.load(_stubs(n), SET_INDEX, lambda done, total: events.append((done, total)))

    assert len(result.cards) == n - len(failing)
    assert sorted(result.failed_ids) == sorted(failing)
    assert result.total == n
    assert len(events) == math.ceil(n / batch)
    processed = [done for done, _ in events]
    assert processed == sorted(processed)
    assert events[-1] == (n, n)
    assert all(total == n for _, total in events)


async def test_keeps_input_order_despite_completion_order():
    stubs = _stubs(6)
    # Later cards in each chunk finish first
    delays = {s.id: 0.01 * (6 - i) for i, s in enumerate(stubs)}
    loader = BatchedDetailLoader(_fake_fetch(delays=delays), batch_size=3)
    result = await loader.load(stubs, SET_INDEX)
    assert [c.id for c in result.cards] == [s.id for s in stubs]


async def test_assigns_expansion_index():
    stubs = _stubs(2, "A1") + _stubs(2, "A2") + _stubs(1, "ZZ")
    loader = BatchedDetailLoader(_fake_fetch(), batch_size=2)
    result = await loader.load(stubs, SET_INDEX)
    assert [c.expansion_index for c in result.cards] == [0, 0, 1, 1, -1]


async def test_falls_back_to_stub_set_id():
    loader = BatchedDetailLoader(_fake_fetch(set_override=""), batch_size=10)
    result = await loader.load(_stubs(1, "A2"), SET_INDEX)
    assert result.cards[0].set_id == "A2"
    assert result.cards[0].expansion_index == 1


async def test_chunks_run_sequentially_with_bounded_concurrency():
    in_flight = 0
    peak = 0
    chunk_peaks = []

    async def fetch(card_id):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return CardRecord(
            id=card_id, local_id="1", name=card_id, rarity="", set_id="A1", source="test",
        )

    def on_progress(done, total):
        chunk_peaks.append(in_flight)

    loader = BatchedDetailLoader(fetch, batch_size=4)
    await loader.load(_stubs(10), SET_INDEX, on_progress)
    assert peak == 4
    # Nothing is still running when a chunk reports completion
    assert chunk_peaks == [0, 0, 0]


async def test_max_concurrency_below_batch_size():
    in_flight = 0
    peak = 0

    async def fetch(card_id):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.005)
        in_flight -= 1
        return CardRecord(
            id=card_id, local_id="1", name=card_id, rarity="", set_id="A1", source="test",
        )

    loader = BatchedDetailLoader(fetch, batch_size=6, max_concurrency=2)
    result = await loader.load(_stubs(6), SET_INDEX)
    assert peak == 2
    assert len(result.cards) == 6


async def test_unexpected_errors_propagate():
    async def fetch(card_id):
        raise RuntimeError("bug in parser")

    loader = BatchedDetailLoader(fetch, batch_size=2)
    with pytest.raises(RuntimeError, match="bug in parser"):
        await loader.load(_stubs(2), SET_INDEX)


async def test_empty_input():
    events = []
    loader = BatchedDetailLoader(_fake_fetch(), batch_size=3)
    result = await loader.load([], SET_INDEX, lambda d, t: events.append((d, t)))
    assert result.cards == []
    assert events == []
