"""
Tests for SyncScheduler: debounce coalescing and in-flight handling
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from shoecart.cart import LineItem
from shoecart.errors import CartTransientError


def _state(items):
    return [(i.key, i.quantity) for i in items]


@pytest.mark.asyncio
async def test_rapid_mutations_coalesce_into_one_write(make_session, mock_client, sneaker):
    session = make_session(debounce_ms=30)
    await session.start(authenticated=True)

    for _ in range(5):
        session.add(sneaker)
        await asyncio.sleep(0.005)

    await asyncio.sleep(0.15)

    mock_client.replace_cart.assert_awaited_once()
    assert _state(mock_client.replace_cart.await_args.args[0]) == [(("A", 42), 5)]


@pytest.mark.asyncio
async def test_nothing_written_before_timer(make_session, mock_client, sneaker):
    session = make_session(debounce_ms=200)
    await session.start(authenticated=True)

    session.add(sneaker)

    assert session.scheduler.pending is True
    mock_client.replace_cart.assert_not_awaited()
    await session.close()


@pytest.mark.asyncio
async def test_emptied_cart_is_cleared_not_replaced(make_session, mock_client, sneaker):
    mock_client.get_cart.return_value = [LineItem(sneaker, 1)]
    session = make_session()
    await session.start(authenticated=True)

    session.remove("A", 42)
    await asyncio.sleep(0.1)

    mock_client.clear_cart.assert_awaited_once()
    mock_client.replace_cart.assert_not_awaited()


@pytest.mark.asyncio
async def test_mutation_during_write_starts_new_cycle(make_session, mock_client, sneaker):
    calls = []
    gate = asyncio.Event()

    async def slow_replace(items):
        calls.append(_state(items))
        if len(calls) == 1:
            await gate.wait()

    mock_client.replace_cart = AsyncMock(side_effect=slow_replace)
    session = make_session(debounce_ms=20)
    await session.start(authenticated=True)

    session.add(sneaker)
    await asyncio.sleep(0.1)
    assert session.scheduler.syncing is True

    session.add(sneaker)
    await asyncio.sleep(0.1)
    # Still one write: the second cycle waits for the first to land
    assert len(calls) == 1

    gate.set()
    await asyncio.sleep(0.15)

    assert calls == [[(("A", 42), 1)], [(("A", 42), 2)]]


@pytest.mark.asyncio
async def test_failed_write_is_retried_by_next_mutation(make_session, mock_client, sneaker):
    mock_client.replace_cart.side_effect = [CartTransientError("down"), None]
    session = make_session()
    await session.start(authenticated=True)

    session.add(sneaker)
    await asyncio.sleep(0.1)
    assert session.item_count == 1

    session.add(sneaker)
    await asyncio.sleep(0.1)

    assert mock_client.replace_cart.await_count == 2
    assert _state(mock_client.replace_cart.await_args.args[0]) == [(("A", 42), 2)]


@pytest.mark.asyncio
async def test_guest_writes_local_immediately(make_session, mock_client, storage, sneaker):
    session = make_session(debounce_ms=500)
    await session.start(authenticated=False)

    session.add(sneaker)

    assert storage.get_item("cart") is not None
    assert session.scheduler.pending is False
    mock_client.replace_cart.assert_not_awaited()


@pytest.mark.asyncio
async def test_mutations_before_load_are_not_persisted(make_session, mock_client, storage, sneaker):
    session = make_session()

    session.add(sneaker)
    await asyncio.sleep(0.05)

    assert storage.get_item("cart") is None
    mock_client.replace_cart.assert_not_awaited()


@pytest.mark.asyncio
async def test_flush_writes_pending_state(make_session, mock_client, sneaker):
    session = make_session(debounce_ms=10_000)
    await session.start(authenticated=True)

    session.add(sneaker)
    await session.scheduler.flush()

    mock_client.replace_cart.assert_awaited_once()
    assert session.scheduler.pending is False


@pytest.mark.asyncio
async def test_close_stops_observing(make_session, mock_client, sneaker):
    session = make_session()
    await session.start(authenticated=True)
    await session.close()

    session.add(sneaker)
    await asyncio.sleep(0.05)

    mock_client.replace_cart.assert_not_awaited()
