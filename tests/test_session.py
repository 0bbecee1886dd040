"""
Tests for CartSession: confirmed operations, rollback and the guest lifecycle
"""

import asyncio

import pytest
import pytest_asyncio

from shoecart.cart import LineItem, ProductSnapshot, ReconcilerState
from shoecart.cart.notifications import NotificationLevel
from shoecart.errors import (
    CartAuthError,
    CartRejectedError,
    CartTransientError,
    ERROR_PRODUCT_NOT_FOUND,
    MSG_CLEAR_FAILED,
    MSG_ITEM_ADDED,
    MSG_ITEM_ADDED_LOCALLY,
    MSG_REMOVE_FAILED,
    MSG_SIGN_IN_REQUIRED,
    MSG_UPDATE_FAILED,
)


def _state(items):
    return [(i.key, i.quantity) for i in items]


@pytest_asyncio.fixture
async def signed_in(make_session, mock_client, sneaker, socks):
    """Signed-in session holding A/42 x2 and B x1."""
    mock_client.get_cart.return_value = [LineItem(sneaker, 2), LineItem(socks, 1)]
    session = make_session()
    await session.start(authenticated=True)
    yield session
    await session.close()


class TestAddItem:
    """Tests for confirmed adds."""

    @pytest.mark.asyncio
    async def test_guest_add(self, make_session, mock_client, notifier, storage, sneaker):
        session = make_session()
        await session.start(authenticated=False)

        assert await session.add_item(sneaker) is True

        assert session.item_count == 1
        assert storage.get_item("cart") is not None
        assert notifier.history[-1] == (NotificationLevel.SUCCESS, MSG_ITEM_ADDED)
        mock_client.add_item.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_signed_in_add_uses_endpoint(self, signed_in, mock_client, notifier, sneaker):
        await signed_in.add_item(sneaker)

        mock_client.add_item.assert_awaited_once_with("A", 1, 42)
        assert signed_in.find("A", 42).quantity == 3
        assert notifier.history[-1] == (NotificationLevel.SUCCESS, MSG_ITEM_ADDED)
        assert signed_in.scheduler.pending is False

    @pytest.mark.asyncio
    async def test_failed_add_is_kept_and_synced_later(self, signed_in, mock_client, notifier, sneaker):
        mock_client.add_item.side_effect = CartTransientError("down")

        assert await signed_in.add_item(sneaker) is True

        assert signed_in.find("A", 42).quantity == 3
        assert notifier.history[-1] == (NotificationLevel.SUCCESS, MSG_ITEM_ADDED_LOCALLY)
        await asyncio.sleep(0.1)
        mock_client.replace_cart.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_add_product_snapshots_price(self, signed_in, mock_client):
        mock_client.get_price.return_value = ProductSnapshot(id="C", price=8990, old_price=9990, model="Gel")

        assert await signed_in.add_product("C", 44) is True

        item = signed_in.find("C", 44)
        assert item.product.price == 8990
        mock_client.add_item.assert_awaited_once_with("C", 1, 44)

    @pytest.mark.asyncio
    async def test_add_unknown_product(self, signed_in, mock_client, notifier):
        mock_client.get_price.return_value = None

        assert await signed_in.add_product("nope") is False
        assert notifier.history[-1] == (NotificationLevel.ERROR, ERROR_PRODUCT_NOT_FOUND)


class TestRollback:
    """Confirmed operations restore the cart when the server refuses."""

    @pytest.mark.asyncio
    async def test_remove_rolled_back(self, signed_in, mock_client, notifier):
        before = _state(signed_in.items)
        mock_client.remove_item.side_effect = CartRejectedError("Item not found in cart", status_code=404)

        assert await signed_in.remove_item("A", 42) is False

        assert _state(signed_in.items) == before
        assert notifier.history[-1] == (NotificationLevel.ERROR, MSG_REMOVE_FAILED)

    @pytest.mark.asyncio
    async def test_update_rolled_back(self, signed_in, mock_client, notifier):
        before = _state(signed_in.items)
        mock_client.update_item.side_effect = CartTransientError("down")

        assert await signed_in.update_quantity("A", 5, 42) is False

        assert _state(signed_in.items) == before
        assert notifier.history[-1] == (NotificationLevel.ERROR, MSG_UPDATE_FAILED)

    @pytest.mark.asyncio
    async def test_clear_rolled_back_on_auth_error(self, signed_in, mock_client, notifier):
        before = _state(signed_in.items)
        mock_client.clear_cart.side_effect = CartAuthError("expired", status_code=401)

        assert await signed_in.clear_cart() is False

        assert _state(signed_in.items) == before
        assert notifier.history[-1] == (NotificationLevel.ERROR, MSG_SIGN_IN_REQUIRED)

    @pytest.mark.asyncio
    async def test_clear_failure_message(self, signed_in, mock_client, notifier):
        mock_client.clear_cart.side_effect = CartTransientError("down")

        await signed_in.clear_cart()

        assert notifier.history[-1] == (NotificationLevel.ERROR, MSG_CLEAR_FAILED)

    @pytest.mark.asyncio
    async def test_success_is_not_rolled_back(self, signed_in, mock_client):
        assert await signed_in.update_quantity("A", 5, 42) is True
        assert await signed_in.remove_item("B", None) is True

        assert _state(signed_in.items) == [(("A", 42), 5)]
        mock_client.update_item.assert_awaited_once_with("A", 5, 42)
        mock_client.remove_item.assert_awaited_once_with("B", None)
        # Per-item endpoints persisted these; no full-list sync is queued
        assert signed_in.scheduler.pending is False

    @pytest.mark.asyncio
    async def test_partial_remove_keeps_confirmed_variants_removed(self, signed_in, mock_client, notifier, sneaker):
        """A/42 is gone on the server, A/43 is not: the client ends up the same."""
        await signed_in.add_item(sneaker.with_size(43))
        mock_client.remove_item.side_effect = [None, CartTransientError("down")]

        assert await signed_in.remove_item("A") is False

        assert _state(signed_in.items) == [(("B", "default"), 1), (("A", 43), 1)]
        assert notifier.history[-1] == (NotificationLevel.ERROR, MSG_REMOVE_FAILED)

    @pytest.mark.asyncio
    async def test_partial_update_keeps_confirmed_quantities(self, signed_in, mock_client, sneaker):
        await signed_in.add_item(sneaker.with_size(43))
        mock_client.update_item.side_effect = [None, CartTransientError("down")]

        assert await signed_in.update_quantity("A", 5) is False

        assert _state(signed_in.items) == [(("A", 42), 5), (("B", "default"), 1), (("A", 43), 1)]


class TestConfirmedOperations:
    """Tests for remove / update semantics."""

    @pytest.mark.asyncio
    async def test_remove_all_sizes_hits_each_variant(self, signed_in, mock_client, sneaker):
        await signed_in.add_item(sneaker.with_size(43))

        await signed_in.remove_item("A")

        assert [c.args for c in mock_client.remove_item.await_args_list] == [("A", 42), ("A", 43)]
        assert _state(signed_in.items) == [(("B", "default"), 1)]

    @pytest.mark.asyncio
    async def test_update_to_zero_removes(self, signed_in, mock_client):
        assert await signed_in.update_quantity("A", 0, 42) is True

        assert signed_in.find("A", 42) is None
        mock_client.remove_item.assert_awaited_once_with("A", 42)

    @pytest.mark.asyncio
    async def test_update_is_clamped(self, signed_in, mock_client):
        await signed_in.update_quantity("A", 500, 42)

        assert signed_in.find("A", 42).quantity == 100
        mock_client.update_item.assert_awaited_once_with("A", 100, 42)

    @pytest.mark.asyncio
    async def test_fractional_update_removes(self, signed_in, mock_client):
        assert await signed_in.update_quantity("A", 0.5, 42) is True

        assert signed_in.find("A", 42) is None
        mock_client.remove_item.assert_awaited_once_with("A", 42)
        mock_client.update_item.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_item_is_noop(self, signed_in, mock_client):
        assert await signed_in.remove_item("Z") is False
        mock_client.remove_item.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_checkout_empties_cart(self, signed_in, mock_client):
        assert await signed_in.checkout_completed() is True
        assert signed_in.items == []
        mock_client.clear_cart.assert_awaited_once()


class TestLifecycle:
    """Tests for sign-in / sign-out transitions."""

    @pytest.mark.asyncio
    async def test_guest_cart_merged_at_sign_in(self, make_session, mock_client, storage, sneaker, socks):
        session = make_session()
        await session.start(authenticated=False)
        session.add(sneaker)
        session.add(sneaker)
        session.add(socks)
        mock_client.get_cart.return_value = [LineItem(sneaker, 1)]

        await session.on_signed_in()
        await session.reconciler.wait_background()

        assert _state(session.items) == [(("A", 42), 3), (("B", "default"), 1)]
        assert session.is_authenticated is True
        assert session.state is ReconcilerState.LOADED_SERVER
        assert storage.get_item("cart") is None
        await session.close()

    @pytest.mark.asyncio
    async def test_sign_out_starts_empty_guest_cart(self, signed_in, storage):
        await signed_in.on_signed_out()

        assert signed_in.items == []
        assert signed_in.is_authenticated is False
        assert storage.get_item("cart") is None

    @pytest.mark.asyncio
    async def test_totals(self, signed_in):
        assert signed_in.item_count == 3
        assert signed_in.total_price == 5990 * 2 + 490
        assert signed_in.total_discount == 4000
