"""
Tests for CartStore
"""

from decimal import Decimal

from shoecart.cart import CartStore, LineItem, ProductSnapshot


class TestAdd:
    """Tests for adding products."""

    def test_repeated_add_increments_one_item(self, sneaker):
        store = CartStore()
        store.add(sneaker)
        store.add(sneaker)

        assert len(store.items) == 1
        assert store.items[0].quantity == 2

    def test_different_sizes_are_separate_items(self, sneaker):
        store = CartStore()
        store.add(sneaker)
        store.add(sneaker.with_size(43))

        assert len(store.items) == 2

    def test_add_without_id_is_noop(self):
        store = CartStore()
        assert store.add(ProductSnapshot(id="", price=100)) is False
        assert store.is_empty

    def test_add_stops_at_max_quantity(self, socks):
        store = CartStore([LineItem(socks, 100)])
        store.add(socks)

        assert store.find("B").quantity == 100


class TestQuantity:
    """Tests for set_quantity."""

    def test_zero_removes(self, sneaker):
        store = CartStore()
        store.add(sneaker)
        store.set_quantity("A", 0, 42)

        assert store.is_empty

    def test_negative_removes(self, sneaker):
        store = CartStore()
        store.add(sneaker)
        store.set_quantity("A", -3)

        assert store.is_empty

    def test_ceiling(self, sneaker):
        store = CartStore()
        store.add(sneaker)
        store.set_quantity("A", 1000, 42)

        assert store.find("A", 42).quantity == 100

    def test_omitted_size_updates_every_variant(self, sneaker):
        store = CartStore()
        store.add(sneaker)
        store.add(sneaker.with_size(43))
        store.set_quantity("A", 4)

        assert [i.quantity for i in store.items] == [4, 4]

    def test_unknown_item_is_noop(self):
        store = CartStore()
        assert store.set_quantity("missing", 2) is False

    def test_numeric_string_quantity(self, sneaker):
        store = CartStore()
        store.add(sneaker)

        assert store.set_quantity("A", "3", 42) is True
        assert store.find("A", 42).quantity == 3

    def test_fraction_below_one_removes(self, sneaker):
        store = CartStore()
        store.add(sneaker)
        store.set_quantity("A", 0.5, 42)

        assert store.is_empty

    def test_non_numeric_quantity_is_noop(self, sneaker):
        store = CartStore()
        store.add(sneaker)

        assert store.set_quantity("A", "lots", 42) is False
        assert store.find("A", 42).quantity == 1


class TestRemove:
    """Tests for remove."""

    def test_add_twice_then_remove(self, sneaker):
        store = CartStore()
        store.add(sneaker)
        store.add(sneaker)
        assert store.find("A", 42).quantity == 2

        store.remove("A", 42)

        assert store.is_empty

    def test_remove_one_size(self, sneaker):
        store = CartStore()
        store.add(sneaker)
        store.add(sneaker.with_size(43))
        store.remove("A", 43)

        assert [i.product.selected_size for i in store.items] == [42]

    def test_remove_all_sizes(self, sneaker, socks):
        store = CartStore()
        store.add(sneaker)
        store.add(sneaker.with_size(43))
        store.add(socks)
        store.remove("A")

        assert [i.product.id for i in store.items] == ["B"]

    def test_remove_none_hits_only_sizeless(self, sneaker):
        store = CartStore()
        store.add(sneaker)
        assert store.remove("A", None) is False
        assert len(store.items) == 1


class TestTotals:
    """Tests for derived totals."""

    def test_totals(self, sneaker, socks):
        store = CartStore()
        store.add(sneaker)
        store.add(sneaker)
        store.add(socks)

        assert store.item_count == 3
        assert store.total_price == Decimal("12470")
        # socks have no old price: their list price is the price
        assert store.total_price_without_discount == Decimal("16470")
        assert store.total_discount == Decimal("4000")

    def test_empty_totals(self):
        store = CartStore()
        assert store.item_count == 0
        assert store.total_price == Decimal("0")
        assert store.total_discount == Decimal("0")


class TestListeners:
    """Tests for mutation notifications."""

    def test_mutations_are_reported(self, sneaker):
        store = CartStore()
        seen = []
        store.subscribe(seen.append)

        store.add(sneaker)
        store.set_quantity("A", 3)
        store.remove("A")
        store.clear()

        assert seen == ["add", "set_quantity", "remove", "clear"]

    def test_restore_and_silent_replace_not_reported(self, sneaker):
        store = CartStore()
        seen = []
        store.subscribe(seen.append)

        store.replace([LineItem(sneaker, 2)], notify=False)
        snap = store.snapshot()
        store.restore(snap)

        assert seen == []

    def test_unsubscribe(self, sneaker):
        store = CartStore()
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        store.add(sneaker)

        assert seen == []

    def test_failing_listener_does_not_break_mutation(self, sneaker):
        store = CartStore()

        def broken(mutation):
            raise RuntimeError("boom")

        store.subscribe(broken)
        assert store.add(sneaker) is True
        assert store.item_count == 1

    def test_replace_collapses_duplicates(self, sneaker):
        store = CartStore()
        store.replace([LineItem(sneaker, 1), LineItem(sneaker, 2)])

        assert len(store.items) == 1
        assert store.items[0].quantity == 3
