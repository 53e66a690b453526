"""Tests for session cart mutation and the Redis cart store."""
from unittest.mock import MagicMock

import pytest
import redis

from errors import UnknownProduct, InvalidQuantity, StoreUnavailable
from schemas import CartLine
from services.cart_service import CartService, RedisCartStore

SESSION = "session-a"


class TestCartService:
    """Add, clear and view operations."""

    def test_add_captures_catalog_price(self, cart_service):
        line = cart_service.add(SESSION, "burger", 2)

        assert line == CartLine(sku="burger", name="Burger", unit_price=1000, quantity=2)
        assert cart_service.view(SESSION) == [line]

    def test_adding_same_sku_accumulates_quantity(self, cart_service):
        cart_service.add(SESSION, "burger", 1)
        cart_service.add(SESSION, "burger", 2)

        lines = cart_service.view(SESSION)
        assert len(lines) == 1
        assert lines[0].quantity == 3

    def test_lines_keep_insertion_order(self, cart_service):
        cart_service.add(SESSION, "coke", 1)
        cart_service.add(SESSION, "burger", 1)
        cart_service.add(SESSION, "coke", 1)

        assert [line.sku for line in cart_service.view(SESSION)] == ["coke", "burger"]

    def test_accumulated_quantity_is_not_capped(self, cart_service):
        cart_service.add(SESSION, "fries", 10)
        cart_service.add(SESSION, "fries", 10)

        assert cart_service.view(SESSION)[0].quantity == 20

    def test_unknown_product_leaves_cart_unchanged(self, cart_service):
        cart_service.add(SESSION, "burger", 1)

        with pytest.raises(UnknownProduct):
            cart_service.add(SESSION, "pizza", 1)

        assert [(l.sku, l.quantity) for l in cart_service.view(SESSION)] == [("burger", 1)]

    @pytest.mark.parametrize("quantity", [0, -1, 11, 2.5, "3", True])
    def test_invalid_quantity_is_rejected(self, cart_service, quantity):
        with pytest.raises(InvalidQuantity):
            cart_service.add(SESSION, "burger", quantity)

        assert cart_service.view(SESSION) == []

    def test_price_is_not_reread_after_add(self, cart_service, monkeypatch):
        import catalog

        cart_service.add(SESSION, "coke", 1)
        monkeypatch.setitem(catalog._BY_SKU, "coke", catalog.Product("coke", "Coke", 999))
        cart_service.add(SESSION, "coke", 1)

        line = cart_service.view(SESSION)[0]
        assert line.unit_price == 300
        assert line.quantity == 2

    def test_clear_empties_cart(self, cart_service):
        cart_service.add(SESSION, "burger", 1)

        cart_service.clear(SESSION)

        assert cart_service.view(SESSION) == []

    def test_clear_on_empty_cart_succeeds(self, cart_service):
        cart_service.clear(SESSION)
        assert cart_service.view(SESSION) == []

    def test_sessions_are_isolated(self, cart_service):
        cart_service.add("session-a", "burger", 1)
        cart_service.add("session-b", "coke", 3)
        cart_service.clear("session-b")

        assert [l.sku for l in cart_service.view("session-a")] == ["burger"]
        assert cart_service.view("session-b") == []

    def test_get_cart_formats_lines_and_totals(self, cart_service):
        cart_service.add(SESSION, "burger", 1)
        cart_service.add(SESSION, "fries", 1)
        cart_service.add(SESSION, "coke", 2)

        cart = cart_service.get_cart(SESSION)

        assert cart["cart"][2] == {
            "sku": "coke",
            "name": "Coke",
            "unit_price_cents": 300,
            "qty": 2,
            "unit_price": "3.00"
        }
        assert cart["totals"]["subtotal"] == "24.00"
        assert cart["totals"]["tax"] == "3.12"
        assert cart["totals"]["total"] == "27.12"

    def test_get_cart_without_session(self, cart_service):
        cart = cart_service.get_cart(None)

        assert cart["cart"] == []
        assert cart["totals"]["total"] == "0.00"


class TestRedisCartStore:
    """Serialization of carts into Redis."""

    @pytest.fixture
    def redis_client(self):
        data = {}
        client = MagicMock()
        client.get.side_effect = lambda key: data.get(key)
        client.set.side_effect = lambda key, value, ex=None: data.__setitem__(key, value)
        client.delete.side_effect = lambda key: data.pop(key, None)
        client.data = data
        return client

    def test_missing_key_is_empty_cart(self, redis_client):
        store = RedisCartStore(redis_client)

        assert store.get(SESSION) == []
        redis_client.get.assert_called_once_with(f"cart:{SESSION}")

    def test_replace_writes_json_with_session_ttl(self, redis_client):
        store = RedisCartStore(redis_client, ttl_seconds=600)
        lines = [CartLine(sku="burger", name="Burger", unit_price=1000, quantity=2)]

        store.replace(SESSION, lines)

        key, payload = redis_client.set.call_args.args
        assert key == f"cart:{SESSION}"
        assert redis_client.set.call_args.kwargs == {"ex": 600}
        assert store.get(SESSION) == lines
        assert b'"unit_price":1000' in payload

    def test_replace_with_no_lines_deletes_key(self, redis_client):
        store = RedisCartStore(redis_client)
        store.replace(SESSION, [CartLine(sku="coke", name="Coke", unit_price=300, quantity=1)])

        store.replace(SESSION, [])

        redis_client.delete.assert_called_once_with(f"cart:{SESSION}")
        assert store.get(SESSION) == []

    def test_read_failure_raises_store_unavailable(self, redis_client):
        redis_client.get.side_effect = redis.ConnectionError("connection refused")
        store = RedisCartStore(redis_client)

        with pytest.raises(StoreUnavailable):
            store.get(SESSION)

    def test_write_failure_raises_store_unavailable(self, redis_client):
        redis_client.set.side_effect = redis.TimeoutError("timed out")
        redis_client.delete.side_effect = redis.TimeoutError("timed out")
        store = RedisCartStore(redis_client)

        with pytest.raises(StoreUnavailable):
            store.replace(SESSION, [CartLine(sku="fries", name="Fries", unit_price=800, quantity=1)])
        with pytest.raises(StoreUnavailable):
            store.replace(SESSION, [])

    def test_add_on_unreachable_store(self, redis_client):
        redis_client.get.side_effect = redis.ConnectionError("connection refused")
        service = CartService(RedisCartStore(redis_client))

        with pytest.raises(StoreUnavailable):
            service.add(SESSION, "burger", 1)
        redis_client.set.assert_not_called()
