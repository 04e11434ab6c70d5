"""
Tests for the cart stores (in-memory, SQLAlchemy on SQLite, Redis with a mocked client)
"""

from decimal import Decimal
from unittest.mock import Mock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.exc import OperationalError

from cart_service.data.database import create_session_factory
from cart_service.data.models.cart import CartModel
from cart_service.domain.errors import ConcurrentModification, MalformedCartData, StoreUnavailable
from cart_service.repos.cart_repo import CartRecord, InMemoryCartStore, RedisCartStore, SqlCartStore
from cart_service.services.cart_service import CartAggregator


def record(version=0, order_list="p1:2;", total="20.00"):
    return CartRecord("user-123", order_list, Decimal(total), version)


@pytest.fixture
def sql_store():
    return SqlCartStore(create_session_factory("sqlite://"))


@pytest.fixture(params=["memory", "sql"])
def any_store(request, sql_store):
    if request.param == "memory":
        return InMemoryCartStore()
    return sql_store


class TestStoreContract:
    def test_missing_cart_is_none(self, any_store):
        assert any_store.get("user-123") is None

    def test_first_write_creates_version_one(self, any_store):
        stored = any_store.put(record())

        assert stored.version == 1
        loaded = any_store.get("user-123")
        assert loaded.order_list == "p1:2;"
        assert loaded.total_price == Decimal("20")
        assert loaded.version == 1

    def test_write_at_current_version_replaces_both_fields(self, any_store):
        any_store.put(record())

        stored = any_store.put(record(version=1, order_list="p1:2;p2:1;", total="25.00"))

        assert stored.version == 2
        loaded = any_store.get("user-123")
        assert loaded.order_list == "p1:2;p2:1;"
        assert loaded.total_price == Decimal("25")

    def test_stale_write_is_refused(self, any_store):
        any_store.put(record())
        any_store.put(record(version=1, order_list="p2:1;", total="5.00"))

        with pytest.raises(ConcurrentModification):
            any_store.put(record(version=1, order_list="p3:1;", total="2.50"))

        assert any_store.get("user-123").order_list == "p2:1;"

    def test_concurrent_create_is_refused(self, any_store):
        any_store.put(record())

        with pytest.raises(ConcurrentModification):
            any_store.put(record(version=0, order_list="p9:1;"))

    def test_delete_is_idempotent(self, any_store):
        any_store.put(record())

        any_store.delete("user-123")
        any_store.delete("user-123")

        assert any_store.get("user-123") is None

    def test_sub_cent_total_is_kept_exactly(self, any_store):
        any_store.put(record(order_list="p1:3;", total="0.999"))

        loaded = any_store.get("user-123")

        assert loaded.total_price == Decimal("0.999")
        assert str(loaded.total_price) == "0.999"

    def test_repeated_write_of_landed_record_succeeds(self, any_store):
        any_store.put(record())

        stored = any_store.put(record())

        assert stored.version == 1
        assert any_store.get("user-123").version == 1

    def test_write_after_delete_starts_over(self, any_store):
        any_store.put(record())
        any_store.delete("user-123")

        with pytest.raises(ConcurrentModification):
            any_store.put(record(version=1))
        assert any_store.put(record(version=0)).version == 1


class TestSqlCartStore:
    def test_total_round_trips_through_aggregator(self, sql_store, catalog, executor):
        catalog.prices["p1"] = Decimal("0.333")
        aggregator = CartAggregator(store=sql_store, pricing=catalog, executor=executor)

        written = aggregator.add_or_update_item("user-123", "p1", 3)

        assert written.total_price == Decimal("0.999")
        assert aggregator.get_cart("user-123").total_price == Decimal("0.999")

    def test_corrupt_total_is_malformed(self, sql_store):
        factory = sql_store.session_factory
        with factory() as db:
            db.add(CartModel(user_id="user-123", order_list="p1:1;", total_price="lots", version=1))
            db.commit()

        with pytest.raises(MalformedCartData):
            sql_store.get("user-123")

    def test_database_errors_become_store_unavailable(self):
        factory = Mock(side_effect=OperationalError("SELECT", {}, Exception("db down")))
        store = SqlCartStore(factory)

        with pytest.raises(StoreUnavailable):
            store.get("user-123")

        assert factory.call_count == 3


class TestRedisCartStore:
    @pytest.fixture
    def client(self):
        return Mock()

    @pytest.fixture
    def store(self, client):
        return RedisCartStore(client=client)

    def test_get_reads_the_user_hash(self, store, client):
        client.hgetall.return_value = {
            "UserId": "user-123",
            "OrderList": "p1:2;",
            "TotalPrice": "20.0",
            "Version": "4",
        }

        loaded = store.get("user-123")

        client.hgetall.assert_called_once_with("cart:user-123")
        assert loaded == CartRecord("user-123", "p1:2;", Decimal("20.0"), 4)

    def test_empty_hash_is_no_cart(self, store, client):
        client.hgetall.return_value = {}

        assert store.get("user-123") is None

    def test_hash_without_version_reads_as_version_zero(self, store, client):
        client.hgetall.return_value = {"OrderList": ";", "TotalPrice": "0.0"}

        assert store.get("user-123").version == 0

    def test_corrupt_total_is_malformed(self, store, client):
        client.hgetall.return_value = {"OrderList": "p1:2;", "TotalPrice": "lots"}

        with pytest.raises(MalformedCartData):
            store.get("user-123")

    def test_put_runs_compare_and_set(self, store, client):
        client.eval.return_value = 1

        stored = store.put(record(version=2, total="20.0"))

        assert stored.version == 3
        args = client.eval.call_args.args
        assert args[1:] == (1, "cart:user-123", "2", "user-123", "p1:2;", "20.0", "3")

    def test_put_conflict(self, store, client):
        client.eval.return_value = 0
        client.hgetall.return_value = {"OrderList": "p9:1;", "TotalPrice": "1.0", "Version": "3"}

        with pytest.raises(ConcurrentModification):
            store.put(record(version=2))

    def test_redis_errors_are_retried_then_surface(self, store, client):
        client.hgetall.side_effect = RedisConnectionError("refused")

        with pytest.raises(StoreUnavailable):
            store.get("user-123")

        assert client.hgetall.call_count == 3

    def test_transient_redis_error_recovers(self, store, client):
        client.delete.side_effect = [RedisConnectionError("refused"), 1]

        store.delete("user-123")

        assert client.delete.call_count == 2

    def test_lost_reply_on_put_is_not_a_conflict(self, store, client):
        # first EVAL lands but the connection drops before the reply
        client.eval.side_effect = [RedisConnectionError("reset"), 0]
        client.hgetall.return_value = {
            "UserId": "user-123",
            "OrderList": "p1:2;",
            "TotalPrice": "20.00",
            "Version": "3",
        }

        stored = store.put(record(version=2))

        assert stored.version == 3
        assert client.eval.call_count == 2

    def test_retried_put_overtaken_by_another_writer_conflicts(self, store, client):
        client.eval.side_effect = [RedisConnectionError("reset"), 0]
        client.hgetall.return_value = {"OrderList": "p2:1;", "TotalPrice": "5.0", "Version": "3"}

        with pytest.raises(ConcurrentModification):
            store.put(record(version=2))

    def test_sub_cent_total_is_kept_exactly(self, store, client):
        client.eval.return_value = 1
        client.hgetall.return_value = {"OrderList": "p1:3;", "TotalPrice": "0.999", "Version": "1"}

        store.put(record(order_list="p1:3;", total="0.999"))

        assert client.eval.call_args.args[6] == "0.999"
        assert store.get("user-123").total_price == Decimal("0.999")
