# cart_service/repos/cart_repo.py
import threading
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Dict, Protocol

import redis
from redis.exceptions import RedisError
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from cart_service.data.models.cart import CartModel
from cart_service.domain.errors import ConcurrentModification, MalformedCartData, StoreUnavailable
from cart_service.utils.logging import get_logger
from cart_service.utils.retry import store_retry
from cart_service.utils.settings import REDIS_URL

logger = get_logger(__name__)


@dataclass(frozen=True)
class CartRecord:
    """
    One persisted cart. ``version`` is the version the record was read at;
    0 means nothing is stored yet.
    """

    user_id: str
    order_list: str
    total_price: Decimal
    version: int = 0


class CartStore(Protocol):
    """
    Key-value persistence keyed by user id.

    put() writes order_list and total_price together and only if the stored
    version still equals record.version; otherwise ConcurrentModification.
    A put whose exact content already sits at record.version + 1 counts as
    written, so a retry after a lost reply does not look like a conflict.
    It returns the record at its new version. Backend failures surface as
    StoreUnavailable.
    """

    def get(self, user_id: str) -> CartRecord | None: ...

    def put(self, record: CartRecord) -> CartRecord: ...

    def delete(self, user_id: str) -> None: ...


def _already_written(current: CartRecord | None, record: CartRecord) -> bool:
    return (
        current is not None
        and current.version == record.version + 1
        and current.order_list == record.order_list
        and current.total_price == record.total_price
    )


def _parse_total(raw: str, user_id: str) -> Decimal:
    try:
        total = Decimal(raw)
    except InvalidOperation as e:
        raise MalformedCartData(f"Corrupt cart record for user {user_id}") from e
    if not total.is_finite():
        raise MalformedCartData(f"Corrupt cart record for user {user_id}")
    return total


class InMemoryCartStore:
    def __init__(self):
        self._records: Dict[str, CartRecord] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> CartRecord | None:
        with self._lock:
            return self._records.get(user_id)

    def put(self, record: CartRecord) -> CartRecord:
        with self._lock:
            current = self._records.get(record.user_id)
            if _already_written(current, record):
                return current
            current_version = current.version if current else 0
            if current_version != record.version:
                raise ConcurrentModification(
                    f"Cart of user {record.user_id} is at version {current_version}, "
                    f"write expected {record.version}"
                )
            stored = replace(record, version=record.version + 1)
            self._records[record.user_id] = stored
            return stored

    def delete(self, user_id: str) -> None:
        with self._lock:
            self._records.pop(user_id, None)


# compare-and-set in one round trip, lua scripts run atomically in redis
_PUT_LUA = """
local current = redis.call('HGET', KEYS[1], 'Version')
if current == false then
    current = '0'
end
if current ~= ARGV[1] then
    return 0
end
redis.call('HSET', KEYS[1], 'UserId', ARGV[2], 'OrderList', ARGV[3], 'TotalPrice', ARGV[4], 'Version', ARGV[5])
return 1
"""


class RedisCartStore:
    """One hash per user: cart:{user_id} -> UserId, OrderList, TotalPrice, Version."""

    def __init__(self, client: redis.Redis | None = None, url: str | None = None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @staticmethod
    def _key(user_id: str) -> str:
        return f"cart:{user_id}"

    @store_retry()
    def get(self, user_id: str) -> CartRecord | None:
        key = self._key(user_id)
        try:
            data = self.redis.hgetall(key)
        except RedisError as e:
            logger.warning(f"Redis HGETALL {key} failed: {e}")
            raise StoreUnavailable(f"Redis unavailable: {e}") from e

        if not data or "OrderList" not in data:
            return None

        try:
            total_price = _parse_total(data.get("TotalPrice", "0"), user_id)
            version = int(data.get("Version", 0))
        except (MalformedCartData, ValueError) as e:
            logger.error(f"Corrupt cart hash {key}: {data}")
            raise MalformedCartData(f"Corrupt cart record for user {user_id}") from e

        return CartRecord(
            user_id=user_id,
            order_list=data["OrderList"],
            total_price=total_price,
            version=version,
        )

    @store_retry()
    def put(self, record: CartRecord) -> CartRecord:
        key = self._key(record.user_id)
        new_version = record.version + 1
        logger.info(f"Redis write {key} version {record.version} -> {new_version}")
        try:
            written = self.redis.eval(
                _PUT_LUA,
                1,
                key,
                str(record.version),
                record.user_id,
                record.order_list,
                str(record.total_price),
                str(new_version),
            )
        except RedisError as e:
            logger.warning(f"Redis write {key} failed: {e}")
            raise StoreUnavailable(f"Redis unavailable: {e}") from e

        if not written:
            if _already_written(self.get(record.user_id), record):
                logger.info(f"Redis write {key} version {new_version} was already applied")
                return replace(record, version=new_version)
            raise ConcurrentModification(
                f"Cart of user {record.user_id} changed since version {record.version}"
            )
        return replace(record, version=new_version)

    @store_retry()
    def delete(self, user_id: str) -> None:
        key = self._key(user_id)
        try:
            self.redis.delete(key)
        except RedisError as e:
            logger.warning(f"Redis DEL {key} failed: {e}")
            raise StoreUnavailable(f"Redis unavailable: {e}") from e


class SqlCartStore:
    """
    carts table via SQLAlchemy. Optimistic locking on the version column:
    UPDATE ... WHERE user_id = :id AND version = :old, 0 rows means conflict.
    The total is kept as the text of the Decimal so no precision is lost.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @store_retry()
    def get(self, user_id: str) -> CartRecord | None:
        try:
            with self.session_factory() as db:
                row = db.execute(
                    select(CartModel).where(CartModel.user_id == user_id)
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.warning(f"Loading cart of user {user_id} failed: {e}")
            raise StoreUnavailable(f"Database unavailable: {e}") from e

        if row is None:
            return None

        try:
            total_price = _parse_total(str(row.total_price), user_id)
        except MalformedCartData:
            logger.error(f"Corrupt total {row.total_price!r} in cart of user {user_id}")
            raise

        return CartRecord(
            user_id=row.user_id,
            order_list=row.order_list,
            total_price=total_price,
            version=row.version,
        )

    @store_retry()
    def put(self, record: CartRecord) -> CartRecord:
        new_version = record.version + 1
        try:
            with self.session_factory() as db:
                if record.version == 0:
                    db.add(
                        CartModel(
                            user_id=record.user_id,
                            order_list=record.order_list,
                            total_price=str(record.total_price),
                            version=new_version,
                        )
                    )
                    try:
                        db.commit()
                        written = True
                    except IntegrityError:
                        db.rollback()
                        written = False
                else:
                    rowcount = db.execute(
                        update(CartModel)
                        .where(
                            CartModel.user_id == record.user_id,
                            CartModel.version == record.version,
                        )
                        .values(
                            order_list=record.order_list,
                            total_price=str(record.total_price),
                            version=new_version,
                        )
                    ).rowcount

                    written = rowcount > 0
                    if written:
                        db.commit()
                    else:
                        db.rollback()
        except SQLAlchemyError as e:
            logger.warning(f"Saving cart of user {record.user_id} failed: {e}")
            raise StoreUnavailable(f"Database unavailable: {e}") from e

        if not written and not _already_written(self.get(record.user_id), record):
            raise ConcurrentModification(
                f"Cart of user {record.user_id} changed since version {record.version}"
            )
        return replace(record, version=new_version)

    @store_retry()
    def delete(self, user_id: str) -> None:
        try:
            with self.session_factory() as db:
                db.execute(delete(CartModel).where(CartModel.user_id == user_id))
                db.commit()
        except SQLAlchemyError as e:
            logger.warning(f"Deleting cart of user {user_id} failed: {e}")
            raise StoreUnavailable(f"Database unavailable: {e}") from e
