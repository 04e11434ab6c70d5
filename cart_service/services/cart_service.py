# cart_service/services/cart_service.py
from concurrent.futures import FIRST_EXCEPTION, Executor, ThreadPoolExecutor, wait
from decimal import Decimal
from typing import Dict, List

from cart_service.domain.errors import (
    CartEmpty,
    CatalogUnavailable,
    InvalidCartInput,
    ItemNotFound,
    MalformedCartData,
)
from cart_service.domain.models import Cart, CartPage, LineItem, validate_product_id, validate_quantity
from cart_service.repos.cart_repo import CartRecord, CartStore
from cart_service.services import codec
from cart_service.services.pagination import paginate
from cart_service.services.pricing import PricingGateway
from cart_service.utils.logging import get_logger
from cart_service.utils.resilience import Bulkhead
from cart_service.utils.retry import conflict_retry
from cart_service.utils.settings import (
    CART_PAGE_SIZE,
    MAX_CONCURRENT_MUTATIONS,
    PRICING_DEADLINE_SECONDS,
    PRICING_MAX_WORKERS,
)

logger = get_logger(__name__)


class CartAggregator:
    """
    Cart use cases.
    query (get_cart) reads the cached total and never calls the catalog,
    commands (add_or_update_item, remove_item) load, mutate, reprice every
    item and write items + total back in one store call, clear_cart deletes.

    A command either persists a fully priced cart or leaves the stored one
    untouched.
    """

    def __init__(
        self,
        store: CartStore,
        pricing: PricingGateway,
        bulkhead: Bulkhead | None = None,
        executor: Executor | None = None,
        page_size: int = CART_PAGE_SIZE,
        pricing_deadline: float | None = None,
    ):
        self.store = store
        self.pricing = pricing
        self.bulkhead = bulkhead or Bulkhead(MAX_CONCURRENT_MUTATIONS)
        self.executor = executor or ThreadPoolExecutor(
            max_workers=PRICING_MAX_WORKERS,
            thread_name_prefix="pricing",
        )
        self.page_size = page_size
        self.pricing_deadline = pricing_deadline or PRICING_DEADLINE_SECONDS

    def reconfigure(
        self,
        *,
        store: CartStore | None = None,
        pricing: PricingGateway | None = None,
    ) -> "CartAggregator":
        """New aggregator with some handles swapped, this one stays as it is."""
        return CartAggregator(
            store=store or self.store,
            pricing=pricing or self.pricing,
            bulkhead=self.bulkhead,
            executor=self.executor,
            page_size=self.page_size,
            pricing_deadline=self.pricing_deadline,
        )

    # query
    def get_cart(self, user_id: str, page: int | None = None) -> CartPage:
        _validate_user_id(user_id)
        logger.info(f"Reading cart of user {user_id}, page {page}")

        cart = self._load(user_id)
        if cart is None:
            raise CartEmpty(user_id)

        page = 1 if page is None else page
        page_items, total_pages = paginate(cart.items, self.page_size, page)

        return CartPage(
            items=page_items,
            page=page,
            total_pages=total_pages,
            total_price=cart.total_price,
        )

    # commands
    def add_or_update_item(self, user_id: str, product_id: str, quantity: int) -> Cart:
        _validate_user_id(user_id)
        validate_product_id(product_id)
        validate_quantity(quantity)

        with self.bulkhead:
            return self._add_or_update_item(user_id, product_id, quantity)

    @conflict_retry()
    def _add_or_update_item(self, user_id: str, product_id: str, quantity: int) -> Cart:
        cart = self._load(user_id) or Cart(user_id=user_id)

        logger.info(f"Setting quantity of {product_id} to {quantity} for user {user_id}")
        cart.set_quantity(product_id, quantity)

        return self._price_and_persist(cart)

    def remove_item(self, user_id: str, product_id: str) -> Cart:
        _validate_user_id(user_id)
        validate_product_id(product_id)

        with self.bulkhead:
            return self._remove_item(user_id, product_id)

    @conflict_retry()
    def _remove_item(self, user_id: str, product_id: str) -> Cart:
        cart = self._load(user_id)
        if cart is None:
            raise ItemNotFound(user_id, product_id)

        logger.info(f"Removing {product_id} from cart of user {user_id}")
        cart.remove(product_id)

        return self._price_and_persist(cart)

    def clear_cart(self, user_id: str) -> None:
        _validate_user_id(user_id)
        logger.info(f"Deleting cart of user {user_id}")
        self.store.delete(user_id)

    # internals
    def _load(self, user_id: str) -> Cart | None:
        record = self.store.get(user_id)
        if record is None:
            return None

        try:
            items = codec.decode(record.order_list)
        except MalformedCartData:
            logger.error(
                f"Stored order list of user {user_id} is corrupt: {record.order_list!r}"
            )
            raise

        return Cart(
            user_id=user_id,
            items=items,
            total_price=record.total_price,
            version=record.version,
        )

    def _price_and_persist(self, cart: Cart) -> Cart:
        prices = self._fetch_prices(cart.items)
        total = sum(
            (prices[item.product_id] * item.quantity for item in cart.items),
            Decimal("0"),
        )

        stored = self.store.put(
            CartRecord(
                user_id=cart.user_id,
                order_list=codec.encode(cart.items),
                total_price=total,
                version=cart.version,
            )
        )

        logger.info(
            f"Cart of user {cart.user_id} saved: {len(cart.items)} items, "
            f"total {total}, version {stored.version}"
        )
        return Cart(
            user_id=cart.user_id,
            items=list(cart.items),
            total_price=total,
            version=stored.version,
        )

    def _fetch_prices(self, items: List[LineItem]) -> Dict[str, Decimal]:
        """
        Unit price of every item, looked up concurrently.
        The first failure cancels whatever has not started and is re-raised,
        so no total is ever built from part of the cart. Lookups still running
        after pricing_deadline count as a catalog outage.
        """
        product_ids = list(dict.fromkeys(item.product_id for item in items))
        if not product_ids:
            return {}

        futures = {
            self.executor.submit(self.pricing.fetch_unit_price, pid): pid
            for pid in product_ids
        }
        done, pending = wait(
            futures,
            timeout=self.pricing_deadline,
            return_when=FIRST_EXCEPTION,
        )

        for future in done:
            error = future.exception()
            if error is not None:
                for other in pending:
                    other.cancel()
                logger.warning(
                    f"Pricing {futures[future]} failed, dropping {len(futures)} lookups: {error}"
                )
                raise error

        if pending:
            for other in pending:
                other.cancel()
            logger.warning(
                f"Pricing gave up after {self.pricing_deadline}s, "
                f"{len(pending)} of {len(futures)} lookups still pending"
            )
            raise CatalogUnavailable(
                f"Catalog did not price {len(pending)} products within {self.pricing_deadline}s"
            )

        return {pid: future.result() for future, pid in futures.items()}


def _validate_user_id(user_id: str) -> None:
    if not isinstance(user_id, str) or not user_id:
        raise InvalidCartInput("user_id must be a non-empty string")
