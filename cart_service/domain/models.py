# cart_service/domain/models.py
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from cart_service.domain.errors import InvalidCartInput, ItemNotFound

ITEM_SEPARATOR = ";"
FIELD_SEPARATOR = ":"


def validate_product_id(product_id: str) -> str:
    if not isinstance(product_id, str) or not product_id:
        raise InvalidCartInput("product_id must be a non-empty string")
    if ITEM_SEPARATOR in product_id or FIELD_SEPARATOR in product_id:
        raise InvalidCartInput(
            f"product_id must not contain '{ITEM_SEPARATOR}' or '{FIELD_SEPARATOR}'"
        )
    return product_id


def validate_quantity(quantity: int) -> int:
    # bool is an int subclass
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise InvalidCartInput("quantity must be a non-negative integer")
    return quantity


@dataclass(frozen=True)
class LineItem:
    product_id: str
    quantity: int


@dataclass
class Cart:
    """
    A user's cart as the engine sees it after decoding.
    total_price is whatever was last priced; the aggregator reprices on every mutation.
    """

    user_id: str
    items: List[LineItem] = field(default_factory=list)
    total_price: Decimal = Decimal("0")
    version: int = 0

    def index_of(self, product_id: str) -> int | None:
        for i, item in enumerate(self.items):
            if item.product_id == product_id:
                return i
        return None

    def set_quantity(self, product_id: str, quantity: int) -> None:
        """Replace the quantity in place, or append the product as the last item."""
        item = LineItem(product_id=product_id, quantity=quantity)
        idx = self.index_of(product_id)
        if idx is None:
            self.items.append(item)
        else:
            self.items[idx] = item

    def remove(self, product_id: str) -> LineItem:
        idx = self.index_of(product_id)
        if idx is None:
            raise ItemNotFound(self.user_id, product_id)
        return self.items.pop(idx)


@dataclass(frozen=True)
class CartPage:
    items: List[LineItem]
    page: int
    total_pages: int
    total_price: Decimal
