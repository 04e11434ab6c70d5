# cart_service/services/codec.py
"""
Line-item codec for the persisted OrderList field.

Format: ``productId:quantity`` segments joined with ``;`` and always terminated
by ``;``. The empty list is ``;``. There is no escaping: product ids may not
contain either separator, which is enforced on encode and on decode.
"""
import re
from typing import Iterable, List

from cart_service.domain.errors import MalformedCartData
from cart_service.domain.models import (
    FIELD_SEPARATOR,
    ITEM_SEPARATOR,
    LineItem,
    validate_product_id,
    validate_quantity,
)

_QUANTITY_RE = re.compile(r"\d+", re.ASCII)


def decode(raw: str) -> List[LineItem]:
    """
    Parse an order list. ``""`` and ``";"`` both mean no items.
    A list missing only its trailing separator is accepted.

    Raises MalformedCartData on empty segments, wrong field counts,
    non-numeric quantities or duplicate product ids.
    """
    if raw is None:
        raise MalformedCartData("Order list is missing")

    body = raw[:-1] if raw.endswith(ITEM_SEPARATOR) else raw
    if not body:
        return []

    items: List[LineItem] = []
    seen = set()
    for position, segment in enumerate(body.split(ITEM_SEPARATOR)):
        fields = segment.split(FIELD_SEPARATOR)
        if len(fields) != 2:
            raise MalformedCartData(
                f"Segment {position} ({segment!r}) must have exactly 2 fields"
            )

        product_id, quantity = fields
        if not product_id:
            raise MalformedCartData(f"Segment {position} has an empty product id")
        if not _QUANTITY_RE.fullmatch(quantity):
            raise MalformedCartData(
                f"Segment {position} has an invalid quantity {quantity!r}"
            )
        if product_id in seen:
            raise MalformedCartData(f"Product {product_id} appears more than once")

        seen.add(product_id)
        items.append(LineItem(product_id=product_id, quantity=int(quantity)))

    return items


def encode(items: Iterable[LineItem]) -> str:
    segments = []
    for item in items:
        validate_product_id(item.product_id)
        validate_quantity(item.quantity)
        segments.append(f"{item.product_id}{FIELD_SEPARATOR}{item.quantity}")
    return ITEM_SEPARATOR.join(segments) + ITEM_SEPARATOR
