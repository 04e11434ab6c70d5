# cart_service/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from cart_service.api.deps import get_aggregator, get_user_id
from cart_service.domain.errors import (
    CartEmpty,
    DependencyUnavailable,
    InvalidCartInput,
    ItemNotFound,
    MalformedCartData,
)
from cart_service.domain.schemas import (
    CartOut,
    CartPageOut,
    FallbackOut,
    ItemIn,
    MessageOut,
    RemoveItemOut,
)
from cart_service.services.cart_service import CartAggregator
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/cart", tags=["cart"])

CORRUPT_CART_DETAIL = "Stored cart data is corrupt"
FALLBACK_RESPONSES = {503: {"model": FallbackOut, "description": "A dependency is unavailable"}}


def fallback(action: str, user_id: str, error: Exception) -> JSONResponse:
    """Degraded answer when a dependency failed; the stored cart is unchanged."""
    logger.warning(f"Fallback activated: unable to {action} for user {user_id}: {error}")
    return JSONResponse(
        status_code=503,
        content=FallbackOut(
            description=f"Unable to {action} at the moment. Please try again later."
        ).model_dump(),
    )


@router.get("", response_model=CartPageOut, responses=FALLBACK_RESPONSES)
def get_cart(
    page: int | None = Query(default=None),
    user_id: str = Depends(get_user_id),
    svc: CartAggregator = Depends(get_aggregator),
):
    try:
        return svc.get_cart(user_id, page)
    except CartEmpty:
        raise HTTPException(status_code=404, detail="No items found in cart.")
    except MalformedCartData:
        raise HTTPException(status_code=500, detail=CORRUPT_CART_DETAIL)
    except DependencyUnavailable as e:
        return fallback("fetch cart", user_id, e)


@router.post("/add", response_model=CartOut, responses=FALLBACK_RESPONSES)
def add_to_cart(
    payload: ItemIn,
    user_id: str = Depends(get_user_id),
    svc: CartAggregator = Depends(get_aggregator),
):
    try:
        return svc.add_or_update_item(user_id, payload.product_id, payload.quantity)
    except InvalidCartInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MalformedCartData:
        raise HTTPException(status_code=500, detail=CORRUPT_CART_DETAIL)
    except DependencyUnavailable as e:
        return fallback("add product to cart", user_id, e)


@router.delete("/{product_id}", response_model=RemoveItemOut, responses=FALLBACK_RESPONSES)
def delete_from_cart(
    product_id: str,
    user_id: str = Depends(get_user_id),
    svc: CartAggregator = Depends(get_aggregator),
):
    try:
        cart = svc.remove_item(user_id, product_id)
    except ItemNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidCartInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MalformedCartData:
        raise HTTPException(status_code=500, detail=CORRUPT_CART_DETAIL)
    except DependencyUnavailable as e:
        return fallback("delete product from cart", user_id, e)

    return RemoveItemOut(
        total_price=cart.total_price,
        message="Product deleted from cart successfully",
    )


@router.delete("", response_model=MessageOut, responses=FALLBACK_RESPONSES)
def delete_cart(
    user_id: str = Depends(get_user_id),
    svc: CartAggregator = Depends(get_aggregator),
):
    try:
        svc.clear_cart(user_id)
    except DependencyUnavailable as e:
        return fallback("delete cart", user_id, e)
    return MessageOut(message="Cart deleted successfully")
