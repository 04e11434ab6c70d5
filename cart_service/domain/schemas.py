# cart_service/domain/schemas.py
from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ItemIn(BaseModel):
    """Body of POST /cart/add."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(
        ...,
        alias="productId",
        min_length=1,
        pattern=r"^[^;:]+$",
        description="Catalog product id, ';' and ':' are not allowed",
    )
    quantity: int = Field(..., ge=0, description="New quantity, replaces the current one")


class LineItemOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    product_id: str = Field(..., alias="productId")
    quantity: int


class CartPageOut(BaseModel):
    """GET /cart"""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    items: List[LineItemOut]
    page: int
    total_pages: int = Field(..., alias="totalPages")
    total_price: Decimal = Field(..., alias="totalPrice")


class CartOut(BaseModel):
    """Cart summary returned after an add/update."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    user_id: str = Field(..., alias="userId")
    items: List[LineItemOut]
    total_price: Decimal = Field(..., alias="totalPrice")


class RemoveItemOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_price: Decimal = Field(..., alias="totalPrice")
    message: str


class MessageOut(BaseModel):
    message: str


class FallbackOut(BaseModel):
    description: str
