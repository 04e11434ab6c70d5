# cart_service/product_service/main.py
"""
Stand-in catalog for local runs: serves unit prices for a few fixed products
in the shape PricingGateway reads, 404 for anything else.

    uvicorn cart_service.product_service.main:app --port 8001
"""
from decimal import Decimal

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

app = FastAPI(title="Catalog Service (dev stub)")


class ProductOut(BaseModel):
    productId: str
    title: str
    price: Decimal


CATALOG = {
    "p1": ("Espresso beans 1kg", Decimal("10.00")),
    "p2": ("Paper filters x100", Decimal("5.00")),
    "p3": ("Descaler sachet", Decimal("2.50")),
    # priced per gram, finer than a cent
    "p4": ("Loose cardamom", Decimal("0.333")),
}


@app.get("/products/{product_id}", response_model=ProductOut)
def product_price(product_id: str):
    if product_id not in CATALOG:
        raise HTTPException(status_code=404, detail=f"No product {product_id} in catalog")
    title, price = CATALOG[product_id]
    return ProductOut(productId=product_id, title=title, price=price)
