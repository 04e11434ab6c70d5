"""Pytest configuration and fixtures"""
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

# Set test environment variables before cart_service reads its settings
os.environ.setdefault("CART_STORE_BACKEND", "memory")
os.environ.setdefault("HTTP_RETRY_WAIT_SECONDS", "0")
os.environ.setdefault("STORE_RETRY_WAIT_SECONDS", "0")

from fastapi.testclient import TestClient  # noqa: E402

from cart_service.domain.errors import CatalogUnavailable, ProductNotFound  # noqa: E402
from cart_service.main import create_app  # noqa: E402
from cart_service.repos.cart_repo import InMemoryCartStore  # noqa: E402
from cart_service.services.cart_service import CartAggregator  # noqa: E402
from cart_service.utils.resilience import Bulkhead  # noqa: E402


class FakeCatalog:
    """Stands in for PricingGateway; records every lookup."""

    def __init__(self, prices=None):
        self.prices = {pid: Decimal(str(p)) for pid, p in (prices or {}).items()}
        self.unavailable = set()
        self.stalled = set()
        self.release = threading.Event()
        self.calls = []
        self._lock = threading.Lock()

    def fetch_unit_price(self, product_id: str) -> Decimal:
        with self._lock:
            self.calls.append(product_id)
        if product_id in self.stalled:
            self.release.wait(timeout=5)
        if product_id in self.unavailable:
            raise CatalogUnavailable(f"catalog down for {product_id}")
        if product_id not in self.prices:
            raise ProductNotFound(product_id)
        return self.prices[product_id]


@pytest.fixture
def catalog():
    return FakeCatalog({"p1": 10.0, "p2": 5.0, "p3": 2.5})


@pytest.fixture
def store():
    return InMemoryCartStore()


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=4)
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def aggregator(store, catalog, executor):
    return CartAggregator(
        store=store,
        pricing=catalog,
        bulkhead=Bulkhead(5),
        executor=executor,
        page_size=3,
    )


@pytest.fixture
def test_client(aggregator):
    return TestClient(create_app(aggregator))


@pytest.fixture
def auth_headers():
    return {"X-User-Id": "user-123"}
