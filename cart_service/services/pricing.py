# cart_service/services/pricing.py
from decimal import Decimal, InvalidOperation
from urllib.parse import quote

import requests
from requests import RequestException

from cart_service.domain.errors import CatalogUnavailable, ProductNotFound
from cart_service.utils.logging import get_logger
from cart_service.utils.resilience import CircuitBreaker
from cart_service.utils.retry import http_retry
from cart_service.utils.settings import (
    BREAKER_FAILURE_THRESHOLD,
    BREAKER_RESET_SECONDS,
    CATALOG_SERVICE_URL,
    PRICING_TIMEOUT_SECONDS,
)

logger = get_logger(__name__)


class PricingGateway:
    """
    Unit-price lookups against the product catalog, one GET per product.

    Each call is bounded by ``timeout`` and retried with backoff on transport
    errors and 5xx answers; a 404 is final. A circuit breaker sits in front
    of the retries so a dead catalog is not hammered.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
        breaker: CircuitBreaker | None = None,
    ):
        self.base_url = (base_url or CATALOG_SERVICE_URL).rstrip("/")
        self.timeout = timeout or PRICING_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        self.breaker = breaker or CircuitBreaker(
            failure_threshold=BREAKER_FAILURE_THRESHOLD,
            reset_timeout=BREAKER_RESET_SECONDS,
        )

    def fetch_unit_price(self, product_id: str) -> Decimal:
        return self.breaker.call(self._fetch_unit_price, product_id)

    @http_retry()
    def _fetch_unit_price(self, product_id: str) -> Decimal:
        url = f"{self.base_url}/products/{quote(product_id, safe='')}"
        logger.info(f"PricingGateway GET {url}")

        try:
            resp = self.session.get(url, timeout=self.timeout)
        except RequestException as e:
            logger.warning(f"Catalog request for {product_id} failed: {e}")
            raise CatalogUnavailable(f"Catalog request failed: {e}") from e

        if resp.status_code == 404:
            raise ProductNotFound(product_id)
        if resp.status_code != 200:
            logger.warning(f"Catalog answered {resp.status_code} for {product_id}")
            raise CatalogUnavailable(f"Catalog answered HTTP {resp.status_code}")

        try:
            price = Decimal(str(resp.json()["price"]))
        except (ValueError, KeyError, TypeError, InvalidOperation) as e:
            raise CatalogUnavailable(f"Catalog sent no usable price for {product_id}") from e

        if not price.is_finite() or price < 0:
            raise CatalogUnavailable(f"Catalog sent invalid price {price} for {product_id}")

        return price
