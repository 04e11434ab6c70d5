# cart_service/api/deps.py
from fastapi import Header, Request

from cart_service.data.database import create_session_factory
from cart_service.domain.errors import Unauthenticated
from cart_service.repos.cart_repo import CartStore, InMemoryCartStore, RedisCartStore, SqlCartStore
from cart_service.services.cart_service import CartAggregator
from cart_service.services.pricing import PricingGateway
from cart_service.utils.logging import get_logger
from cart_service.utils.settings import CART_STORE_BACKEND, DATABASE_URL, REDIS_URL

logger = get_logger(__name__)


def build_store(backend: str | None = None) -> CartStore:
    backend = (backend or CART_STORE_BACKEND).lower()
    logger.info(f"Using {backend} cart store")

    if backend == "redis":
        return RedisCartStore(url=REDIS_URL)
    if backend == "sql":
        return SqlCartStore(create_session_factory(DATABASE_URL))
    if backend == "memory":
        return InMemoryCartStore()
    raise ValueError(f"Unknown cart store backend: {backend}")


def build_aggregator() -> CartAggregator:
    return CartAggregator(store=build_store(), pricing=PricingGateway())


def get_aggregator(request: Request) -> CartAggregator:
    return request.app.state.aggregator


def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """
    Caller identity. The gateway in front of the service verifies the token
    and forwards its subject in X-User-Id.
    """
    if not x_user_id:
        logger.info("Rejected cart request without caller identity")
        raise Unauthenticated("Unauthorized: only authenticated users can access their cart.")
    return x_user_id
