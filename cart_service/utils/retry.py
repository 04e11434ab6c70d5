# cart_service/utils/retry.py
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from cart_service.domain.errors import CatalogUnavailable, ConcurrentModification, StoreUnavailable
from cart_service.utils.settings import (
    CONFLICT_RETRY_ATTEMPTS,
    HTTP_RETRY_ATTEMPTS,
    HTTP_RETRY_WAIT_SECONDS,
    STORE_RETRY_ATTEMPTS,
    STORE_RETRY_WAIT_SECONDS,
)


def http_retry():
    # ProductNotFound is a definitive answer from the catalog, never retried
    return retry(
        reraise=True,
        stop=stop_after_attempt(HTTP_RETRY_ATTEMPTS),
        wait=wait_exponential(
            multiplier=HTTP_RETRY_WAIT_SECONDS,
            min=HTTP_RETRY_WAIT_SECONDS,
            max=HTTP_RETRY_WAIT_SECONDS * 10,
        ),
        retry=retry_if_exception_type(CatalogUnavailable),
    )


def store_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(STORE_RETRY_ATTEMPTS),
        wait=wait_exponential(
            multiplier=STORE_RETRY_WAIT_SECONDS,
            min=STORE_RETRY_WAIT_SECONDS,
            max=STORE_RETRY_WAIT_SECONDS * 10,
        ),
        retry=retry_if_exception_type(StoreUnavailable),
    )


def conflict_retry():
    # each attempt re-reads the cart, so no backoff is needed
    return retry(
        reraise=True,
        stop=stop_after_attempt(CONFLICT_RETRY_ATTEMPTS),
        retry=retry_if_exception_type(ConcurrentModification),
    )
