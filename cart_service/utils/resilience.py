# cart_service/utils/resilience.py
import threading
import time
from typing import Callable, TypeVar

from cart_service.domain.errors import CatalogUnavailable, ServiceOverloaded
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class Bulkhead:
    """
    Admission ceiling for concurrent calls.
    Callers over the limit are rejected immediately, nothing is queued.

        with bulkhead:
            ...
    """

    def __init__(self, max_concurrent: int):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self._slots = threading.BoundedSemaphore(max_concurrent)

    def __enter__(self):
        if not self._slots.acquire(blocking=False):
            logger.warning(f"Bulkhead full ({self.max_concurrent} in flight), rejecting call")
            raise ServiceOverloaded("Too many cart updates in progress")
        return self

    def __exit__(self, exc_type, exc, tb):
        self._slots.release()
        return False


class CircuitBreaker:
    """
    Fails fast once a dependency keeps failing.

    CLOSED: calls pass through, consecutive failures are counted
    OPEN: calls raise CatalogUnavailable without touching the dependency
    HALF_OPEN: after reset_timeout one trial call decides between CLOSED and OPEN,
        other callers are refused while the trial is in flight
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        failure_threshold: int,
        reset_timeout: float,
        failure_types: tuple[type[BaseException], ...] = (CatalogUnavailable,),
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.failure_types = failure_types
        self._clock = clock
        self._lock = threading.Lock()
        self._failures = 0
        self._opened_at = 0.0
        self._state = self.CLOSED
        self._trial_in_flight = False

    @property
    def state(self) -> str:
        with self._lock:
            return self._current_state()

    def _current_state(self) -> str:
        if self._state == self.OPEN and self._clock() - self._opened_at >= self.reset_timeout:
            self._state = self.HALF_OPEN
        return self._state

    def call(self, fn: Callable[..., T], *args, **kwargs) -> T:
        self._admit()

        try:
            result = fn(*args, **kwargs)
        except self.failure_types:
            self._record_failure()
            raise
        except Exception:
            # the dependency answered, just not with a value
            self._record_success()
            raise

        self._record_success()
        return result

    def _admit(self) -> None:
        with self._lock:
            state = self._current_state()
            if state == self.OPEN:
                raise CatalogUnavailable("Catalog circuit is open")
            if state == self.HALF_OPEN:
                if self._trial_in_flight:
                    raise CatalogUnavailable("Catalog circuit is half-open, trial call in flight")
                self._trial_in_flight = True

    def _record_failure(self) -> None:
        with self._lock:
            self._trial_in_flight = False
            self._failures += 1
            if self._state == self.HALF_OPEN or self._failures >= self.failure_threshold:
                if self._state != self.OPEN:
                    logger.warning(f"Circuit opened after {self._failures} consecutive failures")
                self._state = self.OPEN
                self._opened_at = self._clock()

    def _record_success(self) -> None:
        with self._lock:
            self._trial_in_flight = False
            self._failures = 0
            self._state = self.CLOSED
