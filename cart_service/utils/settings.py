# cart_service/utils/settings.py
import os
from dotenv import load_dotenv

load_dotenv()

CART_STORE_BACKEND = os.getenv("CART_STORE_BACKEND", "redis")
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./carts.db")
CATALOG_SERVICE_URL = os.getenv("CATALOG_SERVICE_URL", "http://catalog-service:8000")

# pricing fan-out
PRICING_TIMEOUT_SECONDS = float(os.getenv("PRICING_TIMEOUT_SECONDS", 2))
PRICING_MAX_WORKERS = int(os.getenv("PRICING_MAX_WORKERS", 8))
# upper bound on one whole repricing, retries included
PRICING_DEADLINE_SECONDS = float(os.getenv("PRICING_DEADLINE_SECONDS", 10))

# retry policies (attempts include the first call)
HTTP_RETRY_ATTEMPTS = int(os.getenv("HTTP_RETRY_ATTEMPTS", 3))
HTTP_RETRY_WAIT_SECONDS = float(os.getenv("HTTP_RETRY_WAIT_SECONDS", 0.3))
STORE_RETRY_ATTEMPTS = int(os.getenv("STORE_RETRY_ATTEMPTS", 3))
STORE_RETRY_WAIT_SECONDS = float(os.getenv("STORE_RETRY_WAIT_SECONDS", 0.2))
CONFLICT_RETRY_ATTEMPTS = int(os.getenv("CONFLICT_RETRY_ATTEMPTS", 3))

MAX_CONCURRENT_MUTATIONS = int(os.getenv("MAX_CONCURRENT_MUTATIONS", 5))
BREAKER_FAILURE_THRESHOLD = int(os.getenv("BREAKER_FAILURE_THRESHOLD", 4))
BREAKER_RESET_SECONDS = float(os.getenv("BREAKER_RESET_SECONDS", 30))

CART_PAGE_SIZE = int(os.getenv("CART_PAGE_SIZE", 3))
