# cart_service/main.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn

from cart_service.api.deps import build_aggregator
from cart_service.api.routers import carts, health
from cart_service.domain.errors import Unauthenticated
from cart_service.services.cart_service import CartAggregator
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)


def create_app(aggregator: CartAggregator | None = None) -> FastAPI:
    app = FastAPI(
        title="Cart Service",
        version="1.0.0",
    )

    # store/pricing handles are built once and shared by every request
    app.state.aggregator = aggregator or build_aggregator()

    @app.exception_handler(Unauthenticated)
    def unauthenticated_handler(request: Request, exc: Unauthenticated):
        return JSONResponse(status_code=401, content={"detail": str(exc)})

    # Include routers
    app.include_router(health.router)
    app.include_router(carts.router)

    logger.info("Cart service app created")
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
