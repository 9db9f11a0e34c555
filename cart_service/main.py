# cart_service/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from cart_service.api import include_api
from cart_service.services.context import AppContext
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)


def create_app(context: AppContext | None = None) -> FastAPI:
    """
    context mozna podac z zewnatrz (testy), inaczej budowany jest przy starcie
    z ustawien w utils/settings.py.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ctx = context or AppContext()
        app.state.context = ctx.open()
        logger.info("Cart service started")
        try:
            yield
        finally:
            ctx.close()

    app = FastAPI(
        title="Cart Service",
        version="1.0.0",
        lifespan=lifespan,
    )
    return include_api(app)


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
