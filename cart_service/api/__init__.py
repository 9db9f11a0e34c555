# cart_service/api/__init__.py
from fastapi import FastAPI

from cart_service.api.errors import register_error_handlers
from cart_service.api.routers import carts, health


def include_api(app: FastAPI) -> FastAPI:
    register_error_handlers(app)
    app.include_router(health.router)
    app.include_router(carts.router)
    return app
