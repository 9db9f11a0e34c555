# cart_service/services/context.py
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from redis.exceptions import RedisError

from cart_service.data.database import create_db_engine, create_session_factory, init_schema, ping
from cart_service.repos.cart_repo import CartRepo
from cart_service.services.cart_cache import CartCache
from cart_service.services.cart_service import CartService
from cart_service.services.product_client import ProductClient
from cart_service.services.transfer_service import TransferService
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)


class AppContext:
    """
    Wszystkie zaleznosci serwisu, skladane raz przy starcie aplikacji
    (zamiast kontenera DI i globalnych singletonow).
    open() tworzy schemat, close() zamyka polaczenia do bazy, redis i product-service.
    """

    def __init__(
        self,
        engine: Engine | None = None,
        cache: CartCache | None = None,
        product_client: ProductClient | None = None,
    ):
        self.engine = engine or create_db_engine()
        self.session_factory = create_session_factory(self.engine)
        self.cache = cache or CartCache.from_url()
        self.product_client = product_client or ProductClient()

        self.repo = CartRepo(self.session_factory)
        self.cart_service = CartService(self.repo, self.cache, self.product_client)
        self.transfer_service = TransferService(self.repo, self.cache)

    def open(self) -> "AppContext":
        logger.info(f"Initializing database, tables: carts, cart_items ({self.engine.url.drivername})")
        init_schema(self.engine)
        return self

    def close(self) -> None:
        try:
            self.cache.close()
        except RedisError as e:
            logger.warning(f"Failed to close redis connection: {e}")
        self.product_client.close()
        self.engine.dispose()
        logger.info("Application context closed")

    def health(self) -> dict:
        status = {"database": "ok", "cache": "ok"}

        try:
            ping(self.engine)
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            status["database"] = "unavailable"

        try:
            self.cache.ping()
        except RedisError as e:
            logger.warning(f"Cache health check failed: {e}")
            status["cache"] = "unavailable"

        #bez cache dzialamy dalej (degraded), bez bazy nie
        if status["database"] != "ok":
            status["status"] = "unhealthy"
        elif status["cache"] != "ok":
            status["status"] = "degraded"
        else:
            status["status"] = "ok"
        return status
