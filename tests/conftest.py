"""
Shared fixtures for the cart service tests.

The durable store is a real SQLAlchemy store on SQLite. Redis and the
Product service are replaced by in-process test doubles so cache contents and
cache outages can be inspected and simulated.
"""
import threading
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.pool import StaticPool

from cart_service.data.database import create_db_engine, create_session_factory, init_schema
from cart_service.main import create_app
from cart_service.repos.cart_repo import CartRepo
from cart_service.services.cart_cache import CartCache
from cart_service.services.cart_service import CartService
from cart_service.services.context import AppContext
from cart_service.services.product_client import InventoryCheck, ProductInfo
from cart_service.services.transfer_service import TransferService


class FakeRedis:
    """In-memory stand-in for the subset of redis.Redis the cache uses."""

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.fail = False
        self.calls = 0
        self._lock = threading.Lock()

    def _check(self):
        self.calls += 1
        if self.fail:
            raise RedisConnectionError("redis is down")

    def get(self, key):
        with self._lock:
            self._check()
            return self.data.get(key)

    def setex(self, key, ttl, value):
        with self._lock:
            self._check()
            self.data[key] = value
            self.ttls[key] = ttl
            return True

    def delete(self, *keys):
        with self._lock:
            self._check()
            removed = 0
            for key in keys:
                if self.data.pop(key, None) is not None:
                    removed += 1
                self.ttls.pop(key, None)
            return removed

    def ping(self):
        with self._lock:
            self._check()
            return True

    def close(self):
        pass


class FakeProductClient:
    """Product service double with a fixed catalogue."""

    def __init__(self):
        self.products = {
            "P1": ProductInfo(id="P1", name="Keyboard", price=Decimal("10.00"), stock=100, active=True),
            "P2": ProductInfo(id="P2", name="Mouse", price=Decimal("5.50"), stock=100, active=True),
            "P3": ProductInfo(id="P3", name="Monitor", price=Decimal("250.00"), stock=3, active=True),
            "OLD": ProductInfo(id="OLD", name="Discontinued", price=Decimal("1.00"), stock=10, active=False),
        }
        self.lookups = 0

    def get_product(self, product_id):
        self.lookups += 1
        return self.products.get(product_id)

    def check_inventory(self, product_id, quantity):
        product = self.products.get(product_id)
        available = product.stock if product and product.active else 0
        return InventoryCheck(
            product_id=product_id,
            requested_quantity=quantity,
            available_quantity=available,
            available=available >= quantity,
        )

    def close(self):
        pass


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repo(engine):
    return CartRepo(create_session_factory(engine))


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    return CartCache(fake_redis, key_prefix="cart:", user_ttl=3600, session_ttl=300, cart_ttl=1800)


@pytest.fixture
def products():
    return FakeProductClient()


@pytest.fixture
def service(repo, cache, products):
    return CartService(repo, cache, products)


@pytest.fixture
def transfer(repo, cache):
    return TransferService(repo, cache)


@pytest.fixture
def context(engine, cache, products):
    return AppContext(engine=engine, cache=cache, product_client=products)


@pytest.fixture
def test_client(context):
    app = create_app(context)
    with TestClient(app) as client:
        yield client
