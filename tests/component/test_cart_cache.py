"""
Component tests for the two-tier Redis cache.

Validates key layout and TTLs, restore-on-read, stale pointer detection and
that every best-effort operation survives a Redis outage.
"""
from decimal import Decimal

from cart_service.data.mappers import with_version
from cart_service.domain.cart import Cart
from cart_service.domain.identity import OwnerRef


def saved_cart(owner="s1", session=True):
    cart = Cart.create_for_session(owner) if session else Cart.create_for_user(owner)
    cart.add_item("P1", 2, Decimal("3.00"))
    return with_version(cart, 1)


class TestKeysAndTtls:
    def test_store_writes_payload_and_session_pointer(self, cache, fake_redis):
        cart = saved_cart("s1")
        cache.store(cart)

        assert fake_redis.data["cart:session:s1"] == cart.id
        assert fake_redis.ttls["cart:session:s1"] == 300
        assert f"cart:cart:{cart.id}" in fake_redis.data
        assert fake_redis.ttls[f"cart:cart:{cart.id}"] == 1800

    def test_user_pointer_lives_longer(self, cache, fake_redis):
        cart = saved_cart("u1", session=False)
        cache.store(cart)

        assert fake_redis.data["cart:user:u1"] == cart.id
        assert fake_redis.ttls["cart:user:u1"] == 3600


class TestLookup:
    def test_hit_returns_restored_aggregate(self, cache):
        cart = saved_cart("s1")
        cache.store(cart)

        cached = cache.lookup(OwnerRef.session("s1"))

        assert isinstance(cached, Cart)
        assert cached.id == cart.id
        assert cached.version == 1
        assert cached.get_item_quantity("P1") == 2

    def test_identity_miss(self, cache):
        assert cache.lookup(OwnerRef.session("unknown")) is None

    def test_payload_miss(self, cache, fake_redis):
        cart = saved_cart("s1")
        cache.store(cart)
        del fake_redis.data[f"cart:cart:{cart.id}"]

        assert cache.lookup(OwnerRef.session("s1")) is None

    def test_corrupted_payload_is_dropped(self, cache, fake_redis):
        cart = saved_cart("s1")
        cache.store(cart)
        fake_redis.data[f"cart:cart:{cart.id}"] = '{"v": 1, "id": "broken"}'

        assert cache.lookup(OwnerRef.session("s1")) is None
        assert f"cart:cart:{cart.id}" not in fake_redis.data

    def test_deeply_nested_payload_is_dropped(self, cache, fake_redis):
        cart = saved_cart("s1")
        cache.store(cart)
        fake_redis.data[f"cart:cart:{cart.id}"] = "[" * 100000 + "]" * 100000

        assert cache.lookup(OwnerRef.session("s1")) is None
        assert f"cart:cart:{cart.id}" not in fake_redis.data

    def test_pointer_to_cart_of_another_owner_is_ignored(self, cache, fake_redis):
        cart = saved_cart("u1", session=False)
        cache.store(cart)
        fake_redis.data["cart:session:s1"] = cart.id

        assert cache.lookup(OwnerRef.session("s1")) is None

    def test_redis_down_is_a_miss(self, cache, fake_redis):
        cache.store(saved_cart("s1"))
        fake_redis.fail = True

        assert cache.lookup(OwnerRef.session("s1")) is None


class TestInvalidate:
    def test_removes_payload_and_pointers(self, cache, fake_redis):
        cart = saved_cart("s1")
        cache.store(cart)

        cache.invalidate(cart.id, OwnerRef.session("s1"))

        assert fake_redis.data == {}

    def test_write_failures_are_swallowed(self, cache, fake_redis):
        fake_redis.fail = True
        cart = saved_cart("s1")

        cache.store(cart)
        cache.invalidate(cart.id, OwnerRef.session("s1"))

        assert fake_redis.data == {}
