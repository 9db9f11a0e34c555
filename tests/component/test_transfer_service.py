"""
Component tests for the session -> user cart transfer.

Covers the three login cases (no session cart, session cart only, both carts),
the cache cleanup after a successful write and reads that bypass a stale
cache entry.
"""
from decimal import Decimal

import pytest

from cart_service.domain.cart import Cart
from cart_service.domain.errors import InvalidRequestError
from cart_service.domain.identity import OwnerRef


def session_cart_with(repo, session_id="s1", *lines):
    cart = Cart.create_for_session(session_id)
    for product_id, quantity, price in lines:
        cart.add_item(product_id, quantity, Decimal(price))
    return repo.save(cart)


def user_cart_with(repo, user_id="u1", *lines):
    cart = Cart.create_for_user(user_id)
    for product_id, quantity, price in lines:
        cart.add_item(product_id, quantity, Decimal(price))
    return repo.save(cart)


class TestValidation:
    @pytest.mark.parametrize("user_id,session_id", [(None, "s1"), ("u1", None), ("  ", "s1"), ("u1", "")])
    def test_both_identifiers_required(self, transfer, user_id, session_id):
        with pytest.raises(InvalidRequestError):
            transfer.transfer(user_id, session_id)


class TestNoSessionCart:
    def test_creates_empty_user_cart(self, transfer, repo):
        result = transfer.transfer("u1", "s1")

        assert result.message == "A new cart was created"
        assert result.cart.user_id == "u1"
        assert result.cart.is_empty()
        assert repo.find_by_user_id("u1").id == result.cart.id

    def test_returns_existing_user_cart_untouched(self, transfer, repo):
        existing = user_cart_with(repo, "u1", ("P1", 2, "10.00"))

        result = transfer.transfer("u1", "s1")

        assert result.message == "Cart loaded"
        assert result.cart.id == existing.id
        assert result.cart.version == existing.version
        assert result.cart.get_item_quantity("P1") == 2


class TestSessionCartOnly:
    def test_cart_is_reassigned_to_user(self, transfer, repo):
        session_cart = session_cart_with(repo, "s1", ("P1", 2, "10.00"), ("P2", 1, "5.50"))

        result = transfer.transfer("u1", "s1")

        assert result.message == "Cart transferred"
        assert result.cart.id == session_cart.id
        assert result.cart.user_id == "u1"
        assert result.cart.session_id is None
        assert sorted((i.product_id, i.quantity) for i in result.cart.items) == [("P1", 2), ("P2", 1)]
        assert repo.find_by_session_id("s1") is None
        assert repo.find_by_user_id("u1").id == session_cart.id

    def test_session_pointer_is_removed_from_cache(self, transfer, repo, cache, fake_redis):
        session_cart = session_cart_with(repo, "s1", ("P1", 1, "10.00"))
        cache.store(session_cart)

        transfer.transfer("u1", "s1")

        assert "cart:session:s1" not in fake_redis.data
        assert fake_redis.data["cart:user:u1"] == session_cart.id
        assert cache.lookup(OwnerRef.session("s1")) is None
        assert cache.lookup(OwnerRef.user("u1")).user_id == "u1"


class TestMerge:
    def test_quantities_sum_and_user_price_wins(self, transfer, repo):
        user_cart = user_cart_with(repo, "u1", ("P1", 2, "10.00"))
        session_cart_with(repo, "s1", ("P1", 1, "8.00"), ("P2", 1, "5.00"))

        result = transfer.transfer("u1", "s1")

        assert result.message == "Carts merged"
        assert result.cart.id == user_cart.id
        assert result.cart.get_item_quantity("P1") == 3
        assert result.cart.find_item("P1").price == Decimal("10.00")
        assert result.cart.get_item_quantity("P2") == 1
        assert result.cart.get_total_amount() == Decimal("35.00")

    def test_session_cart_is_deleted(self, transfer, repo):
        user_cart_with(repo, "u1", ("P1", 1, "10.00"))
        session_cart = session_cart_with(repo, "s1", ("P2", 1, "5.00"))

        transfer.transfer("u1", "s1")

        assert repo.find_by_session_id("s1") is None
        assert repo.find_by_id(session_cart.id) is None
        assert repo.count_items(session_cart.id) == 0

    def test_session_cache_entries_are_removed(self, transfer, repo, cache, fake_redis):
        user_cart = user_cart_with(repo, "u1", ("P1", 1, "10.00"))
        session_cart = session_cart_with(repo, "s1", ("P2", 1, "5.00"))
        cache.store(user_cart)
        cache.store(session_cart)

        transfer.transfer("u1", "s1")

        assert "cart:session:s1" not in fake_redis.data
        assert f"cart:cart:{session_cart.id}" not in fake_redis.data
        assert cache.lookup(OwnerRef.user("u1")).get_item_quantity("P2") == 1

    def test_stale_cached_user_cart_does_not_leak_into_merge(self, transfer, repo, cache):
        user_cart = user_cart_with(repo, "u1", ("P1", 1, "10.00"))
        cache.store(user_cart)

        # the store moves on, cache still holds the old version
        fresh = repo.find_by_id(user_cart.id)
        fresh.add_item("P3", 1, Decimal("250.00"))
        repo.save(fresh)
        session_cart_with(repo, "s1", ("P2", 1, "5.00"))

        result = transfer.transfer("u1", "s1")

        assert result.cart.has_item("P3")
        assert result.cart.has_item("P2")

    def test_transfer_twice_is_harmless(self, transfer, repo):
        user_cart_with(repo, "u1", ("P1", 1, "10.00"))
        session_cart_with(repo, "s1", ("P2", 1, "5.00"))

        first = transfer.transfer("u1", "s1")
        second = transfer.transfer("u1", "s1")

        assert second.message == "Cart loaded"
        assert second.cart.id == first.cart.id
        assert second.cart.get_total_items() == first.cart.get_total_items()

    def test_works_with_cache_down(self, transfer, repo, fake_redis):
        user_cart_with(repo, "u1", ("P1", 1, "10.00"))
        session_cart_with(repo, "s1", ("P1", 2, "9.00"))
        fake_redis.fail = True

        result = transfer.transfer("u1", "s1")

        assert result.cart.get_item_quantity("P1") == 3
        assert repo.find_by_session_id("s1") is None
