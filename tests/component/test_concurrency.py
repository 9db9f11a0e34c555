"""
Concurrent writers on the same cart.

File-backed SQLite so that every thread gets its own connection and the
store actually serializes the writes. Each use case retries on a version
conflict, so no update is lost and no duplicate rows appear.
"""
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from cart_service.data.database import create_db_engine, create_session_factory, init_schema
from cart_service.domain.cart import Cart
from cart_service.repos.cart_repo import CartRepo
from cart_service.services.cart_service import CartService
from cart_service.services.transfer_service import TransferService


@pytest.fixture
def file_engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'carts.db'}")
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def file_repo(file_engine):
    return CartRepo(create_session_factory(file_engine))


@pytest.fixture
def file_service(file_repo, cache, products):
    return CartService(file_repo, cache, products)


def run_parallel(fn, args):
    with ThreadPoolExecutor(max_workers=len(args)) as pool:
        futures = [pool.submit(fn, arg) for arg in args]
        return [f.result() for f in futures]


def test_parallel_quantity_updates_are_serialized(file_service, file_repo):
    cart = Cart.create_for_session("s1")
    cart.add_item("P1", 1, Decimal("10.00"))
    initial = file_repo.save(cart)

    run_parallel(lambda q: file_service.update_item_quantity("P1", q, session_id="s1"), [2, 3, 4, 5])

    final = file_repo.find_by_session_id("s1")
    assert file_repo.count_items(initial.id, "P1") == 1
    assert final.get_item_quantity("P1") in {2, 3, 4, 5}
    assert final.version == initial.version + 4


def test_parallel_first_adds_share_one_cart(file_service, file_repo):
    run_parallel(lambda p: file_service.add_item(p, 1, session_id="s1"), ["P1", "P2", "P1", "P2"])

    final = file_repo.find_by_session_id("s1")
    assert final.get_item_quantity("P1") == 2
    assert final.get_item_quantity("P2") == 2
    assert file_repo.count_items(final.id) == 2


def test_transfer_racing_with_session_write(file_repo, file_service, cache):
    user_cart = Cart.create_for_user("u1")
    user_cart.add_item("P1", 1, Decimal("10.00"))
    file_repo.save(user_cart)
    session_cart = Cart.create_for_session("s1")
    session_cart.add_item("P2", 1, Decimal("5.50"))
    file_repo.save(session_cart)
    transfer = TransferService(file_repo, cache)

    def work(i):
        if i == 0:
            return transfer.transfer("u1", "s1")
        # session write may land before the merge or find the session cart gone
        return file_service.add_item("P1", 1, session_id="s1")

    run_parallel(work, [0, 1])

    user = file_repo.find_by_user_id("u1")
    session = file_repo.find_by_session_id("s1")
    in_session = session.get_total_items() if session else 0
    # every item ends up exactly once: merged into the user cart or in a fresh session cart
    assert user.get_total_items() + in_session == 3
