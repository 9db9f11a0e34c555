# cart_service/repos/cart_repo.py
"""
Durable store koszykow (zrodlo prawdy).

Kazdy zapis to jedna transakcja: update wersji koszyka (optimistic locking),
delete starych pozycji, insert aktualnych. Blad = rollback i wyjatek do gory.
"""
from typing import Callable

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from cart_service.data.mappers import cart_to_record, item_records, record_to_cart, with_version
from cart_service.data.models import CartItemModel, CartModel
from cart_service.domain.cart import Cart
from cart_service.domain.errors import CartVersionConflictError
from cart_service.domain.identity import OwnerRef
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)


class CartRepo:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    # =====================================================
    # QUERY
    # =====================================================
    def find_by_id(self, cart_id: str) -> Cart | None:
        return self._find_one(CartModel.id == cart_id)

    def find_by_user_id(self, user_id: str) -> Cart | None:
        return self._find_one(CartModel.user_id == user_id)

    def find_by_session_id(self, session_id: str) -> Cart | None:
        return self._find_one(CartModel.session_id == session_id)

    def find_by_owner(self, owner: OwnerRef) -> Cart | None:
        if owner.is_user:
            return self.find_by_user_id(owner.value)
        return self.find_by_session_id(owner.value)

    def count_items(self, cart_id: str, product_id: str | None = None) -> int:
        with self.session_factory() as db:
            stmt = select(func.count()).select_from(CartItemModel).where(CartItemModel.cart_id == cart_id)
            if product_id is not None:
                stmt = stmt.where(CartItemModel.product_id == product_id)
            return db.execute(stmt).scalar_one()

    # =====================================================
    # COMMANDS
    # =====================================================
    def save(self, cart: Cart) -> Cart:
        """Zapisuje koszyk, zwraca kopie z nowa wersja."""
        version = self._in_transaction(cart, lambda db: self._persist(db, cart))
        logger.info(f"Cart {cart.id} saved, version {version}")
        return with_version(cart, version)

    def save_merged(self, target: Cart, absorbed: Cart) -> Cart:
        """
        Merge w jednej transakcji: usuwa wchloniety koszyk (sesyjny) i zapisuje
        koszyk docelowy. Albo oba kroki, albo zaden.
        """

        def work(db: Session) -> int:
            self._delete_row(db, absorbed)
            return self._persist(db, target)

        version = self._in_transaction(target, work)
        logger.info(f"Cart {absorbed.id} merged into {target.id}, version {version}")
        return with_version(target, version)

    def delete(self, cart: Cart) -> None:
        with self.session_factory.begin() as db:
            self._delete_row(db, cart)
        logger.info(f"Cart {cart.id} deleted")

    # =====================================================
    # INTERNAL
    # =====================================================
    def _find_one(self, criterion) -> Cart | None:
        with self.session_factory() as db:
            record = db.execute(
                select(CartModel).options(selectinload(CartModel.items)).where(criterion)
            ).scalar_one_or_none()
            return record_to_cart(record) if record else None

    def _in_transaction(self, cart: Cart, work: Callable[[Session], int]) -> int:
        try:
            with self.session_factory.begin() as db:
                return work(db)
        except IntegrityError:
            #inny request zalozyl juz koszyk dla tego samego ownera
            if self._owner_taken(cart):
                logger.info(f"Cart for owner of {cart.id} created concurrently")
                raise CartVersionConflictError(cart.id)
            raise

    def _persist(self, db: Session, cart: Cart) -> int:
        new_version = cart.version + 1

        if cart.version == 0:
            db.add(cart_to_record(cart, version=new_version))
            db.flush()
            return new_version

        # Optimistic locking
        # update carts set version = v + 1 where id = :id and version = v
        rowcount = db.execute(
            update(CartModel)
            .where(CartModel.id == cart.id, CartModel.version == cart.version)
            .values(
                user_id=cart.user_id,
                session_id=cart.session_id,
                updated_at=cart.updated_at,
                version=new_version,
            )
        ).rowcount

        if rowcount == 0:
            raise CartVersionConflictError(cart.id)

        db.execute(delete(CartItemModel).where(CartItemModel.cart_id == cart.id))
        db.add_all(item_records(cart))
        db.flush()
        return new_version

    def _delete_row(self, db: Session, cart: Cart) -> None:
        db.execute(delete(CartItemModel).where(CartItemModel.cart_id == cart.id))
        rowcount = db.execute(
            delete(CartModel).where(CartModel.id == cart.id, CartModel.version == cart.version)
        ).rowcount
        if rowcount == 0:
            raise CartVersionConflictError(cart.id)

    def _owner_taken(self, cart: Cart) -> bool:
        if cart.user_id:
            existing = self.find_by_user_id(cart.user_id)
        else:
            existing = self.find_by_session_id(cart.session_id)
        return existing is not None and existing.id != cart.id
