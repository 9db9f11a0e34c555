# cart_service/domain/cart.py
"""
Agregat Cart.

Cart jest jedynym wlascicielem swoich CartItem. Wszystkie zmiany stanu ida przez
metody agregatu, na zewnatrz wychodza tylko kopie pozycji.
Brak I/O, wszystko synchroniczne.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List

from cart_service.domain.errors import CartItemNotFoundError, CartValidationError


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _require_id(value: str | None, what: str) -> str:
    if value is None or not str(value).strip():
        raise CartValidationError(f"{what} is required")
    return str(value).strip()


def _require_quantity(quantity: Any, minimum: int = 1) -> int:
    # bool jest podklasa int
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise CartValidationError("Quantity must be an integer")
    if quantity < minimum:
        raise CartValidationError(f"Quantity must be at least {minimum}")
    return quantity


def _require_price(price: Any) -> Decimal:
    try:
        value = price if isinstance(price, Decimal) else Decimal(str(price))
    except (InvalidOperation, ValueError, TypeError):
        raise CartValidationError(f"Invalid price: {price!r}")
    if not value.is_finite() or value <= 0:
        raise CartValidationError("Price must be greater than 0")
    return value


@dataclass
class CartItem:
    """Pozycja w koszyku, cena to snapshot z momentu dodania."""

    id: str
    cart_id: str
    product_id: str
    quantity: int
    price: Decimal
    added_at: datetime

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "cart_id": self.cart_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "price": self.price,
            "subtotal": self.subtotal,
            "added_at": self.added_at,
        }


class Cart:
    """
    Koszyk nalezy do dokladnie jednego wlasciciela: user_id albo session_id.

    Tworzenie: create_for_user / create_for_session (nowy koszyk) albo restore
    (odtworzenie z bazy lub cache, z ponowna walidacja niezmiennikow).
    """

    def __init__(
        self,
        id: str,
        user_id: str | None,
        session_id: str | None,
        items: Iterable[CartItem],
        created_at: datetime,
        updated_at: datetime,
        version: int = 0,
    ):
        self._id = _require_id(id, "Cart ID")

        has_user = bool(user_id and str(user_id).strip())
        has_session = bool(session_id and str(session_id).strip())
        if has_user == has_session:
            raise CartValidationError("Exactly one of userId or sessionId must be set")

        self._user_id = str(user_id).strip() if has_user else None
        self._session_id = str(session_id).strip() if has_session else None
        self._items: List[CartItem] = []
        self._created_at = created_at
        self._updated_at = updated_at
        self._version = version

        for item in items:
            self._adopt(item)

    # =====================================================
    # FACTORIES
    # =====================================================
    @classmethod
    def create_for_user(cls, user_id: str) -> "Cart":
        now = _now()
        return cls(
            id=_new_id(),
            user_id=_require_id(user_id, "User ID"),
            session_id=None,
            items=[],
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def create_for_session(cls, session_id: str) -> "Cart":
        now = _now()
        return cls(
            id=_new_id(),
            user_id=None,
            session_id=_require_id(session_id, "Session ID"),
            items=[],
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def restore(
        cls,
        id: str,
        user_id: str | None,
        session_id: str | None,
        items: Iterable[CartItem],
        created_at: datetime,
        updated_at: datetime,
        version: int = 0,
    ) -> "Cart":
        """
        Odtworzenie koszyka z zapisanego stanu (baza albo cache).

        Ponownie sprawdza wlasciciela, unikalnosc product_id, ilosci, ceny
        i przynaleznosc pozycji do koszyka. Uszkodzony stan konczy sie
        CartValidationError zamiast niepoprawnego agregatu.
        """
        if isinstance(version, bool) or not isinstance(version, int) or version < 0:
            raise CartValidationError(f"Invalid cart version: {version!r}")
        return cls(
            id=id,
            user_id=user_id,
            session_id=session_id,
            items=items,
            created_at=created_at,
            updated_at=updated_at,
            version=version,
        )

    # =====================================================
    # COMMANDS
    # =====================================================
    def add_item(self, product_id: str, quantity: int, price: Any) -> None:
        """Ten sam produkt zwieksza ilosc, cena z pierwszego dodania zostaje."""
        product_id = _require_id(product_id, "Product ID")
        quantity = _require_quantity(quantity)
        price = _require_price(price)

        existing = self._find(product_id)
        if existing:
            existing.quantity += quantity
        else:
            self._items.append(
                CartItem(
                    id=_new_id(),
                    cart_id=self._id,
                    product_id=product_id,
                    quantity=quantity,
                    price=price,
                    added_at=_now(),
                )
            )
        self._touch()

    def remove_item(self, product_id: str) -> None:
        product_id = _require_id(product_id, "Product ID")
        item = self._find(product_id)
        if not item:
            raise CartItemNotFoundError(product_id)
        self._items.remove(item)
        self._touch()

    def update_item_quantity(self, product_id: str, quantity: int) -> None:
        product_id = _require_id(product_id, "Product ID")
        quantity = _require_quantity(quantity, minimum=0)

        if quantity == 0:
            self.remove_item(product_id)
            return

        item = self._find(product_id)
        if not item:
            raise CartItemNotFoundError(product_id)
        item.quantity = quantity
        self._touch()

    def merge_with(self, other: "Cart") -> None:
        """
        Wchlania pozycje innego koszyka. Duplikaty sumuja ilosc, cena lokalna
        wygrywa. Nowe pozycje dostaja id tego koszyka. other zostaje bez zmian.
        """
        if other is self:
            raise CartValidationError("Cannot merge a cart with itself")

        for theirs in other.items:
            mine = self._find(theirs.product_id)
            if mine:
                mine.quantity += theirs.quantity
            else:
                self._items.append(
                    CartItem(
                        id=_new_id(),
                        cart_id=self._id,
                        product_id=theirs.product_id,
                        quantity=theirs.quantity,
                        price=theirs.price,
                        added_at=_now(),
                    )
                )
        self._touch()

    def transfer_to_user(self, user_id: str) -> None:
        user_id = _require_id(user_id, "User ID")
        #koszyk przenosimy najwyzej raz
        if self._user_id is not None:
            raise CartValidationError("Cart is already owned by a user")
        self._user_id = user_id
        self._session_id = None
        self._touch()

    def clear(self) -> None:
        self._items = []
        self._touch()

    # =====================================================
    # QUERIES
    # =====================================================
    @property
    def id(self) -> str:
        return self._id

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def version(self) -> int:
        return self._version

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    @property
    def items(self) -> List[CartItem]:
        return [replace(i) for i in self._items]

    def find_item(self, product_id: str) -> CartItem | None:
        item = self._find(product_id)
        return replace(item) if item else None

    def has_item(self, product_id: str) -> bool:
        return self._find(product_id) is not None

    def get_item_quantity(self, product_id: str) -> int:
        item = self._find(product_id)
        return item.quantity if item else 0

    def get_total_amount(self) -> Decimal:
        return sum((i.subtotal for i in self._items), Decimal("0.00"))

    def get_total_items(self) -> int:
        return sum(i.quantity for i in self._items)

    def get_unique_item_count(self) -> int:
        return len(self._items)

    def is_empty(self) -> bool:
        return not self._items

    def get_summary(self) -> Dict[str, Any]:
        return {
            "id": self._id,
            "user_id": self._user_id,
            "session_id": self._session_id,
            "total_items": self.get_total_items(),
            "total_amount": self.get_total_amount(),
            "unique_item_count": self.get_unique_item_count(),
            "is_empty": self.is_empty(),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self._id,
            "user_id": self._user_id,
            "session_id": self._session_id,
            "items": [i.to_dict() for i in self._items],
            "created_at": self._created_at,
            "updated_at": self._updated_at,
            "total_items": self.get_total_items(),
            "total_amount": self.get_total_amount(),
            "unique_item_count": self.get_unique_item_count(),
            "is_empty": self.is_empty(),
        }

    def __repr__(self) -> str:
        owner = f"user={self._user_id}" if self._user_id else f"session={self._session_id}"
        return f"<Cart {self._id} {owner} items={len(self._items)} v{self._version}>"

    # =====================================================
    # INTERNAL
    # =====================================================
    def _find(self, product_id: str) -> CartItem | None:
        for item in self._items:
            if item.product_id == product_id:
                return item
        return None

    def _adopt(self, item: CartItem) -> None:
        product_id = _require_id(item.product_id, "Product ID")
        if self._find(product_id):
            raise CartValidationError(f"Duplicate product {product_id} in cart {self._id}")
        if item.cart_id != self._id:
            raise CartValidationError(
                f"Item {item.id} belongs to cart {item.cart_id}, not {self._id}"
            )
        self._items.append(
            CartItem(
                id=_require_id(item.id, "Item ID"),
                cart_id=self._id,
                product_id=product_id,
                quantity=_require_quantity(item.quantity),
                price=_require_price(item.price),
                added_at=item.added_at,
            )
        )

    def _touch(self) -> None:
        self._updated_at = _now()
