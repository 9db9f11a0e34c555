# cart_service/domain/schemas.py
from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cart_service.domain.cart import Cart


class CamelModel(BaseModel):
    """JSON w camelCase (userId, productId), w Pythonie snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ItemIn(CamelModel):
    """Schema dla dodawania produktu do koszyka."""

    user_id: str | None = None
    session_id: str | None = None
    product_id: str = Field(..., min_length=1, description="ID produktu")
    quantity: int = Field(..., gt=0, description="Ilosc produktu (musi byc > 0)")


class ItemUpdateIn(CamelModel):
    """Schema dla zmiany ilosci, 0 usuwa pozycje."""

    user_id: str | None = None
    session_id: str | None = None
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0, description="Nowa ilosc (0 = usun)")


class TransferIn(CamelModel):
    """Schema dla przeniesienia koszyka sesji na uzytkownika."""

    user_id: str = Field(..., min_length=1)
    session_id: str = Field(..., min_length=1)


class CartItemOut(CamelModel):
    id: str
    cart_id: str
    product_id: str
    quantity: int
    price: float
    subtotal: float
    added_at: datetime


class CartOut(CamelModel):
    """Widok koszyka (response), z policzonymi sumami."""

    id: str
    user_id: str | None = None
    session_id: str | None = None
    items: List[CartItemOut]
    created_at: datetime
    updated_at: datetime
    total_items: int
    total_amount: float
    unique_item_count: int
    is_empty: bool

    @classmethod
    def from_cart(cls, cart: Cart) -> "CartOut":
        return cls(
            id=cart.id,
            user_id=cart.user_id,
            session_id=cart.session_id,
            items=[
                CartItemOut(
                    id=i.id,
                    cart_id=i.cart_id,
                    product_id=i.product_id,
                    quantity=i.quantity,
                    price=float(i.price),
                    subtotal=float(i.subtotal),
                    added_at=i.added_at,
                )
                for i in cart.items
            ],
            created_at=cart.created_at,
            updated_at=cart.updated_at,
            total_items=cart.get_total_items(),
            total_amount=float(cart.get_total_amount()),
            unique_item_count=cart.get_unique_item_count(),
            is_empty=cart.is_empty(),
        )


class CartData(CamelModel):
    cart: CartOut | None = None
    message: str | None = None


class CartEnvelope(CamelModel):
    success: bool = True
    data: CartData
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ErrorEnvelope(CamelModel):
    success: bool = False
    message: str
    error: str
    available_quantity: int | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class HealthOut(BaseModel):
    status: str
    database: str
    cache: str
