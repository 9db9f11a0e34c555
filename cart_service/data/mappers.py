# cart_service/data/mappers.py
"""
Mapowanie miedzy agregatem Cart a jego zapisanymi postaciami:
rekordami SQLAlchemy (CartModel/CartItemModel) i payloadem JSON w cache.

Kazda droga do agregatu idzie przez Cart.restore, wiec niezmienniki sa
sprawdzane przy kazdym odczycie, takze przy trafieniu w cache.
"""
import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List

from cart_service.data.models import CartItemModel, CartModel
from cart_service.domain.cart import Cart, CartItem
from cart_service.domain.errors import CartValidationError

PAYLOAD_VERSION = 1


def _aware(value: datetime) -> datetime:
    # sqlite oddaje naive datetime
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =====================================================
# DURABLE STORE
# =====================================================
def record_to_cart(record: CartModel) -> Cart:
    return Cart.restore(
        id=record.id,
        user_id=record.user_id,
        session_id=record.session_id,
        items=[
            CartItem(
                id=i.id,
                cart_id=i.cart_id,
                product_id=i.product_id,
                quantity=i.quantity,
                price=Decimal(str(i.price)),
                added_at=_aware(i.added_at),
            )
            for i in record.items
        ],
        created_at=_aware(record.created_at),
        updated_at=_aware(record.updated_at),
        version=record.version,
    )


def cart_to_record(cart: Cart, version: int) -> CartModel:
    return CartModel(
        id=cart.id,
        user_id=cart.user_id,
        session_id=cart.session_id,
        version=version,
        created_at=cart.created_at,
        updated_at=cart.updated_at,
        items=item_records(cart),
    )


def item_records(cart: Cart) -> List[CartItemModel]:
    return [
        CartItemModel(
            id=i.id,
            cart_id=cart.id,
            product_id=i.product_id,
            quantity=i.quantity,
            price=i.price,
            added_at=i.added_at,
        )
        for i in cart.items
    ]


def with_version(cart: Cart, version: int) -> Cart:
    """Kopia agregatu po udanym zapisie, z nowa wersja z bazy."""
    return Cart.restore(
        id=cart.id,
        user_id=cart.user_id,
        session_id=cart.session_id,
        items=cart.items,
        created_at=cart.created_at,
        updated_at=cart.updated_at,
        version=version,
    )


# =====================================================
# CACHE PAYLOAD
# =====================================================
def cart_to_payload(cart: Cart) -> str:
    data = {
        "v": PAYLOAD_VERSION,
        "id": cart.id,
        "user_id": cart.user_id,
        "session_id": cart.session_id,
        "version": cart.version,
        "created_at": cart.created_at.isoformat(),
        "updated_at": cart.updated_at.isoformat(),
        "items": [
            {
                "id": i.id,
                "cart_id": i.cart_id,
                "product_id": i.product_id,
                "quantity": i.quantity,
                "price": str(i.price),
                "added_at": i.added_at.isoformat(),
            }
            for i in cart.items
        ],
    }
    return json.dumps(data, separators=(",", ":"))


def payload_to_cart(raw: str | bytes) -> Cart:
    """
    Odtwarza Cart z payloadu cache.
    Kazdy problem (zly albo zbyt gleboko zagniezdzony JSON, brakujace pola,
    zle typy, zlamane niezmienniki)
    konczy sie CartValidationError.
    """
    try:
        data: Dict[str, Any] = json.loads(raw)
        if data.get("v") != PAYLOAD_VERSION:
            raise CartValidationError(f"Unsupported cart payload version: {data.get('v')!r}")

        items = [
            CartItem(
                id=i["id"],
                cart_id=i["cart_id"],
                product_id=i["product_id"],
                quantity=i["quantity"],
                price=Decimal(i["price"]),
                added_at=_aware(datetime.fromisoformat(i["added_at"])),
            )
            for i in data["items"]
        ]
        return Cart.restore(
            id=data["id"],
            user_id=data.get("user_id"),
            session_id=data.get("session_id"),
            items=items,
            created_at=_aware(datetime.fromisoformat(data["created_at"])),
            updated_at=_aware(datetime.fromisoformat(data["updated_at"])),
            version=data["version"],
        )
    except CartValidationError:
        raise
    except (ValueError, TypeError, KeyError, AttributeError, ArithmeticError, RecursionError) as e:
        raise CartValidationError(f"Corrupted cart payload: {e}")
