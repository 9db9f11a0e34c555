#cart_service/api/routers/carts.py
from fastapi import APIRouter, Depends, Header, Query, Request

from cart_service.domain.schemas import CartData, CartEnvelope, CartOut, ItemIn, ItemUpdateIn, TransferIn
from cart_service.services.cart_service import CartResult, CartService
from cart_service.services.context import AppContext
from cart_service.services.transfer_service import TransferService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_service(ctx: AppContext = Depends(get_context)) -> CartService:
    return ctx.cart_service


def get_transfer_service(ctx: AppContext = Depends(get_context)) -> TransferService:
    return ctx.transfer_service


class Identity:
    """userId/sessionId z body albo query, naglowki X-User-Id / X-Session-Id jako fallback."""

    def __init__(
        self,
        x_user_id: str | None = Header(None),
        x_session_id: str | None = Header(None),
    ):
        self.header_user_id = x_user_id
        self.header_session_id = x_session_id

    def pick(self, user_id: str | None, session_id: str | None) -> tuple[str | None, str | None]:
        return user_id or self.header_user_id, session_id or self.header_session_id


def envelope(result: CartResult) -> CartEnvelope:
    cart = CartOut.from_cart(result.cart) if result.cart is not None else None
    return CartEnvelope(data=CartData(cart=cart, message=result.message))


@router.post("/items", response_model=CartEnvelope, status_code=201)
def add_item(
    payload: ItemIn,
    identity: Identity = Depends(),
    svc: CartService = Depends(get_service),
):
    user_id, session_id = identity.pick(payload.user_id, payload.session_id)
    return envelope(
        svc.add_item(
            product_id=payload.product_id,
            quantity=payload.quantity,
            user_id=user_id,
            session_id=session_id,
        )
    )


@router.get("", response_model=CartEnvelope)
def get_cart(
    user_id: str | None = Query(None, alias="userId"),
    session_id: str | None = Query(None, alias="sessionId"),
    identity: Identity = Depends(),
    svc: CartService = Depends(get_service),
):
    user_id, session_id = identity.pick(user_id, session_id)
    return envelope(svc.get_cart(user_id=user_id, session_id=session_id))


@router.put("/items", response_model=CartEnvelope)
def update_item(
    payload: ItemUpdateIn,
    identity: Identity = Depends(),
    svc: CartService = Depends(get_service),
):
    user_id, session_id = identity.pick(payload.user_id, payload.session_id)
    return envelope(
        svc.update_item_quantity(
            product_id=payload.product_id,
            quantity=payload.quantity,
            user_id=user_id,
            session_id=session_id,
        )
    )


@router.delete("/items", response_model=CartEnvelope)
def remove_item(
    product_id: str = Query(..., alias="productId", min_length=1),
    user_id: str | None = Query(None, alias="userId"),
    session_id: str | None = Query(None, alias="sessionId"),
    identity: Identity = Depends(),
    svc: CartService = Depends(get_service),
):
    user_id, session_id = identity.pick(user_id, session_id)
    return envelope(svc.remove_item(product_id=product_id, user_id=user_id, session_id=session_id))


@router.delete("", response_model=CartEnvelope)
def clear_cart(
    user_id: str | None = Query(None, alias="userId"),
    session_id: str | None = Query(None, alias="sessionId"),
    identity: Identity = Depends(),
    svc: CartService = Depends(get_service),
):
    user_id, session_id = identity.pick(user_id, session_id)
    return envelope(svc.clear_cart(user_id=user_id, session_id=session_id))


@router.post("/transfer", response_model=CartEnvelope)
def transfer_cart(
    payload: TransferIn,
    svc: TransferService = Depends(get_transfer_service),
):
    return envelope(svc.transfer(payload.user_id, payload.session_id))
