# cart_service/services/cart_service.py
from dataclasses import dataclass
from typing import Callable

from cart_service.domain.cart import Cart
from cart_service.domain.errors import (
    CartNotFoundError,
    CartVersionConflictError,
    InsufficientStockError,
    InvalidRequestError,
    ProductNotFoundError,
)
from cart_service.domain.identity import OwnerRef, resolve_owner
from cart_service.repos.cart_repo import CartRepo
from cart_service.services.cart_cache import CartCache
from cart_service.services.product_client import ProductClient
from cart_service.utils.logging import get_logger
from cart_service.utils.retry import conflict_retry

logger = get_logger(__name__)


@dataclass
class CartResult:
    cart: Cart | None
    message: str | None = None


def new_cart_for(owner: OwnerRef) -> Cart:
    if owner.is_user:
        return Cart.create_for_user(owner.value)
    return Cart.create_for_session(owner.value)


class CartService:
    """
    Use case'y koszyka.
    query (get) tylko odczyt przez cache-aside,
    commands (add, update, remove, clear): load -> mutacja agregatu -> zapis w bazie -> cache.
    """

    def __init__(self, repo: CartRepo, cache: CartCache, product_client: ProductClient):
        self.repo = repo
        self.cache = cache
        self.product_client = product_client

    # =====================================================
    # QUERY
    # =====================================================
    def resolve_cart(self, owner: OwnerRef) -> Cart | None:
        """Cache-aside: cache, przy missie baza i ponowne wypelnienie cache."""
        cart = self.cache.lookup(owner)
        if cart is not None:
            logger.debug(f"Cache hit for {owner} -> cart {cart.id}")
            return cart

        cart = self.repo.find_by_owner(owner)
        if cart is not None:
            logger.debug(f"Cache miss for {owner}, loaded cart {cart.id} from store")
            self.cache.store(cart)
        return cart

    def get_cart(self, user_id: str | None = None, session_id: str | None = None) -> CartResult:
        owner = resolve_owner(user_id, session_id)
        cart = self.resolve_cart(owner)

        #pusty koszyk i brak koszyka to dla klienta to samo
        if cart is None:
            return CartResult(None, "Cart is empty")
        return CartResult(cart, "Cart loaded")

    # =====================================================
    # COMMANDS
    # =====================================================
    def add_item(
        self,
        product_id: str,
        quantity: int,
        user_id: str | None = None,
        session_id: str | None = None,
    ) -> CartResult:
        owner = resolve_owner(user_id, session_id)
        self._validate_quantity(quantity, minimum=1)
        product_id = self._clean_product_id(product_id)

        logger.info(f"Fetching product {product_id} from product-service")
        product = self.product_client.get_product(product_id)
        if product is None or not product.active:
            raise ProductNotFoundError(product_id)

        def mutation(cart: Cart) -> None:
            #sprawdzamy ilosc jaka bedzie w koszyku po dodaniu
            self._ensure_available(product_id, cart.get_item_quantity(product_id) + quantity)
            cart.add_item(product_id, quantity, product.price)

        cart = self._mutate(owner, mutation, create=True)
        logger.info(f"Product {product_id} x{quantity} added to cart {cart.id} ({owner})")
        return CartResult(cart, "Item added to cart")

    def update_item_quantity(
        self,
        product_id: str,
        quantity: int,
        user_id: str | None = None,
        session_id: str | None = None,
    ) -> CartResult:
        owner = resolve_owner(user_id, session_id)
        self._validate_quantity(quantity, minimum=0)
        product_id = self._clean_product_id(product_id)

        def mutation(cart: Cart) -> None:
            if quantity > cart.get_item_quantity(product_id) and cart.has_item(product_id):
                self._ensure_available(product_id, quantity)
            cart.update_item_quantity(product_id, quantity)

        cart = self._mutate(owner, mutation)
        logger.info(f"Product {product_id} quantity set to {quantity} in cart {cart.id}")
        return CartResult(cart, "Item quantity updated")

    def remove_item(
        self,
        product_id: str,
        user_id: str | None = None,
        session_id: str | None = None,
    ) -> CartResult:
        owner = resolve_owner(user_id, session_id)
        cart = self._mutate(owner, lambda c: c.remove_item(product_id))
        logger.info(f"Product {product_id} removed from cart {cart.id}")
        return CartResult(cart, "Item removed from cart")

    def clear_cart(self, user_id: str | None = None, session_id: str | None = None) -> CartResult:
        owner = resolve_owner(user_id, session_id)
        cart = self._mutate(owner, lambda c: c.clear())
        logger.info(f"Cart {cart.id} cleared")
        return CartResult(cart, "Cart cleared")

    # =====================================================
    # INTERNAL
    # =====================================================
    def _mutate(self, owner: OwnerRef, mutation: Callable[[Cart], None], create: bool = False) -> Cart:
        """
        load -> mutacja -> zapis (optimistic locking).
        Przy konflikcie wersji czyscimy cache i kolejne proby czytaja juz prosto z bazy.
        """
        load = self.resolve_cart

        def evict(retry_state) -> None:
            nonlocal load
            exc = retry_state.outcome.exception()
            cart_id = exc.cart_id if isinstance(exc, CartVersionConflictError) else None
            logger.info(f"Version conflict on {owner} (attempt {retry_state.attempt_number}), retrying")
            self.cache.invalidate(cart_id, owner)
            load = self.repo.find_by_owner

        @conflict_retry(before_sleep=evict)
        def attempt() -> Cart:
            cart = load(owner)
            if cart is None:
                if not create:
                    raise CartNotFoundError(str(owner))
                cart = new_cart_for(owner)
                logger.info(f"Creating new cart {cart.id} for {owner}")

            mutation(cart)

            #najpierw baza (zrodlo prawdy), potem cache best-effort
            saved = self.repo.save(cart)
            self.cache.store(saved)
            return saved

        return attempt()

    def _ensure_available(self, product_id: str, quantity: int) -> None:
        check = self.product_client.check_inventory(product_id, quantity)
        if not check.available:
            raise InsufficientStockError(
                f"Insufficient stock for product {product_id}: "
                f"requested {quantity}, available {check.available_quantity}",
                available_quantity=check.available_quantity,
            )

    @staticmethod
    def _clean_product_id(product_id) -> str:
        #agregat trzyma id bez bialych znakow, stan koszyka sprawdzamy po tym samym id
        product_id = str(product_id or "").strip()
        if not product_id:
            raise InvalidRequestError("productId is required")
        return product_id

    @staticmethod
    def _validate_quantity(quantity, minimum: int) -> None:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < minimum:
            raise InvalidRequestError(f"Quantity must be an integer >= {minimum}")
