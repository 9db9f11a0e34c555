# cart_service/services/transfer_service.py
from cart_service.domain.cart import Cart
from cart_service.domain.errors import InvalidRequestError
from cart_service.domain.identity import OwnerRef
from cart_service.repos.cart_repo import CartRepo
from cart_service.services.cart_cache import CartCache
from cart_service.services.cart_service import CartResult
from cart_service.utils.logging import get_logger
from cart_service.utils.retry import conflict_retry

logger = get_logger(__name__)


class TransferService:
    """
    Przeniesienie koszyka sesyjnego na uzytkownika przy logowaniu.

    1. brak koszyka sesji          -> koszyk usera (istniejacy albo nowy, pusty)
    2. koszyk sesji, brak usera    -> transfer_to_user, te same pozycje
    3. oba koszyki                 -> merge do koszyka usera, koszyk sesji usuniety

    Przy duplikatach wygrywa cena z koszyka usera, ilosci sie sumuja.
    Cache ruszamy dopiero po udanym commicie w bazie.
    """

    def __init__(self, repo: CartRepo, cache: CartCache):
        self.repo = repo
        self.cache = cache

    def transfer(self, user_id: str | None, session_id: str | None) -> CartResult:
        user_id = (user_id or "").strip()
        session_id = (session_id or "").strip()
        if not user_id:
            raise InvalidRequestError("userId is required for cart transfer")
        if not session_id:
            raise InvalidRequestError("sessionId is required for cart transfer")

        user = OwnerRef.user(user_id)
        session = OwnerRef.session(session_id)

        def evict(retry_state) -> None:
            logger.info(f"Version conflict while transferring {session} -> {user}, retrying")
            self.cache.invalidate(None, user, session)

        @conflict_retry(before_sleep=evict)
        def attempt() -> CartResult:
            #zawsze z bazy, cache moze byc nieaktualny
            session_cart = self.repo.find_by_session_id(session_id)
            user_cart = self.repo.find_by_user_id(user_id)

            if session_cart is None:
                return self._ensure_user_cart(user, user_cart)
            if user_cart is None:
                return self._transfer(user, session, session_cart)
            return self._merge(user, session, user_cart, session_cart)

        return attempt()

    def _ensure_user_cart(self, user: OwnerRef, user_cart: Cart | None) -> CartResult:
        if user_cart is not None:
            logger.info(f"No session cart to transfer, {user} keeps cart {user_cart.id}")
            self.cache.store(user_cart)
            return CartResult(user_cart, "Cart loaded")

        saved = self.repo.save(Cart.create_for_user(user.value))
        self.cache.store(saved)
        logger.info(f"No session cart to transfer, created cart {saved.id} for {user}")
        return CartResult(saved, "A new cart was created")

    def _transfer(self, user: OwnerRef, session: OwnerRef, session_cart: Cart) -> CartResult:
        session_cart.transfer_to_user(user.value)
        saved = self.repo.save(session_cart)

        self.cache.invalidate(None, session)
        self.cache.store(saved)

        logger.info(f"Cart {saved.id} transferred from {session} to {user}")
        return CartResult(saved, "Cart transferred")

    def _merge(self, user: OwnerRef, session: OwnerRef, user_cart: Cart, session_cart: Cart) -> CartResult:
        user_cart.merge_with(session_cart)
        saved = self.repo.save_merged(user_cart, session_cart)

        self.cache.invalidate(session_cart.id, session)
        self.cache.store(saved)

        logger.info(
            f"Session cart {session_cart.id} merged into {saved.id} for {user}: "
            f"{saved.get_unique_item_count()} products, {saved.get_total_items()} items"
        )
        return CartResult(saved, "Carts merged")
