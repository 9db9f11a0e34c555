# cart_service/services/cart_cache.py
import redis
from redis.exceptions import RedisError

from cart_service.data.mappers import cart_to_payload, payload_to_cart
from cart_service.domain.cart import Cart
from cart_service.domain.errors import CartValidationError
from cart_service.domain.identity import OwnerRef, owner_of
from cart_service.utils.logging import get_logger
from cart_service.utils.retry import redis_retry
from cart_service.utils.settings import (
    CACHE_CART_TTL,
    CACHE_KEY_PREFIX,
    CACHE_SESSION_TTL,
    CACHE_USER_TTL,
    REDIS_TIMEOUT_SECONDS,
    REDIS_URL,
)

logger = get_logger(__name__)

#dwa poziomy cache-aside:
#  cart:user:<userId>       -> cartId         (TTL 1h)
#  cart:session:<sessionId> -> cartId         (TTL 5 min)
#  cart:cart:<cartId>       -> payload JSON   (TTL 30 min)
#cache jest tylko pochodna bazy, mozna go w kazdej chwili wyczyscic


class CartCache:
    """
    -wskazniki owner -> cartId
    -payload koszyka (zawsze odtwarzany przez Cart.restore)
    -lookup/store/invalidate nigdy nie rzucaja, blad redis = log i dalej z baza
    """

    def __init__(
        self,
        client: redis.Redis,
        key_prefix: str = CACHE_KEY_PREFIX,
        user_ttl: int = CACHE_USER_TTL,
        session_ttl: int = CACHE_SESSION_TTL,
        cart_ttl: int = CACHE_CART_TTL,
    ):
        self.redis = client
        self.key_prefix = key_prefix
        self.user_ttl = user_ttl
        self.session_ttl = session_ttl
        self.cart_ttl = cart_ttl

    @classmethod
    def from_url(cls, url: str | None = None, timeout: float = REDIS_TIMEOUT_SECONDS) -> "CartCache":
        client = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        return cls(client)

    # =====================================================
    # KEYS
    # =====================================================
    def owner_key(self, owner: OwnerRef) -> str:
        return f"{self.key_prefix}{owner.kind}:{owner.value}"

    def cart_key(self, cart_id: str) -> str:
        return f"{self.key_prefix}cart:{cart_id}"

    def _owner_ttl(self, owner: OwnerRef) -> int:
        return self.user_ttl if owner.is_user else self.session_ttl

    # =====================================================
    # RAW OPERATIONS (rzucaja RedisError)
    # =====================================================
    def get_cart_id(self, owner: OwnerRef) -> str | None:
        return self.redis.get(self.owner_key(owner))

    @redis_retry()
    def set_cart_id(self, owner: OwnerRef, cart_id: str) -> None:
        #SETEX cart:user:42 3600 <cartId>
        self.redis.setex(self.owner_key(owner), self._owner_ttl(owner), cart_id)

    @redis_retry()
    def delete_cart_id(self, owner: OwnerRef) -> None:
        self.redis.delete(self.owner_key(owner))

    def get_cart(self, cart_id: str) -> Cart | None:
        """None przy braku klucza albo uszkodzonym payloadzie."""
        raw = self.redis.get(self.cart_key(cart_id))
        if raw is None:
            return None
        try:
            return payload_to_cart(raw)
        except CartValidationError as e:
            logger.warning(f"Dropping corrupted cache entry for cart {cart_id}: {e.message}")
            self.redis.delete(self.cart_key(cart_id))
            return None

    @redis_retry()
    def set_cart(self, cart: Cart) -> None:
        self.redis.setex(self.cart_key(cart.id), self.cart_ttl, cart_to_payload(cart))

    @redis_retry()
    def delete_cart(self, cart_id: str) -> None:
        self.redis.delete(self.cart_key(cart_id))

    def ping(self) -> bool:
        return bool(self.redis.ping())

    def close(self) -> None:
        self.redis.close()

    # =====================================================
    # BEST-EFFORT (nigdy nie rzucaja)
    # =====================================================
    def lookup(self, owner: OwnerRef) -> Cart | None:
        try:
            cart_id = self.get_cart_id(owner)
            if not cart_id:
                return None

            cart = self.get_cart(cart_id)
            if cart is None:
                return None

            #wskaznik moze byc nieaktualny po transferze
            if owner_of(cart) != owner:
                logger.info(f"Cache pointer {owner} -> {cart_id} is stale, ignoring")
                return None

            return cart
        except RedisError as e:
            logger.warning(f"Cache read failed for {owner}, falling back to store: {e}")
            return None

    def store(self, cart: Cart) -> None:
        try:
            self.set_cart(cart)
            self.set_cart_id(owner_of(cart), cart.id)
        except RedisError as e:
            logger.warning(f"Cache write failed for cart {cart.id}: {e}")

    def invalidate(self, cart_id: str | None = None, *owners: OwnerRef) -> None:
        try:
            if cart_id:
                self.delete_cart(cart_id)
            for owner in owners:
                self.delete_cart_id(owner)
        except RedisError as e:
            logger.warning(f"Cache invalidation failed for cart {cart_id}: {e}")
