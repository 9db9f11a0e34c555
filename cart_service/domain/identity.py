# cart_service/domain/identity.py
from dataclasses import dataclass

from cart_service.domain.errors import InvalidRequestError

USER = "user"
SESSION = "session"


@dataclass(frozen=True)
class OwnerRef:
    """Klucz wyszukiwania koszyka: user albo session, nigdy oba."""

    kind: str
    value: str

    @classmethod
    def user(cls, user_id: str) -> "OwnerRef":
        return cls(USER, user_id)

    @classmethod
    def session(cls, session_id: str) -> "OwnerRef":
        return cls(SESSION, session_id)

    @property
    def is_user(self) -> bool:
        return self.kind == USER

    def __str__(self) -> str:
        return f"{self.kind}:{self.value}"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def resolve_owner(user_id: str | None = None, session_id: str | None = None) -> OwnerRef:
    """userId ma pierwszenstwo, potem sessionId, inaczej blad."""
    user_id = _clean(user_id)
    if user_id:
        return OwnerRef.user(user_id)

    session_id = _clean(session_id)
    if session_id:
        return OwnerRef.session(session_id)

    raise InvalidRequestError("Identity required: userId or sessionId must be provided")


def owner_of(cart) -> OwnerRef:
    if cart.user_id:
        return OwnerRef.user(cart.user_id)
    return OwnerRef.session(cart.session_id)
