#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w Base.metadata

from cart_service.data.models.cart import CartModel
from cart_service.data.models.cart_item import CartItemModel

__all__ = ["CartModel", "CartItemModel"]
