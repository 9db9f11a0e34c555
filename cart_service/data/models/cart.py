# cart_service/data/models/cart.py
from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from cart_service.data.database import Base


class CartModel(Base):
    __tablename__ = "carts"

    id = Column(String(36), primary_key=True)
    #dokladnie jeden wlasciciel, unique zeby nie powstaly dwa koszyki dla jednego ownera
    user_id = Column(String(255), nullable=True, unique=True, index=True)
    session_id = Column(String(255), nullable=True, unique=True, index=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    items = relationship(
        "CartItemModel",
        back_populates="cart",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint(
            "(user_id IS NOT NULL AND session_id IS NULL) "
            "OR (user_id IS NULL AND session_id IS NOT NULL)",
            name="ck_cart_single_owner",
        ),
    )
