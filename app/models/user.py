"""ORM model for storefront user accounts."""

import uuid
from typing import NewType

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.mutable import MutableList

from app.models.base import Base, TimestampMixin

# Opaque identifiers owned by the order and catalog subsystems.
OrderId = NewType("OrderId", str)
ProductId = NewType("ProductId", str)

_IdList = MutableList.as_mutable(JSON().with_variant(JSONB(), "postgresql"))


class User(TimestampMixin, Base):
    """
    User account: identity, credential hash, verification state and
    references to orders and wishlist products.

    username and email are stored lowercased and trimmed; password_hash is
    only ever written by the user service after hashing.
    """

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String(255), nullable=False, unique=True, index=True)
    verification_method = Column(String(32), nullable=False, default="email")
    email = Column(String(320), nullable=False, unique=True)
    full_name = Column(String(255), nullable=False, index=True)
    avatar = Column(String(2048), nullable=True, default=None)
    password_hash = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=True, default=None)
    shipping_address = Column(Text, nullable=True, default=None)
    billing_address = Column(Text, nullable=True, default=None)
    orders = Column(_IdList, nullable=False, default=list)
    wishlist = Column(_IdList, nullable=False, default=list)
    otp = Column(Integer, nullable=True)
    otp_expires = Column(DateTime(timezone=True), nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    # SHA-256 of the last issued refresh token; NULL once revoked
    refresh_token = Column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"
