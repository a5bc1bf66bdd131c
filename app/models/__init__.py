"""SQLAlchemy ORM models."""

from app.models.base import Base, TimestampMixin
from app.models.user import OrderId, ProductId, User

__all__ = ["Base", "OrderId", "ProductId", "TimestampMixin", "User"]
