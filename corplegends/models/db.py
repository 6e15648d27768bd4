"""
SQLAlchemy ORM models for persistent storage.

Storage is a namespaced key-value blob store: every persisted value is an
opaque serialized JSON document addressed by (namespace, key).
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class StateBlobDB(Base):
    """
    One persisted value.

    Namespaces in use: user_state, card_overrides, global_assets,
    roster_cache, trade_offers.
    """

    __tablename__ = "state_blobs"
    __table_args__ = (UniqueConstraint("namespace", "key", name="uq_namespace_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    namespace: Mapped[str] = mapped_column(String(64), index=True)
    key: Mapped[str] = mapped_column(String(255), index=True)
    value: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<StateBlobDB(namespace={self.namespace}, key={self.key})>"
