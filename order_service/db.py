"""
db.py — Persistence schema and database handle

Orders and their line items live in a relational database reached through
SQLAlchemy. Product ids on order items are plain strings: products belong to
another service, so there is no foreign key to enforce them.
"""

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import List

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DATABASE_URL
from .models import PRICE_SCALE, PRODUCT_ID_MAX_LENGTH, OrderStatus

log = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, PRICE_SCALE))
    total_items: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(16), default=OrderStatus.PENDING.value, index=True)
    paid: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )
    # Bumped on every update, used as optimistic concurrency token
    version: Mapped[int] = mapped_column(Integer, default=1)

    items: Mapped[List["OrderItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), index=True)
    product_id: Mapped[str] = mapped_column(String(PRODUCT_ID_MAX_LENGTH))
    price: Mapped[Decimal] = mapped_column(Numeric(14, PRICE_SCALE))
    quantity: Mapped[int] = mapped_column(Integer)

    order: Mapped[Order] = relationship(back_populates="items")


class Database:
    """
    Owns the SQLAlchemy engine and hands out transactional sessions.

    The process creates one instance at startup, calls `init()` once and
    `close()` on shutdown. Components receive the instance via their
    constructor instead of reaching for a module-level global.

    Args:
        url (str): SQLAlchemy database URL.
    """

    def __init__(self, url: str = DATABASE_URL):
        kwargs = {}
        if url.startswith("sqlite"):
            # FastAPI runs sync endpoints in a thread pool
            kwargs["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
        self.url = url
        self.engine = create_engine(url, **kwargs)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)

    def init(self):
        """Creates missing tables. Safe to call on every startup."""
        Base.metadata.create_all(bind=self.engine)
        log.info(f"Database connected ({self.engine.url.render_as_string(hide_password=True)}).")

    @contextmanager
    def session(self):
        """
        Yields a session wrapped in a transaction.

        Commits when the block finishes, rolls back on any exception so no
        partial writes survive.
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self):
        self.engine.dispose()
        log.info("Database connections closed.")
