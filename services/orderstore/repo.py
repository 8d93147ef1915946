"""SQLAlchemy repository for the order store.

Two tables mirror what the storefront writes: ``orders`` (the header,
with the shipping address as JSON) and ``order_items`` (line items linked
to a header). Ids and ``created_at`` are generated here, never by the
client. Deleting a header deletes its items.

Database connection parameters are configured via ``DATABASE_URL`` or the
``DB_*`` environment variables.
"""

import os
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Numeric, String, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, relationship

DB_HOST = os.getenv("DB_HOST", "orderstore-db")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "orderstore")
DB_USER = os.getenv("DB_USER", "orderstore_user")
DB_PASSWORD = os.getenv("DB_PASSWORD", "orderstore-pass")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+psycopg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
engine = create_engine(DATABASE_URL, pool_pre_ping=True)


class Base(DeclarativeBase):
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    """Order header row.

    Attributes:
        id: UUID string generated on insert.
        user_id: Identifier of the customer who placed the order.
        shipping_address: camelCase shipping fields plus email.
        payment_method: ``credit-card`` or ``cash``.
        total_amount: Order total, two decimal places.
        status: ``pending`` on insert; later transitions happen elsewhere.
        created_at: Server-side insert time.
    """

    __tablename__ = "orders"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    shipping_address: Mapped[dict] = mapped_column(JSON, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(32), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    items: Mapped[list["OrderItem"]] = relationship(back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    order: Mapped[Order] = relationship(back_populates="items")


def init_db() -> None:
    Base.metadata.create_all(engine)


@contextmanager
def get_session():
    """Context manager that yields a SQLAlchemy session.

    Yields:
        Session: Active SQLAlchemy session connected to the database.
    """
    with Session(engine, expire_on_commit=False) as s:
        yield s


class OrderStoreRepo:
    """Insert, query and delete orders and their items."""

    def insert_order(self, **fields) -> Order:
        with get_session() as s:
            row = Order(**fields)
            s.add(row)
            s.commit()
            return row

    def insert_items(self, rows: list[dict]) -> list[OrderItem]:
        """Insert line items in one transaction.

        Raises:
            LookupError: If any ``order_id`` has no header; nothing is written.
        """
        with get_session() as s:
            order_ids = {r["order_id"] for r in rows}
            found = set(s.scalars(select(Order.id).where(Order.id.in_(order_ids))))
            missing = order_ids - found
            if missing:
                raise LookupError(sorted(missing)[0])
            items = [OrderItem(**r) for r in rows]
            s.add_all(items)
            s.commit()
            return items

    def list_orders(self, user_id: str | None = None, newest_first: bool = True) -> list[Order]:
        with get_session() as s:
            stmt = select(Order)
            if user_id is not None:
                stmt = stmt.where(Order.user_id == user_id)
            order_by = Order.created_at.desc() if newest_first else Order.created_at.asc()
            return list(s.scalars(stmt.order_by(order_by)))

    def list_items(self, order_id: str) -> list[OrderItem]:
        with get_session() as s:
            return list(s.scalars(select(OrderItem).where(OrderItem.order_id == order_id)))

    def delete_order(self, order_id: str) -> int:
        """Delete a header and its items; returns the number of headers removed."""
        with get_session() as s:
            row = s.get(Order, order_id)
            if row is None:
                return 0
            s.delete(row)
            s.commit()
            return 1
