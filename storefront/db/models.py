"""Database models."""
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Order(Base):
    """Food order placed through the guest checkout."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, unique=True, index=True, nullable=True)
    idempotency_key = Column(String, unique=True, index=True, nullable=False)
    request_fingerprint = Column(String(64), nullable=True)  # sha256 of the create-order request
    status = Column(String, default="pending", nullable=False)  # pending, awaiting-payment, payment-timeout, confirmed, cancelled

    guest_first_name = Column(String, nullable=False)
    guest_last_name = Column(String, nullable=False)
    guest_email = Column(String, index=True, nullable=False)
    guest_phone = Column(String, nullable=False)

    order_type = Column(String, nullable=False)  # dine-in, takeaway
    table_number = Column(String, nullable=True)
    pickup_minutes = Column(Integer, nullable=True)
    special_instructions = Column(Text, nullable=True)

    payment_method = Column(String, nullable=False)  # cash, card
    payment_status = Column(String, nullable=True)  # Pending, Paid, Failed, Cancelled, Chargedback
    payment_id = Column(String, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    subtotal = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), default=0, nullable=False)
    tax = Column(Numeric(10, 2), default=0, nullable=False)
    service_fee = Column(Numeric(10, 2), default=0, nullable=False)
    delivery_fee = Column(Numeric(10, 2), default=0, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    offer_id = Column(String, ForeignKey("offers.id"), nullable=True)
    offer_code = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    offer = relationship("Offer")


class OrderItem(Base):
    """Order line item."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    food_id = Column(String, nullable=False)
    item_name = Column(String, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    category = Column(String, nullable=True)

    # Relationships
    order = relationship("Order", back_populates="items")


class Offer(Base):
    """Promotional offer."""

    __tablename__ = "offers"

    id = Column(String, primary_key=True)
    code = Column(String, unique=True, index=True, nullable=False)
    title = Column(String, nullable=True)
    type = Column(String, nullable=False)  # percentage, fixed_amount, free_item
    value = Column(Numeric(10, 2), default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    max_redemptions = Column(Integer, nullable=True)
    redemptions = Column(Integer, default=0, nullable=False)
    min_orders = Column(Integer, nullable=True)
    free_item_id = Column(String, nullable=True)
