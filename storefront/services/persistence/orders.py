"""Order persistence service."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.db.models import Order, OrderItem, utcnow
from storefront.services.ordering.models import OrderStatus
from storefront.services.payments.models import PaymentStatus

logger = logging.getLogger(__name__)

# Orders that never turned into a real purchase don't count toward loyalty gates
NON_COUNTING_STATUSES = (
    OrderStatus.CANCELLED.value,
    OrderStatus.PAYMENT_TIMEOUT.value,
    OrderStatus.AWAITING_PAYMENT.value,
)


def format_order_number(order_id: int) -> str:
    return f"FO-{order_id:06d}"


class OrderPersistenceService:
    """Service for persisting order data."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_order(
        self,
        idempotency_key: str,
        order_fields: Dict[str, Any],
        items: List[Dict[str, Any]],
    ) -> Tuple[Order, bool]:
        """
        Create an order with its items, or return the one already created
        under the same idempotency key.

        Returns:
            Tuple of (order, created)
        """
        existing = await self.get_order_by_idempotency_key(idempotency_key)
        if existing:
            logger.info(
                f"[ORDER STORE] Idempotent replay for key {idempotency_key} -> order {existing.id}"
            )
            return existing, False

        order = Order(idempotency_key=idempotency_key, **order_fields)
        order.items = [
            OrderItem(
                food_id=item["food_id"],
                item_name=item["item_name"],
                unit_price=item["unit_price"],
                quantity=item.get("quantity", 1),
                category=item.get("category"),
            )
            for item in items
        ]
        self.db.add(order)
        try:
            await self.db.flush()
            order.order_number = format_order_number(order.id)
            await self.db.commit()
        except IntegrityError:
            # Concurrent submission with the same key won the race
            await self.db.rollback()
            existing = await self.get_order_by_idempotency_key(idempotency_key)
            if existing is None:
                raise
            return existing, False

        return await self.get_order_by_id(order.id), True

    async def get_order_by_id(self, order_id: int) -> Optional[Order]:
        """Get order by ID with items."""
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.items))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_order_by_number(self, order_number: str) -> Optional[Order]:
        result = await self.db.execute(
            select(Order)
            .where(Order.order_number == order_number)
            .options(selectinload(Order.items))
        )
        return result.scalar_one_or_none()

    async def get_order_by_idempotency_key(self, idempotency_key: str) -> Optional[Order]:
        result = await self.db.execute(
            select(Order)
            .where(Order.idempotency_key == idempotency_key)
            .options(selectinload(Order.items))
        )
        return result.scalar_one_or_none()

    async def count_orders_for_email(self, email: str) -> int:
        """Lifetime count of real orders placed with this email."""
        result = await self.db.execute(
            select(func.count(Order.id)).where(
                func.lower(Order.guest_email) == email.strip().lower(),
                Order.status.not_in(NON_COUNTING_STATUSES),
            )
        )
        return result.scalar() or 0

    async def record_payment(
        self, order: Order, payment_id: str, payment_status: PaymentStatus
    ) -> Order:
        """
        Store the gateway's verdict for an order.

        A Paid verdict moves an awaiting-payment order to pending so the
        kitchen picks it up. Nothing else changes the order status.
        """
        order.payment_id = payment_id
        order.payment_status = payment_status.value
        if payment_status == PaymentStatus.PAID:
            order.paid_at = utcnow()
            if order.status in (
                OrderStatus.AWAITING_PAYMENT.value,
                OrderStatus.PAYMENT_TIMEOUT.value,
            ):
                order.status = OrderStatus.PENDING.value
        await self.db.commit()
        await self.db.refresh(order)
        logger.info(
            f"[ORDER STORE] Payment recorded - order: {order.id}, "
            f"payment: {payment_id}, status: {payment_status.value}, order status: {order.status}"
        )
        return order

    async def flag_stale_awaiting_payment(self, created_before: datetime) -> List[int]:
        """
        Mark card orders still awaiting payment since before the cutoff as
        payment-timeout. They are flagged for staff, never cancelled here.

        Returns:
            IDs of the flagged orders
        """
        result = await self.db.execute(
            select(Order.id).where(
                Order.status == OrderStatus.AWAITING_PAYMENT.value,
                Order.created_at < created_before,
            )
        )
        order_ids = list(result.scalars().all())
        if not order_ids:
            return []

        await self.db.execute(
            update(Order)
            .where(
                Order.id.in_(order_ids),
                Order.status == OrderStatus.AWAITING_PAYMENT.value,
            )
            .values(status=OrderStatus.PAYMENT_TIMEOUT.value, updated_at=utcnow())
        )
        await self.db.commit()
        return order_ids
