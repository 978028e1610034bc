"""Payment verification and gateway notification endpoints."""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from storefront.core.dependencies import get_order_service, get_signer
from storefront.services.payments.models import PaymentStatus
from storefront.services.payments.payhere import PayHereSigner
from storefront.services.persistence.orders import OrderPersistenceService
from storefront.services.pricing.money import format_amount

router = APIRouter()
logger = logging.getLogger(__name__)


class VerifyPaymentRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    order_id: int
    payment_id: str = ""


@router.post("/api/food/payment/verify")
async def verify_payment(
    body: VerifyPaymentRequest,
    orders: OrderPersistenceService = Depends(get_order_service),
):
    """Report the payment status recorded for an order."""
    order = await orders.get_order_by_id(body.order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")

    status = PaymentStatus.parse(order.payment_status or PaymentStatus.PENDING.value)
    if body.payment_id and order.payment_id and body.payment_id != order.payment_id:
        logger.warning(
            f"[PAYMENT VERIFY] Payment id mismatch for order {order.id} - "
            f"client: {body.payment_id}, recorded: {order.payment_id}"
        )
        status = PaymentStatus.UNKNOWN

    logger.info(f"[PAYMENT VERIFY] Order {order.id} -> {status.value}")
    return {"success": True, "data": {"paymentStatus": status.value}}


@router.post("/api/webhooks/payhere")
async def payhere_notification(
    request: Request,
    orders: OrderPersistenceService = Depends(get_order_service),
    signer: PayHereSigner = Depends(get_signer),
):
    """Asynchronous payment notification from PayHere (form-encoded)."""
    form = await request.form()
    data = dict(form)
    order_reference = str(data.get("order_id", ""))
    logger.info(
        f"[PAYHERE] Notification received - order: {order_reference}, "
        f"status_code: {data.get('status_code')}, payment: {data.get('payment_id')}"
    )

    if not signer.verify_notification(data):
        logger.warning(f"[PAYHERE] Invalid signature for order {order_reference}")
        raise HTTPException(status_code=401, detail="Invalid signature")

    order = await orders.get_order_by_number(order_reference)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")

    if str(data.get("payhere_amount", "")) != format_amount(order.total_price):
        logger.error(
            f"[PAYHERE] Amount mismatch for order {order.id} - "
            f"notified: {data.get('payhere_amount')}, expected: {format_amount(order.total_price)}"
        )
        raise HTTPException(status_code=400, detail="Amount mismatch")

    status = PaymentStatus.from_status_code(data.get("status_code"))
    await orders.record_payment(order, str(data.get("payment_id", "")), status)
    return {"success": True}
