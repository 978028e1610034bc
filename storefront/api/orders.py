"""Food order API endpoints."""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response

from storefront.core.dependencies import get_intake_service, get_order_service
from storefront.db.models import Order
from storefront.services.ordering.intake import (
    CreateOrderRequest,
    OrderIntakeService,
    OrderRejectedError,
)
from storefront.services.persistence.orders import OrderPersistenceService
from storefront.services.pricing.money import format_amount

router = APIRouter()
logger = logging.getLogger(__name__)


def serialize_order(order: Order) -> Dict[str, Any]:
    """Order as returned by the tracking endpoint."""
    return {
        "id": order.id,
        "orderNumber": order.order_number,
        "status": order.status,
        "paymentMethod": order.payment_method,
        "paymentStatus": order.payment_status,
        "orderType": order.order_type,
        "tableNumber": order.table_number,
        "pickupMinutes": order.pickup_minutes,
        "subtotal": format_amount(order.subtotal),
        "discount": format_amount(order.discount),
        "tax": format_amount(order.tax),
        "serviceFee": format_amount(order.service_fee),
        "deliveryFee": format_amount(order.delivery_fee),
        "totalPrice": format_amount(order.total_price),
        "offerCode": order.offer_code,
        "createdAt": order.created_at.isoformat() if order.created_at else None,
        "items": [
            {
                "foodId": item.food_id,
                "name": item.item_name,
                "price": format_amount(item.unit_price),
                "quantity": item.quantity,
                "category": item.category,
            }
            for item in order.items
        ],
    }


@router.post("/api/food/orders", status_code=201)
async def create_order(
    body: CreateOrderRequest,
    request: Request,
    response: Response,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    intake: OrderIntakeService = Depends(get_intake_service),
):
    """Create a food order (idempotent per key)."""
    logger.info(
        f"[ORDERS] Create request - items: {len(body.items)}, method: {body.payment_method.value}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )

    try:
        order, created, payment_payload = await intake.place_order(body, idempotency_key)
    except OrderRejectedError as e:
        logger.info(f"[ORDERS] Rejected ({e.status_code}): {e.message}")
        raise HTTPException(
            status_code=e.status_code,
            detail={"message": e.message, "fieldErrors": e.field_errors},
        )
    except Exception as e:
        logger.error(
            f"[ORDERS] Error creating order - Error: {type(e).__name__}: {str(e)}",
            exc_info=True,
        )
        raise HTTPException(status_code=500, detail="Failed to create order")

    if not created:
        response.status_code = 200

    payload: Dict[str, Any] = {
        "success": True,
        "data": {
            "id": order.id,
            "orderNumber": order.order_number,
            "status": order.status,
            "totalPrice": format_amount(order.total_price),
        },
    }
    if payment_payload:
        payload["payment"] = {"payhere": payment_payload}
    return payload


@router.get("/api/food/orders/{order_id}")
async def get_order(
    order_id: int,
    orders: OrderPersistenceService = Depends(get_order_service),
):
    """Order tracking."""
    order = await orders.get_order_by_id(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return {"success": True, "data": serialize_order(order)}
