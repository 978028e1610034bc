"""Cart sync endpoint."""
import logging
from typing import List

from fastapi import APIRouter
from pydantic import BaseModel

from storefront.services.cart.models import CartItem
from storefront.services.cart.sessions import save_session_cart

router = APIRouter()
logger = logging.getLogger(__name__)


class CartSyncRequest(BaseModel):
    items: List[CartItem] = []


@router.put("/api/food/cart/{session_id}")
async def sync_cart(session_id: str, body: CartSyncRequest):
    """Replace the server copy of a guest's cart."""
    save_session_cart(session_id, body.items)
    logger.debug(f"[CART] Session {session_id} synced - {len(body.items)} items")
    return {"success": True, "data": {"itemCount": sum(item.quantity for item in body.items)}}
