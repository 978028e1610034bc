"""Server copies of guest carts, keyed by checkout session id."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel

from storefront.services.cart.models import CartItem

logger = logging.getLogger(__name__)


class SessionCart(BaseModel):
    items: List[CartItem] = []
    updated_at: datetime


# Module-level session storage (persists across requests)
# In production, use Redis or similar
_session_carts: Dict[str, SessionCart] = {}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def save_session_cart(
    session_id: str, items: List[CartItem], now: Optional[datetime] = None
) -> SessionCart:
    """Replace a session's cart and mark it as freshly used."""
    cart = SessionCart(items=list(items), updated_at=now or _utcnow())
    _session_carts[session_id] = cart
    return cart


def get_session_cart(session_id: str) -> List[CartItem]:
    cart = _session_carts.get(session_id)
    return list(cart.items) if cart else []


def clear_session_carts() -> None:
    _session_carts.clear()


def prune_session_carts(max_age_minutes: int, now: Optional[datetime] = None) -> List[str]:
    """Drop carts not synced within ``max_age_minutes``; returns the evicted ids."""
    cutoff = (now or _utcnow()) - timedelta(minutes=max_age_minutes)
    expired = [
        session_id for session_id, cart in _session_carts.items() if cart.updated_at < cutoff
    ]
    for session_id in expired:
        del _session_carts[session_id]
    if expired:
        logger.info(f"[CART] Evicted {len(expired)} idle session carts")
    return expired
