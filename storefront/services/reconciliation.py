"""Reconciliation of card orders whose payment never arrived."""
import asyncio
import logging
from datetime import timedelta
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.db.models import utcnow
from storefront.services.cart.sessions import prune_session_carts
from storefront.services.persistence.orders import OrderPersistenceService

logger = logging.getLogger(__name__)


async def sweep_awaiting_payment(db: AsyncSession, timeout_minutes: int) -> List[int]:
    """Flag awaiting-payment orders older than the timeout as payment-timeout."""
    cutoff = utcnow() - timedelta(minutes=timeout_minutes)
    flagged = await OrderPersistenceService(db).flag_stale_awaiting_payment(cutoff)
    if flagged:
        logger.warning(
            f"[RECONCILE] Flagged {len(flagged)} unpaid card orders as payment-timeout: {flagged}"
        )
    return flagged


async def run_reconciliation_loop(
    session_factory: async_sessionmaker,
    timeout_minutes: int,
    interval_seconds: int,
    cart_ttl_minutes: int,
) -> None:
    """Run the sweep forever; cancelled on application shutdown."""
    logger.info(
        f"[RECONCILE] Sweep started - timeout: {timeout_minutes}m, interval: {interval_seconds}s"
    )
    while True:
        try:
            async with session_factory() as db:
                await sweep_awaiting_payment(db, timeout_minutes)
            prune_session_carts(cart_ttl_minutes)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                f"[RECONCILE] Sweep failed - Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
        await asyncio.sleep(interval_seconds)
