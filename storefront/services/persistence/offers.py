"""Offer persistence service."""
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import yaml
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.models import Offer as OfferRecord
from storefront.services.offers.models import Offer, OfferTarget

logger = logging.getLogger(__name__)


def to_offer(record: OfferRecord) -> Offer:
    """Convert a database row to the domain model."""
    return Offer(
        id=record.id,
        code=record.code,
        title=record.title,
        type=record.type,
        value=record.value,
        is_active=record.is_active,
        start_date=record.start_date,
        end_date=record.end_date,
        max_redemptions=record.max_redemptions,
        redemptions=record.redemptions or 0,
        target=OfferTarget(min_orders=record.min_orders),
        free_item_id=record.free_item_id,
    )


class OfferPersistenceService:
    """Service for reading offers and counting redemptions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_active(self, now: datetime) -> List[OfferRecord]:
        """Active offers whose window contains ``now`` (naive UTC)."""
        result = await self.db.execute(
            select(OfferRecord)
            .where(
                OfferRecord.is_active.is_(True),
                OfferRecord.start_date <= now,
                OfferRecord.end_date >= now,
            )
            .order_by(OfferRecord.end_date)
        )
        return [
            offer
            for offer in result.scalars().all()
            if offer.max_redemptions is None or offer.redemptions < offer.max_redemptions
        ]

    async def get_by_code(self, code: str) -> Optional[OfferRecord]:
        result = await self.db.execute(
            select(OfferRecord).where(func.upper(OfferRecord.code) == code.strip().upper())
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, offer_id: str) -> Optional[OfferRecord]:
        return await self.db.get(OfferRecord, offer_id)

    async def increment_redemptions(self, offer_id: str) -> None:
        """Count one redemption. Committed together with the order."""
        await self.db.execute(
            update(OfferRecord)
            .where(OfferRecord.id == offer_id)
            .values(redemptions=OfferRecord.redemptions + 1)
        )

    async def seed_from_yaml(self, path: str) -> int:
        """
        Load offers from a YAML file when the table is empty.

        Returns:
            Number of offers inserted
        """
        seed_file = Path(path)
        if not seed_file.exists():
            logger.warning(f"[OFFERS] Seed file not found: {seed_file}")
            return 0

        existing = await self.db.execute(select(func.count(OfferRecord.id)))
        if existing.scalar():
            return 0

        with open(seed_file, "r") as f:
            data = yaml.safe_load(f) or {}

        count = 0
        for raw in data.get("offers", []):
            offer = Offer.model_validate(raw)
            self.db.add(
                OfferRecord(
                    id=offer.id,
                    code=offer.code,
                    title=offer.title,
                    type=offer.type.value,
                    value=offer.value,
                    is_active=offer.is_active,
                    start_date=offer.start_date.replace(tzinfo=None),
                    end_date=offer.end_date.replace(tzinfo=None),
                    max_redemptions=offer.max_redemptions,
                    redemptions=offer.redemptions,
                    min_orders=offer.target.min_orders,
                    free_item_id=offer.free_item_id,
                )
            )
            count += 1
        await self.db.commit()
        logger.info(f"[OFFERS] Seeded {count} offers from {seed_file}")
        return count
