import logging
from datetime import date
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.config import settings
from app.models.purchase.po_number_sequence import PONumberSequence
from app.models.purchase.purchase_order import PurchaseOrder

logger = logging.getLogger(__name__)

def format_po_number(prefix: str, on: date, sequence: int) -> str:
    return f"{prefix}-{on.strftime('%Y%m%d')}-{sequence:04d}"

class PONumberService:
    """
    Allocates purchase order numbers of the form PO-YYYYMMDD-NNNN.

    The per-day counter row is read FOR UPDATE and carries a version column,
    so two transactions allocating from the same day either serialize on the
    lock or one of them fails at flush/commit (StaleDataError or
    IntegrityError). Callers are expected to roll back and retry.

    The counter never hands out a number at or below the highest one already
    issued for the day, so a missing or lagging counter row catches up with
    the purchase_orders table instead of colliding on every retry.
    """

    def __init__(self, session: AsyncSession, prefix: Optional[str] = None):
        self.session = session
        self.prefix = prefix or settings.PO_NUMBER_PREFIX

    async def highest_issued(self, on: date) -> int:
        """Largest sequence already used by a purchase order for the day"""
        day_prefix = f"{self.prefix}-{on.strftime('%Y%m%d')}-"
        result = await self.session.execute(
            select(PurchaseOrder.po_number).where(PurchaseOrder.po_number.like(f"{day_prefix}%"))
        )
        highest = 0
        for po_number in result.scalars().all():
            suffix = po_number[len(day_prefix):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return highest

    async def allocate(self, on: Optional[date] = None) -> str:
        on = on or date.today()
        period = on.strftime('%Y%m%d')

        result = await self.session.execute(
            select(PONumberSequence)
            .where(PONumberSequence.period == period)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        sequence = result.scalar_one_or_none()
        issued = await self.highest_issued(on)

        if sequence is None:
            sequence = PONumberSequence(period=period, last_value=issued + 1)
            self.session.add(sequence)
        else:
            if sequence.last_value < issued:
                logger.warning(
                    f"PO number counter for {period} was behind ({sequence.last_value} < {issued}); catching up"
                )
            sequence.last_value = max(sequence.last_value, issued) + 1

        await self.session.flush()

        po_number = format_po_number(self.prefix, on, sequence.last_value)
        logger.debug(f"Allocated purchase order number {po_number}")
        return po_number
