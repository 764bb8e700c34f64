import logging
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from app.models.purchase.supplier import Supplier

logger = logging.getLogger(__name__)

class SupplierService:
    """Read-only supplier lookups used by purchase order pickers"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_supplier(self, supplier_id: int) -> Optional[Supplier]:
        result = await self.session.execute(
            select(Supplier).where(
                and_(
                    Supplier.id == supplier_id,
                    Supplier.is_deleted == False
                )
            )
        )
        return result.scalar_one_or_none()

    async def get_supplier_options(self, search: Optional[str] = None) -> List[Supplier]:
        """Active suppliers ordered by name"""
        query = select(Supplier).where(
            and_(
                Supplier.is_active == True,
                Supplier.is_deleted == False
            )
        )
        if search:
            query = query.where(Supplier.name.ilike(f"%{search}%"))
        result = await self.session.execute(query.order_by(Supplier.name))
        return list(result.scalars().all())
