import logging
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from sqlalchemy.orm import selectinload

from app.core.exceptions import ConflictError, NotFoundError
from app.models.purchase.purchase_order import PurchaseOrder
from app.models.purchase.purchase_order_item import PurchaseOrderItem
from app.models.inventory.product_batch import ProductBatch
from app.models.shared.enums import PurchaseOrderStatus

logger = logging.getLogger(__name__)

class PurchaseOrderRepository:
    """Loads and stores purchase order aggregates (order + items + supplier)"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _aggregate_query(self):
        return (
            select(PurchaseOrder)
            .options(
                selectinload(PurchaseOrder.items).selectinload(PurchaseOrderItem.product),
                selectinload(PurchaseOrder.supplier)
            )
            .where(PurchaseOrder.is_deleted == False)
            .execution_options(populate_existing=True)
        )

    async def get(self, po_id: int) -> Optional[PurchaseOrder]:
        result = await self.session.execute(
            self._aggregate_query().where(PurchaseOrder.id == po_id)
        )
        return result.scalar_one_or_none()

    async def get_for_update(self, po_id: int) -> PurchaseOrder:
        """Load the aggregate holding a row lock until the transaction ends"""
        result = await self.session.execute(
            self._aggregate_query()
            .where(PurchaseOrder.id == po_id)
            .with_for_update(of=PurchaseOrder)
        )
        po = result.scalar_one_or_none()
        if not po:
            raise NotFoundError("Purchase order not found")
        return po

    async def list(
        self,
        status: Optional[PurchaseOrderStatus] = None,
        supplier_id: Optional[int] = None
    ) -> List[PurchaseOrder]:
        query = self._aggregate_query()
        if status:
            query = query.where(PurchaseOrder.status == status)
        if supplier_id:
            query = query.where(PurchaseOrder.supplier_id == supplier_id)
        query = query.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def add(self, po: PurchaseOrder) -> PurchaseOrder:
        self.session.add(po)
        await self.session.flush()
        return po

    async def list_batches(self, po_id: int) -> List[ProductBatch]:
        result = await self.session.execute(
            select(ProductBatch)
            .where(
                and_(
                    ProductBatch.purchase_order_id == po_id,
                    ProductBatch.is_deleted == False
                )
            )
            .order_by(ProductBatch.id)
        )
        return list(result.scalars().all())

    @staticmethod
    def ensure_version(po: PurchaseOrder, expected_version: Optional[int]) -> None:
        if expected_version is not None and po.version != expected_version:
            raise ConflictError(
                f"Purchase order {po.po_number} was modified (version {po.version}, "
                f"expected {expected_version}); reload and retry"
            )

    @staticmethod
    def touch(po: PurchaseOrder, user_id: Optional[int]) -> None:
        """Bump the optimistic version; the UPDATE fails if another writer got there first"""
        po.version = (po.version or 0) + 1
        po.updated_by = user_id
