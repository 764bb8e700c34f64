import logging
from typing import Optional, List, Tuple
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError
from fastapi import HTTPException, status

from app.core.exceptions import ConflictError, DependencyError, ValidationError
from app.core.logging import log_user_action
from app.models.purchase.purchase_order import PurchaseOrder
from app.models.purchase.purchase_order_item import PurchaseOrderItem
from app.models.shared.enums import StatusSource
from app.schemas.inventory.product_batch_schema import ProductBatchCreate
from app.schemas.purchase.goods_receipt_schema import (
    GoodsReceiptCreate,
    GoodsReceiptItemCreate,
    PendingReceiptItem
)
from app.services.inventory.batch_writer import (
    BatchWriteError,
    InventoryBatchWriter,
    SqlAlchemyBatchWriter
)
from app.services.purchase import po_status_machine
from app.services.purchase.purchase_order_repository import PurchaseOrderRepository

logger = logging.getLogger(__name__)

PlannedReceipt = List[Tuple[PurchaseOrderItem, GoodsReceiptItemCreate]]

class GoodsReceiptService:
    """
    Applies physical receipts against a purchase order.

    Every call is one transaction under the order's row lock: all batches are
    written and all received quantities advanced, or nothing is. Validation
    runs over the whole request before the first batch is written.
    """

    def __init__(
        self,
        session: AsyncSession,
        batch_writer: Optional[InventoryBatchWriter] = None
    ):
        self.session = session
        self.repository = PurchaseOrderRepository(session)
        self.batch_writer = batch_writer or SqlAlchemyBatchWriter(session)

    async def receive_items(
        self,
        po_id: int,
        receipt_data: GoodsReceiptCreate,
        user_id: int
    ) -> PurchaseOrder:
        """Receive items against a purchase order"""
        try:
            purchase_order = await self.repository.get_for_update(po_id)
            self.repository.ensure_version(purchase_order, receipt_data.expected_version)
            po_status_machine.ensure_receivable(purchase_order)

            planned = self._plan_receipt(purchase_order, receipt_data.items)

            for po_item, entry in planned:
                batch = ProductBatchCreate(
                    product_id=po_item.product_id,
                    batch_number=entry.batch_number.strip(),
                    quantity=entry.quantity,
                    expiry_date=entry.expiry_date,
                    mfg_date=entry.mfg_date,
                    supplier_id=purchase_order.supplier_id,
                    purchase_order_id=purchase_order.id,
                    cost_price=po_item.unit_price,
                    mrp=entry.mrp,
                    selling_price=entry.selling_price,
                    created_by=user_id
                )
                try:
                    await self.batch_writer.create_batch(batch)
                except BatchWriteError as e:
                    logger.error(
                        f"Batch write failed for {purchase_order.po_number}, "
                        f"product {po_item.product_id}: {str(e)}"
                    )
                    raise DependencyError(
                        f"Inventory batch {batch.batch_number} for {self._product_label(po_item)} "
                        f"could not be recorded; nothing was received, please retry"
                    )

                po_item.received_quantity += entry.quantity
                po_item.updated_by = user_id

            purchase_order.status = po_status_machine.derive_receiving_status(
                purchase_order.status, purchase_order.items
            )
            purchase_order.status_source = StatusSource.DERIVED
            purchase_order.last_received_at = datetime.now(timezone.utc)
            self.repository.touch(purchase_order, user_id)

            await self.session.commit()

        except HTTPException:
            await self.session.rollback()
            raise
        except StaleDataError:
            await self.session.rollback()
            raise ConflictError(
                "Purchase order was modified by another request while receiving; reload and retry"
            )
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error receiving items for purchase order {po_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to receive purchase order items"
            )

        received_units = sum(entry.quantity for _, entry in planned)
        logger.info(
            f"Goods received for {purchase_order.po_number}: {len(planned)} line(s), "
            f"{received_units} unit(s) by user {user_id}"
        )
        log_user_action(
            user_id, "receive", "purchase_order", po_id,
            po_number=purchase_order.po_number, lines=len(planned), units=received_units
        )
        return await self.repository.get(po_id)

    def _plan_receipt(
        self,
        purchase_order: PurchaseOrder,
        entries: List[GoodsReceiptItemCreate]
    ) -> PlannedReceipt:
        """Match entries to lines and enforce every guard before anything is written"""
        lines = {item.product_id: item for item in purchase_order.items}
        seen = set()
        planned: PlannedReceipt = []

        for entry in entries:
            if entry.product_id in seen:
                raise ValidationError(
                    f"Product {entry.product_id} appears more than once in the receipt"
                )
            seen.add(entry.product_id)

            po_item = lines.get(entry.product_id)
            if not po_item:
                raise ValidationError(
                    f"Product {entry.product_id} is not part of purchase order {purchase_order.po_number}"
                )

            if entry.quantity == 0:
                continue

            remaining = po_item.remaining_quantity
            if entry.quantity > remaining:
                raise ValidationError(
                    f"Received quantity ({entry.quantity}) exceeds remaining quantity ({remaining}) "
                    f"for {self._product_label(po_item)}"
                )
            if not entry.batch_number or not entry.batch_number.strip():
                raise ValidationError(
                    f"Batch number is required when receiving {self._product_label(po_item)}"
                )
            if entry.expiry_date is None:
                raise ValidationError(
                    f"Expiry date is required when receiving {self._product_label(po_item)}"
                )
            if entry.mfg_date and entry.mfg_date > entry.expiry_date:
                raise ValidationError(
                    f"Manufacturing date is after expiry date for {self._product_label(po_item)}"
                )

            planned.append((po_item, entry))

        if not planned:
            raise ValidationError("Nothing to receive: enter a quantity greater than zero for at least one item")

        return planned

    async def get_pending_receipts_for_po(self, po_id: int) -> Optional[List[PendingReceiptItem]]:
        """Get pending items for receiving from a purchase order"""
        po = await self.repository.get(po_id)
        if not po:
            return None

        pending_items = []
        for po_item in po.items:
            remaining_qty = po_item.remaining_quantity
            if remaining_qty > 0:
                pending_items.append(PendingReceiptItem(
                    purchase_order_item_id=po_item.id,
                    product_id=po_item.product_id,
                    product_name=po_item.product.name if po_item.product else None,
                    ordered_quantity=po_item.quantity,
                    received_quantity=po_item.received_quantity,
                    remaining_quantity=remaining_qty,
                    unit_price=po_item.unit_price
                ))

        return pending_items

    @staticmethod
    def _product_label(po_item: PurchaseOrderItem) -> str:
        if po_item.product:
            return f"{po_item.product.name} (product {po_item.product_id})"
        return f"product {po_item.product_id}"
