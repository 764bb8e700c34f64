# app/services/purchase/purchase_order_service.py
import logging
from typing import Optional, List, Dict, Any
from datetime import datetime, date, timezone
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from fastapi import HTTPException, status

from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError
from app.core.logging import log_user_action
from app.models.purchase.purchase_order import PurchaseOrder
from app.models.purchase.purchase_order_item import PurchaseOrderItem
from app.models.purchase.supplier import Supplier
from app.models.inventory.product import Product
from app.models.inventory.product_batch import ProductBatch
from app.models.shared.enums import PurchaseOrderStatus, StatusSource
from app.schemas.purchase.purchase_order_schema import (
    PurchaseOrderCreate,
    PurchaseOrderUpdate,
    PurchaseOrderStatusUpdate
)
from app.services.purchase import po_status_machine
from app.services.purchase.po_number_service import PONumberService
from app.services.purchase.purchase_order_repository import PurchaseOrderRepository
from app.services.purchase.supplier_dispatch import (
    DispatchResult,
    EmailDispatchGateway,
    SupplierDispatchGateway
)
from app.utils.po_calculator import calculate_totals

logger = logging.getLogger(__name__)

class DispatchOutcome(BaseModel):
    purchase_order: Any
    success: bool
    message: str
    retryable: bool = False
    transitioned: bool = False

def is_po_number_collision(error: IntegrityError) -> bool:
    """Unique violation on purchase_orders.po_number or the per-day counter row"""
    message = str(error.orig).lower()
    return "po_number" in message and ("unique" in message or "duplicate" in message)

class PurchaseOrderService:
    def __init__(
        self,
        session: AsyncSession,
        dispatch_gateway: Optional[SupplierDispatchGateway] = None
    ):
        self.session = session
        self.repository = PurchaseOrderRepository(session)
        self.dispatch_gateway = dispatch_gateway or EmailDispatchGateway()

    async def create_purchase_order(
        self,
        po_data: PurchaseOrderCreate,
        user_id: int
    ) -> PurchaseOrder:
        """Create a draft purchase order; retried when the PO number collides"""
        max_attempts = max(1, settings.PO_NUMBER_MAX_ATTEMPTS)
        for attempt in range(1, max_attempts + 1):
            try:
                purchase_order = await self._build_purchase_order(po_data, user_id)
                await self.session.commit()
                break

            except HTTPException:
                await self.session.rollback()
                raise
            except (IntegrityError, StaleDataError) as e:
                await self.session.rollback()
                if isinstance(e, IntegrityError) and not is_po_number_collision(e):
                    logger.error(f"Integrity error creating purchase order: {str(e)}")
                    raise HTTPException(
                        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                        detail="Failed to create purchase order"
                    )
                logger.warning(
                    f"PO number allocation collided (attempt {attempt}/{max_attempts}): {str(e)}"
                )
                if attempt == max_attempts:
                    raise ConflictError("Could not allocate a unique purchase order number, please retry")
            except Exception as e:
                await self.session.rollback()
                logger.error(f"Error creating purchase order: {str(e)}")
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="Failed to create purchase order"
                )

        po_id = purchase_order.id
        logger.info(f"Purchase order created: {purchase_order.po_number} by user {user_id}")
        log_user_action(user_id, "create", "purchase_order", po_id, po_number=purchase_order.po_number)
        return await self.repository.get(po_id)

    async def _build_purchase_order(self, po_data: PurchaseOrderCreate, user_id: int) -> PurchaseOrder:
        # Verify supplier exists
        supplier_result = await self.session.execute(
            select(Supplier).where(
                and_(
                    Supplier.id == po_data.supplier_id,
                    Supplier.is_active == True,
                    Supplier.is_deleted == False
                )
            )
        )
        if not supplier_result.scalar_one_or_none():
            raise NotFoundError("Supplier not found or inactive")

        product_ids = [item.product_id for item in po_data.items]
        product_result = await self.session.execute(
            select(Product.id).where(
                and_(
                    Product.id.in_(product_ids),
                    Product.is_active == True,
                    Product.is_deleted == False
                )
            )
        )
        known_ids = set(product_result.scalars().all())
        missing = [pid for pid in product_ids if pid not in known_ids]
        if missing:
            raise NotFoundError(f"Product {missing[0]} not found or inactive")

        order_date = po_data.order_date or date.today()
        po_number = await PONumberService(self.session).allocate(order_date)

        totals = calculate_totals(po_data.items)
        items = []
        for line_no, (item_data, amounts) in enumerate(zip(po_data.items, totals.lines), start=1):
            items.append(PurchaseOrderItem(
                line_no=line_no,
                product_id=item_data.product_id,
                quantity=item_data.quantity,
                unit_price=item_data.unit_price,
                tax_percentage=item_data.tax_percentage,
                tax_amount=amounts.tax_amount,
                total=amounts.total,
                received_quantity=0,
                created_by=user_id
            ))

        purchase_order = PurchaseOrder(
            po_number=po_number,
            supplier_id=po_data.supplier_id,
            order_date=order_date,
            expected_date=po_data.expected_date,
            status=PurchaseOrderStatus.DRAFT,
            status_source=StatusSource.DERIVED,
            payment_status=settings.DEFAULT_PAYMENT_STATUS,
            total_amount=totals.total_amount,
            notes=po_data.notes,
            version=1,
            created_by=user_id,
            items=items
        )
        return await self.repository.add(purchase_order)

    async def get_purchase_order(self, po_id: int) -> Optional[PurchaseOrder]:
        """Get purchase order by ID with items and supplier"""
        return await self.repository.get(po_id)

    async def get_purchase_orders(
        self,
        status: Optional[PurchaseOrderStatus] = None,
        supplier_id: Optional[int] = None
    ) -> List[PurchaseOrder]:
        """List purchase orders, newest first"""
        return await self.repository.list(status=status, supplier_id=supplier_id)

    async def update_purchase_order(
        self,
        po_id: int,
        po_data: PurchaseOrderUpdate,
        user_id: int
    ) -> PurchaseOrder:
        """Update expected date (draft/sent only) and notes (until terminal)"""
        try:
            po = await self.repository.get_for_update(po_id)
            po_status_machine.ensure_mutable(po)

            update_data = po_data.model_dump(exclude_unset=True)
            if 'expected_date' in update_data and update_data['expected_date'] != po.expected_date:
                po_status_machine.ensure_details_editable(po)
                po.expected_date = update_data['expected_date']
            if 'notes' in update_data:
                po.notes = update_data['notes']

            self.repository.touch(po, user_id)
            await self.session.commit()

        except HTTPException:
            await self.session.rollback()
            raise
        except StaleDataError:
            await self.session.rollback()
            raise ConflictError()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating purchase order {po_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to update purchase order"
            )

        logger.info(f"Purchase order updated: {po_id} by user {user_id}")
        log_user_action(user_id, "update", "purchase_order", po_id)
        return await self.repository.get(po_id)

    async def send_purchase_order(self, po_id: int, user_id: int) -> DispatchOutcome:
        """
        Dispatch the purchase order to its supplier.

        The draft -> sent transition is committed before the gateway is called,
        so the row lock is not held across the network call and a delivery
        failure leaves the order sent (resending is the recovery path).
        """
        try:
            po = await self.repository.get_for_update(po_id)
            supplier_email = po.supplier.email if po.supplier else None
            transitioned = po_status_machine.dispatch(po, supplier_email)
            if transitioned:
                po.sent_at = datetime.now(timezone.utc)
                self.repository.touch(po, user_id)
            await self.session.commit()

        except HTTPException:
            await self.session.rollback()
            raise
        except StaleDataError:
            await self.session.rollback()
            raise ConflictError()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error sending purchase order {po_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to send purchase order"
            )

        if transitioned:
            log_user_action(user_id, "send", "purchase_order", po_id)

        po = await self.repository.get(po_id)
        try:
            result = await self.dispatch_gateway.send(po)
        except Exception as e:
            logger.error(f"Dispatch gateway error for purchase order {po.po_number}: {str(e)}")
            result = DispatchResult(
                success=False,
                message=f"Sending purchase order {po.po_number} failed; retry sending later"
            )

        if result.success:
            logger.info(f"Purchase order {po.po_number} dispatched by user {user_id}")
        else:
            logger.warning(f"Purchase order {po.po_number} dispatch failed: {result.message}")

        return DispatchOutcome(
            purchase_order=po,
            success=result.success,
            message=result.message,
            retryable=not result.success,
            transitioned=transitioned
        )

    async def update_purchase_order_status(
        self,
        po_id: int,
        status_data: PurchaseOrderStatusUpdate,
        user_id: int
    ) -> PurchaseOrder:
        """Manual status override (administrative escape hatch)"""
        try:
            po = await self.repository.get_for_update(po_id)
            self.repository.ensure_version(po, status_data.expected_version)
            changed = po_status_machine.apply_manual_override(po, status_data.status)
            if changed:
                now = datetime.now(timezone.utc)
                if status_data.status == PurchaseOrderStatus.CANCELLED:
                    po.cancelled_at = now
                elif status_data.status == PurchaseOrderStatus.SENT and po.sent_at is None:
                    po.sent_at = now
                self.repository.touch(po, user_id)
            await self.session.commit()

        except HTTPException:
            await self.session.rollback()
            raise
        except StaleDataError:
            await self.session.rollback()
            raise ConflictError()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating status of purchase order {po_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to update purchase order status"
            )

        if changed:
            log_user_action(user_id, f"set_status:{status_data.status.value}", "purchase_order", po_id)
        return await self.repository.get(po_id)

    async def cancel_purchase_order(self, po_id: int, user_id: int) -> PurchaseOrder:
        """Cancel purchase order"""
        try:
            po = await self.repository.get_for_update(po_id)
            po_status_machine.cancel(po)
            po.cancelled_at = datetime.now(timezone.utc)
            self.repository.touch(po, user_id)
            await self.session.commit()

        except HTTPException:
            await self.session.rollback()
            raise
        except StaleDataError:
            await self.session.rollback()
            raise ConflictError()
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error cancelling purchase order: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to cancel purchase order"
            )

        logger.info(f"Purchase order cancelled: {po_id} by user {user_id}")
        log_user_action(user_id, "cancel", "purchase_order", po_id)
        return await self.repository.get(po_id)

    async def get_received_batches(self, po_id: int) -> List[ProductBatch]:
        po = await self.repository.get(po_id)
        if not po:
            raise NotFoundError("Purchase order not found")
        return await self.repository.list_batches(po_id)

    async def get_po_summary(self, po_id: int) -> Dict[str, Any]:
        """Get purchase order summary with receiving status"""
        po = await self.repository.get(po_id)
        if not po:
            return {}

        total_items = len(po.items)
        fully_received_items = sum(
            1 for item in po.items
            if item.received_quantity >= item.quantity
        )
        partially_received_items = sum(
            1 for item in po.items
            if 0 < item.received_quantity < item.quantity
        )

        total_quantity = sum(item.quantity for item in po.items)
        total_received = sum(item.received_quantity for item in po.items)

        receiving_status = "Not Started"
        if total_quantity and total_received == total_quantity:
            receiving_status = "Completed"
        elif total_received > 0:
            receiving_status = "Partial"

        # Stored line amounts must agree with an independent recomputation
        recomputed_total = calculate_totals(po.items).total_amount

        return {
            "po_number": po.po_number,
            "supplier_name": po.supplier.name if po.supplier else None,
            "order_date": po.order_date,
            "status": po.status.value,
            "status_source": po.status_source.value,
            "total_amount": po.total_amount,
            "recomputed_total_amount": recomputed_total,
            "total_items": total_items,
            "fully_received_items": fully_received_items,
            "partially_received_items": partially_received_items,
            "receiving_status": receiving_status,
            "total_quantity": total_quantity,
            "total_received": total_received,
            "completion_percentage": round(total_received / total_quantity * 100, 2) if total_quantity > 0 else 0
        }
