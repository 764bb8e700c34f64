import logging
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_async_session
from app.api.dependencies import (
    get_batch_writer,
    get_current_user,
    get_dispatch_gateway,
    get_document_renderer
)
from app.models.shared.enums import PurchaseOrderStatus
from app.schemas.auth.user import CurrentUser
from app.schemas.inventory.product_batch_schema import ProductBatchResponse
from app.schemas.purchase.goods_receipt_schema import GoodsReceiptCreate, PendingReceiptItem
from app.schemas.purchase.purchase_order_schema import (
    PurchaseOrderCreate,
    PurchaseOrderDispatchResponse,
    PurchaseOrderResponse,
    PurchaseOrderStatusUpdate,
    PurchaseOrderUpdate
)
from app.services.inventory.batch_writer import InventoryBatchWriter
from app.services.purchase.goods_receipt_service import GoodsReceiptService
from app.services.purchase.po_document_service import PurchaseOrderDocumentRenderer
from app.services.purchase.purchase_order_service import PurchaseOrderService
from app.services.purchase.supplier_dispatch import SupplierDispatchGateway

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/", response_model=PurchaseOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase_order(
    po_data: PurchaseOrderCreate,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Create a new draft purchase order"""
    try:
        po_service = PurchaseOrderService(session)
        return await po_service.create_purchase_order(po_data, current_user.id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating purchase order: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create purchase order"
        )

@router.get("/", response_model=List[PurchaseOrderResponse])
async def get_purchase_orders(
    status_filter: Optional[PurchaseOrderStatus] = Query(None, alias="status"),
    supplier_id: Optional[int] = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """List purchase orders, optionally filtered by status"""
    try:
        po_service = PurchaseOrderService(session)
        return await po_service.get_purchase_orders(status=status_filter, supplier_id=supplier_id)
    except Exception as e:
        logger.error(f"Error getting purchase orders: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get purchase orders"
        )

@router.get("/{po_id}", response_model=PurchaseOrderResponse)
async def get_purchase_order(
    po_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Get purchase order by ID"""
    try:
        po_service = PurchaseOrderService(session)
        purchase_order = await po_service.get_purchase_order(po_id)
        if not purchase_order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Purchase order not found"
            )
        return purchase_order
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting purchase order {po_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get purchase order"
        )

@router.put("/{po_id}", response_model=PurchaseOrderResponse)
async def update_purchase_order(
    po_id: int,
    po_data: PurchaseOrderUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Update expected date and notes"""
    po_service = PurchaseOrderService(session)
    return await po_service.update_purchase_order(po_id, po_data, current_user.id)

@router.post("/{po_id}/send", response_model=PurchaseOrderDispatchResponse)
async def send_purchase_order(
    po_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    dispatch_gateway: SupplierDispatchGateway = Depends(get_dispatch_gateway)
):
    """Send (or resend) purchase order to the supplier"""
    po_service = PurchaseOrderService(session, dispatch_gateway=dispatch_gateway)
    outcome = await po_service.send_purchase_order(po_id, current_user.id)
    return PurchaseOrderDispatchResponse(
        success=outcome.success,
        message=outcome.message,
        retryable=outcome.retryable,
        purchase_order=PurchaseOrderResponse.model_validate(outcome.purchase_order, from_attributes=True)
    )

@router.patch("/{po_id}/status", response_model=PurchaseOrderResponse)
async def update_purchase_order_status(
    po_id: int,
    status_data: PurchaseOrderStatusUpdate,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Manually override purchase order status"""
    po_service = PurchaseOrderService(session)
    return await po_service.update_purchase_order_status(po_id, status_data, current_user.id)

@router.post("/{po_id}/cancel", response_model=PurchaseOrderResponse)
async def cancel_purchase_order(
    po_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Cancel purchase order"""
    po_service = PurchaseOrderService(session)
    return await po_service.cancel_purchase_order(po_id, current_user.id)

@router.post("/{po_id}/receive", response_model=PurchaseOrderResponse)
async def receive_purchase_order_items(
    po_id: int,
    receipt_data: GoodsReceiptCreate,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    batch_writer: InventoryBatchWriter = Depends(get_batch_writer)
):
    """Receive items against a purchase order and record inventory batches"""
    receipt_service = GoodsReceiptService(session, batch_writer=batch_writer)
    return await receipt_service.receive_items(po_id, receipt_data, current_user.id)

@router.get("/{po_id}/summary", response_model=Dict[str, Any])
async def get_purchase_order_summary(
    po_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Get purchase order summary with receiving status"""
    try:
        po_service = PurchaseOrderService(session)
        summary = await po_service.get_po_summary(po_id)
        if not summary:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Purchase order not found"
            )
        return summary
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting purchase order summary {po_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get purchase order summary"
        )

@router.get("/{po_id}/pending-items", response_model=List[PendingReceiptItem])
async def get_pending_items_for_receipt(
    po_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Get pending items for receiving from a purchase order"""
    receipt_service = GoodsReceiptService(session)
    pending_items = await receipt_service.get_pending_receipts_for_po(po_id)
    if pending_items is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Purchase order not found"
        )
    return pending_items

@router.get("/{po_id}/batches", response_model=List[ProductBatchResponse])
async def get_received_batches(
    po_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Inventory batches created by receipts against this purchase order"""
    po_service = PurchaseOrderService(session)
    return await po_service.get_received_batches(po_id)

@router.get("/{po_id}/document")
async def download_purchase_order_document(
    po_id: int,
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user),
    renderer: PurchaseOrderDocumentRenderer = Depends(get_document_renderer)
):
    """Download the purchase order document"""
    po_service = PurchaseOrderService(session)
    purchase_order = await po_service.get_purchase_order(po_id)
    if not purchase_order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Purchase order not found"
        )
    try:
        document = renderer.render(purchase_order)
    except Exception as e:
        logger.error(f"Error rendering document for purchase order {po_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to render purchase order document"
        )
    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'}
    )
