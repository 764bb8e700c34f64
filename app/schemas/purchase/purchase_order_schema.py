from typing import Optional, List
from decimal import Decimal
from pydantic import BaseModel, validator
from datetime import datetime, date
from app.models.shared.enums import PurchaseOrderStatus, StatusSource
from app.utils.po_calculator import round2

class ProductInfo(BaseModel):
    id: int
    name: str
    sku: Optional[str] = None

    class Config:
        from_attributes = True

class PurchaseOrderItemBase(BaseModel):
    product_id: int
    quantity: int
    unit_price: Decimal
    tax_percentage: Decimal = Decimal('0')

    @validator('quantity')
    def validate_quantity(cls, v):
        if v <= 0:
            raise ValueError('Quantity must be greater than zero')
        return v

    @validator('unit_price')
    def validate_unit_price(cls, v):
        if v < 0:
            raise ValueError('Unit price cannot be negative')
        # Stored as Numeric(12, 2); totals must be computed from the stored value
        return round2(v)

    @validator('tax_percentage')
    def validate_tax_percentage(cls, v):
        if v < 0 or v > 100:
            raise ValueError('Tax percentage must be between 0 and 100')
        return round2(v)

class PurchaseOrderItemCreate(PurchaseOrderItemBase):
    pass

class PurchaseOrderItemResponse(PurchaseOrderItemBase):
    id: int
    purchase_order_id: int
    line_no: int
    product: Optional[ProductInfo] = None
    tax_amount: Decimal
    total: Decimal
    received_quantity: int
    remaining_quantity: int

    class Config:
        from_attributes = True

class PurchaseOrderBase(BaseModel):
    supplier_id: int
    expected_date: Optional[date] = None
    notes: Optional[str] = None

class PurchaseOrderCreate(PurchaseOrderBase):
    order_date: Optional[date] = None
    items: List[PurchaseOrderItemCreate]

    @validator('items')
    def validate_items(cls, v):
        if not v:
            raise ValueError('Purchase order must have at least one item')
        product_ids = [item.product_id for item in v]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError('Each product may appear only once per purchase order')
        return v

class PurchaseOrderUpdate(BaseModel):
    expected_date: Optional[date] = None
    notes: Optional[str] = None

class PurchaseOrderStatusUpdate(BaseModel):
    status: PurchaseOrderStatus
    expected_version: Optional[int] = None

    @validator('status')
    def validate_target(cls, v):
        if v == PurchaseOrderStatus.DRAFT:
            raise ValueError('A purchase order cannot be moved back to draft')
        return v

class SupplierInfo(BaseModel):
    id: int
    name: str
    code: Optional[str] = None
    email: Optional[str] = None
    contact_person: Optional[str] = None

    class Config:
        from_attributes = True

class PurchaseOrderResponse(PurchaseOrderBase):
    id: int
    po_number: str
    order_date: date
    status: PurchaseOrderStatus
    status_source: StatusSource
    payment_status: str
    total_amount: Decimal
    version: int
    sent_at: Optional[datetime] = None
    last_received_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[PurchaseOrderItemResponse] = []
    supplier: Optional[SupplierInfo] = None

    class Config:
        from_attributes = True

class PurchaseOrderDispatchResponse(BaseModel):
    success: bool
    message: str
    retryable: bool = False
    purchase_order: PurchaseOrderResponse
