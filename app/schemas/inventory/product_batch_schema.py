from typing import Optional
from decimal import Decimal
from datetime import date, datetime
from pydantic import BaseModel

class ProductBatchCreate(BaseModel):
    """One receiving event's worth of stock for a single product"""
    product_id: int
    batch_number: str
    quantity: int
    expiry_date: date
    supplier_id: int
    cost_price: Decimal
    purchase_order_id: Optional[int] = None
    mfg_date: Optional[date] = None
    mrp: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None
    created_by: Optional[int] = None

class ProductBatchResponse(BaseModel):
    id: int
    product_id: int
    batch_number: str
    quantity: int
    expiry_date: date
    mfg_date: Optional[date] = None
    supplier_id: int
    purchase_order_id: Optional[int] = None
    cost_price: Decimal
    mrp: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
