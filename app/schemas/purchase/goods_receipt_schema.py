from typing import Optional, List
from decimal import Decimal
from pydantic import BaseModel, validator
from datetime import date


class GoodsReceiptItemCreate(BaseModel):
    product_id: int
    quantity: int
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    mfg_date: Optional[date] = None
    mrp: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None

    @validator('quantity')
    def validate_quantity(cls, v):
        if v < 0:
            raise ValueError('Received quantity cannot be negative')
        return v

    @validator('mrp', 'selling_price')
    def validate_prices(cls, v):
        if v is not None and v < 0:
            raise ValueError('Prices cannot be negative')
        return v

class GoodsReceiptCreate(BaseModel):
    items: List[GoodsReceiptItemCreate]
    expected_version: Optional[int] = None

    @validator('items')
    def validate_items(cls, v):
        if not v:
            raise ValueError('Goods receipt must have at least one item')
        return v

class PendingReceiptItem(BaseModel):
    purchase_order_item_id: int
    product_id: int
    product_name: Optional[str] = None
    ordered_quantity: int
    received_quantity: int
    remaining_quantity: int
    unit_price: Decimal
