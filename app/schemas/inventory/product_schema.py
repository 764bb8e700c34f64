from typing import Optional
from decimal import Decimal
from pydantic import BaseModel

class ProductOption(BaseModel):
    id: int
    name: str
    sku: Optional[str] = None
    mrp: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None

    class Config:
        from_attributes = True
