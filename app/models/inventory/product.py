from sqlalchemy import Column, String, Boolean, Numeric
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class Product(BaseModel):
    __tablename__ = 'products'

    name = Column(String(200), nullable=False)
    sku = Column(String(50), unique=True)
    mrp = Column(Numeric(12, 2))
    selling_price = Column(Numeric(12, 2))
    is_active = Column(Boolean, default=True)

    # Relationships
    batches = relationship("ProductBatch", back_populates="product")
