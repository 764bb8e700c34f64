from sqlalchemy import Column, Integer, String, Boolean, Numeric, ForeignKey, Date, CheckConstraint
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class ProductBatch(BaseModel):
    """A traceable lot of received stock; never mutated after creation"""
    __tablename__ = 'product_batches'
    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_product_batch_quantity_positive'),
    )

    product_id = Column(Integer, ForeignKey('products.id'), nullable=False, index=True)
    batch_number = Column(String(100), nullable=False)
    supplier_id = Column(Integer, ForeignKey('suppliers.id'), nullable=False)
    purchase_order_id = Column(Integer, ForeignKey('purchase_orders.id'), nullable=True, index=True)
    quantity = Column(Integer, nullable=False)
    mfg_date = Column(Date)
    expiry_date = Column(Date, nullable=False)
    cost_price = Column(Numeric(12, 2), nullable=False)
    mrp = Column(Numeric(12, 2))
    selling_price = Column(Numeric(12, 2))
    is_active = Column(Boolean, default=True)

    # Relationships
    product = relationship("Product", back_populates="batches")
    supplier = relationship("Supplier", back_populates="batches")
    purchase_order = relationship("PurchaseOrder", back_populates="batches")
