from sqlalchemy import Column, Integer, Numeric, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class PurchaseOrderItem(BaseModel):
    __tablename__ = 'purchase_order_items'
    __table_args__ = (
        UniqueConstraint('purchase_order_id', 'product_id', name='uq_po_item_product'),
        CheckConstraint('quantity > 0', name='ck_po_item_quantity_positive'),
        CheckConstraint('unit_price >= 0', name='ck_po_item_unit_price'),
        CheckConstraint('tax_percentage >= 0 AND tax_percentage <= 100', name='ck_po_item_tax_percentage'),
        CheckConstraint(
            'received_quantity >= 0 AND received_quantity <= quantity',
            name='ck_po_item_received_quantity',
        ),
    )

    purchase_order_id = Column(Integer, ForeignKey('purchase_orders.id'), nullable=False, index=True)
    line_no = Column(Integer, nullable=False)
    product_id = Column(Integer, ForeignKey('products.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    tax_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False)
    received_quantity = Column(Integer, nullable=False, default=0)

    # Relationships
    purchase_order = relationship("PurchaseOrder", back_populates="items")
    product = relationship("Product")

    @property
    def remaining_quantity(self) -> int:
        return self.quantity - (self.received_quantity or 0)
