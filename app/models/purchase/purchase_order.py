from sqlalchemy import Column, Integer, String, DateTime, Text, Numeric, ForeignKey, Enum as SQLEnum, Date
from sqlalchemy.orm import relationship
from app.db.base import BaseModel
from app.models.shared.enums import PurchaseOrderStatus, StatusSource

class PurchaseOrder(BaseModel):
    __tablename__ = 'purchase_orders'

    po_number = Column(String(50), unique=True, nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey('suppliers.id'), nullable=False, index=True)
    order_date = Column(Date, nullable=False)
    expected_date = Column(Date)
    status = Column(SQLEnum(PurchaseOrderStatus), nullable=False, default=PurchaseOrderStatus.DRAFT, index=True)
    status_source = Column(SQLEnum(StatusSource), nullable=False, default=StatusSource.DERIVED)
    payment_status = Column(String(30), nullable=False, default="unpaid")
    total_amount = Column(Numeric(12, 2), nullable=False)
    notes = Column(Text)
    sent_at = Column(DateTime(timezone=True))
    last_received_at = Column(DateTime(timezone=True))
    cancelled_at = Column(DateTime(timezone=True))
    version = Column(Integer, nullable=False, default=1)

    # Relationships
    supplier = relationship("Supplier", back_populates="purchase_orders")
    items = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        order_by="PurchaseOrderItem.line_no",
        cascade="all, delete-orphan",
    )
    batches = relationship("ProductBatch", back_populates="purchase_order")

    # Version is bumped explicitly by every mutation so that item-only changes
    # still conflict with a concurrent writer of the same aggregate.
    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}
