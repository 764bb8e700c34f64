from sqlalchemy import Column, String, Boolean, Text
from sqlalchemy.orm import relationship
from app.db.base import BaseModel

class Supplier(BaseModel):
    __tablename__ = 'suppliers'

    code = Column(String(20), unique=True)
    name = Column(String(200), nullable=False)
    contact_person = Column(String(100))
    email = Column(String(100))
    phone = Column(String(20))
    address = Column(Text)
    gst_number = Column(String(50))
    is_active = Column(Boolean, default=True)

    # Relationships
    purchase_orders = relationship("PurchaseOrder", back_populates="supplier")
    batches = relationship("ProductBatch", back_populates="supplier")

    @property
    def has_contact_channel(self) -> bool:
        return bool(self.email and self.email.strip())
