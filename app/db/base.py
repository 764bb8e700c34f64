from sqlalchemy import Column, Integer, DateTime, Boolean
from sqlalchemy.sql import func, false
from app.models.base import Base

class BaseModel(Base):
    """Surrogate key, audit columns and soft-delete flag shared by every table"""
    __abstract__ = True

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    is_deleted = Column(Boolean, default=False, server_default=false(), nullable=False)
    created_by = Column(Integer, nullable=True)  # user id from the access token
    updated_by = Column(Integer, nullable=True)

    def __repr__(self):
        return f"<{type(self).__name__} id={self.id}>"
