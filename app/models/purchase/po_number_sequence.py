from sqlalchemy import Column, Integer, String
from app.db.base import BaseModel

class PONumberSequence(BaseModel):
    """Per-day counter backing purchase order numbers"""
    __tablename__ = 'po_number_sequences'

    period = Column(String(8), unique=True, nullable=False)  # YYYYMMDD
    last_value = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}
