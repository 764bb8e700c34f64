from typing import Optional
from pydantic import BaseModel

class SupplierOption(BaseModel):
    id: int
    name: str
    code: Optional[str] = None
    email: Optional[str] = None
    contact_person: Optional[str] = None
    has_contact_channel: bool

    class Config:
        from_attributes = True
