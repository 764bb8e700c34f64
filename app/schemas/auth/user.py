from pydantic import BaseModel

class CurrentUser(BaseModel):
    """Identity supplied by the caller's bearer token"""
    id: int
