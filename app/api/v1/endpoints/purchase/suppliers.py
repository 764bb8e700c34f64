import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_async_session
from app.api.dependencies import get_current_user
from app.schemas.auth.user import CurrentUser
from app.schemas.purchase.supplier_schema import SupplierOption
from app.services.purchase.supplier_service import SupplierService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/options", response_model=List[SupplierOption])
async def get_supplier_options(
    search: str = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Active suppliers for purchase order forms"""
    try:
        supplier_service = SupplierService(session)
        return await supplier_service.get_supplier_options(search=search)
    except Exception as e:
        logger.error(f"Error getting supplier options: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get supplier options"
        )
