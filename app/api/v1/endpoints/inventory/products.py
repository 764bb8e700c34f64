import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_async_session
from app.api.dependencies import get_current_user
from app.schemas.auth.user import CurrentUser
from app.schemas.inventory.product_schema import ProductOption
from app.services.inventory.product_service import ProductService

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/options", response_model=List[ProductOption])
async def get_product_options(
    search: str = Query(None),
    session: AsyncSession = Depends(get_async_session),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Active products for purchase order line pickers"""
    try:
        product_service = ProductService(session)
        return await product_service.get_product_options(search=search)
    except Exception as e:
        logger.error(f"Error getting product options: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get product options"
        )
