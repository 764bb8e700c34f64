import logging
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_async_session
from app.auth.jwt_handler import decode_access_token
from app.schemas.auth.user import CurrentUser
from app.services.inventory.batch_writer import InventoryBatchWriter, SqlAlchemyBatchWriter
from app.services.purchase.po_document_service import HtmlDocumentRenderer, PurchaseOrderDocumentRenderer
from app.services.purchase.supplier_dispatch import EmailDispatchGateway, SupplierDispatchGateway

security = HTTPBearer()
logger = logging.getLogger(__name__)

async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> CurrentUser:
    """Get current authenticated user"""
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = CurrentUser(id=user_id)
    request.state.current_user = user
    return user

def get_dispatch_gateway() -> SupplierDispatchGateway:
    return EmailDispatchGateway()

def get_document_renderer() -> PurchaseOrderDocumentRenderer:
    return HtmlDocumentRenderer()

async def get_batch_writer(
    session: AsyncSession = Depends(get_async_session)
) -> InventoryBatchWriter:
    return SqlAlchemyBatchWriter(session)
