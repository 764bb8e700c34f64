import logging
from abc import ABC, abstractmethod
from typing import Optional
from pydantic import BaseModel

from app.core.config import settings
from app.models.purchase.purchase_order import PurchaseOrder
from app.services.communication.email_service import EmailService
from app.services.purchase.po_document_service import (
    HtmlDocumentRenderer,
    PurchaseOrderDocumentRenderer
)

logger = logging.getLogger(__name__)

class DispatchResult(BaseModel):
    success: bool
    message: str

class SupplierDispatchGateway(ABC):
    """Delivers a purchase order to the supplier's contact channel"""

    @abstractmethod
    async def send(self, po: PurchaseOrder) -> DispatchResult:
        pass

class EmailDispatchGateway(SupplierDispatchGateway):
    """Emails the purchase order, with the rendered document attached"""

    def __init__(
        self,
        email_service: Optional[EmailService] = None,
        renderer: Optional[PurchaseOrderDocumentRenderer] = None
    ):
        self.email_service = email_service or EmailService()
        self.renderer = renderer or HtmlDocumentRenderer()

    async def send(self, po: PurchaseOrder) -> DispatchResult:
        supplier = po.supplier
        to_email = supplier.email.strip()

        document = self.renderer.render(po)
        html_content = self.email_service.render_template(
            "email/purchase_order.html",
            po=po,
            supplier=supplier,
            company_name=settings.DOCUMENT_COMPANY_NAME,
        )
        subtype = document.media_type.split("/")[-1]

        sent = await self.email_service.send_email(
            to_email=to_email,
            subject=f"Purchase Order {po.po_number} from {settings.DOCUMENT_COMPANY_NAME}",
            html_content=html_content,
            text_content=f"Please find attached purchase order {po.po_number}.",
            attachments=[(document.filename, document.content, subtype)],
        )
        if sent:
            return DispatchResult(success=True, message=f"Purchase order {po.po_number} sent to {to_email}")
        return DispatchResult(
            success=False,
            message=f"Email to {to_email} failed; the purchase order is marked sent, retry sending later"
        )
