import logging
from abc import ABC, abstractmethod
from pydantic import BaseModel

from app.core.config import settings
from app.models.purchase.purchase_order import PurchaseOrder
from app.services.communication.email_service import get_template_environment
from app.utils.po_calculator import calculate_totals

logger = logging.getLogger(__name__)

class RenderedDocument(BaseModel):
    filename: str
    media_type: str
    content: bytes

class PurchaseOrderDocumentRenderer(ABC):
    """Produces the downloadable/attachable purchase order document"""

    @abstractmethod
    def render(self, po: PurchaseOrder) -> RenderedDocument:
        pass

class HtmlDocumentRenderer(PurchaseOrderDocumentRenderer):
    """Renders the purchase order as a printable HTML page"""

    template_name = "documents/purchase_order.html"

    def __init__(self):
        self.template_env = get_template_environment()

    def render(self, po: PurchaseOrder) -> RenderedDocument:
        totals = calculate_totals(po.items)
        template = self.template_env.get_template(self.template_name)
        html = template.render(
            po=po,
            supplier=po.supplier,
            items=po.items,
            totals=totals,
            company_name=settings.DOCUMENT_COMPANY_NAME,
        )
        logger.debug(f"Rendered document for purchase order {po.po_number}")
        return RenderedDocument(
            filename=f"{po.po_number}.html",
            media_type="text/html",
            content=html.encode("utf-8"),
        )
