import pytest
from datetime import date
from decimal import Decimal
from app import models  # noqa: F401
from app.models.inventory.product import Product
from app.models.purchase.purchase_order import PurchaseOrder
from app.models.purchase.purchase_order_item import PurchaseOrderItem
from app.models.purchase.supplier import Supplier
from app.models.shared.enums import PurchaseOrderStatus
from app.services.communication.email_service import EmailService
from app.services.purchase.po_document_service import HtmlDocumentRenderer
from app.services.purchase.supplier_dispatch import EmailDispatchGateway


class RecordingEmailService(EmailService):
    def __init__(self, deliver: bool = True):
        super().__init__()
        self.deliver = deliver
        self.outbox = []

    async def send_email(self, to_email, subject, html_content, text_content=None, attachments=None):
        self.outbox.append({
            "to": to_email,
            "subject": subject,
            "html": html_content,
            "attachments": attachments or [],
        })
        return self.deliver


@pytest.fixture
def purchase_order():
    supplier = Supplier(id=1, code="SUP-001", name="Acme Distributors", contact_person="Dana Reyes",
                        email=" orders@acme.test ")
    item = PurchaseOrderItem(
        line_no=1,
        product_id=11,
        product=Product(id=11, name="Amoxicillin 500mg", sku="AMX-500"),
        quantity=10,
        unit_price=Decimal("100.00"),
        tax_percentage=Decimal("10"),
        tax_amount=Decimal("100.00"),
        total=Decimal("1100.00"),
        received_quantity=0,
    )
    return PurchaseOrder(
        id=1,
        po_number="PO-20260309-0001",
        supplier=supplier,
        order_date=date(2026, 3, 9),
        status=PurchaseOrderStatus.SENT,
        total_amount=Decimal("1100.00"),
        notes="Deliver to the back door",
        items=[item],
    )


class TestHtmlDocumentRenderer:
    def test_renders_lines_and_totals(self, purchase_order):
        document = HtmlDocumentRenderer().render(purchase_order)

        assert document.filename == "PO-20260309-0001.html"
        assert document.media_type == "text/html"
        html = document.content.decode("utf-8")
        assert "Amoxicillin 500mg" in html
        assert "1100.00" in html
        assert "Acme Distributors" in html


class TestEmailDispatchGateway:
    async def test_emails_document_to_supplier(self, purchase_order):
        email_service = RecordingEmailService()
        result = await EmailDispatchGateway(email_service=email_service).send(purchase_order)

        assert result.success is True
        message = email_service.outbox[0]
        assert message["to"] == "orders@acme.test"
        assert "PO-20260309-0001" in message["subject"]
        assert "Dana Reyes" in message["html"]
        filename, content, subtype = message["attachments"][0]
        assert filename == "PO-20260309-0001.html"
        assert subtype == "html"
        assert b"PO-20260309-0001" in content

    async def test_delivery_failure_is_reported(self, purchase_order):
        result = await EmailDispatchGateway(email_service=RecordingEmailService(deliver=False)).send(purchase_order)

        assert result.success is False
        assert "retry" in result.message


class TestEmailService:
    async def test_unconfigured_smtp_does_not_send(self):
        service = EmailService()
        service.smtp_server = None
        assert await service.send_email("orders@acme.test", "Subject", "<p>Hi</p>") is False
