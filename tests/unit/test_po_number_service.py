from datetime import date
from decimal import Decimal
from sqlalchemy import select
from app.models.purchase.po_number_sequence import PONumberSequence
from app.models.purchase.purchase_order import PurchaseOrder
from app.models.shared.enums import PurchaseOrderStatus, StatusSource
from app.services.purchase.po_number_service import PONumberService, format_po_number


def test_format_po_number():
    assert format_po_number("PO", date(2026, 3, 9), 7) == "PO-20260309-0007"
    assert format_po_number("PO", date(2026, 3, 9), 12345) == "PO-20260309-12345"


class TestAllocate:
    async def test_numbers_increase_within_a_day(self, session):
        service = PONumberService(session)
        first = await service.allocate(date(2026, 3, 9))
        second = await service.allocate(date(2026, 3, 9))
        await session.commit()

        assert first == "PO-20260309-0001"
        assert second == "PO-20260309-0002"

    async def test_each_day_restarts(self, session):
        service = PONumberService(session)
        await service.allocate(date(2026, 3, 9))
        assert await service.allocate(date(2026, 3, 10)) == "PO-20260310-0001"

    async def test_counter_survives_new_sessions(self, session_maker):
        async with session_maker() as session:
            await PONumberService(session).allocate(date(2026, 3, 9))
            await session.commit()

        async with session_maker() as session:
            number = await PONumberService(session).allocate(date(2026, 3, 9))
            await session.commit()

            sequence = (await session.execute(
                select(PONumberSequence).where(PONumberSequence.period == "20260309")
            )).scalar_one()

        assert number == "PO-20260309-0002"
        assert sequence.last_value == 2
        assert sequence.version == 2

    async def test_custom_prefix(self, session):
        number = await PONumberService(session, prefix="PUR").allocate(date(2026, 1, 2))
        assert number == "PUR-20260102-0001"

    async def test_lagging_counter_catches_up_with_issued_numbers(self, session, seed):
        on = date(2026, 3, 9)
        session.add(PONumberSequence(period="20260309", last_value=1))
        session.add(PurchaseOrder(
            po_number="PO-20260309-0003", supplier_id=seed.supplier_id, order_date=on,
            status=PurchaseOrderStatus.DRAFT, status_source=StatusSource.DERIVED,
            payment_status="unpaid", total_amount=Decimal("0"), version=1
        ))
        await session.commit()

        assert await PONumberService(session).allocate(on) == "PO-20260309-0004"

    async def test_other_prefixes_and_days_are_ignored(self, session, seed):
        on = date(2026, 3, 9)
        for po_number in ("PUR-20260309-0009", "PO-20260310-0007"):
            session.add(PurchaseOrder(
                po_number=po_number, supplier_id=seed.supplier_id, order_date=on,
                status=PurchaseOrderStatus.DRAFT, status_source=StatusSource.DERIVED,
                payment_status="unpaid", total_amount=Decimal("0"), version=1
            ))
        await session.commit()

        assert await PONumberService(session).allocate(on) == "PO-20260309-0001"
