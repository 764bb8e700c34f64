import pytest
from datetime import date, timedelta
from decimal import Decimal
from httpx import AsyncClient
from fastapi import status
from tests.factories import API, line_for, receipt_line


async def receive(client: AsyncClient, po_id: int, *lines, **extra):
    return await client.post(f"{API}/{po_id}/receive", json={"items": list(lines), **extra})


@pytest.mark.asyncio
class TestReceiveItems:
    """Receiving goods against a sent purchase order"""

    async def test_partial_receipt(self, client: AsyncClient, seed, sent_po):
        response = await receive(client, sent_po["id"], receipt_line(seed.product_a_id, 4, "B1"))
        assert response.status_code == status.HTTP_200_OK

        data = response.json()
        assert data["status"] == "partially_received"
        assert data["status_source"] == "derived"
        assert data["last_received_at"] is not None
        assert line_for(data, seed.product_a_id)["received_quantity"] == 4
        assert line_for(data, seed.product_a_id)["remaining_quantity"] == 6
        assert line_for(data, seed.product_b_id)["received_quantity"] == 0

        batches = (await client.get(f"{API}/{sent_po['id']}/batches")).json()
        assert len(batches) == 1
        assert batches[0]["product_id"] == seed.product_a_id
        assert batches[0]["quantity"] == 4
        assert batches[0]["batch_number"] == "B1"
        assert batches[0]["supplier_id"] == seed.supplier_id
        assert Decimal(batches[0]["cost_price"]) == Decimal("100.00")

    async def test_full_receipt_over_two_calls(self, client: AsyncClient, seed, sent_po):
        await receive(client, sent_po["id"], receipt_line(seed.product_a_id, 4, "B1"))

        response = await receive(
            client, sent_po["id"],
            receipt_line(seed.product_a_id, 6, "B2"),
            receipt_line(seed.product_b_id, 5, "B3"),
        )
        assert response.status_code == status.HTTP_200_OK

        data = response.json()
        assert data["status"] == "received"
        assert line_for(data, seed.product_a_id)["received_quantity"] == 10
        assert line_for(data, seed.product_b_id)["received_quantity"] == 5

        batches = (await client.get(f"{API}/{sent_po['id']}/batches")).json()
        assert [(b["batch_number"], b["quantity"]) for b in batches] == [("B1", 4), ("B2", 6), ("B3", 5)]

        summary = (await client.get(f"{API}/{sent_po['id']}/summary")).json()
        assert summary["receiving_status"] == "Completed"
        assert summary["completion_percentage"] == 100

    async def test_received_order_rejects_more(self, client: AsyncClient, seed, sent_po):
        await receive(
            client, sent_po["id"],
            receipt_line(seed.product_a_id, 10, "B1"),
            receipt_line(seed.product_b_id, 5, "B2"),
        )
        before = (await client.get(f"{API}/{sent_po['id']}")).json()

        response = await receive(client, sent_po["id"], receipt_line(seed.product_a_id, 1, "B9"))
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

        after = (await client.get(f"{API}/{sent_po['id']}")).json()
        assert after == before
        assert len((await client.get(f"{API}/{sent_po['id']}/batches")).json()) == 2

    async def test_draft_order_cannot_be_received(self, client: AsyncClient, seed, draft_po):
        response = await receive(client, draft_po["id"], receipt_line(seed.product_a_id, 1))
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_missing_order(self, client: AsyncClient, seed):
        response = await receive(client, 9999, receipt_line(seed.product_a_id, 1))
        assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_zero_quantity_lines_are_skipped(self, client: AsyncClient, seed, sent_po):
        response = await receive(
            client, sent_po["id"],
            receipt_line(seed.product_a_id, 2, "B1"),
            {"product_id": seed.product_b_id, "quantity": 0},
        )
        assert response.status_code == status.HTTP_200_OK
        assert len((await client.get(f"{API}/{sent_po['id']}/batches")).json()) == 1

    async def test_all_zero_quantities_rejected(self, client: AsyncClient, seed, sent_po):
        response = await receive(client, sent_po["id"], {"product_id": seed.product_a_id, "quantity": 0})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert "Nothing to receive" in response.json()["detail"]

    async def test_optional_batch_fields_are_recorded(self, client: AsyncClient, seed, sent_po):
        mfg = (date.today() - timedelta(days=30)).isoformat()
        await receive(
            client, sent_po["id"],
            receipt_line(seed.product_a_id, 3, "B1", mfg_date=mfg, mrp="125.00", selling_price="115.00"),
        )

        batch = (await client.get(f"{API}/{sent_po['id']}/batches")).json()[0]
        assert batch["mfg_date"] == mfg
        assert Decimal(batch["mrp"]) == Decimal("125.00")
        assert Decimal(batch["selling_price"]) == Decimal("115.00")


@pytest.mark.asyncio
class TestReceiptValidation:
    """A rejected receipt leaves the order untouched"""

    async def assert_untouched(self, client: AsyncClient, po):
        reloaded = (await client.get(f"{API}/{po['id']}")).json()
        assert reloaded["status"] == po["status"]
        assert reloaded["version"] == po["version"]
        assert all(item["received_quantity"] == 0 for item in reloaded["items"])
        assert (await client.get(f"{API}/{po['id']}/batches")).json() == []

    async def test_over_receipt_rejects_whole_call(self, client: AsyncClient, seed, sent_po):
        response = await receive(
            client, sent_po["id"],
            receipt_line(seed.product_a_id, 4, "B1"),
            receipt_line(seed.product_b_id, 6, "B2"),
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert "exceeds remaining quantity (5)" in response.json()["detail"]
        await self.assert_untouched(client, sent_po)

    async def test_product_not_on_order(self, client: AsyncClient, seed, sent_po):
        response = await receive(client, sent_po["id"], receipt_line(seed.retired_product_id, 1))
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        await self.assert_untouched(client, sent_po)

    async def test_duplicate_product(self, client: AsyncClient, seed, sent_po):
        response = await receive(
            client, sent_po["id"],
            receipt_line(seed.product_a_id, 1, "B1"),
            receipt_line(seed.product_a_id, 1, "B2"),
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        await self.assert_untouched(client, sent_po)

    @pytest.mark.parametrize("overrides", [
        {"batch_number": None},
        {"batch_number": "   "},
        {"expiry_date": None},
    ])
    async def test_batch_metadata_required(self, client: AsyncClient, seed, sent_po, overrides):
        line = receipt_line(seed.product_a_id, 2)
        line.update(overrides)
        response = await receive(client, sent_po["id"], line)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        await self.assert_untouched(client, sent_po)

    async def test_mfg_date_after_expiry(self, client: AsyncClient, seed, sent_po):
        expiry = date.today() + timedelta(days=10)
        line = receipt_line(
            seed.product_a_id, 2,
            expiry_date=expiry.isoformat(),
            mfg_date=(expiry + timedelta(days=1)).isoformat(),
        )
        response = await receive(client, sent_po["id"], line)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        await self.assert_untouched(client, sent_po)

    async def test_negative_quantity(self, client: AsyncClient, seed, sent_po):
        response = await receive(client, sent_po["id"], receipt_line(seed.product_a_id, -1))
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_empty_receipt(self, client: AsyncClient, sent_po):
        response = await receive(client, sent_po["id"])
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_stale_version_conflicts(self, client: AsyncClient, seed, sent_po):
        response = await receive(
            client, sent_po["id"],
            receipt_line(seed.product_a_id, 2),
            expected_version=sent_po["version"] - 1,
        )
        assert response.status_code == status.HTTP_409_CONFLICT
        await self.assert_untouched(client, sent_po)

    async def test_current_version_accepted(self, client: AsyncClient, seed, sent_po):
        response = await receive(
            client, sent_po["id"],
            receipt_line(seed.product_a_id, 2),
            expected_version=sent_po["version"],
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["version"] == sent_po["version"] + 1

    async def test_batch_store_failure_rolls_back(self, client: AsyncClient, seed, sent_po, fail_batch_writes):
        # First batch is written, the second write fails
        fail_batch_writes(fail_on_call=2)

        response = await receive(
            client, sent_po["id"],
            receipt_line(seed.product_a_id, 4, "B1"),
            receipt_line(seed.product_b_id, 5, "B2"),
        )
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert "retry" in response.json()["detail"]
        await self.assert_untouched(client, sent_po)


@pytest.mark.asyncio
class TestPendingItems:
    async def test_pending_after_partial_receipt(self, client: AsyncClient, seed, sent_po):
        await receive(client, sent_po["id"], receipt_line(seed.product_a_id, 4))

        response = await client.get(f"{API}/{sent_po['id']}/pending-items")
        assert response.status_code == status.HTTP_200_OK

        pending = {item["product_id"]: item for item in response.json()}
        assert pending[seed.product_a_id]["remaining_quantity"] == 6
        assert pending[seed.product_a_id]["received_quantity"] == 4
        assert pending[seed.product_b_id]["remaining_quantity"] == 5
        assert pending[seed.product_a_id]["product_name"] == "Amoxicillin 500mg"

    async def test_fully_received_lines_drop_out(self, client: AsyncClient, seed, sent_po):
        await receive(client, sent_po["id"], receipt_line(seed.product_b_id, 5))

        pending = (await client.get(f"{API}/{sent_po['id']}/pending-items")).json()
        assert [item["product_id"] for item in pending] == [seed.product_a_id]

    async def test_missing_order(self, client: AsyncClient):
        response = await client.get(f"{API}/9999/pending-items")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    async def test_batches_for_missing_order(self, client: AsyncClient):
        response = await client.get(f"{API}/9999/batches")
        assert response.status_code == status.HTTP_404_NOT_FOUND
