import os

# Settings are read at import time; point them at a throwaway database first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from types import SimpleNamespace
from typing import AsyncGenerator, List
from fastapi import Depends
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401  registers every table on Base.metadata
from app.main import app
from app.api.dependencies import get_batch_writer, get_dispatch_gateway
from app.auth.jwt_handler import create_access_token
from app.core.database import get_async_session
from app.models.base import Base
from app.models.inventory.product import Product
from app.models.purchase.supplier import Supplier
from app.schemas.inventory.product_batch_schema import ProductBatchCreate
from app.services.inventory.batch_writer import BatchWriteError, SqlAlchemyBatchWriter
from app.services.purchase.supplier_dispatch import DispatchResult, SupplierDispatchGateway
from tests.factories import API, scenario_order

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_USER_ID = 7


class FakeDispatchGateway(SupplierDispatchGateway):
    """Records every dispatch instead of emailing"""

    def __init__(self, success: bool = True, error: Exception = None):
        self.success = success
        self.error = error
        self.sent: List[str] = []

    async def send(self, po) -> DispatchResult:
        self.sent.append(po.po_number)
        if self.error:
            raise self.error
        if self.success:
            return DispatchResult(success=True, message=f"Purchase order {po.po_number} sent")
        return DispatchResult(success=False, message="Mail server unreachable")


class FlakyBatchWriter(SqlAlchemyBatchWriter):
    """Writes real batches but fails on the n-th call"""

    def __init__(self, session: AsyncSession, fail_on_call: int = 1):
        super().__init__(session)
        self.fail_on_call = fail_on_call
        self.calls = 0

    async def create_batch(self, batch: ProductBatchCreate) -> int:
        self.calls += 1
        if self.calls == self.fail_on_call:
            raise BatchWriteError("inventory store unavailable")
        return await super().create_batch(batch)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture
async def seed(session_maker):
    """Two suppliers (with and without email), one inactive supplier, products A and B"""
    async with session_maker() as session:
        supplier = Supplier(
            code="SUP-001", name="Acme Distributors", contact_person="Dana Reyes",
            email="orders@acme.test", phone="555-0100", is_active=True
        )
        unreachable = Supplier(code="SUP-002", name="Quiet Traders", email=None, is_active=True)
        inactive = Supplier(code="SUP-003", name="Closed Wholesale", email="x@closed.test", is_active=False)
        product_a = Product(name="Amoxicillin 500mg", sku="AMX-500", mrp=120, selling_price=110, is_active=True)
        product_b = Product(name="Bandage Roll", sku="BND-010", mrp=60, selling_price=55, is_active=True)
        retired = Product(name="Retired Syrup", sku="SYR-OLD", is_active=False)
        session.add_all([supplier, unreachable, inactive, product_a, product_b, retired])
        await session.commit()

        return SimpleNamespace(
            supplier_id=supplier.id,
            unreachable_supplier_id=unreachable.id,
            inactive_supplier_id=inactive.id,
            product_a_id=product_a.id,
            product_b_id=product_b.id,
            retired_product_id=retired.id,
        )


@pytest.fixture
def dispatch_gateway() -> FakeDispatchGateway:
    return FakeDispatchGateway()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token(TEST_USER_ID)}"}


@pytest.fixture
async def client(session_maker, seed, dispatch_gateway, auth_headers) -> AsyncGenerator[AsyncClient, None]:
    """API client with the test database and the fake dispatch gateway wired in"""

    async def override_get_async_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_dispatch_gateway] = lambda: dispatch_gateway

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test", headers=auth_headers
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def fail_batch_writes():
    """Make the n-th inventory batch write of the next receipt fail"""

    def install(fail_on_call: int = 1):
        async def override_get_batch_writer(session: AsyncSession = Depends(get_async_session)):
            return FlakyBatchWriter(session, fail_on_call=fail_on_call)

        app.dependency_overrides[get_batch_writer] = override_get_batch_writer

    return install


@pytest.fixture
async def draft_po(client, seed):
    response = await client.post(f"{API}/", json=scenario_order(seed))
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
async def sent_po(client, draft_po):
    response = await client.post(f"{API}/{draft_po['id']}/send")
    assert response.status_code == 200, response.text
    return response.json()["purchase_order"]
