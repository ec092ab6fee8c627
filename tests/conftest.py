from collections.abc import AsyncGenerator, Awaitable, Callable
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.core.auth import Actor
from src.core.config import settings
from src.core.database.base import Base
from src.core.database import get_db
from src.main import app
from src.modules.accounting.models import BankAccount
from src.modules.accounting.schemas import BankAccountCreate
from src.modules.accounting.service import BankAccountService
from src.modules.sales_orders.models import SalesOrder
from src.modules.sales_orders.schemas import SalesOrderCreate, SalesOrderLineCreate
from src.modules.sales_orders.service import SalesOrderService

# Test database URL (in-memory SQLite for speed, or use test PostgreSQL)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
test_async_session = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

ACTOR_HEADERS = {"X-Actor-Code": "EMP-001", "X-Actor-Name": "Siti Purchasing"}


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def document_storage(tmp_path, monkeypatch):
    """Keep uploaded documents inside the test's temp dir."""
    monkeypatch.setattr(settings, "storage_path", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "s3_bucket", None)
    return tmp_path / "uploads"


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get test database session."""
    async with test_async_session() as session:
        yield session


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Get test HTTP client with overridden database dependency."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def actor() -> Actor:
    return Actor(actor_code="EMP-001", actor_name="Siti Purchasing")


@pytest.fixture
def supervisor() -> Actor:
    return Actor(actor_code="SPV-001", actor_name="Budi Supervisor")


@pytest.fixture
def finance() -> Actor:
    return Actor(actor_code="FIN-001", actor_name="Dewi Finance")


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return dict(ACTOR_HEADERS)


@pytest.fixture
def make_sales_order(
    db_session: AsyncSession, actor: Actor
) -> Callable[..., Awaitable[SalesOrder]]:
    """Factory: sales order whose lines are given as (product_code, quantity, unit_price)."""

    async def _make(
        lines: list[tuple[str, int, str]] | None = None,
        customer_name: str = "PT Maju Jaya",
        project_code: str | None = None,
    ) -> SalesOrder:
        lines = lines or [("PRD-001", 10, "150000")]
        data = SalesOrderCreate(
            customer_name=customer_name,
            project_code=project_code,
            lines=[
                SalesOrderLineCreate(
                    product_code=product_code,
                    product_name=f"Product {product_code}",
                    quantity=quantity,
                    unit_price=Decimal(unit_price),
                )
                for product_code, quantity, unit_price in lines
            ],
        )
        return await SalesOrderService(db_session).create_sales_order(data, actor)

    return _make


@pytest.fixture
def make_bank_account(
    db_session: AsyncSession, actor: Actor
) -> Callable[..., Awaitable[BankAccount]]:
    async def _make(
        account_code: str = "BCA-01",
        gl_account_code: str = "1201",
        is_active: bool = True,
    ) -> BankAccount:
        data = BankAccountCreate(
            account_code=account_code,
            bank_name="Bank Central Asia",
            account_number="1234567890",
            account_holder="PT Procurement Ledger",
            gl_account_code=gl_account_code,
            is_active=is_active,
        )
        return await BankAccountService(db_session).create_bank_account(data, actor)

    return _make
