"""Shared test fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from bankfeeds.core.database import get_db  # noqa: E402
from bankfeeds.core.security import create_access_token  # noqa: E402
from bankfeeds.main import app  # noqa: E402
from bankfeeds.models import (  # noqa: E402
    BankAccount,
    BankFeedTransaction,
    Base,
    Company,
    FiscalYear,
    LedgerAccount,
    Party,
)

USER_ID = 7


@pytest.fixture
async def engine():
    """In-memory SQLite engine with working SAVEPOINTs."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN
    @event.listens_for(test_engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
async def company(db):
    """A company with a current fiscal year."""
    company = Company(name="Acme Traders", gstin="29ABCDE1234F1Z5")
    db.add(company)
    await db.flush()
    db.add(
        FiscalYear(
            company_id=company.id,
            name="FY 2024-25",
            start_date=date(2024, 4, 1),
            end_date=date(2025, 3, 31),
            is_current=True,
        )
    )
    await db.flush()
    return company


@pytest.fixture
async def other_company(db):
    company = Company(name="Other Co")
    db.add(company)
    await db.flush()
    return company


async def add_account(db, company_id: int, code: str, name: str, account_type: str, **kwargs) -> LedgerAccount:
    account = LedgerAccount(
        company_id=company_id, code=code, name=name, account_type=account_type, **kwargs
    )
    db.add(account)
    await db.flush()
    return account


@pytest.fixture
async def accounts(db, company):
    """A small chart of accounts, keyed by short name."""
    return {
        "bank": await add_account(db, company.id, "1010", "HDFC Current Account", "asset"),
        "sales": await add_account(db, company.id, "4000", "Sales", "income"),
        "bank_charges": await add_account(db, company.id, "6100", "Bank Charges", "expense"),
        "rent": await add_account(db, company.id, "6200", "Rent Expense", "expense"),
        "payables": await add_account(db, company.id, "2000", "Accounts Payable", "liability"),
    }


@pytest.fixture
async def bank_account(db, company, accounts):
    account = BankAccount(
        company_id=company.id,
        account_id=accounts["bank"].id,
        bank_name="HDFC Bank",
        account_number="50100012345678",
        ifsc_code="HDFC0000123",
    )
    db.add(account)
    await db.flush()
    return account


@pytest.fixture
async def vendor(db, company, accounts):
    party = Party(
        company_id=company.id,
        party_type="vendor",
        name="Sharma Stationers",
        default_account_id=accounts["payables"].id,
    )
    db.add(party)
    await db.flush()
    return party


@pytest.fixture
def make_transaction(db, company, bank_account):
    """Factory for bank feed transactions of the test company."""

    async def _make(description: str, debit=None, credit=None, **kwargs) -> BankFeedTransaction:
        txn = BankFeedTransaction(
            company_id=kwargs.pop("company_id", company.id),
            bank_account_id=kwargs.pop("bank_account_id", bank_account.id),
            transaction_date=kwargs.pop("transaction_date", date(2024, 6, 15)),
            description=description,
            debit_amount=Decimal(debit) if debit is not None else None,
            credit_amount=Decimal(credit) if credit is not None else None,
            **kwargs,
        )
        db.add(txn)
        await db.flush()
        return txn

    return _make


@pytest.fixture
def auth_headers(company):
    token = create_access_token(USER_ID, company.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(db):
    """Async test client for the FastAPI app, bound to the test session."""

    async def _get_test_db():
        yield db

    app.dependency_overrides[get_db] = _get_test_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
