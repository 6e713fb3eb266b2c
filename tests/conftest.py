import os

# Settings are read at import time, so test values go in first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-key")

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from ledger_assistant.ai_query.intent import TenantContext
from ledger_assistant.ai_query.llm import get_language_model
from ledger_assistant.core import models
from ledger_assistant.core.database import Base, get_db
from ledger_assistant.core.security import create_access_token, hash_password
from ledger_assistant.main import app

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeLanguageModel:
    """Returns canned replies in order and records every prompt it was given."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    async def complete(self, prompt, system=None):
        self.calls.append({"prompt": prompt, "system": system})
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


# Fresh in-memory database for every test
@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL, poolclass=StaticPool, echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    TestingSessionLocal = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with TestingSessionLocal() as session:
        yield session
        await session.rollback()


@pytest.fixture
def fake_llm():
    return FakeLanguageModel()


# Client
@pytest_asyncio.fixture
async def client(db_session: AsyncSession, fake_llm):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_language_model] = lambda: fake_llm

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def tenant():
    return TenantContext(
        tenant_id="T1",
        display_name="Acme Trading",
        base_currency="MYR",
        as_of_date=date(2026, 3, 15),
    )


# Two companies: T1 is the caller, T2 must stay invisible to it
@pytest_asyncio.fixture
async def ledger(db_session: AsyncSession):
    acme = models.Company(id="T1", name="Acme Trading", base_currency="MYR")
    rival = models.Company(id="T2", name="Rival Holdings", base_currency="SGD")

    contacts = [
        models.Contact(id="C1", name="Alpha Sdn Bhd", type="CUSTOMER", company_id="T1"),
        models.Contact(id="C2", name="Beta Enterprise", type="CUSTOMER", company_id="T1"),
        models.Contact(id="C9", name="Rival Customer", type="CUSTOMER", company_id="T2"),
    ]

    def invoice(no, contact_id, status, total, day, company_id="T1", due=None):
        return models.Invoice(
            invoice_no=no,
            contact_id=contact_id,
            status=status,
            total=Decimal(total),
            subtotal=Decimal(total),
            date=day,
            due_date=due,
            company_id=company_id,
        )

    invoices = [
        invoice("INV-0001", "C1", "PAID", "1000.00", date(2026, 1, 10)),
        invoice("INV-0002", "C1", "PAID", "500.00", date(2026, 2, 3)),
        invoice("INV-0003", "C2", "PAID", "300.00", date(2026, 2, 20)),
        invoice("INV-0004", "C2", "SENT", "250.00", date(2026, 1, 5), due=date(2026, 2, 4)),
        # Points at another tenant's contact; must never resolve to its name
        invoice("INV-0005", "C9", "PAID", "75.00", date(2026, 3, 1)),
        invoice("INV-9001", "C9", "PAID", "9999.00", date(2026, 1, 15), company_id="T2"),
    ]

    db_session.add_all([acme, rival])
    db_session.add_all(contacts)
    db_session.add_all(invoices)
    await db_session.commit()
    return {"companies": [acme, rival], "contacts": contacts, "invoices": invoices}


# User
@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession, ledger):
    user = models.User(
        email="owner@acme.example.com",
        name="Acme Owner",
        password=hash_password("password123"),
        role="admin",
        company_id="T1",
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


# Token for user
@pytest_asyncio.fixture
async def auth_headers_user(test_user):
    token = create_access_token(
        {"user_id": test_user.id, "company_id": test_user.company_id}
    )
    return {"Authorization": f"Bearer {token}"}
