# tests/conftest.py
import os
import tempfile
import uuid
from decimal import Decimal

# Settings are read at import time; point them at a throwaway SQLite file first.
_DB_DIR = tempfile.mkdtemp(prefix="enerjios-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_DB_DIR, "test.db")
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-enerjios-tests"
os.environ["LOGIN_RATE_LIMIT"] = "1000/minute"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

import app.models  # noqa: F401
from app.core.db import AsyncSessionFactory, engine
from app.core.security import create_access_token, hash_password
from app.main import app as fastapi_app
from app.models.base import Base
from app.models.company import Company
from app.models.product import Product
from app.models.user import User
from app.services.event_dispatcher import get_dispatcher


@pytest_asyncio.fixture(autouse=True)
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    get_dispatcher().clear()
    yield
    get_dispatcher().clear()
    await engine.dispose()


@pytest_asyncio.fixture
async def db():
    async with AsyncSessionFactory() as session:
        yield session


async def _make_company(name: str) -> Company:
    async with AsyncSessionFactory() as session:
        company = Company(id=str(uuid.uuid4()), name=name, email=f"{uuid.uuid4().hex[:8]}@example.com")
        session.add(company)
        await session.commit()
        return company


async def _make_user(company_id: str, role: str, first_name: str, password: str = "secret123") -> User:
    async with AsyncSessionFactory() as session:
        user = User(
            id=str(uuid.uuid4()),
            email=f"{role.lower()}-{uuid.uuid4().hex[:6]}@example.com",
            hashed_password=hash_password(password),
            first_name=first_name,
            last_name="Yılmaz",
            role=role,
            company_id=company_id,
        )
        session.add(user)
        await session.commit()
        return user


@pytest_asyncio.fixture
async def company():
    return await _make_company("Trakya Solar")


@pytest_asyncio.fixture
async def other_company():
    return await _make_company("Ege Enerji")


@pytest_asyncio.fixture
async def admin_user(company):
    return await _make_user(company.id, "ADMIN", "Ayşe")


@pytest_asyncio.fixture
async def company_user(company):
    return await _make_user(company.id, "COMPANY", "Mehmet")


@pytest_asyncio.fixture
async def customer_user(company):
    return await _make_user(company.id, "CUSTOMER", "Can")


@pytest_asyncio.fixture
async def installer_user(company):
    return await _make_user(company.id, "INSTALLATION_TEAM", "Emre")


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user.id})}"}


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


@pytest.fixture
def make_product(company):
    async def factory(name: str = "Panel 550W", stock: int = 10, unit_price: str = "1000", company_id: str = None):
        async with AsyncSessionFactory() as session:
            product = Product(
                id=str(uuid.uuid4()),
                company_id=company_id or company.id,
                name=name,
                category="PANEL",
                unit_price=Decimal(unit_price),
                stock=stock,
            )
            session.add(product)
            await session.commit()
            return product

    return factory


async def stock_of(product_id: str, session=None) -> int:
    # Every SQLite transaction takes the write lock, so reuse an open session when there is one
    if session is not None:
        result = await session.execute(select(Product.stock).where(Product.id == product_id))
        return result.scalar_one()
    async with AsyncSessionFactory() as fresh:
        result = await fresh.execute(select(Product.stock).where(Product.id == product_id))
        return result.scalar_one()
