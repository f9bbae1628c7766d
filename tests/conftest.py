"""
Test configuration and fixtures for POS API tests.
"""

import os

# Cheap hashing and an in-memory default engine before the package is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import uuid
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import pos_system.models  # noqa: F401  registers every table on Base.metadata
from pos_system.config import JwtSettings, get_jwt_settings
from pos_system.database import Base, get_db
from pos_system.dependencies import build_auth_service
from pos_system.identity.store import SqlIdentityStore
from pos_system.models.inventory import Product, ProductLineItem
from pos_system.models.users import User
from pos_system.order_service import OrderService
from pos_system.startup import seed_roles
from pos_system.token_store import RefreshTokenStore
from pos_system.tokens import TokenService

# Test database URL - use in-memory SQLite for fast tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Must be >= 32 bytes for HMAC-SHA256
TEST_SIGNING_KEY = "SuperSecretKeyForTesting12345678!@#"

DEFAULT_PASSWORD = "Passw0rd!"

fake = Faker()


@pytest.fixture
async def async_engine():
    """Create test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_maker(async_engine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def async_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def file_session_maker(tmp_path):
    """Sessions on a file-backed database, each with its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'pos_race.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def seeded_roles(async_session):
    await seed_roles(async_session)


@pytest.fixture
def default_password() -> str:
    """Password given to every user built by user_factory."""
    return DEFAULT_PASSWORD


@pytest.fixture
def jwt_settings() -> JwtSettings:
    return JwtSettings(
        key=TEST_SIGNING_KEY,
        issuer="TestIssuer",
        audience="TestAudience",
        access_token_expiration_minutes=15,
        refresh_token_expiration_days=7,
    )


@pytest.fixture
def identity_store(async_session) -> SqlIdentityStore:
    return SqlIdentityStore(async_session)


@pytest.fixture
def token_store(async_session) -> RefreshTokenStore:
    return RefreshTokenStore(async_session)


@pytest.fixture
def token_service(jwt_settings, token_store, identity_store) -> TokenService:
    return TokenService(jwt_settings, token_store, users=identity_store, roles=identity_store)


@pytest.fixture
def auth_service(async_session, jwt_settings):
    return build_auth_service(async_session, jwt_settings)


@pytest.fixture
def order_service(async_session) -> OrderService:
    return OrderService(async_session)


@pytest.fixture
def user_factory(identity_store, seeded_roles):
    """Create persisted users with roles."""
    async def _create(
        username=None,
        password=DEFAULT_PASSWORD,
        roles=("Cashier",),
        is_active=True,
        **fields,
    ) -> User:
        user = User(
            username=username or fake.unique.user_name(),
            email=fields.pop("email", None) or fake.unique.email(),
            full_name=fields.pop("full_name", None) or fake.name(),
            is_active=is_active,
            **fields,
        )
        result = await identity_store.create(user, password)
        assert result.succeeded, result.errors
        for role in roles:
            assert (await identity_store.add_to_role(user, role)).succeeded
        return user

    return _create


@pytest.fixture
def inventory_factory(async_session):
    """Create a product with one stocked line item."""
    async def _create(
        quantity=5,
        display_price=Decimal("12.50"),
        cost=Decimal("7.00"),
        product_name=None,
        line_item_id=None,
    ) -> ProductLineItem:
        product = Product(id=str(uuid.uuid4()), name=product_name or fake.word().title())
        line_item = ProductLineItem(
            id=line_item_id or str(uuid.uuid4()),
            barcode_id=fake.ean13(),
            product_id=product.id,
            cost=cost,
            display_price=display_price,
            discounted_price=display_price,
            quantity=quantity,
        )
        async_session.add_all([product, line_item])
        await async_session.commit()
        return line_item

    return _create


@pytest.fixture
async def async_client(session_maker, jwt_settings):
    """Create async test client bound to the test database."""
    from pos_system.main import app

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_jwt_settings] = lambda: jwt_settings

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides = {}


@pytest.fixture
def auth_headers():
    """Build bearer headers from an AuthResponse."""
    def _headers(auth_response) -> dict:
        return {"Authorization": f"Bearer {auth_response.access_token}"}
    return _headers
