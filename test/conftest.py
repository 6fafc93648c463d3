"""
Pytest configuration and fixtures for OrderDesk tests

Every test that touches the database gets its own file-backed SQLite
database under tmp_path. A file (rather than :memory:) lets separate
sessions see each other's commits and contend for locks, which the
concurrency tests rely on.
"""

from collections.abc import AsyncGenerator
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from orderdesk.auth import create_access_token
from orderdesk.config import settings
from orderdesk.constants.roles import MembershipRole
from orderdesk.database import Base, get_db
from orderdesk.models import Customer, Membership, Organization, Product, User
from orderdesk.services.org_access_service import OrgContext


@pytest.fixture(scope="function")
async def engine(tmp_path):
    """Fresh database with all tables for one test."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'orderdesk_test.db'}"
    test_engine = create_async_engine(url, echo=False, connect_args={"timeout": 30})

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fast_retries(monkeypatch):
    """Generous but quick conflict retries so lock contention never surfaces in tests."""
    monkeypatch.setattr(settings, "conflict_max_retries", 10)
    monkeypatch.setattr(settings, "conflict_retry_backoff_ms", [10, 20, 40, 80])


@pytest.fixture
async def tenants(db: AsyncSession) -> SimpleNamespace:
    """
    Two organizations with members, customers and catalogs.

    Acme (org_a):
        owner, member (role member), manager; customer "Jane Buyer";
        SKU-100 stock 5 @ 10.00 / 18%, SKU-200 stock 50 @ 19.99 / 8%,
        SKU-300 inactive.
    Globex (org_b):
        rival (owner); customer "Rival Buyer"; SKU-100 stock 100 @ 12.00.
    """
    owner = User(email="owner@acme.test", name="Acme Owner")
    member = User(email="member@acme.test", name="Acme Member")
    manager = User(email="manager@acme.test", name="Acme Manager")
    rival = User(email="owner@globex.test", name="Globex Owner")
    db.add_all([owner, member, manager, rival])

    org_a = Organization(name="Acme Ltd", industry="Retail")
    org_b = Organization(name="Globex", industry="Wholesale")
    db.add_all([org_a, org_b])
    await db.flush()

    db.add_all(
        [
            Membership(user_id=owner.id, organization_id=org_a.id, role=MembershipRole.OWNER.value),
            Membership(user_id=member.id, organization_id=org_a.id, role=MembershipRole.MEMBER.value),
            Membership(user_id=manager.id, organization_id=org_a.id, role=MembershipRole.MANAGER.value),
            Membership(user_id=rival.id, organization_id=org_b.id, role=MembershipRole.OWNER.value),
        ]
    )

    customer_a = Customer(organization_id=org_a.id, customer_code="C-A-1", name="Jane Buyer")
    customer_b = Customer(organization_id=org_b.id, customer_code="C-B-1", name="Rival Buyer")
    db.add_all([customer_a, customer_b])

    widget = Product(
        organization_id=org_a.id,
        sku="SKU-100",
        name="Widget",
        category="Hardware",
        unit_price=Decimal("10.00"),
        tax_rate=Decimal("18.00"),
        stock_quantity=5,
        reorder_threshold=2,
    )
    gadget = Product(
        organization_id=org_a.id,
        sku="SKU-200",
        name="Gadget",
        category="Hardware",
        unit_price=Decimal("19.99"),
        tax_rate=Decimal("8.00"),
        stock_quantity=50,
        reorder_threshold=10,
    )
    retired = Product(
        organization_id=org_a.id,
        sku="SKU-300",
        name="Retired Thing",
        category="Legacy",
        unit_price=Decimal("5.00"),
        stock_quantity=10,
        is_active=False,
    )
    foreign = Product(
        organization_id=org_b.id,
        sku="SKU-100",
        name="Globex Widget",
        category="Hardware",
        unit_price=Decimal("12.00"),
        stock_quantity=100,
    )
    db.add_all([widget, gadget, retired, foreign])
    await db.commit()

    return SimpleNamespace(
        owner=owner,
        member=member,
        manager=manager,
        rival=rival,
        org_a=org_a,
        org_b=org_b,
        customer_a=customer_a,
        customer_b=customer_b,
        widget=widget,
        gadget=gadget,
        retired=retired,
        foreign=foreign,
        ctx_a=OrgContext(org_a.id, owner.id, MembershipRole.OWNER.value, org_a.name),
        ctx_a_member=OrgContext(org_a.id, member.id, MembershipRole.MEMBER.value, org_a.name),
        ctx_a_manager=OrgContext(org_a.id, manager.id, MembershipRole.MANAGER.value, org_a.name),
        ctx_b=OrgContext(org_b.id, rival.id, MembershipRole.OWNER.value, org_b.name),
    )


async def stock_of(session_factory, product_id: int) -> int:
    """Read a product's stock through a fresh session."""
    async with session_factory() as session:
        product = await session.get(Product, product_id)
        return product.stock_quantity


def bearer(user_id: int) -> dict:
    token = create_access_token(user_id, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


def auth_headers_for(user_id: int, organization_id: int | None = None) -> dict:
    headers = bearer(user_id)
    if organization_id is not None:
        headers[settings.org_header_name] = str(organization_id)
    return headers


@pytest.fixture
async def client(session_factory):
    """httpx client against the app with get_db bound to the test database."""
    from httpx import ASGITransport, AsyncClient

    from orderdesk.main import create_app

    app = create_app()

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as async_client:
        yield async_client

    app.dependency_overrides.clear()
