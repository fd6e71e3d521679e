import httpx
import pytest
from mongomock_motor import AsyncMongoMockClient

from app.config.database import db_config, Collections, ensure_indexes
from app.database.db_operations import db_ops
from app.main import app
from app.routes.payment import get_payment_gateway
from app.services.payment_gateway import MockPaymentGateway, RetryPolicy
from app.utils.auth import hash_password, create_access_token

RESELLER_ID = "F2FA9D"


@pytest.fixture(autouse=True)
async def db():
    client = AsyncMongoMockClient()
    db_config.client = client
    db_config.database = client["beam_affiliate_test"]
    await ensure_indexes()
    yield db_config.database
    db_config.client = None
    db_config.database = None


@pytest.fixture
def no_wait_policy():
    return RetryPolicy(max_attempts=3, backoff_seconds=0, max_backoff_seconds=0)


@pytest.fixture
async def reseller():
    return await db_ops.create(Collections.USERS, {
        "resellerId": RESELLER_ID,
        "email": "reseller@example.com",
        "firstName": "Demo",
        "lastName": "Reseller",
        "balance": 0.0,
        "totalEarnings": 0.0,
        "totalSales": 0,
        "isActive": True,
    })


@pytest.fixture
async def product():
    return await db_ops.create(Collections.PRODUCTS, {
        "name": "Beam Wallet Installation",
        "description": "",
        "price": 249.00,
        "commission": 50,
        "category": "Installation",
        "isActive": True,
        "features": [],
    })


@pytest.fixture
async def admin():
    return await db_ops.create(Collections.ADMINS, {
        "username": "admin",
        "email": "admin@example.com",
        "fullName": "System Administrator",
        "role": "super_admin",
        "isActive": True,
        "password": hash_password("admin123"),
    })


@pytest.fixture
def admin_headers(admin):
    token = create_access_token({"sub": str(admin["_id"]), "username": "admin", "role": "super_admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def reseller_headers():
    token = create_access_token({"resellerId": RESELLER_ID, "role": "reseller"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def gateway():
    return MockPaymentGateway()


@pytest.fixture
async def client(gateway):
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def purchase_payload(product):
    return {
        "orderId": "ORD-10021",
        "productId": str(product["_id"]),
        "affiliateId": RESELLER_ID,
        "customerEmail": "jane@example.com",
        "customerName": "Jane Doe",
        "amount": 249.00,
        "trackingData": {"utmSource": "instagram", "ipAddress": "203.0.113.7"},
    }
