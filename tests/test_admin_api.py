import pytest

from app.config.database import Collections
from app.database.db_operations import db_ops
from app.services.payment_gateway import PaymentGateway
from app.utils.errors import GatewayError

from conftest import RESELLER_ID


class DownGateway(PaymentGateway):
    mode = "live"
    is_live = True

    async def disburse(self, reseller_id, amount, reference_id, description):
        raise GatewayError("Payout rejected by processor (400): invalid recipient")


@pytest.fixture
async def payment_id(client, reseller, purchase_payload):
    resp = await client.post("/api/webhooks/store-purchase", json=purchase_payload)
    return resp.json()["paymentId"]


async def test_login_and_me(client, admin):
    resp = await client.post("/api/admin/login", json={"username": "admin", "password": "admin123"})
    assert resp.status_code == 200
    token = resp.json()["access_token"]
    assert resp.json()["admin"]["username"] == "admin"

    me = await client.get("/api/admin/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "admin@example.com"


async def test_login_with_wrong_password(client, admin):
    resp = await client.post("/api/admin/login", json={"username": "admin", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "Invalid username or password", "error": "unauthorized"}


async def test_deactivated_admin_cannot_login(client, admin):
    await db_ops.update(Collections.ADMINS, admin["_id"], {"isActive": False})
    resp = await client.post("/api/admin/login", json={"username": "admin", "password": "admin123"})
    assert resp.status_code == 403
    assert resp.json()["error"] == "forbidden"


async def test_admin_routes_require_admin_role(client, payment_id, reseller_headers):
    assert (await client.get("/api/admin/payments")).status_code in (401, 403)
    assert (await client.get("/api/admin/payments", headers=reseller_headers)).status_code == 403
    bad = {"Authorization": "Bearer not-a-jwt"}
    resp = await client.get("/api/admin/payments", headers=bad)
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "message": "Could not validate credentials", "error": "unauthorized"}


async def test_list_and_get_payments(client, payment_id, admin_headers):
    resp = await client.get("/api/admin/payments", params={"approval": "pending"}, headers=admin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["pagination"]["total"] == 1
    assert body["payments"][0]["paymentId"] == payment_id

    detail = await client.get(f"/api/admin/payments/{payment_id}", headers=admin_headers)
    assert detail.json()["payment"]["commissionAmount"] == 124.50

    missing = await client.get("/api/admin/payments/PAY-0-NOPE", headers=admin_headers)
    assert missing.status_code == 404


async def test_approve_then_stats(client, payment_id, admin_headers):
    resp = await client.post(
        f"/api/admin/payments/{payment_id}/approve", json={"notes": "looks good"}, headers=admin_headers
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["payment"]["adminApproval"] == "approved"
    assert body["payment"]["adminNotes"] == "looks good"
    assert body["liveDisbursement"] is False

    stats = (await client.get("/api/admin/payments/stats", headers=admin_headers)).json()
    assert stats["totalPayments"] == 1
    assert stats["approvedPayments"] == 1
    assert stats["pendingApprovals"] == 0
    assert stats["totalCommissionsPaid"] == 124.50

    commissions = (await client.get("/api/admin/commissions", params={"status": "paid"},
                                    headers=admin_headers)).json()
    assert len(commissions) == 1
    assert commissions[0]["commissionAmount"] == 124.50


async def test_reject(client, payment_id, admin_headers):
    resp = await client.post(f"/api/admin/payments/{payment_id}/reject", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["payment"]["adminApproval"] == "rejected"

    again = await client.post(f"/api/admin/payments/{payment_id}/reject", headers=admin_headers)
    assert again.status_code == 409
    assert again.json()["error"] == "conflict"


@pytest.mark.parametrize("gateway", [DownGateway()])
async def test_gateway_failure_is_502_and_payment_stays_pending(client, payment_id, admin_headers):
    resp = await client.post(f"/api/admin/payments/{payment_id}/approve", headers=admin_headers)

    assert resp.status_code == 502
    assert resp.json()["error"] == "gateway_error"
    payment = await db_ops.get_one(Collections.PAYMENTS, {"paymentId": payment_id})
    assert payment["adminApproval"] == "pending"
    assert payment["payoutStatus"] == "failed"
    assert payment["disbursementAttempts"] == 1


async def test_reconciliation_run_and_history(client, reseller, product, admin_headers):
    await db_ops.create(Collections.TRANSACTIONS, {
        "resellerId": RESELLER_ID,
        "productId": str(product["_id"]),
        "productPrice": 249.00,
        "commissionAmount": 124.50,
    })

    run = await client.post("/api/admin/reconciliation/run", headers=admin_headers)
    assert run.status_code == 200
    assert run.json()["created"] == 1
    assert run.json()["triggeredBy"] == "admin"

    rerun = (await client.post("/api/admin/reconciliation/run", headers=admin_headers)).json()
    assert rerun["created"] == 0
    assert rerun["skipped"] == 1

    history = (await client.get("/api/admin/reconciliation/runs", headers=admin_headers)).json()
    assert len(history) == 2


async def test_fraud_alert_review_flow(client, reseller, purchase_payload, admin_headers):
    purchase_payload["customerEmail"] = "reseller@example.com"
    created = (await client.post("/api/webhooks/store-purchase", json=purchase_payload)).json()
    assert created["flagged"] is True

    blocked = await client.post(f"/api/admin/payments/{created['paymentId']}/approve", headers=admin_headers)
    assert blocked.status_code == 409

    alerts = (await client.get("/api/admin/fraud-alerts", params={"status": "flagged"},
                               headers=admin_headers)).json()
    assert alerts["pagination"]["total"] == 1
    alert_id = alerts["alerts"][0]["_id"]

    review = await client.post(f"/api/admin/fraud-alerts/{alert_id}/review",
                               json={"action": "approve"}, headers=admin_headers)
    assert review.status_code == 200
    assert review.json()["alert"]["status"] == "approved"

    approved = await client.post(f"/api/admin/payments/{created['paymentId']}/approve", headers=admin_headers)
    assert approved.status_code == 200


async def test_products_catalog(client, admin_headers):
    resp = await client.post("/api/admin/products", headers=admin_headers, json={
        "name": "Beam POS License",
        "price": 99.0,
        "commission": 20,
        "category": "License",
    })
    assert resp.status_code == 201
    product_id = resp.json()["_id"]

    listed = (await client.get("/api/products")).json()
    assert [p["name"] for p in listed] == ["Beam POS License"]

    detail = await client.get(f"/api/products/{product_id}")
    assert detail.json()["commission"] == 20
    assert (await client.get("/api/products/not-an-id")).status_code == 404


async def test_reseller_wallet_and_history(client, payment_id, admin_headers, reseller_headers):
    wallet = (await client.get("/api/reseller/wallet", headers=reseller_headers)).json()
    assert wallet["pendingCommission"] == 124.50
    assert wallet["pendingPayments"] == 1
    assert wallet["balance"] == 0.0

    await client.post(f"/api/admin/payments/{payment_id}/approve", headers=admin_headers)

    wallet = (await client.get("/api/reseller/wallet", headers=reseller_headers)).json()
    assert wallet["balance"] == 124.50
    assert wallet["totalSales"] == 1
    assert wallet["pendingPayments"] == 0

    payments = (await client.get("/api/reseller/payments", headers=reseller_headers)).json()
    assert payments["payments"][0]["adminApproval"] == "approved"
    transactions = (await client.get("/api/reseller/transactions", headers=reseller_headers)).json()
    assert transactions["pagination"]["total"] == 1

    assert (await client.get("/api/reseller/wallet", headers=admin_headers)).status_code == 403


async def test_root_and_health(client):
    assert (await client.get("/health")).json() == {"status": "healthy"}
    assert (await client.get("/")).json()["status"] == "running"


async def test_legacy_payment_rows_are_listed(client, reseller, admin_headers, reseller_headers):
    # Shape written by the earlier approve handler: status "approved", no transaction link
    await db_ops.create(Collections.PAYMENTS, {
        "paymentId": "PAY-1690000000000-LEGACY001",
        "resellerId": RESELLER_ID,
        "amount": 249.00,
        "commissionAmount": 124.50,
        "status": "approved",
        "adminApproval": "approved",
        "commissionStatus": "approved",
    })

    listed = await client.get("/api/admin/payments", headers=admin_headers)
    assert listed.status_code == 200
    assert listed.json()["payments"][0]["status"] == "approved"
    assert listed.json()["payments"][0]["productId"] is None

    mine = await client.get("/api/reseller/payments", headers=reseller_headers)
    assert mine.status_code == 200
    assert mine.json()["payments"][0]["paymentId"] == "PAY-1690000000000-LEGACY001"
