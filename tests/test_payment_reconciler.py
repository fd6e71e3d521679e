import asyncio

import pytest

from app.config.database import Collections
from app.database.db_operations import db_ops
from app.services import payment_reconciler, transaction_recorder
from app.utils.errors import NotFoundError

from conftest import RESELLER_ID


async def _transaction(product, **overrides):
    payload = {
        "resellerId": RESELLER_ID,
        "productId": str(product["_id"]),
        "customerName": "Jane Doe",
        "customerEmail": "jane@example.com",
    }
    payload.update(overrides)
    transaction = await transaction_recorder.record_transaction(payload)
    await transaction_recorder.record_commission(transaction)
    return transaction


async def test_creates_pending_payment_linked_to_transaction(reseller, product):
    transaction = await _transaction(product)
    payment = await payment_reconciler.reconcile(transaction)

    assert payment["transactionId"] == str(transaction["_id"])
    assert payment["paymentId"].startswith("PAY-")
    assert payment["adminApproval"] == "pending"
    assert payment["status"] == "paid"
    assert payment["commissionStatus"] == "pending"
    assert payment["payoutStatus"] == "not_started"
    assert payment["amount"] == 249.00
    assert payment["commissionAmount"] == 124.50
    assert payment["commissionId"] is not None


async def test_reconcile_is_idempotent(reseller, product):
    transaction = await _transaction(product)
    first = await payment_reconciler.reconcile(transaction)
    second = await payment_reconciler.reconcile(transaction)

    assert first["paymentId"] == second["paymentId"]
    assert await db_ops.count(Collections.PAYMENTS, {}) == 1


async def test_concurrent_reconcile_creates_one_payment(reseller, product):
    transaction = await _transaction(product)
    payments = await asyncio.gather(*[payment_reconciler.reconcile(transaction) for _ in range(5)])

    assert len({p["paymentId"] for p in payments}) == 1
    assert await db_ops.count(Collections.PAYMENTS, {}) == 1


async def test_identical_amounts_do_not_collapse(reseller, product):
    first = await _transaction(product)
    second = await _transaction(product)

    p1 = await payment_reconciler.reconcile(first)
    p2 = await payment_reconciler.reconcile(second)

    assert p1["paymentId"] != p2["paymentId"]
    assert await db_ops.count(Collections.PAYMENTS, {}) == 2


async def test_legacy_payment_is_claimed_by_one_transaction_only(reseller, product):
    legacy = await db_ops.create(Collections.PAYMENTS, {
        "paymentId": "PAY-1-LEGACY000",
        "resellerId": RESELLER_ID,
        "productId": str(product["_id"]),
        "amount": 249.00,
        "commissionAmount": 124.50,
        "status": "paid",
        "adminApproval": "pending",
    })
    first = await _transaction(product)
    second = await _transaction(product)

    p1 = await payment_reconciler.reconcile(first)
    p2 = await payment_reconciler.reconcile(second)

    assert p1["_id"] == legacy["_id"]
    assert p1["transactionId"] == str(first["_id"])
    assert p2["_id"] != legacy["_id"]
    assert await db_ops.count(Collections.PAYMENTS, {}) == 2


async def test_missing_product_id_gets_placeholder(reseller, product):
    transaction = await db_ops.create(Collections.TRANSACTIONS, {
        "resellerId": RESELLER_ID,
        "productName": "Old sale",
        "productPrice": 10.0,
        "commissionAmount": 1.0,
    })
    payment = await payment_reconciler.reconcile(transaction)
    assert len(payment["productId"]) == 24


async def test_unknown_reseller_raises(product):
    transaction = await db_ops.create(Collections.TRANSACTIONS, {
        "resellerId": "GHOST1",
        "productId": str(product["_id"]),
        "productPrice": 10.0,
        "commissionAmount": 1.0,
    })
    with pytest.raises(NotFoundError):
        await payment_reconciler.reconcile(transaction)


async def test_reconcile_all_reports_and_is_rerunnable(reseller, product):
    await _transaction(product)
    await _transaction(product)
    await db_ops.create(Collections.TRANSACTIONS, {
        "resellerId": "GHOST1", "productPrice": 5.0, "commissionAmount": 0.5,
    })

    report = await payment_reconciler.reconcile_all(triggered_by="test")
    assert (report["processed"], report["created"], report["skipped"], report["failed"]) == (3, 2, 0, 1)
    assert report["errors"][0]["error"] == "Reseller 'GHOST1' not found"

    rerun = await payment_reconciler.reconcile_all(triggered_by="test")
    assert (rerun["created"], rerun["skipped"], rerun["failed"]) == (0, 2, 1)

    assert await db_ops.count(Collections.PAYMENTS, {}) == 2
    assert await db_ops.count(Collections.RECONCILIATION_RUNS, {}) == 2


async def test_reconcile_all_scoped_to_reseller(reseller, product):
    await _transaction(product)
    report = await payment_reconciler.reconcile_all(reseller_id="OTHER1")
    assert report["processed"] == 0
