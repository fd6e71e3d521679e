import pytest
from bson import ObjectId

from app.config.database import Collections
from app.database.db_operations import db_ops
from app.services import transaction_recorder
from app.utils.errors import NotFoundError, DuplicateError, ValidationError

from conftest import RESELLER_ID


def _payload(product, **overrides):
    payload = {
        "resellerId": RESELLER_ID,
        "productId": str(product["_id"]),
        "customerName": "Jane Doe",
        "customerEmail": "Jane@Example.com",
    }
    payload.update(overrides)
    return payload


async def test_records_pending_transaction_with_commission(reseller, product):
    transaction = await transaction_recorder.record_transaction(_payload(product, orderId="ORD-1"))

    assert transaction["paymentStatus"] == "pending"
    assert transaction["productPrice"] == 249.00
    assert transaction["commissionAmount"] == 124.50
    assert transaction["customerEmail"] == "jane@example.com"
    assert transaction["source"] == "external_store"
    assert await db_ops.count(Collections.TRANSACTIONS, {}) == 1


async def test_charged_amount_overrides_catalog_price(reseller, product):
    transaction = await transaction_recorder.record_transaction(_payload(product, productPrice=199.99))
    assert transaction["productPrice"] == 199.99
    assert transaction["commissionAmount"] == 100.0


async def test_unknown_reseller_or_product(reseller, product):
    with pytest.raises(NotFoundError):
        await transaction_recorder.record_transaction(_payload(product, resellerId="NOPE00"))
    with pytest.raises(NotFoundError):
        await transaction_recorder.record_transaction(_payload(product, productId=str(ObjectId())))
    with pytest.raises(NotFoundError):
        await transaction_recorder.record_transaction(_payload(product, productId="not-an-id"))


async def test_inactive_reseller_is_not_found(reseller, product):
    await db_ops.update(Collections.USERS, reseller["_id"], {"isActive": False})
    with pytest.raises(NotFoundError):
        await transaction_recorder.record_transaction(_payload(product))


async def test_missing_customer_is_validation_error(reseller, product):
    with pytest.raises(ValidationError):
        await transaction_recorder.record_transaction(_payload(product, customerEmail=""))


async def test_same_order_is_recorded_once(reseller, product):
    await transaction_recorder.record_transaction(_payload(product, orderId="ORD-7"))
    with pytest.raises(DuplicateError):
        await transaction_recorder.record_transaction(_payload(product, orderId="ORD-7"))
    assert await db_ops.count(Collections.TRANSACTIONS, {"orderId": "ORD-7"}) == 1


async def test_manual_transactions_without_order_id_do_not_collide(reseller, product):
    await transaction_recorder.record_transaction(_payload(product))
    await transaction_recorder.record_transaction(_payload(product))
    assert await db_ops.count(Collections.TRANSACTIONS, {}) == 2


async def test_commission_entry_is_created_once(reseller, product):
    transaction = await transaction_recorder.record_transaction(_payload(product))
    first = await transaction_recorder.record_commission(transaction)
    second = await transaction_recorder.record_commission(transaction)

    assert first["_id"] == second["_id"]
    assert first["status"] == "pending"
    assert first["commissionAmount"] == 124.50
    assert await db_ops.count(Collections.COMMISSIONS, {}) == 1


async def test_order_status_maps_and_keeps_history(reseller, product):
    await transaction_recorder.record_transaction(_payload(product, orderId="ORD-9"))

    updated = await transaction_recorder.update_order_status("ORD-9", "refunded", "customer request")
    assert updated["paymentStatus"] == "refunded"
    assert updated["statusHistory"][-1]["status"] == "refunded"
    assert updated["statusHistory"][-1]["reason"] == "customer request"

    with pytest.raises(NotFoundError):
        await transaction_recorder.update_order_status("ORD-404", "completed")


async def test_purchase_stats(reseller, product):
    await transaction_recorder.record_transaction(_payload(product, orderId="A"))
    await transaction_recorder.record_transaction(_payload(product, orderId="B", productPrice=51.0))
    await transaction_recorder.update_order_status("A", "completed")

    stats = await transaction_recorder.get_purchase_stats(RESELLER_ID, "7d")
    assert stats["totalPurchases"] == 2
    assert stats["totalRevenue"] == 300.0
    assert stats["averageOrderValue"] == 150.0
    assert stats["completedPurchases"] == 1
    assert stats["pendingPurchases"] == 1
