"""HTTP tests for the balance, checkout, payout and admin endpoints."""
from datetime import datetime, timedelta

import pytest

from app.models.transaction import Transaction, TransactionType
from app.services.ledger import LedgerStore


def _auth(user_id: str) -> dict:
    return {"X-User-Id": user_id}


async def _fund(db, creator_id, amount):
    past = datetime.utcnow() - timedelta(days=30)
    await LedgerStore(db).append(
        Transaction(
            creator_id=creator_id,
            type=TransactionType.SALE,
            amount=amount,
            net_amount=amount,
            created_at=past,
            available_at=past,
        )
    )
    await db.commit()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ok"}
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_requires_user_header(client):
    response = await client.get("/api/balance/summary")
    assert response.status_code == 401

    response = await client.get("/api/balance/summary", headers=_auth("unknown"))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_inactive_user_forbidden(client, make_creator):
    suspended = await make_creator(status="suspended")
    response = await client.get("/api/balance/summary", headers=_auth(suspended.uuid))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_checkout_then_balance(client, creator, product):
    """Checkout credits the creator's pending balance and shows up in history."""
    creator_id = creator.uuid
    payload = {
        "items": [{"product_id": product.uuid, "quantity": 1}],
        "buyer_email": "buyer@example.com",
        "buyer_name": "Buyer",
    }

    response = await client.post("/api/orders/checkout", json=payload, headers={"Idempotency-Key": "api-1"})
    assert response.status_code == 201
    data = response.json()
    assert data["created"] is True
    assert data["total_amount"] == 5000
    assert len(data["orders"]) == 1
    assert len(data["delivery_urls"]) == 1

    response = await client.get("/api/balance/summary", headers=_auth(creator_id))
    assert response.status_code == 200
    summary = response.json()
    assert summary["available_balance"] == 0
    assert summary["pending_balance"] == 4750
    assert summary["total_earnings"] == 4750
    assert summary["hold_period_days"] == 7

    response = await client.get("/api/balance/transactions", headers=_auth(creator_id))
    assert response.status_code == 200
    history = response.json()
    assert history["total"] == 1
    [tx] = history["transactions"]
    assert tx["type"] == "sale"
    assert tx["net_amount"] == 4750
    assert tx["metadata"]["checkout_group_id"] == data["checkout_group_id"]

    response = await client.get("/api/orders", headers=_auth(creator_id))
    assert response.status_code == 200
    assert [o["uuid"] for o in response.json()] == [data["orders"][0]["uuid"]]


@pytest.mark.asyncio
async def test_checkout_replay_returns_200(client, product):
    payload = {
        "items": [{"product_id": product.uuid}],
        "buyer_email": "buyer@example.com",
        "idempotency_key": "body-key",
    }

    first = await client.post("/api/orders/checkout", json=payload)
    second = await client.post("/api/orders/checkout", json=payload)

    assert first.status_code == 201
    assert second.status_code == 200
    assert second.json()["created"] is False
    assert second.json()["checkout_group_id"] == first.json()["checkout_group_id"]


@pytest.mark.asyncio
async def test_checkout_validation_errors(client, make_creator, make_product):
    creator = await make_creator()
    sold_out = await make_product(creator, total_quantity=0)

    response = await client.post(
        "/api/orders/checkout",
        json={"items": [{"product_id": sold_out.uuid}], "buyer_email": "buyer@example.com"},
    )
    assert response.status_code == 400
    assert response.json()["details"]["field"] == "idempotency_key"

    response = await client.post(
        "/api/orders/checkout",
        json={"items": [{"product_id": sold_out.uuid}], "buyer_email": "buyer@example.com"},
        headers={"Idempotency-Key": "api-sold-out"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"

    response = await client.post(
        "/api/orders/checkout",
        json={"items": [], "buyer_email": "buyer@example.com"},
        headers={"Idempotency-Key": "api-empty"},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_payout_endpoints(client, test_db, creator):
    creator_id = creator.uuid
    await _fund(test_db, creator_id, 10000)

    response = await client.post("/api/payouts", json={"amount": 10001}, headers=_auth(creator_id))
    assert response.status_code == 400
    assert response.json()["error"] == "INSUFFICIENT_BALANCE"

    response = await client.post(
        "/api/payouts", json={"amount": 4000, "payout_method": "bank"}, headers=_auth(creator_id)
    )
    assert response.status_code == 201
    payout = response.json()
    assert payout["status"] == "pending"
    assert payout["amount"] == 4000

    response = await client.post("/api/payouts", json={"amount": 1}, headers=_auth(creator_id))
    assert response.status_code == 409
    assert response.json()["error"] == "PENDING_PAYOUT_EXISTS"

    response = await client.get("/api/balance/summary", headers=_auth(creator_id))
    assert response.json()["available_balance"] == 6000

    response = await client.post(f"/api/payouts/{payout['uuid']}/cancel", headers=_auth(creator_id))
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    response = await client.post(f"/api/payouts/{payout['uuid']}/cancel", headers=_auth(creator_id))
    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_PAYOUT_STATE"

    response = await client.get("/api/payouts", headers=_auth(creator_id))
    assert [p["status"] for p in response.json()["payouts"]] == ["cancelled"]

    response = await client.get("/api/balance/summary", headers=_auth(creator_id))
    assert response.json()["available_balance"] == 10000


@pytest.mark.asyncio
async def test_cancel_unknown_payout_is_404(client, creator):
    response = await client.post("/api/payouts/nope/cancel", headers=_auth(creator.uuid))
    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_admin_payout_processing(client, test_db, creator, admin):
    creator_id = creator.uuid
    admin_id = admin.uuid
    await _fund(test_db, creator_id, 5000)

    response = await client.post("/api/payouts", json={}, headers=_auth(creator_id))
    assert response.status_code == 201
    payout_id = response.json()["uuid"]
    assert response.json()["amount"] == 5000

    response = await client.post(f"/api/admin/payouts/{payout_id}/process", headers=_auth(creator_id))
    assert response.status_code == 403

    response = await client.post(f"/api/admin/payouts/{payout_id}/process", headers=_auth(admin_id))
    assert response.status_code == 200
    assert response.json()["status"] == "processing"

    response = await client.post(
        f"/api/admin/payouts/{payout_id}/fail",
        json={"failure_reason": "Account closed"},
        headers=_auth(admin_id),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "failed"
    assert response.json()["failure_reason"] == "Account closed"

    response = await client.post(f"/api/admin/payouts/{payout_id}/complete", headers=_auth(admin_id))
    assert response.status_code == 400

    response = await client.get("/api/balance/summary", headers=_auth(creator_id))
    assert response.json()["available_balance"] == 5000


@pytest.mark.asyncio
async def test_admin_reconcile(client, admin):
    response = await client.post("/api/admin/reconcile?apply=false", headers=_auth(admin.uuid))
    assert response.status_code == 200
    assert response.json() == {"drift_count": 0, "applied": False, "drifts": []}
