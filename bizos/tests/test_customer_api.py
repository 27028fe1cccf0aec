"""
Integration tests for customer, outlet and loyalty endpoints.
"""

import pytest
from decimal import Decimal


@pytest.fixture
async def customer_id(client, manager_headers):
    response = await client.post("/v1/customers", headers=manager_headers, json={
        "name": "Chinedu Retail", "phone": "+2348011111111"
    })
    assert response.status_code == 201, response.text
    return response.json()["id"]


@pytest.fixture
async def outlet_id(client, admin_headers):
    response = await client.post("/v1/outlets", headers=admin_headers, json={
        "name": "Ikeja Outlet", "loyalty_earning_rate": "0.05", "loyalty_redemption_rate": "2"
    })
    assert response.status_code == 201, response.text
    return response.json()["id"]


@pytest.mark.asyncio
async def test_deposit_confirm_flow(client, manager_headers, customer_id):
    deposit = await client.post(f"/v1/customers/{customer_id}/deposits", headers=manager_headers, json={
        "amount": "2500", "notes": "Transfer"
    })
    assert deposit.status_code == 201
    assert deposit.json()["status"] == "PENDING"
    entry_id = deposit.json()["id"]

    confirm = await client.post(f"/v1/customers/ledger/{entry_id}/confirm", headers=manager_headers, json={})
    assert confirm.status_code == 200
    assert confirm.json()["status"] == "CONFIRMED"
    assert Decimal(confirm.json()["balance_after"]) == Decimal("2500")
    assert confirm.json()["reconciled_by_id"] is not None

    again = await client.post(f"/v1/customers/ledger/{entry_id}/confirm", headers=manager_headers, json={})
    assert again.status_code == 400
    assert again.json()["error_code"] == "ERR_VALIDATION_001"

    journal = await client.get("/v1/finance/transactions", headers=manager_headers)
    assert journal.json()["total"] == 1


@pytest.mark.asyncio
async def test_non_positive_deposit(client, manager_headers, customer_id):
    response = await client.post(f"/v1/customers/{customer_id}/deposits", headers=manager_headers, json={
        "amount": "0"
    })
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_charge_statement_and_credit_score(client, manager_headers, customer_id):
    charge = await client.post(f"/v1/customers/{customer_id}/charges", headers=manager_headers, json={
        "amount": "1000", "description": "Credit sale", "reference": "SALE-9"
    })
    assert charge.status_code == 201
    assert Decimal(charge.json()["balance_after"]) == Decimal("-1000")

    deposit = await client.post(f"/v1/customers/{customer_id}/deposits", headers=manager_headers, json={
        "amount": "500"
    })
    await client.post(f"/v1/customers/ledger/{deposit.json()['id']}/confirm", headers=manager_headers, json={})

    statement = await client.get(f"/v1/customers/{customer_id}/ledger", headers=manager_headers)
    assert statement.status_code == 200
    lines = statement.json()["lines"]
    assert [Decimal(line["balance_after"]) for line in lines] == [Decimal("1000"), Decimal("500")]
    assert Decimal(statement.json()["closing_balance"]) == Decimal("500")

    score = await client.get(f"/v1/customers/{customer_id}/credit-score", headers=manager_headers)
    assert score.status_code == 200
    assert score.json()["score"] == 50
    assert score.json()["grade"] == "C"


@pytest.mark.asyncio
async def test_credit_score_for_unknown_customer(client, manager_headers):
    response = await client.get("/v1/customers/404/credit-score", headers=manager_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cashier_cannot_create_customer(client, cashier_headers):
    response = await client.post("/v1/customers", headers=cashier_headers, json={"name": "Nope"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_earn_and_redeem_points(client, cashier_headers, customer_id, outlet_id):
    earn = await client.post("/v1/loyalty/earn", headers=cashier_headers, json={
        "customer_id": customer_id, "outlet_id": outlet_id, "amount_paid": "4000", "sale_id": "SALE-1"
    })
    assert earn.status_code == 200
    assert earn.json()["earned"] is True
    assert Decimal(earn.json()["points"]) == Decimal("200")

    too_many = await client.post("/v1/loyalty/redeem", headers=cashier_headers, json={
        "customer_id": customer_id, "outlet_id": outlet_id, "points": "500"
    })
    assert too_many.status_code == 400
    assert too_many.json()["error_code"] == "ERR_LOYALTY_001"

    redeem = await client.post("/v1/loyalty/redeem", headers=cashier_headers, json={
        "customer_id": customer_id, "outlet_id": outlet_id, "points": "50"
    })
    assert redeem.status_code == 200
    assert Decimal(redeem.json()["value"]) == Decimal("100")
    assert Decimal(redeem.json()["balance"]) == Decimal("150")

    history = await client.get(f"/v1/loyalty/{customer_id}/history", headers=cashier_headers)
    assert history.status_code == 200
    assert [log["type"] for log in history.json()["logs"]] == ["REDEEM", "EARN"]

    quote = await client.get(
        "/v1/loyalty/redemption-value", headers=cashier_headers, params={"outlet_id": outlet_id, "points": "10"}
    )
    assert quote.status_code == 200
    assert Decimal(quote.json()["value"]) == Decimal("20")


@pytest.mark.asyncio
async def test_earn_at_disabled_outlet(client, admin_headers, cashier_headers, customer_id):
    outlet = await client.post("/v1/outlets", headers=admin_headers, json={
        "name": "Pop-up", "is_loyalty_enabled": False
    })

    earn = await client.post("/v1/loyalty/earn", headers=cashier_headers, json={
        "customer_id": customer_id, "outlet_id": outlet.json()["id"], "amount_paid": "100"
    })

    assert earn.status_code == 200
    assert earn.json()["earned"] is False
    assert Decimal(earn.json()["balance"]) == Decimal("0")
