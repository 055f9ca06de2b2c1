"""API tests for bank feeds and categorization rules."""

from datetime import date
from decimal import Decimal

import pytest

from bankfeeds.core.security import create_access_token
from bankfeeds.models import Invoice

STATEMENT = (
    "Txn Date,Description,Ref No,Debit,Credit,Balance\n"
    "10/06/2024,UPI/customer-paid-inv-1001,1001,,5000.00,55000.00\n"
    "12/06/2024,SMS CHARGES QTR,,17.70,,54982.30\n"
)


@pytest.fixture
async def invoice(db, company):
    invoice = Invoice(
        company_id=company.id,
        invoice_number="INV-1001",
        invoice_date=date(2024, 6, 1),
        total_amount=Decimal("5000.00"),
        balance_due=Decimal("5000.00"),
        status="sent",
    )
    db.add(invoice)
    await db.flush()
    return invoice


class TestAuth:
    @pytest.mark.asyncio
    async def test_missing_token_is_rejected(self, client):
        response = await client.get("/api/v1/bank-feeds/summary")
        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.get(
            "/api/v1/bank-feeds/summary", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_token_without_company(self, client):
        token = create_access_token(7, None)
        response = await client.get(
            "/api/v1/bank-feeds/summary", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "No company selected"


@pytest.mark.asyncio
async def test_import_then_list_and_summarize(client, auth_headers, bank_account, invoice):
    response = await client.post(
        "/api/v1/bank-feeds/import",
        json={"csv_content": STATEMENT, "bank_account_id": bank_account.id},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json() == {
        "total_rows": 2, "imported": 2, "duplicates": 0, "matched": 1, "errors": None,
    }

    response = await client.get("/api/v1/bank-feeds/transactions", headers=auth_headers)
    assert response.status_code == 200
    rows = response.json()
    assert [r["description"] for r in rows] == ["SMS CHARGES QTR", "UPI/customer-paid-inv-1001"]
    assert rows[1]["matched_entity_type"] == "invoice"
    assert rows[1]["matched_entity_id"] == invoice.id

    response = await client.get(
        "/api/v1/bank-feeds/transactions", params={"status": "pending", "search": "sms"}, headers=auth_headers
    )
    assert [r["description"] for r in response.json()] == ["SMS CHARGES QTR"]

    response = await client.get("/api/v1/bank-feeds/summary", headers=auth_headers)
    summary = response.json()
    assert summary["total_transactions"] == 2
    assert summary["pending_count"] == 1
    assert summary["matched_count"] == 1
    assert Decimal(summary["total_credits"]) == Decimal("5000.00")
    assert Decimal(summary["total_debits"]) == Decimal("17.70")


@pytest.mark.asyncio
async def test_upload_statement_file(client, auth_headers, bank_account):
    response = await client.post(
        "/api/v1/bank-feeds/upload",
        params={"bank_account_id": bank_account.id},
        files={"file": ("june.csv", STATEMENT.encode(), "text/csv")},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["imported"] == 2


@pytest.mark.asyncio
async def test_match_and_reconcile(client, auth_headers, make_transaction, invoice):
    txn = await make_transaction("IMPS CUSTOMER", credit="5000.00")

    response = await client.get(f"/api/v1/bank-feeds/transactions/{txn.id}/match", headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {
        "match_type": "invoice",
        "matched_id": invoice.id,
        "matched_number": "INV-1001",
        "confidence_score": 90,
        "match_reason": "Amount matches invoice balance due exactly",
    }

    url = f"/api/v1/bank-feeds/transactions/{txn.id}/reconcile"
    body = {"match_type": "invoice", "matched_id": invoice.id}
    response = await client.post(url, json=body, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "matched"

    response = await client.post(url, json=body, headers=auth_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_reconcile_rejects_unknown_match_type(client, auth_headers, make_transaction):
    txn = await make_transaction("X", credit="1.00")
    response = await client.post(
        f"/api/v1/bank-feeds/transactions/{txn.id}/reconcile",
        json={"match_type": "receipt", "matched_id": 1},
        headers=auth_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_entry_and_exclude(client, auth_headers, accounts, make_transaction):
    booked = await make_transaction("SMS CHARGES", debit="17.70")
    ignored = await make_transaction("SELF TRANSFER", debit="100.00")

    response = await client.post(
        f"/api/v1/bank-feeds/transactions/{booked.id}/create-entry",
        json={"account_id": accounts["bank_charges"].id},
        headers=auth_headers,
    )
    assert response.status_code == 201
    assert response.json()["entry_number"] == "JV/2024-25/0001"

    response = await client.post(
        f"/api/v1/bank-feeds/transactions/{ignored.id}/exclude",
        json={"reason": "Own account"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "excluded"


@pytest.mark.asyncio
async def test_categorize_preview_and_manual(client, auth_headers, accounts, make_transaction):
    txn = await make_transaction("UPI/Swiggy-Order", debit="450.00")

    response = await client.get(f"/api/v1/bank-feeds/transactions/{txn.id}/categorize", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["source"] == "ml"

    response = await client.post(
        f"/api/v1/bank-feeds/transactions/{txn.id}/categorize",
        json={"account_id": accounts["rent"].id, "create_rule": True},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["rule_created"] is True

    response = await client.get("/api/v1/categorization-rules", headers=auth_headers)
    (rule,) = response.json()
    assert rule["rule_name"] == "Auto-rule: swiggy"
    assert rule["target_account_name"] == "Rent Expense"


@pytest.mark.asyncio
async def test_bulk_endpoints(client, auth_headers, accounts, make_transaction, invoice):
    await make_transaction("SMS CHARGES", debit="17.70")
    await make_transaction("UPI", credit="5000.00", reference_number="INV-1001")

    response = await client.post("/api/v1/bank-feeds/auto-categorize", json={}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["processed"] == 2

    response = await client.post("/api/v1/bank-feeds/auto-reconcile", json={}, headers=auth_headers)
    data = response.json()
    assert (data["processed"], data["matched"], data["failed"]) == (2, 1, 0)


@pytest.mark.asyncio
async def test_preview_then_history(client, auth_headers, accounts, bank_account):
    response = await client.post(
        "/api/v1/bank-feeds/preview",
        json={"csv_content": STATEMENT, "bank_account_id": bank_account.id},
        headers=auth_headers,
    )
    assert response.status_code == 200
    preview = response.json()
    assert (preview["total_rows"], preview["duplicates"]) == (2, 0)
    charges = preview["rows"][1]
    assert charges["description"] == "SMS CHARGES QTR"
    assert charges["suggested_account_id"] == accounts["bank_charges"].id
    assert charges["is_duplicate"] is False

    response = await client.get("/api/v1/bank-feeds/transactions", headers=auth_headers)
    assert response.json() == []
    response = await client.get("/api/v1/bank-feeds/imports", headers=auth_headers)
    assert response.json() == []

    await client.post(
        "/api/v1/bank-feeds/import",
        json={"csv_content": STATEMENT, "bank_account_id": bank_account.id},
        headers=auth_headers,
    )
    response = await client.get("/api/v1/bank-feeds/imports", headers=auth_headers)
    assert response.status_code == 200
    (log,) = response.json()
    assert log["bank_account_id"] == bank_account.id
    assert (log["format"], log["total_rows"], log["imported_count"]) == ("csv", 2, 2)


@pytest.mark.asyncio
async def test_preview_of_unrecognized_content(client, auth_headers, bank_account):
    response = await client.post(
        "/api/v1/bank-feeds/preview",
        json={"csv_content": "a,b\n1,2\n", "bank_account_id": bank_account.id},
        headers=auth_headers,
    )
    assert response.status_code == 422


class TestRulesApi:
    @pytest.mark.asyncio
    async def test_crud(self, client, auth_headers, accounts):
        response = await client.post(
            "/api/v1/categorization-rules",
            json={
                "rule_name": "Rent",
                "conditions": [
                    {"field": "description", "operator": "contains", "value": "rent"},
                    {"field": "amount", "operator": "greater_than", "value": 10000},
                ],
                "target_account_id": accounts["rent"].id,
            },
            headers=auth_headers,
        )
        assert response.status_code == 201
        rule = response.json()
        assert rule["priority"] == 1
        assert rule["usage_count"] == 0
        assert rule["conditions"][0]["caseSensitive"] is False

        response = await client.patch(
            f"/api/v1/categorization-rules/{rule['id']}",
            json={"is_active": False, "priority": 5},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert (response.json()["is_active"], response.json()["priority"]) == (False, 5)

        response = await client.delete(f"/api/v1/categorization-rules/{rule['id']}", headers=auth_headers)
        assert response.status_code == 204

        response = await client.get("/api/v1/categorization-rules", headers=auth_headers)
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_rule_needs_conditions(self, client, auth_headers):
        response = await client.post(
            "/api/v1/categorization-rules",
            json={"rule_name": "Empty", "conditions": []},
            headers=auth_headers,
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_rule_with_foreign_account(self, client, auth_headers, db, other_company):
        from bankfeeds.models import LedgerAccount

        foreign = LedgerAccount(company_id=other_company.id, code="1", name="X", account_type="expense")
        db.add(foreign)
        await db.flush()

        response = await client.post(
            "/api/v1/categorization-rules",
            json={
                "rule_name": "Bad",
                "conditions": [{"field": "description", "operator": "contains", "value": "x"}],
                "target_account_id": foreign.id,
            },
            headers=auth_headers,
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_rejects_nulls_for_required_fields(self, client, auth_headers, accounts):
        response = await client.post(
            "/api/v1/categorization-rules",
            json={
                "rule_name": "Rent",
                "conditions": [{"field": "description", "operator": "contains", "value": "rent"}],
                "target_account_id": accounts["rent"].id,
            },
            headers=auth_headers,
        )
        rule_id = response.json()["id"]

        for body in ({"rule_name": None}, {"conditions": None}, {"priority": None}, {"is_active": None}):
            response = await client.patch(
                f"/api/v1/categorization-rules/{rule_id}", json=body, headers=auth_headers
            )
            assert response.status_code == 422, body

        response = await client.patch(
            f"/api/v1/categorization-rules/{rule_id}",
            json={"target_account_id": None},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["rule_name"] == "Rent"
        assert response.json()["target_account_id"] is None
