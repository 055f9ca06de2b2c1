"""Tests for the bank statement import pipeline."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from bankfeeds.core.exceptions import NotFoundError, ValidationError
from bankfeeds.models import BankFeedTransaction, BankImportLog, Bill, Invoice
from bankfeeds.schemas.categorization_rule import RuleCondition
from bankfeeds.services.import_service import ImportService
from bankfeeds.services.rule_service import RuleService

STATEMENT = """Txn Date,Description,Ref No,Debit,Credit,Balance
10/06/2024,UPI/customer-paid-inv-1001,1001,,"5,000.00","55,000.00"
12/06/2024,SMS CHARGES QTR,,17.70,,"54,982.30"
14/06/2024,NEFT TO SHARMA,,"1,500.00",,"53,482.30"
15/06/2024,CASH DEP 0042,,,"200.00","53,682.30"
"""


@pytest.fixture
async def open_documents(db, company):
    invoice = Invoice(
        company_id=company.id,
        invoice_number="INV-1001",
        invoice_date=date(2024, 6, 1),
        total_amount=Decimal("5000.00"),
        balance_due=Decimal("5000.00"),
        status="sent",
    )
    bill = Bill(
        company_id=company.id,
        bill_number="BILL-0007",
        bill_date=date(2024, 6, 1),
        total_amount=Decimal("1800.00"),
        balance_due=Decimal("1500.00"),
        status="partially_paid",
    )
    db.add_all([invoice, bill])
    await db.flush()
    return invoice, bill


async def stored_transactions(db):
    result = await db.execute(select(BankFeedTransaction).order_by(BankFeedTransaction.id))
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_import_categorizes_and_matches(db, company, accounts, bank_account, open_documents):
    invoice, bill = open_documents

    result = await ImportService(db).import_csv_text(company.id, bank_account.id, STATEMENT)

    assert result == {"total_rows": 4, "imported": 4, "duplicates": 0, "matched": 2, "errors": None}

    upi, charges, neft, cash = await stored_transactions(db)
    assert upi.reconciliation_status == "matched"
    assert upi.matched_invoice_id == invoice.id
    assert neft.matched_bill_id == bill.id
    assert charges.suggested_account_id == accounts["bank_charges"].id
    assert charges.confidence_score == 70
    assert charges.reconciliation_status == "pending"
    assert cash.reconciliation_status == "pending"
    assert cash.confidence_score == 0


@pytest.mark.asyncio
async def test_reimport_skips_duplicates(db, company, bank_account):
    service = ImportService(db)
    await service.import_csv_text(company.id, bank_account.id, STATEMENT)

    result = await service.import_csv_text(company.id, bank_account.id, STATEMENT)

    assert result["imported"] == 0
    assert result["duplicates"] == 4
    assert len(await stored_transactions(db)) == 4


@pytest.mark.asyncio
async def test_import_writes_log(db, company, bank_account):
    await ImportService(db).import_csv_text(company.id, bank_account.id, STATEMENT)

    log = (await db.execute(select(BankImportLog))).scalar_one()
    assert log.format == "csv"
    assert (log.total_rows, log.imported_count, log.duplicate_count, log.error_count) == (4, 4, 0, 0)


@pytest.mark.asyncio
async def test_failing_row_is_reported_and_others_imported(db, company, bank_account, monkeypatch):
    service = ImportService(db)
    original = service.categorizer.categorize

    async def flaky(company_id, txn):
        if "SMS" in txn.description:
            raise RuntimeError("categorizer down")
        return await original(company_id, txn)

    monkeypatch.setattr(service.categorizer, "categorize", flaky)

    result = await service.import_csv_text(company.id, bank_account.id, STATEMENT)

    assert result["imported"] == 3
    assert result["errors"] == ["Row 2: categorizer down"]
    assert [t.description for t in await stored_transactions(db)] == [
        "UPI/customer-paid-inv-1001",
        "NEFT TO SHARMA",
        "CASH DEP 0042",
    ]
    log = (await db.execute(select(BankImportLog))).scalar_one()
    assert log.error_count == 1
    assert log.errors_detail == {"errors": ["Row 2: categorizer down"]}


@pytest.mark.asyncio
async def test_unrecognized_csv_imports_nothing(db, company, bank_account):
    result = await ImportService(db).import_csv_text(company.id, bank_account.id, "a,b\n1,2\n")
    assert result["total_rows"] == 0
    assert result["imported"] == 0


@pytest.mark.asyncio
async def test_unknown_bank_account(db, company):
    with pytest.raises(NotFoundError):
        await ImportService(db).import_csv_text(company.id, 999, STATEMENT)


@pytest.mark.asyncio
async def test_import_file_by_extension(db, company, bank_account):
    result = await ImportService(db).import_file(
        company.id, bank_account.id, "statement.CSV", STATEMENT.encode("utf-8")
    )
    assert result["imported"] == 4

    log = (await db.execute(select(BankImportLog))).scalar_one()
    assert log.filename == "statement.CSV"


@pytest.mark.asyncio
async def test_import_file_rejects_unsupported_extension(db, company, bank_account):
    with pytest.raises(ValidationError):
        await ImportService(db).import_file(company.id, bank_account.id, "statement.pdf", b"%PDF")


@pytest.mark.asyncio
async def test_import_file_rejects_empty_statement(db, company, bank_account):
    with pytest.raises(ValidationError):
        await ImportService(db).import_file(company.id, bank_account.id, "statement.csv", b"hello\n")


@pytest.mark.asyncio
async def test_preview_stores_nothing(db, company, accounts, bank_account):
    rule = await RuleService(db).add_rule(
        company_id=company.id,
        user_id=1,
        rule_name="Cash",
        conditions=[RuleCondition(field="description", operator="contains", value="cash dep")],
        target_account_id=accounts["sales"].id,
        target_party_id=None,
    )
    service = ImportService(db)
    await service.import_csv_text(company.id, bank_account.id, STATEMENT.split("14/06")[0])

    preview = await service.preview_csv_text(company.id, bank_account.id, STATEMENT)

    assert (preview["total_rows"], preview["duplicates"]) == (4, 2)
    assert [r["is_duplicate"] for r in preview["rows"]] == [True, True, False, False]
    cash = preview["rows"][3]
    assert cash["categorization_source"] == "rule"
    assert cash["suggested_account_id"] == accounts["sales"].id
    assert cash["confidence_score"] == 95
    assert len(await stored_transactions(db)) == 2
    assert rule.usage_count == 0


@pytest.mark.asyncio
async def test_preview_rejects_unrecognized_content(db, company, bank_account):
    with pytest.raises(ValidationError):
        await ImportService(db).preview_csv_text(company.id, bank_account.id, "a,b\n1,2\n")


@pytest.mark.asyncio
async def test_import_history_is_newest_first_and_tenant_scoped(db, company, bank_account, other_company):
    service = ImportService(db)
    await service.import_csv_text(company.id, bank_account.id, STATEMENT)
    await service.import_file(company.id, bank_account.id, "june.csv", STATEMENT.encode("utf-8"))

    logs = await service.list_imports(company.id)

    assert [log.filename for log in logs] == ["june.csv", None]
    assert logs[0].duplicate_count == 4
    assert await service.list_imports(other_company.id) == []
