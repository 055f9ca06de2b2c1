"""Bank feed API routes: import, categorization and reconciliation."""

from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from bankfeeds.api.deps import TenantContext, get_db, get_tenant_context
from bankfeeds.config import settings
from bankfeeds.core.exceptions import ValidationError
from bankfeeds.schemas.bank_feed import (
    BankFeedSummary,
    BankFeedTransactionResponse,
    BulkCategorizeResult,
    BulkReconcileResult,
    BulkRequest,
    CategorizationResultResponse,
    CreateEntryRequest,
    CsvImportRequest,
    ExcludeRequest,
    ImportLogResponse,
    ImportPreview,
    ImportResult,
    ManualCategorizeRequest,
    ManualCategorizeResult,
    MatchResultResponse,
    ReconcileRequest,
    ReconcileResult,
)
from bankfeeds.services.bank_feed_service import BankFeedService
from bankfeeds.services.categorization_service import CategorizationService
from bankfeeds.services.import_service import ImportService
from bankfeeds.services.reconciliation_service import ReconciliationService

router = APIRouter()


# ── Listing ─────────────────────────────────────────


@router.get("/summary", response_model=BankFeedSummary)
async def get_summary(
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Counts per reconciliation status and credit/debit totals."""
    service = BankFeedService(db)
    return await service.get_summary(tenant.company_id)


@router.get("/transactions", response_model=list[BankFeedTransactionResponse])
async def list_transactions(
    status: str | None = Query(None, pattern="^(all|pending|matched|created|excluded)$"),
    bank_account_id: int | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    search: str | None = None,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """List bank feed transactions with optional filters."""
    service = BankFeedService(db)
    return await service.list_transactions(
        tenant.company_id,
        status=status,
        bank_account_id=bank_account_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )


# ── Import ──────────────────────────────────────────


@router.post("/import", response_model=ImportResult)
async def import_csv(
    data: CsvImportRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Import a bank CSV export posted as text."""
    service = ImportService(db)
    return await service.import_csv_text(
        tenant.company_id, data.bank_account_id, data.csv_content, data.format
    )


@router.post("/preview", response_model=ImportPreview)
async def preview_csv(
    data: CsvImportRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Parse and categorize a bank CSV export without importing it."""
    service = ImportService(db)
    return await service.preview_csv_text(
        tenant.company_id, data.bank_account_id, data.csv_content, data.format
    )


@router.get("/imports", response_model=list[ImportLogResponse])
async def list_imports(
    bank_account_id: int | None = None,
    limit: int = Query(50, ge=1, le=200),
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Import history, newest first."""
    service = ImportService(db)
    return await service.list_imports(tenant.company_id, bank_account_id, limit)


@router.post("/upload", response_model=ImportResult)
async def upload_statement(
    bank_account_id: int = Query(..., description="Bank account the statement belongs to"),
    file: UploadFile = File(...),
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Import a statement file (CSV, Excel or OFX/QFX)."""
    content = await file.read()
    if len(content) > settings.max_upload_size_mb * 1024 * 1024:
        raise ValidationError(f"File exceeds {settings.max_upload_size_mb} MB")
    filename = file.filename or "upload"

    service = ImportService(db)
    return await service.import_file(tenant.company_id, bank_account_id, filename, content)


# ── Categorization ──────────────────────────────────


@router.get("/transactions/{transaction_id}/categorize", response_model=CategorizationResultResponse)
async def suggest_category(
    transaction_id: int,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Suggest an account/party for a transaction without saving it."""
    transaction = await BankFeedService(db).get_transaction(tenant.company_id, transaction_id)
    result = await CategorizationService(db).categorize(tenant.company_id, transaction)
    return asdict(result)


@router.post("/transactions/{transaction_id}/categorize", response_model=ManualCategorizeResult)
async def categorize_manually(
    transaction_id: int,
    data: ManualCategorizeRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Set the transaction's account/party by hand, optionally learning a rule."""
    service = CategorizationService(db)
    return await service.apply_manual_categorization(
        tenant.company_id,
        tenant.user_id,
        transaction_id,
        data.account_id,
        data.party_id,
        create_rule=data.create_rule,
    )


@router.post("/auto-categorize", response_model=BulkCategorizeResult)
async def auto_categorize(
    data: BulkRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Categorize pending transactions (or the given ones) in bulk."""
    service = CategorizationService(db)
    return await service.bulk_categorize(tenant.company_id, data.transaction_ids)


# ── Reconciliation ──────────────────────────────────


@router.get("/transactions/{transaction_id}/match", response_model=MatchResultResponse)
async def find_match(
    transaction_id: int,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Best matching invoice, bill, payment or expense for a transaction."""
    service = ReconciliationService(db)
    result = await service.find_match(tenant.company_id, transaction_id)
    return asdict(result)


@router.post("/transactions/{transaction_id}/reconcile", response_model=ReconcileResult)
async def reconcile(
    transaction_id: int,
    data: ReconcileRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Link a pending transaction to an existing record."""
    service = ReconciliationService(db)
    return await service.reconcile_transaction(
        tenant.company_id, transaction_id, data.match_type, data.matched_id
    )


@router.post("/transactions/{transaction_id}/create-entry", response_model=ReconcileResult, status_code=201)
async def create_entry(
    transaction_id: int,
    data: CreateEntryRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Book a pending transaction with a new journal entry."""
    service = ReconciliationService(db)
    return await service.create_journal_entry_from_transaction(
        tenant.company_id, tenant.user_id, transaction_id, data.account_id, data.party_id
    )


@router.post("/transactions/{transaction_id}/exclude", response_model=ReconcileResult)
async def exclude(
    transaction_id: int,
    data: ExcludeRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Exclude a pending transaction from reconciliation."""
    service = ReconciliationService(db)
    return await service.exclude_transaction(tenant.company_id, transaction_id, data.reason)


@router.post("/auto-reconcile", response_model=BulkReconcileResult)
async def auto_reconcile(
    data: BulkRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Apply confident matches to pending transactions in bulk."""
    service = ReconciliationService(db)
    return await service.bulk_auto_reconcile(tenant.company_id, data.transaction_ids)
