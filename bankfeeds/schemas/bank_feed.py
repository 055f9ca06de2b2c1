"""Bank feed schemas for request/response validation."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

MatchType = Literal["invoice", "bill", "payment_received", "payment_made", "expense", "journal_entry"]


class BankFeedTransactionResponse(BaseModel):
    id: int
    bank_account_id: int
    transaction_date: date
    value_date: date | None = None
    description: str
    reference_number: str | None = None
    debit_amount: Decimal | None = None
    credit_amount: Decimal | None = None
    running_balance: Decimal | None = None
    suggested_account_id: int | None = None
    suggested_party_id: int | None = None
    confidence_score: int
    categorization_source: str | None = None
    reconciliation_status: str
    exclusion_reason: str | None = None
    matched_entity_type: str | None = None
    matched_entity_id: int | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class BankFeedSummary(BaseModel):
    total_transactions: int
    pending_count: int
    matched_count: int
    created_count: int
    excluded_count: int
    total_credits: Decimal
    total_debits: Decimal


# ── Import ───────────────────────────────────────────


class CsvImportRequest(BaseModel):
    csv_content: str = Field(min_length=1)
    bank_account_id: int
    format: str | None = None  # bank-specific layout hint, unused by auto-detection


class ImportResult(BaseModel):
    total_rows: int
    imported: int
    duplicates: int
    matched: int
    errors: list[str] | None = None


class ImportPreviewRow(BaseModel):
    transaction_date: date
    value_date: date | None = None
    description: str
    reference_number: str | None = None
    debit_amount: Decimal | None = None
    credit_amount: Decimal | None = None
    running_balance: Decimal | None = None
    suggested_account_id: int | None = None
    suggested_party_id: int | None = None
    confidence_score: int
    categorization_source: str | None = None
    is_duplicate: bool


class ImportPreview(BaseModel):
    total_rows: int
    duplicates: int
    rows: list[ImportPreviewRow]


class ImportLogResponse(BaseModel):
    id: int
    bank_account_id: int
    filename: str | None = None
    format: str
    total_rows: int
    imported_count: int
    duplicate_count: int
    matched_count: int
    error_count: int
    errors_detail: dict | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


# ── Categorization ───────────────────────────────────


class CategorizationResultResponse(BaseModel):
    account_id: int | None = None
    party_id: int | None = None
    confidence_score: int
    source: str
    rule_name: str | None = None


class ManualCategorizeRequest(BaseModel):
    account_id: int | None = None
    party_id: int | None = None
    create_rule: bool = False


class ManualCategorizeResult(BaseModel):
    transaction_id: int
    rule_created: bool
    rule_id: int | None = None


# ── Reconciliation ───────────────────────────────────


class MatchResultResponse(BaseModel):
    match_type: MatchType | None = None
    matched_id: int | None = None
    matched_number: str | None = None
    confidence_score: int
    match_reason: str


class ReconcileRequest(BaseModel):
    match_type: MatchType
    matched_id: int


class CreateEntryRequest(BaseModel):
    account_id: int
    party_id: int | None = None


class ExcludeRequest(BaseModel):
    reason: str | None = None


class ReconcileResult(BaseModel):
    transaction_id: int
    status: str
    journal_entry_id: int | None = None
    entry_number: str | None = None
    matched_entity_type: str | None = None
    matched_entity_id: int | None = None


# ── Bulk operations ──────────────────────────────────


class BulkRequest(BaseModel):
    transaction_ids: list[int] | None = None  # None = every pending transaction


class BulkItemResult(BaseModel):
    transaction_id: int
    status: str  # categorized, uncategorized, matched, unmatched, failed
    confidence_score: int | None = None
    match_type: str | None = None
    error: str | None = None


class BulkCategorizeResult(BaseModel):
    processed: int
    categorized: int
    failed: int
    results: list[BulkItemResult]


class BulkReconcileResult(BaseModel):
    processed: int
    matched: int
    failed: int
    results: list[BulkItemResult]
