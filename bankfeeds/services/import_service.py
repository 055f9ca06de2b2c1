"""Bank statement import service."""

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bankfeeds.core.exceptions import NotFoundError, ValidationError
from bankfeeds.models.bank_feed import BankFeedTransaction, BankImportLog
from bankfeeds.models.ledger import BankAccount
from bankfeeds.services.categorization_service import CategorizationService
from bankfeeds.services.match_finder import MatchFinder
from bankfeeds.services.reconciliation_service import ReconciliationService
from bankfeeds.utils.file_parsers import (
    ParsedBankTransaction,
    parse_csv,
    parse_csv_bytes,
    parse_excel,
    parse_ofx,
)

logger = structlog.get_logger()

# Supported extensions → (parser_function, format_label)
_PARSERS: dict[str, tuple] = {
    "csv": (parse_csv_bytes, "csv"),
    "xlsx": (parse_excel, "excel"),
    "ofx": (parse_ofx, "ofx"),
    "qfx": (parse_ofx, "ofx"),  # QFX is Quicken's variant of OFX
}

SUPPORTED_EXTENSIONS = sorted(_PARSERS.keys())

# Error messages kept in the import log / returned to the caller
MAX_LOGGED_ERRORS = 50
MAX_RETURNED_ERRORS = 20


class ImportService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.categorizer = CategorizationService(db)
        self.reconciler = ReconciliationService(db)

    async def import_file(
        self,
        company_id: int,
        bank_account_id: int,
        filename: str,
        content: bytes,
    ) -> dict:
        """Import a statement file (CSV, Excel, OFX/QFX), detected by extension."""
        await self._get_bank_account(company_id, bank_account_id)

        ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        if ext not in _PARSERS:
            supported = ", ".join(f".{e}" for e in SUPPORTED_EXTENSIONS)
            raise ValidationError(f"Unsupported format: .{ext}. Accepted formats: {supported}")

        parser_fn, fmt = _PARSERS[ext]
        try:
            parsed: list[ParsedBankTransaction] = parser_fn(content)
        except Exception as e:
            raise ValidationError(f"Could not parse file: {e}") from e

        if not parsed:
            raise ValidationError("The file contains no transactions")

        return await self.import_transactions(company_id, bank_account_id, parsed, filename, fmt)

    async def import_csv_text(
        self,
        company_id: int,
        bank_account_id: int,
        csv_content: str,
        format: str | None = None,
    ) -> dict:
        """Import CSV content posted as text. Unrecognized content imports nothing."""
        await self._get_bank_account(company_id, bank_account_id)
        parsed = parse_csv(csv_content, format)
        return await self.import_transactions(company_id, bank_account_id, parsed, None, "csv")

    async def preview_csv_text(
        self,
        company_id: int,
        bank_account_id: int,
        csv_content: str,
        format: str | None = None,
    ) -> dict:
        """Parse and categorize CSV content without storing anything."""
        await self._get_bank_account(company_id, bank_account_id)
        parsed = parse_csv(csv_content, format)
        if not parsed:
            raise ValidationError("No transactions found in statement")

        rows = []
        duplicates = 0
        for row in parsed:
            is_duplicate = await self._is_duplicate(company_id, bank_account_id, row)
            if is_duplicate:
                duplicates += 1
            outcome = await self.categorizer.categorize(company_id, row, record_usage=False)
            rows.append({
                **row.to_dict(),
                "suggested_account_id": outcome.account_id,
                "suggested_party_id": outcome.party_id,
                "confidence_score": outcome.confidence_score,
                "categorization_source": outcome.source if outcome.is_categorized else None,
                "is_duplicate": is_duplicate,
            })
        return {"total_rows": len(parsed), "duplicates": duplicates, "rows": rows}

    async def list_imports(
        self, company_id: int, bank_account_id: int | None = None, limit: int = 50
    ) -> list[BankImportLog]:
        """Most recent imports first."""
        query = select(BankImportLog).where(BankImportLog.company_id == company_id)
        if bank_account_id:
            query = query.where(BankImportLog.bank_account_id == bank_account_id)
        result = await self.db.execute(
            query.order_by(BankImportLog.created_at.desc(), BankImportLog.id.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def import_transactions(
        self,
        company_id: int,
        bank_account_id: int,
        parsed: list[ParsedBankTransaction],
        filename: str | None = None,
        fmt: str = "csv",
    ) -> dict:
        """Store parsed rows as pending transactions.

        Each row is skipped if already imported, then categorized, stored
        and auto-matched when the match is confident enough. Rows run in
        their own savepoint; a failing row is reported and the rest go on.
        """
        await self._get_bank_account(company_id, bank_account_id)
        finder = MatchFinder(self.db)

        imported = 0
        duplicates = 0
        matched = 0
        errors: list[str] = []

        for i, row in enumerate(parsed, start=1):
            try:
                async with self.db.begin_nested():
                    if await self._is_duplicate(company_id, bank_account_id, row):
                        duplicates += 1
                        continue

                    txn = BankFeedTransaction(
                        company_id=company_id,
                        bank_account_id=bank_account_id,
                        transaction_date=row.transaction_date,
                        value_date=row.value_date,
                        description=row.description,
                        reference_number=row.reference_number,
                        debit_amount=row.debit_amount,
                        credit_amount=row.credit_amount,
                        running_balance=row.running_balance,
                        reconciliation_status="pending",
                        confidence_score=0,
                    )

                    outcome = await self.categorizer.categorize(company_id, txn)
                    if outcome.is_categorized:
                        txn.suggested_account_id = outcome.account_id
                        txn.suggested_party_id = outcome.party_id
                        txn.confidence_score = outcome.confidence_score
                        txn.categorization_source = outcome.source

                    self.db.add(txn)
                    await self.db.flush()

                    match = await finder.find_match(company_id, txn)
                    is_matched = await self.reconciler.apply_match_result(txn, match)
            except Exception as e:
                logger.warning("bank_import_row_failed", company_id=company_id, row=i, error=str(e))
                errors.append(f"Row {i}: {e}")
                continue

            imported += 1
            if is_matched:
                matched += 1

        log = BankImportLog(
            company_id=company_id,
            bank_account_id=bank_account_id,
            filename=filename,
            format=fmt,
            total_rows=len(parsed),
            imported_count=imported,
            duplicate_count=duplicates,
            matched_count=matched,
            error_count=len(errors),
            errors_detail={"errors": errors[:MAX_LOGGED_ERRORS]} if errors else None,
        )
        self.db.add(log)
        await self.db.flush()

        logger.info(
            "bank_import_done",
            company_id=company_id,
            bank_account_id=bank_account_id,
            format=fmt,
            total_rows=len(parsed),
            imported=imported,
            duplicates=duplicates,
            matched=matched,
            errors=len(errors),
        )
        return {
            "total_rows": len(parsed),
            "imported": imported,
            "duplicates": duplicates,
            "matched": matched,
            "errors": errors[:MAX_RETURNED_ERRORS] if errors else None,
        }

    async def _get_bank_account(self, company_id: int, bank_account_id: int) -> BankAccount:
        account = await self.db.get(BankAccount, bank_account_id)
        if not account or account.company_id != company_id:
            raise NotFoundError("Bank account")
        return account

    async def _is_duplicate(
        self, company_id: int, bank_account_id: int, row: ParsedBankTransaction
    ) -> bool:
        """Same account, date and description as an already stored transaction.

        Amounts are not compared, so two genuinely distinct transactions
        sharing date and description on one account import only once.
        """
        result = await self.db.execute(
            select(BankFeedTransaction.id)
            .where(
                BankFeedTransaction.company_id == company_id,
                BankFeedTransaction.bank_account_id == bank_account_id,
                BankFeedTransaction.transaction_date == row.transaction_date,
                BankFeedTransaction.description == row.description,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None
