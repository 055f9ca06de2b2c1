"""Document number allocation.

Numbers are handed out from ``document_sequences`` rows read with
``SELECT ... FOR UPDATE``: concurrent allocations in the same series wait
on the row lock, so every number is used exactly once.
"""

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bankfeeds.models.company import FiscalYear
from bankfeeds.models.journal import DocumentSequence, JournalEntry

logger = structlog.get_logger()

JOURNAL_SERIES = "JV"


class SequenceService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def next_value(self, fiscal_year: FiscalYear, series: str) -> int:
        """Allocate the next value of ``series`` within ``fiscal_year``."""
        result = await self.db.execute(
            select(DocumentSequence)
            .where(
                DocumentSequence.fiscal_year_id == fiscal_year.id,
                DocumentSequence.series == series,
            )
            .with_for_update()
        )
        sequence = result.scalar_one_or_none()
        if sequence is None:
            sequence = DocumentSequence(
                company_id=fiscal_year.company_id,
                fiscal_year_id=fiscal_year.id,
                series=series,
                last_value=await self._existing_count(fiscal_year, series),
            )
            self.db.add(sequence)

        sequence.last_value += 1
        await self.db.flush()
        return sequence.last_value

    async def next_journal_entry_number(self, fiscal_year: FiscalYear) -> str:
        """Next journal voucher number, e.g. ``JV/2024-25/0001``."""
        value = await self.next_value(fiscal_year, JOURNAL_SERIES)
        return f"{JOURNAL_SERIES}/{fiscal_year.short_name}/{value:04d}"

    async def _existing_count(self, fiscal_year: FiscalYear, series: str) -> int:
        """Entries numbered before the series had a sequence row."""
        if series != JOURNAL_SERIES:
            return 0
        result = await self.db.execute(
            select(func.count(JournalEntry.id)).where(
                JournalEntry.company_id == fiscal_year.company_id,
                JournalEntry.fiscal_year_id == fiscal_year.id,
            )
        )
        count = result.scalar() or 0
        if count:
            logger.info(
                "document_sequence_seeded",
                fiscal_year_id=fiscal_year.id,
                series=series,
                last_value=count,
            )
        return count
