"""Categorization rule model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bankfeeds.models.base import Base, JSONType, TimestampMixin


class CategorizationRule(Base, TimestampMixin):
    """A rule that suggests an account (and optionally a party) for bank transactions.

    ``conditions`` is a list of ``{field, operator, value, caseSensitive}``
    objects, all of which must hold for the rule to fire. Higher ``priority``
    rules are evaluated first.
    """

    __tablename__ = "categorization_rules"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False)
    rule_name: Mapped[str] = mapped_column(String(255), nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=0)  # higher = checked first
    conditions: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    target_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("chart_of_accounts.id"), nullable=True
    )
    target_party_id: Mapped[int | None] = mapped_column(ForeignKey("parties.id"), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by_user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    target_account = relationship("LedgerAccount")
    target_party = relationship("Party")

    __table_args__ = (
        Index("idx_categorization_rules_company_active", "company_id", "is_active"),
    )
