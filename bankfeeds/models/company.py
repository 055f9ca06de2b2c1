"""Company (tenant) and fiscal year models."""

from datetime import date

from sqlalchemy import Boolean, Date, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bankfeeds.models.base import Base, TimestampMixin


class Company(Base, TimestampMixin):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    gstin: Mapped[str | None] = mapped_column(String(15), nullable=True)
    base_currency: Mapped[str] = mapped_column(String(3), default="INR")

    fiscal_years = relationship("FiscalYear", back_populates="company", lazy="select")


class FiscalYear(Base, TimestampMixin):
    __tablename__ = "fiscal_years"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)  # e.g. "FY 2024-25"
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_current: Mapped[bool] = mapped_column(Boolean, default=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False)

    company = relationship("Company", back_populates="fiscal_years")

    @property
    def short_name(self) -> str:
        """Name as used in document numbers: "FY 2024-25" -> "2024-25"."""
        return self.name.replace("FY ", "")
