"""
Application Period Models

Administrator-defined windows during which new applications may be started.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from bursary.modules.shared import BaseModel


class ApplicationPeriod(BaseModel):
    """
    A named date range. At most one row has is_active = true.

    Activation swaps the flag inside a single transaction; the partial unique
    index rejects any state with two active rows.
    """

    __tablename__ = "application_periods"

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    academic_year: Mapped[str] = mapped_column(String(7), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index(
            "uq_application_periods_single_active",
            "is_active",
            unique=True,
            postgresql_where=text("is_active"),
        ),
        Index("ix_application_periods_start_date", "start_date"),
    )

    def is_open_at(self, moment: datetime) -> bool:
        return self.start_date <= moment <= self.end_date
