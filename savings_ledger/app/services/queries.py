from __future__ import annotations

from datetime import date
from typing import Optional

from sqlmodel import Session

from ..core import clock
from ..core.config import get_settings
from ..core.money import to_money
from ..models import (
    DailySummary,
    DashboardStats,
    LedgerEntryResponse,
    ReportFilters,
    ReportRow,
    StaffLedgerRow,
    StudentLedgerRow,
    TransactionType,
)
from .repository import LedgerRepository


def _entry_fields(entry) -> dict:
    return LedgerEntryResponse.model_validate(entry).model_dump()


class LedgerQueryService:
    """Read-only projections over the ledger.

    Date filters work on whole calendar days in the reporting timezone:
    a day covers ``00:00:00.000`` through ``23:59:59.999`` inclusive.
    """

    def __init__(
        self,
        session: Session,
        repository: Optional[LedgerRepository] = None,
        tz_name: Optional[str] = None,
    ) -> None:
        self.session = session
        self.repository = repository or LedgerRepository(session)
        self.tz_name = tz_name or get_settings().report_timezone

    def entries_by_student(self, student_id: int) -> list[StudentLedgerRow]:
        rows = self.repository.list_entries_for_student(student_id)
        return [
            StudentLedgerRow(**_entry_fields(entry), staff_full_name=staff_name)
            for entry, staff_name in rows
        ]

    def entries_by_staff(
        self, staff_id: int, day: Optional[date] = None
    ) -> list[StaffLedgerRow]:
        start = end = None
        if day is not None:
            start, end = clock.day_bounds(day, self.tz_name)
        rows = self.repository.list_entries_for_staff(staff_id, start, end)
        return [
            StaffLedgerRow(
                **_entry_fields(entry),
                student_full_name=student_name,
                student_nis=nis,
            )
            for entry, student_name, nis in rows
        ]

    def report(self, filters: Optional[ReportFilters] = None) -> list[ReportRow]:
        filters = filters or ReportFilters()
        start = end = None
        if filters.start_date is not None:
            start = clock.day_start(filters.start_date, self.tz_name)
        if filters.end_date is not None:
            end = clock.day_end(filters.end_date, self.tz_name)
        entry_type = filters.transaction_type.value if filters.transaction_type else None

        rows = self.repository.list_report_entries(
            start=start,
            end=end,
            student_id=filters.student_id,
            class_id=filters.class_id,
            entry_type=entry_type,
        )
        return [
            ReportRow(
                **_entry_fields(entry),
                student_full_name=student_name,
                student_nis=nis,
                class_id=class_id,
                class_name=class_name,
                staff_full_name=staff_name,
            )
            for entry, student_name, nis, class_id, class_name, staff_name in rows
        ]

    def daily_summary(self, day: date) -> DailySummary:
        start, end = clock.day_bounds(day, self.tz_name)
        summary = DailySummary(day=day)
        for entry_type, count, total in self.repository.totals_by_type(start, end):
            summary.total_count += count
            if entry_type == TransactionType.DEPOSIT.value:
                summary.deposit_count += count
                summary.deposit_amount += to_money(total)
            else:
                summary.withdrawal_count += count
                summary.withdrawal_amount += to_money(total)
        return summary

    def dashboard_stats(self, day: Optional[date] = None) -> DashboardStats:
        """Administrator overview; ``day`` defaults to today in the reporting timezone."""
        summary = self.daily_summary(day or clock.today(self.tz_name))
        return DashboardStats(
            total_students=self.repository.count_students(),
            total_staff=self.repository.count_staff(),
            total_balance=to_money(self.repository.total_balance()),
            total_transactions_today=summary.total_count,
            total_deposits_today=summary.deposit_count,
            total_withdrawals_today=summary.withdrawal_count,
        )
