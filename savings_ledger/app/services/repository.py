from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import aliased
from sqlmodel import Session, select

from ..models import (
    LedgerEntryModel,
    SchoolClassModel,
    StaffProfileModel,
    StudentProfileModel,
    UserModel,
)

StudentUser = aliased(UserModel, name="student_user")
StaffUser = aliased(UserModel, name="staff_user")


class LedgerRepository:
    """Thin data access layer around the SQLModel session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # Directory ----------------------------------------------------------
    def add_class(self, **fields: Any) -> SchoolClassModel:
        school_class = SchoolClassModel(**fields)
        self.session.add(school_class)
        self.session.flush()
        self.session.refresh(school_class)
        return school_class

    def get_class(self, class_id: int) -> Optional[SchoolClassModel]:
        return self.session.get(SchoolClassModel, class_id)

    def list_classes(self) -> list[SchoolClassModel]:
        stmt = select(SchoolClassModel).order_by(SchoolClassModel.name, SchoolClassModel.id)
        return list(self.session.exec(stmt))

    def add_user(self, **fields: Any) -> UserModel:
        user = UserModel(**fields)
        self.session.add(user)
        self.session.flush()
        return user

    def add_student_profile(self, **fields: Any) -> StudentProfileModel:
        profile = StudentProfileModel(**fields)
        self.session.add(profile)
        self.session.flush()
        self.session.refresh(profile)
        return profile

    def add_staff_profile(self, **fields: Any) -> StaffProfileModel:
        profile = StaffProfileModel(**fields)
        self.session.add(profile)
        self.session.flush()
        self.session.refresh(profile)
        return profile

    def _student_rows(self):
        return (
            select(StudentProfileModel, UserModel.full_name, SchoolClassModel.name)
            .join(UserModel, StudentProfileModel.user_id == UserModel.id)
            .join(SchoolClassModel, StudentProfileModel.class_id == SchoolClassModel.id)
        )

    def get_student_row(
        self, student_id: int
    ) -> Optional[tuple[StudentProfileModel, str, str]]:
        stmt = self._student_rows().where(StudentProfileModel.id == student_id)
        return self.session.exec(stmt).first()

    def list_student_rows(
        self, class_id: Optional[int] = None
    ) -> list[tuple[StudentProfileModel, str, str]]:
        stmt = self._student_rows()
        if class_id is not None:
            stmt = stmt.where(StudentProfileModel.class_id == class_id)
        stmt = stmt.order_by(StudentProfileModel.nis)
        return list(self.session.exec(stmt))

    def _staff_rows(self):
        return select(StaffProfileModel, UserModel).join(
            UserModel, StaffProfileModel.user_id == UserModel.id
        )

    def get_staff_row(self, staff_id: int) -> Optional[tuple[StaffProfileModel, UserModel]]:
        stmt = self._staff_rows().where(StaffProfileModel.id == staff_id)
        return self.session.exec(stmt).first()

    def list_staff_rows(self) -> list[tuple[StaffProfileModel, UserModel]]:
        stmt = self._staff_rows().order_by(StaffProfileModel.employee_id)
        return list(self.session.exec(stmt))

    def count_students(self) -> int:
        return self.session.exec(select(func.count(StudentProfileModel.id))).one()

    def count_staff(self) -> int:
        return self.session.exec(select(func.count(StaffProfileModel.id))).one()

    def total_balance(self) -> Optional[Decimal]:
        return self.session.exec(select(func.sum(StudentProfileModel.current_balance))).one()

    # Balance account ----------------------------------------------------
    def lock_student(self, student_id: int) -> Optional[StudentProfileModel]:
        """Load the account row under ``FOR UPDATE``, bypassing the identity map."""
        stmt = (
            select(StudentProfileModel)
            .where(StudentProfileModel.id == student_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.session.exec(stmt).first()

    def write_balance(
        self, student_id: int, expected_version: int, new_balance: Decimal
    ) -> bool:
        """Compare-and-set the balance; False when another writer got there first."""
        stmt = (
            update(StudentProfileModel)
            .where(StudentProfileModel.id == student_id)
            .where(StudentProfileModel.version == expected_version)
            .values(
                current_balance=new_balance,
                version=StudentProfileModel.version + 1,
            )
        )
        result = self.session.connection().execute(stmt)
        return result.rowcount == 1

    # Ledger entries -----------------------------------------------------
    def add_entry(
        self,
        *,
        student_id: int,
        staff_id: int,
        entry_type: str,
        amount: Decimal,
        balance_before: Decimal,
        balance_after: Decimal,
        description: Optional[str],
        timestamp: datetime,
    ) -> LedgerEntryModel:
        entry = LedgerEntryModel(
            student_id=student_id,
            staff_id=staff_id,
            type=entry_type,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            description=description,
            transaction_date=timestamp,
            created_at=timestamp,
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    def list_entries_for_student(
        self, student_id: int
    ) -> list[tuple[LedgerEntryModel, str]]:
        stmt = (
            select(LedgerEntryModel, StaffUser.full_name)
            .join(StaffProfileModel, LedgerEntryModel.staff_id == StaffProfileModel.id)
            .join(StaffUser, StaffProfileModel.user_id == StaffUser.id)
            .where(LedgerEntryModel.student_id == student_id)
            .order_by(LedgerEntryModel.created_at.desc(), LedgerEntryModel.id.desc())
        )
        return list(self.session.exec(stmt))

    def list_entries_for_staff(
        self,
        staff_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[tuple[LedgerEntryModel, str, str]]:
        stmt = (
            select(LedgerEntryModel, StudentUser.full_name, StudentProfileModel.nis)
            .join(StudentProfileModel, LedgerEntryModel.student_id == StudentProfileModel.id)
            .join(StudentUser, StudentProfileModel.user_id == StudentUser.id)
            .where(LedgerEntryModel.staff_id == staff_id)
        )
        stmt = self._within(stmt, start, end)
        stmt = stmt.order_by(LedgerEntryModel.created_at.desc(), LedgerEntryModel.id.desc())
        return list(self.session.exec(stmt))

    def list_report_entries(
        self,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        student_id: Optional[int] = None,
        class_id: Optional[int] = None,
        entry_type: Optional[str] = None,
    ) -> list[tuple[LedgerEntryModel, str, str, int, str, str]]:
        stmt = (
            select(
                LedgerEntryModel,
                StudentUser.full_name,
                StudentProfileModel.nis,
                SchoolClassModel.id,
                SchoolClassModel.name,
                StaffUser.full_name,
            )
            .join(StudentProfileModel, LedgerEntryModel.student_id == StudentProfileModel.id)
            .join(StudentUser, StudentProfileModel.user_id == StudentUser.id)
            .join(SchoolClassModel, StudentProfileModel.class_id == SchoolClassModel.id)
            .join(StaffProfileModel, LedgerEntryModel.staff_id == StaffProfileModel.id)
            .join(StaffUser, StaffProfileModel.user_id == StaffUser.id)
        )
        stmt = self._within(stmt, start, end)
        if student_id is not None:
            stmt = stmt.where(LedgerEntryModel.student_id == student_id)
        if class_id is not None:
            stmt = stmt.where(StudentProfileModel.class_id == class_id)
        if entry_type is not None:
            stmt = stmt.where(LedgerEntryModel.type == entry_type)
        stmt = stmt.order_by(LedgerEntryModel.created_at.desc(), LedgerEntryModel.id.desc())
        return list(self.session.exec(stmt))

    def totals_by_type(
        self, start: datetime, end: datetime
    ) -> list[tuple[str, int, Optional[Decimal]]]:
        stmt = (
            select(
                LedgerEntryModel.type,
                func.count(LedgerEntryModel.id),
                func.sum(LedgerEntryModel.amount),
            )
            .where(LedgerEntryModel.transaction_date >= start)
            .where(LedgerEntryModel.transaction_date <= end)
            .group_by(LedgerEntryModel.type)
        )
        return list(self.session.exec(stmt))

    @staticmethod
    def _within(stmt, start: Optional[datetime], end: Optional[datetime]):
        if start is not None:
            stmt = stmt.where(LedgerEntryModel.transaction_date >= start)
        if end is not None:
            stmt = stmt.where(LedgerEntryModel.transaction_date <= end)
        return stmt
