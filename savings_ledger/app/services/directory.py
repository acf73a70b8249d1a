from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from ..core.errors import (
    ClassNotFoundError,
    DuplicateRecordError,
    StaffNotFoundError,
    StudentNotFoundError,
)
from ..core.money import ZERO, to_money
from ..models import (
    ClassCreate,
    ClassResponse,
    StaffCreate,
    StaffResponse,
    StudentCreate,
    StudentResponse,
    UserRole,
)
from .repository import LedgerRepository


logger = logging.getLogger(__name__)


class DirectoryService:
    """Classes, students and staff that ledger entries point at.

    Creating a student opens its balance account at zero. Nothing here
    changes a balance afterwards; that belongs to ``TransactionService``.
    """

    def __init__(
        self,
        session: Session,
        repository: Optional[LedgerRepository] = None,
    ) -> None:
        self.session = session
        self.repository = repository or LedgerRepository(session)

    def _commit(self, what: str) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateRecordError(f"{what} already exists") from exc

    def _student_response(self, row) -> StudentResponse:
        profile, full_name, class_name = row
        return StudentResponse(
            id=profile.id,
            user_id=profile.user_id,
            nis=profile.nis,
            full_name=full_name,
            class_id=profile.class_id,
            class_name=class_name,
            parent_name=profile.parent_name,
            parent_phone=profile.parent_phone,
            address=profile.address,
            current_balance=to_money(profile.current_balance),
            created_at=profile.created_at,
        )

    # Classes -----------------------------------------------------------
    def create_class(self, payload: ClassCreate) -> ClassResponse:
        school_class = self.repository.add_class(**payload.model_dump())
        self.session.commit()
        self.session.refresh(school_class)
        return ClassResponse.model_validate(school_class)

    def list_classes(self) -> list[ClassResponse]:
        return [ClassResponse.model_validate(c) for c in self.repository.list_classes()]

    # Students ----------------------------------------------------------
    def create_student(self, payload: StudentCreate) -> StudentResponse:
        if self.repository.get_class(payload.class_id) is None:
            raise ClassNotFoundError(f"Class {payload.class_id} not found")

        try:
            user = self.repository.add_user(
                username=payload.nis,
                full_name=payload.full_name,
                role=UserRole.STUDENT.value,
                email=payload.email,
                phone=payload.phone,
            )
            profile = self.repository.add_student_profile(
                user_id=user.id,
                nis=payload.nis,
                class_id=payload.class_id,
                parent_name=payload.parent_name,
                parent_phone=payload.parent_phone,
                address=payload.address,
                current_balance=ZERO,
            )
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateRecordError(f"Student with NIS {payload.nis} already exists") from exc
        self._commit(f"Student with NIS {payload.nis}")

        logger.info(
            "student.created",
            extra={"student_id": profile.id, "nis": payload.nis, "class_id": payload.class_id},
        )
        return self.get_student(profile.id)

    def get_student(self, student_id: int) -> StudentResponse:
        row = self.repository.get_student_row(student_id)
        if row is None:
            raise StudentNotFoundError(f"Student {student_id} not found")
        return self._student_response(row)

    def list_students(self, class_id: Optional[int] = None) -> list[StudentResponse]:
        return [
            self._student_response(row)
            for row in self.repository.list_student_rows(class_id)
        ]

    def get_balance(self, student_id: int) -> Decimal:
        return self.get_student(student_id).current_balance

    # Staff -------------------------------------------------------------
    def create_staff(self, payload: StaffCreate) -> StaffResponse:
        try:
            user = self.repository.add_user(
                username=payload.username,
                full_name=payload.full_name,
                role=UserRole.STAFF.value,
                email=payload.email,
                phone=payload.phone,
            )
            profile = self.repository.add_staff_profile(
                user_id=user.id,
                employee_id=payload.employee_id,
                department=payload.department,
                position=payload.position,
            )
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateRecordError(
                f"Staff {payload.username}/{payload.employee_id} already exists"
            ) from exc
        self._commit(f"Staff {payload.username}")

        logger.info(
            "staff.created",
            extra={"staff_id": profile.id, "employee_id": payload.employee_id},
        )
        return self.get_staff(profile.id)

    def get_staff(self, staff_id: int) -> StaffResponse:
        row = self.repository.get_staff_row(staff_id)
        if row is None:
            raise StaffNotFoundError(f"Staff {staff_id} not found")
        return self._staff_response(row)

    def list_staff(self) -> list[StaffResponse]:
        return [self._staff_response(row) for row in self.repository.list_staff_rows()]

    def _staff_response(self, row) -> StaffResponse:
        profile, user = row
        return StaffResponse(
            id=profile.id,
            user_id=profile.user_id,
            username=user.username,
            full_name=user.full_name,
            employee_id=profile.employee_id,
            department=profile.department,
            position=profile.position,
            created_at=profile.created_at,
        )
