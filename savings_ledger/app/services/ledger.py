from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..core.clock import utcnow
from ..core.config import get_settings
from ..core.errors import (
    InsufficientBalanceError,
    InvalidAmountError,
    StorageFailureError,
    StudentNotFoundError,
)
from ..core.money import ZERO, MoneyInput, to_exact_money, to_money
from ..models import LedgerEntryResponse, TransactionType
from .repository import LedgerRepository


logger = logging.getLogger(__name__)


class TransactionService:
    """Posts deposits and withdrawals against student balances.

    This is the only writer of ``StudentProfile.current_balance``. Each
    posting reads the balance under a row lock, computes the new balance,
    writes it with a version check and appends the ledger entry, all in one
    database transaction. If the version check finds the row changed since
    the read (engines without ``FOR UPDATE``), the transaction is rolled back
    and the posting re-run against the fresh balance.
    """

    def __init__(
        self,
        session: Session,
        repository: Optional[LedgerRepository] = None,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: Optional[int] = None,
    ) -> None:
        self.session = session
        self.repository = repository or LedgerRepository(session)
        self.clock = clock
        self.max_attempts = max_attempts or get_settings().post_max_attempts

    # ------------------------------------------------------------------
    # Helper utilities
    # ------------------------------------------------------------------
    @staticmethod
    def _validate_amount(amount: MoneyInput) -> Decimal:
        if isinstance(amount, bool):
            raise InvalidAmountError(f"Invalid amount: {amount!r}")
        try:
            value = to_exact_money(amount)
        except ValueError as exc:
            raise InvalidAmountError(str(exc)) from exc
        if value <= ZERO:
            raise InvalidAmountError("Amount must be greater than zero")
        return value

    def _apply(
        self,
        staff_id: int,
        student_id: int,
        entry_type: TransactionType,
        amount: Decimal,
        description: Optional[str],
    ) -> Optional[LedgerEntryResponse]:
        account = self.repository.lock_student(student_id)
        if account is None:
            raise StudentNotFoundError(f"Student {student_id} not found")

        balance_before = to_money(account.current_balance)
        if entry_type is TransactionType.DEPOSIT:
            balance_after = balance_before + amount
        else:
            balance_after = balance_before - amount
            if balance_after < ZERO:
                raise InsufficientBalanceError(
                    f"Insufficient balance: {balance_before} available, {amount} requested"
                )

        if not self.repository.write_balance(student_id, account.version, balance_after):
            return None

        entry = self.repository.add_entry(
            student_id=student_id,
            staff_id=staff_id,
            entry_type=entry_type.value,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            description=description,
            timestamp=self.clock(),
        )
        return LedgerEntryResponse(
            id=entry.id,
            student_id=student_id,
            staff_id=staff_id,
            type=entry_type,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            description=description,
            transaction_date=entry.transaction_date,
            created_at=entry.created_at,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def post_transaction(
        self,
        staff_id: int,
        student_id: int,
        entry_type: Union[TransactionType, str],
        amount: MoneyInput,
        description: Optional[str] = None,
    ) -> LedgerEntryResponse:
        entry_type = TransactionType(entry_type)
        amount = self._validate_amount(amount)

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = self._apply(staff_id, student_id, entry_type, amount, description)
                if response is None:
                    self.session.rollback()
                    logger.info(
                        "transaction.retry",
                        extra={"student_id": student_id, "attempt": attempt},
                    )
                    continue
                self.session.commit()
            except (StudentNotFoundError, InsufficientBalanceError) as exc:
                self.session.rollback()
                logger.info(
                    "transaction.rejected",
                    extra={
                        "student_id": student_id,
                        "staff_id": staff_id,
                        "type": entry_type.value,
                        "amount": str(amount),
                        "reason": type(exc).__name__,
                    },
                )
                raise
            except SQLAlchemyError as exc:
                self.session.rollback()
                logger.error(
                    "transaction.storage_failure",
                    extra={"student_id": student_id, "staff_id": staff_id, "error": str(exc)},
                )
                raise StorageFailureError("Transaction could not be committed") from exc

            logger.info(
                "transaction.posted",
                extra={
                    "transaction_id": response.id,
                    "student_id": student_id,
                    "staff_id": staff_id,
                    "type": entry_type.value,
                    "amount": str(amount),
                    "balance": str(response.balance_after),
                },
            )
            return response

        raise StorageFailureError(
            f"Balance of student {student_id} kept changing; gave up after {self.max_attempts} attempts"
        )
