from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, text, update
from sqlmodel import Session, select

from ..core.errors import (
    InsufficientBalanceError,
    InvalidAmountError,
    StorageFailureError,
    StudentNotFoundError,
)
from ..models import LedgerEntryModel, StudentProfileModel, TransactionType
from ..services import LedgerQueryService, TransactionService


def _entry_count(session: Session) -> int:
    return session.exec(select(func.count(LedgerEntryModel.id))).one()


def _balance(session: Session, student_id: int) -> Decimal:
    session.expire_all()
    return session.get(StudentProfileModel, student_id).current_balance


def test_new_student_starts_at_zero(directory, student) -> None:
    assert directory.get_balance(student.id) == Decimal("0.00")


def test_deposit_returns_entry_with_balance_snapshots(session, poster, staff, funded_student) -> None:
    entry = poster.post_transaction(
        staff.id, funded_student.id, TransactionType.DEPOSIT, Decimal("50.00"), "Test deposit"
    )

    assert entry.id is not None
    assert entry.student_id == funded_student.id
    assert entry.staff_id == staff.id
    assert entry.type is TransactionType.DEPOSIT
    assert entry.amount == Decimal("50.00")
    assert entry.balance_before == Decimal("100.00")
    assert entry.balance_after == Decimal("150.00")
    assert entry.description == "Test deposit"
    assert isinstance(entry.balance_after, Decimal)
    assert isinstance(entry.created_at, datetime)
    assert _balance(session, funded_student.id) == Decimal("150.00")


def test_withdrawal_reduces_balance(session, poster, staff, funded_student) -> None:
    entry = poster.post_transaction(staff.id, funded_student.id, "WITHDRAWAL", 30)

    assert entry.type is TransactionType.WITHDRAWAL
    assert entry.balance_before == Decimal("100.00")
    assert entry.balance_after == Decimal("70.00")
    assert entry.description is None
    assert _balance(session, funded_student.id) == Decimal("70.00")


def test_withdrawal_of_entire_balance_is_allowed(session, poster, staff, funded_student) -> None:
    entry = poster.post_transaction(staff.id, funded_student.id, "WITHDRAWAL", "100.00")

    assert entry.balance_after == Decimal("0.00")
    assert _balance(session, funded_student.id) == Decimal("0.00")


def test_overdraft_is_rejected_without_side_effects(session, poster, staff, funded_student) -> None:
    entries_before = _entry_count(session)

    with pytest.raises(InsufficientBalanceError):
        poster.post_transaction(staff.id, funded_student.id, "WITHDRAWAL", "150.00")

    assert _balance(session, funded_student.id) == Decimal("100.00")
    assert _entry_count(session) == entries_before


def test_unknown_student_is_rejected(session, poster, staff, funded_student) -> None:
    entries_before = _entry_count(session)

    with pytest.raises(StudentNotFoundError):
        poster.post_transaction(staff.id, 99999, "DEPOSIT", "50.00")

    assert _entry_count(session) == entries_before
    assert _balance(session, funded_student.id) == Decimal("100.00")


@pytest.mark.parametrize(
    "amount", [0, "0.00", -5, "-0.01", "0.004", "10.005", Decimal("1.999"), "abc", "NaN", True]
)
def test_invalid_amounts_are_rejected(session, poster, staff, funded_student, amount) -> None:
    with pytest.raises(InvalidAmountError):
        poster.post_transaction(staff.id, funded_student.id, "DEPOSIT", amount)

    assert _entry_count(session) == 1


def test_invalid_amount_is_checked_before_student_lookup(poster, staff) -> None:
    with pytest.raises(InvalidAmountError):
        poster.post_transaction(staff.id, 99999, "DEPOSIT", 0)


def test_unknown_type_is_rejected(poster, staff, funded_student) -> None:
    with pytest.raises(ValueError):
        poster.post_transaction(staff.id, funded_student.id, "TRANSFER", 10)


def test_float_amounts_do_not_drift(session, poster, staff, student) -> None:
    for _ in range(10):
        poster.post_transaction(staff.id, student.id, "DEPOSIT", 0.1)

    assert _balance(session, student.id) == Decimal("1.00")


def test_sub_cent_amount_is_not_rounded(session, poster, staff, funded_student) -> None:
    with pytest.raises(InvalidAmountError):
        poster.post_transaction(staff.id, funded_student.id, "DEPOSIT", "10.005")

    assert _balance(session, funded_student.id) == Decimal("100.00")


def test_trailing_zero_amounts_are_accepted(poster, staff, student) -> None:
    entry = poster.post_transaction(staff.id, student.id, "DEPOSIT", "7.500")

    assert entry.amount == Decimal("7.50")


def test_timestamps_are_timezone_aware(poster, staff, funded_student) -> None:
    entry = poster.post_transaction(staff.id, funded_student.id, "DEPOSIT", "1.00")

    assert entry.created_at.tzinfo is not None
    assert entry.created_at.utcoffset() == timedelta(0)
    assert entry.transaction_date == entry.created_at


def test_money_is_stored_as_integer_cents(session, poster, staff, student) -> None:
    poster.post_transaction(staff.id, student.id, "DEPOSIT", "100.00")
    poster.post_transaction(staff.id, student.id, "DEPOSIT", 0.1)

    balances = session.connection().execute(
        text("SELECT typeof(current_balance), current_balance FROM student_profiles")
    ).all()
    amounts = session.connection().execute(
        text("SELECT typeof(amount), amount, typeof(balance_after) FROM transactions ORDER BY id")
    ).all()

    assert [tuple(row) for row in balances] == [("integer", 10010)]
    assert [tuple(row) for row in amounts] == [
        ("integer", 10000, "integer"),
        ("integer", 10, "integer"),
    ]
    assert _balance(session, student.id) == Decimal("100.10")


def test_unknown_staff_rolls_back_balance(session, poster, funded_student) -> None:
    entries_before = _entry_count(session)

    with pytest.raises(StorageFailureError):
        poster.post_transaction(424242, funded_student.id, "DEPOSIT", "10.00")

    assert _balance(session, funded_student.id) == Decimal("100.00")
    assert _entry_count(session) == entries_before


def test_deposit_then_withdrawal_round_trips(session, poster, staff, funded_student) -> None:
    deposit = poster.post_transaction(staff.id, funded_student.id, "DEPOSIT", "42.35")
    withdrawal = poster.post_transaction(staff.id, funded_student.id, "WITHDRAWAL", "42.35")

    assert deposit.balance_before == Decimal("100.00")
    assert withdrawal.balance_before == deposit.balance_after == Decimal("142.35")
    assert withdrawal.balance_after == Decimal("100.00")
    assert _balance(session, funded_student.id) == Decimal("100.00")
    assert _entry_count(session) == 3


def test_balance_matches_ledger_after_mixed_postings(session, poster, staff, student) -> None:
    postings = [
        ("DEPOSIT", "25.50"),
        ("DEPOSIT", "10.25"),
        ("WITHDRAWAL", "5.75"),
        ("WITHDRAWAL", "100.00"),  # rejected
        ("DEPOSIT", "0.01"),
        ("WITHDRAWAL", "30.01"),
    ]
    expected = Decimal("0.00")
    for entry_type, amount in postings:
        try:
            poster.post_transaction(staff.id, student.id, entry_type, amount)
        except InsufficientBalanceError:
            continue
        if entry_type == "DEPOSIT":
            expected += Decimal(amount)
        else:
            expected -= Decimal(amount)

    history = LedgerQueryService(session).entries_by_student(student.id)
    assert len(history) == 5
    assert _balance(session, student.id) == expected == Decimal("0.00")
    assert history[0].balance_after == expected

    oldest_first = list(reversed(history))
    for previous, current in zip(oldest_first, oldest_first[1:]):
        assert current.balance_before == previous.balance_after
    for row in history:
        sign = 1 if row.type is TransactionType.DEPOSIT else -1
        assert row.balance_after == row.balance_before + sign * row.amount
        assert row.balance_after >= 0


def test_concurrent_deposits_do_not_lose_updates(engine, session, staff, student) -> None:
    workers = 10
    amount = Decimal("12.34")

    def deposit(_: int) -> Decimal:
        with Session(engine) as worker_session:
            service = TransactionService(worker_session, max_attempts=50)
            return service.post_transaction(staff.id, student.id, "DEPOSIT", amount).balance_after

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(deposit, range(workers)))

    assert _balance(session, student.id) == amount * workers
    assert _entry_count(session) == workers
    assert sorted(results) == [amount * n for n in range(1, workers + 1)]


def test_concurrent_withdrawals_never_overdraw(engine, session, staff, funded_student) -> None:
    def withdraw(_: int) -> bool:
        with Session(engine) as worker_session:
            service = TransactionService(worker_session, max_attempts=50)
            try:
                service.post_transaction(staff.id, funded_student.id, "WITHDRAWAL", "30.00")
            except InsufficientBalanceError:
                return False
            return True

    with ThreadPoolExecutor(max_workers=6) as pool:
        outcomes = list(pool.map(withdraw, range(6)))

    assert outcomes.count(True) == 3
    assert _balance(session, funded_student.id) == Decimal("10.00")
    assert _entry_count(session) == 4


def test_lost_race_is_retried_against_fresh_balance(engine, session, staff, funded_student) -> None:
    """Another writer commits between this posting's read and its write."""
    poster = TransactionService(session)
    original_write = poster.repository.write_balance
    attempted = []

    def write_balance(student_id, expected_version, new_balance):
        attempted.append(new_balance)
        if len(attempted) == 1:
            with Session(engine) as other:
                other.connection().execute(
                    update(StudentProfileModel)
                    .where(StudentProfileModel.id == student_id)
                    .values(current_balance=Decimal("90.00"), version=expected_version + 1)
                )
                other.commit()
        return original_write(student_id, expected_version, new_balance)

    poster.repository.write_balance = write_balance
    entry = poster.post_transaction(staff.id, funded_student.id, "WITHDRAWAL", "20.00")

    assert attempted == [Decimal("80.00"), Decimal("70.00")]
    assert entry.balance_before == Decimal("90.00")
    assert entry.balance_after == Decimal("70.00")
    assert _balance(session, funded_student.id) == Decimal("70.00")



def test_gives_up_when_balance_keeps_changing(session, staff, funded_student) -> None:
    poster = TransactionService(session, max_attempts=3)
    poster.repository.write_balance = lambda *args: False

    with pytest.raises(StorageFailureError):
        poster.post_transaction(staff.id, funded_student.id, "DEPOSIT", "1.00")

    assert _balance(session, funded_student.id) == Decimal("100.00")
    assert _entry_count(session) == 1


def test_identical_postings_are_not_deduplicated(session, poster, staff, student) -> None:
    first = poster.post_transaction(staff.id, student.id, "DEPOSIT", "5.00", "Lunch money")
    second = poster.post_transaction(staff.id, student.id, "DEPOSIT", "5.00", "Lunch money")

    assert first.id != second.id
    assert _balance(session, student.id) == Decimal("10.00")
