from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel

from ..core.clock import utcnow
from ..core.money import Cents

class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(max_length=50, unique=True, index=True)
    full_name: str
    role: str = Field(max_length=20)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)

class SchoolClass(SQLModel, table=True):
    __tablename__ = "classes"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    description: Optional[str] = None
    academic_year: str = Field(max_length=20)
    created_at: datetime = Field(default_factory=utcnow)

class StudentProfile(SQLModel, table=True):
    """A student and their balance account, one row each."""

    __tablename__ = "student_profiles"
    __table_args__ = (
        CheckConstraint("current_balance >= 0", name="balance_non_negative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    nis: str = Field(max_length=20, unique=True, index=True)
    class_id: int = Field(foreign_key="classes.id", index=True)
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = None
    current_balance: Decimal = Field(default=Decimal("0.00"), sa_type=Cents)
    # Bumped on every balance write; a posting's UPDATE matches only the version it read.
    version: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow)

class StaffProfile(SQLModel, table=True):
    __tablename__ = "staff_profiles"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    employee_id: str = Field(max_length=20, unique=True, index=True)
    department: Optional[str] = Field(default=None, max_length=100)
    position: Optional[str] = Field(default=None, max_length=100)
    created_at: datetime = Field(default_factory=utcnow)

class LedgerEntry(SQLModel, table=True):
    """Append-only audit record of one posting. Rows are never updated or deleted."""

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
        CheckConstraint("balance_after >= 0", name="balance_after_non_negative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key="student_profiles.id", index=True)
    staff_id: int = Field(foreign_key="staff_profiles.id", index=True)
    type: str = Field(max_length=20)
    amount: Decimal = Field(sa_type=Cents)
    balance_before: Decimal = Field(sa_type=Cents)
    balance_after: Decimal = Field(sa_type=Cents)
    description: Optional[str] = None
    transaction_date: datetime = Field(default_factory=utcnow, index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)
