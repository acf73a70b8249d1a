from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

# Decimal inside the service, a JSON number on the wire.
Money = Annotated[
    Decimal,
    Field(max_digits=12, decimal_places=2),
    PlainSerializer(float, return_type=float, when_used="json"),
]

class TransactionType(str, Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"

class UserRole(str, Enum):
    ADMINISTRATOR = "ADMINISTRATOR"
    STAFF = "STAFF"
    STUDENT = "STUDENT"

# Directory ---------------------------------------------------------------
class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    academic_year: str = Field(..., min_length=1, max_length=20)
    description: Optional[str] = None

class ClassResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    academic_year: str
    created_at: datetime

class StudentCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    nis: str = Field(..., min_length=1, max_length=20, description="Student number, also used as username")
    class_id: int
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = None
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)

class StudentResponse(BaseModel):
    id: int
    user_id: int
    nis: str
    full_name: str
    class_id: int
    class_name: str
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = None
    address: Optional[str] = None
    current_balance: Money
    created_at: datetime

class StaffCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    full_name: str = Field(..., min_length=1)
    employee_id: str = Field(..., min_length=1, max_length=20)
    department: Optional[str] = Field(default=None, max_length=100)
    position: Optional[str] = Field(default=None, max_length=100)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)

class StaffResponse(BaseModel):
    id: int
    user_id: int
    username: str
    full_name: str
    employee_id: str
    department: Optional[str] = None
    position: Optional[str] = None
    created_at: datetime

# Ledger ------------------------------------------------------------------
class TransactionCreate(BaseModel):
    staff_id: int = Field(..., description="Authenticated staff profile id, supplied by the session layer")
    student_id: int
    type: TransactionType
    amount: Money = Field(..., gt=0)
    description: Optional[str] = Field(default=None, description="Narrative to display on the statement")

class LedgerEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    student_id: int
    staff_id: int
    type: TransactionType
    amount: Money
    balance_before: Money
    balance_after: Money
    description: Optional[str] = None
    transaction_date: datetime
    created_at: datetime

class StudentLedgerRow(LedgerEntryResponse):
    """An entry on a student's history, with who recorded it."""

    staff_full_name: str

class StaffLedgerRow(LedgerEntryResponse):
    """An entry on a staff member's log, with whose account it touched."""

    student_full_name: str
    student_nis: str

class ReportRow(LedgerEntryResponse):
    student_full_name: str
    student_nis: str
    class_id: int
    class_name: str
    staff_full_name: str

class ReportFilters(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    student_id: Optional[int] = None
    class_id: Optional[int] = None
    transaction_type: Optional[TransactionType] = None

class DailySummary(BaseModel):
    day: date
    total_count: int = 0
    deposit_count: int = 0
    withdrawal_count: int = 0
    deposit_amount: Money = Decimal("0.00")
    withdrawal_amount: Money = Decimal("0.00")

class DashboardStats(BaseModel):
    total_students: int
    total_staff: int
    total_balance: Money
    total_transactions_today: int
    total_deposits_today: int
    total_withdrawals_today: int
