from .db import LedgerEntry as LedgerEntryModel
from .db import SchoolClass as SchoolClassModel
from .db import StaffProfile as StaffProfileModel
from .db import StudentProfile as StudentProfileModel
from .db import User as UserModel
from .schemas import (
    ClassCreate,
    ClassResponse,
    DailySummary,
    DashboardStats,
    LedgerEntryResponse,
    ReportFilters,
    ReportRow,
    StaffCreate,
    StaffLedgerRow,
    StaffResponse,
    StudentCreate,
    StudentLedgerRow,
    StudentResponse,
    TransactionCreate,
    TransactionType,
    UserRole,
)

__all__ = [
    "ClassCreate",
    "ClassResponse",
    "DailySummary",
    "DashboardStats",
    "LedgerEntryResponse",
    "ReportFilters",
    "ReportRow",
    "StaffCreate",
    "StaffLedgerRow",
    "StaffResponse",
    "StudentCreate",
    "StudentLedgerRow",
    "StudentResponse",
    "TransactionCreate",
    "TransactionType",
    "UserRole",
    "LedgerEntryModel",
    "SchoolClassModel",
    "StaffProfileModel",
    "StudentProfileModel",
    "UserModel",
]
