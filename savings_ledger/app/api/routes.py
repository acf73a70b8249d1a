from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..core import clock
from ..core.config import get_settings
from ..core.dependencies import (
    get_directory_service,
    get_query_service,
    get_transaction_service,
)
from ..models import (
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
)
from ..services import DirectoryService, LedgerQueryService, TransactionService


class_router = APIRouter(prefix="/classes", tags=["classes"])

@class_router.post("", response_model=ClassResponse, status_code=status.HTTP_201_CREATED)
def create_class(
    payload: ClassCreate,
    service: DirectoryService = Depends(get_directory_service),
) -> ClassResponse:
    return service.create_class(payload)

@class_router.get("", response_model=list[ClassResponse])
def list_classes(
    service: DirectoryService = Depends(get_directory_service),
) -> list[ClassResponse]:
    return service.list_classes()

student_router = APIRouter(prefix="/students", tags=["students"])

@student_router.post("", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
def create_student(
    payload: StudentCreate,
    service: DirectoryService = Depends(get_directory_service),
) -> StudentResponse:
    return service.create_student(payload)

@student_router.get("", response_model=list[StudentResponse])
def list_students(
    class_id: Optional[int] = None,
    service: DirectoryService = Depends(get_directory_service),
) -> list[StudentResponse]:
    return service.list_students(class_id)

@student_router.get("/{student_id}", response_model=StudentResponse)
def get_student(
    student_id: int,
    service: DirectoryService = Depends(get_directory_service),
) -> StudentResponse:
    return service.get_student(student_id)

@student_router.get("/{student_id}/transactions", response_model=list[StudentLedgerRow])
def get_student_transactions(
    student_id: int,
    queries: LedgerQueryService = Depends(get_query_service),
) -> list[StudentLedgerRow]:
    return queries.entries_by_student(student_id)

staff_router = APIRouter(prefix="/staff", tags=["staff"])

@staff_router.post("", response_model=StaffResponse, status_code=status.HTTP_201_CREATED)
def create_staff(
    payload: StaffCreate,
    service: DirectoryService = Depends(get_directory_service),
) -> StaffResponse:
    return service.create_staff(payload)

@staff_router.get("", response_model=list[StaffResponse])
def list_staff(
    service: DirectoryService = Depends(get_directory_service),
) -> list[StaffResponse]:
    return service.list_staff()

@staff_router.get("/{staff_id}", response_model=StaffResponse)
def get_staff(
    staff_id: int,
    service: DirectoryService = Depends(get_directory_service),
) -> StaffResponse:
    return service.get_staff(staff_id)

@staff_router.get("/{staff_id}/transactions", response_model=list[StaffLedgerRow])
def get_staff_transactions(
    staff_id: int,
    day: Optional[date] = Query(default=None, alias="date"),
    queries: LedgerQueryService = Depends(get_query_service),
) -> list[StaffLedgerRow]:
    return queries.entries_by_staff(staff_id, day)

transaction_router = APIRouter(prefix="/transactions", tags=["transactions"])

@transaction_router.post("", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
def post_transaction(
    payload: TransactionCreate,
    service: TransactionService = Depends(get_transaction_service),
) -> LedgerEntryResponse:
    return service.post_transaction(
        payload.staff_id,
        payload.student_id,
        payload.type,
        payload.amount,
        payload.description,
    )

report_router = APIRouter(prefix="/reports", tags=["reports"])

@report_router.get("/transactions", response_model=list[ReportRow])
def get_transactions_report(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    student_id: Optional[int] = None,
    class_id: Optional[int] = None,
    transaction_type: Optional[TransactionType] = None,
    queries: LedgerQueryService = Depends(get_query_service),
) -> list[ReportRow]:
    filters = ReportFilters(
        start_date=start_date,
        end_date=end_date,
        student_id=student_id,
        class_id=class_id,
        transaction_type=transaction_type,
    )
    return queries.report(filters)

@report_router.get("/daily-summary", response_model=DailySummary)
def get_daily_summary(
    day: Optional[date] = Query(default=None, alias="date"),
    queries: LedgerQueryService = Depends(get_query_service),
) -> DailySummary:
    return queries.daily_summary(day or clock.today(get_settings().report_timezone))

dashboard_router = APIRouter(prefix="/dashboard", tags=["dashboard"])

@dashboard_router.get("/stats", response_model=DashboardStats)
def get_dashboard_stats(
    queries: LedgerQueryService = Depends(get_query_service),
) -> DashboardStats:
    return queries.dashboard_stats()

__all__ = [
    "class_router",
    "dashboard_router",
    "report_router",
    "staff_router",
    "student_router",
    "transaction_router",
]
