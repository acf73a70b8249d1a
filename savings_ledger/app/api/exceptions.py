from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..core.errors import (
    ClassNotFoundError,
    DuplicateRecordError,
    InsufficientBalanceError,
    InvalidAmountError,
    StaffNotFoundError,
    StorageFailureError,
    StudentNotFoundError,
)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StudentNotFoundError)
    @app.exception_handler(StaffNotFoundError)
    @app.exception_handler(ClassNotFoundError)
    async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(InsufficientBalanceError)
    async def insufficient_balance_handler(
        request: Request, exc: InsufficientBalanceError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content={"detail": str(exc), "code": "insufficient_balance"},
        )

    @app.exception_handler(DuplicateRecordError)
    async def duplicate_record_handler(
        request: Request, exc: DuplicateRecordError
    ) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(InvalidAmountError)
    async def invalid_amount_handler(
        request: Request, exc: InvalidAmountError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc), "code": "invalid_amount"},
        )

    @app.exception_handler(StorageFailureError)
    async def storage_failure_handler(
        request: Request, exc: StorageFailureError
    ) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})
