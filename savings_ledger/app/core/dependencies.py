from fastapi import Depends
from sqlmodel import Session

from ..services import DirectoryService, LedgerQueryService, LedgerRepository, TransactionService
from .db import get_session

def get_repository(session: Session = Depends(get_session)) -> LedgerRepository:
    return LedgerRepository(session)

def get_transaction_service(
    session: Session = Depends(get_session),
    repository: LedgerRepository = Depends(get_repository),
) -> TransactionService:
    return TransactionService(session, repository)

def get_query_service(
    session: Session = Depends(get_session),
    repository: LedgerRepository = Depends(get_repository),
) -> LedgerQueryService:
    return LedgerQueryService(session, repository)

def get_directory_service(
    session: Session = Depends(get_session),
    repository: LedgerRepository = Depends(get_repository),
) -> DirectoryService:
    return DirectoryService(session, repository)
