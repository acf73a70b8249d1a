from .directory import DirectoryService
from .ledger import TransactionService
from .queries import LedgerQueryService
from .repository import LedgerRepository

__all__ = [
    "DirectoryService",
    "LedgerQueryService",
    "LedgerRepository",
    "TransactionService",
]
