class InvalidAmountError(ValueError):
    """Raised when a posting amount is not a positive number of cents."""


class StudentNotFoundError(Exception):
    """Raised when a student id has no balance account."""


class InsufficientBalanceError(Exception):
    """Raised when a withdrawal would drop the balance below zero."""


class StorageFailureError(Exception):
    """Raised when the atomic commit could not complete and was rolled back."""


class ClassNotFoundError(Exception):
    """Raised when a class id is missing from the directory."""


class DuplicateRecordError(Exception):
    """Raised when a directory record collides with a unique key."""


class StaffNotFoundError(Exception):
    """Raised when a staff id is missing from the directory."""
