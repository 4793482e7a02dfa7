# accounting/exceptions.py
"""
Error taxonomy for ledger operations.

Every error carries a stable ``code`` (what went wrong) and an
``http_status`` (how the API surfaces it). Commands convert these into
failed CommandResults; views turn failed results into responses.

    LedgerError
    ├── LedgerValidationError   400  malformed input, line rules, balance
    ├── NotFoundError           404  unknown account / entry
    ├── ConflictError           409  duplicates, illegal transitions, cycles
    ├── ForbiddenError          403  system-account deletion and similar
    └── ConsistencyError        500  internal defect, entry is quarantined
"""


class LedgerError(Exception):
    """Base class for all ledger errors."""

    code = "LedgerError"
    http_status = 400

    def __init__(self, message: str = "", code: str = None, details: dict = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        if code:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"detail": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class LedgerValidationError(LedgerError):
    code = "ValidationFailed"
    http_status = 400


class NotFoundError(LedgerError):
    code = "NotFound"
    http_status = 404


class ConflictError(LedgerError):
    code = "Conflict"
    http_status = 409


class ForbiddenError(LedgerError):
    code = "Forbidden"
    http_status = 403


class ConsistencyError(LedgerError):
    code = "LedgerInconsistent"
    http_status = 500


# Concrete errors used across the engine.

class UnbalancedEntry(LedgerValidationError):
    code = "Unbalanced"


class AccountNotFound(NotFoundError):
    code = "AccountNotFound"


class EntryNotFound(NotFoundError):
    code = "EntryNotFound"


class ParentNotFound(NotFoundError):
    code = "ParentNotFound"


class DuplicateCode(ConflictError):
    code = "DuplicateCode"


class DuplicateReference(ConflictError):
    code = "DuplicateReference"


class InvalidTransition(ConflictError):
    code = "InvalidTransition"


class SelfParent(ConflictError):
    code = "SelfParent"


class CycleDetected(ConflictError):
    code = "CycleDetected"


class AccountInUse(ConflictError):
    code = "AccountInUse"
