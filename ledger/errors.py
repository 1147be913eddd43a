"""
Exceptions raised by the ledger engine.

Every error carries the HTTP status the API layer answers with, so
fastapi_backend only needs one handler for the whole family.
"""


class LedgerError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# Input validation (400)

class SplitValidationError(LedgerError):
    status_code = 400


class PercentageSumError(SplitValidationError):
    pass


class ExactAmountSumError(SplitValidationError):
    pass


class ZeroSharesError(SplitValidationError):
    pass


class ParticipantCountError(SplitValidationError):
    pass


class InvalidFullOweSideError(SplitValidationError):
    pass


class CreatorNotParticipantError(SplitValidationError):
    pass


class InvalidSettlementAmountError(SplitValidationError):
    pass


# Referential failures (404)

class NotFoundError(LedgerError):
    status_code = 404


class ExpenseNotFoundError(NotFoundError):
    def __init__(self, expense_id):
        super().__init__(f"Expense not found: {expense_id}")
        self.expense_id = expense_id


class ParticipantNotFoundError(NotFoundError):
    def __init__(self, user_id, expense_id=None):
        if expense_id is None:
            message = f"User {user_id} is not a participant of this expense"
        else:
            message = f"User {user_id} is not a participant of expense {expense_id}"
        super().__init__(message)
        self.user_id = user_id
        self.expense_id = expense_id


class UnknownUserError(NotFoundError):
    def __init__(self, user_id):
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id


# Persistence (409)

class ConcurrentModificationError(LedgerError):
    status_code = 409

    def __init__(self, expense_id):
        super().__init__(f"Expense {expense_id} was modified concurrently, reload and retry")
        self.expense_id = expense_id
