"""
Settlement tracking for a single expense.

Each participant moves UNSETTLED -> PARTIALLY_SETTLED -> FULLY_SETTLED and
never back. These functions do a read-modify-write on the expense they are
given and do no locking: callers must serialize settlement per expense
(database.repository.ExpenseStore does it with a version check).
"""
import logging
from decimal import Decimal
from typing import List, Optional

from expense_types.types import Expense, Participant
from ledger.errors import InvalidSettlementAmountError, ParticipantNotFoundError
from ledger.money import MONEY_TOLERANCE, ZERO, is_zero, to_decimal

logger = logging.getLogger(__name__)


def initialize_settlement(participants: List[Participant]) -> List[Participant]:
    """Fresh participants start with nothing settled"""
    return [p.model_copy(update={"settled_amount": ZERO, "fully_settled": False}) for p in participants]


def remaining_amount(participant: Participant) -> Decimal:
    return max(participant.owed - participant.settled_amount, ZERO)


def is_expense_settled(participants: List[Participant]) -> bool:
    return all(p.fully_settled or is_zero(p.net) for p in participants)


def refresh_settled_flag(expense: Expense) -> bool:
    expense.is_settled = is_expense_settled(expense.participants)
    return expense.is_settled


def settle_partial(expense: Expense, participant_user_id: str, amount=None) -> Decimal:
    """
    Record that a participant paid part (or all) of what they owe.

    amount None or 0 settles the whole remainder. Requests larger than the
    remainder are clamped. Returns the amount actually applied.
    """
    participant = expense.find_participant(participant_user_id)
    if participant is None:
        raise ParticipantNotFoundError(participant_user_id, expense.id)

    requested: Optional[Decimal] = None if amount is None else to_decimal(amount)
    if requested is not None and requested < 0:
        raise InvalidSettlementAmountError(f"Settlement amount must be positive, got {requested}")

    owed = participant.owed
    remaining = remaining_amount(participant)
    if requested is None or requested == 0:
        applied = remaining
    else:
        applied = min(requested, remaining)

    participant.settled_amount += applied
    if abs(participant.settled_amount - owed) < MONEY_TOLERANCE:
        participant.fully_settled = True

    refresh_settled_flag(expense)
    logger.info(
        f"Settled {applied} for {participant_user_id} on expense {expense.id} "
        f"({participant.settled_amount}/{owed}, {participant.status.value})"
    )
    return applied


def settle_full(expense: Expense) -> Expense:
    """Mark every participant as fully settled, whatever was recorded before"""
    for participant in expense.participants:
        participant.settled_amount = participant.owed
        participant.fully_settled = True

    refresh_settled_flag(expense)
    logger.info(f"Expense {expense.id} fully settled")
    return expense
