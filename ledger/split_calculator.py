"""
Server-side split computation.

compute_split turns an expense's total, payers and raw participant inputs
into fresh Participant records with share, paid and net filled in. Each
split method has its own handler returning one share per participant; the
handlers are looked up in SPLIT_HANDLERS.
"""
import logging
from decimal import Decimal
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from expense_types.types import (
    ExactSplit,
    ExpenseItem,
    FullOweSide,
    Participant,
    ParticipantInput,
    Payer,
    PercentSplit,
    SharesSplit,
    SplitMethod,
)
from ledger.errors import (
    CreatorNotParticipantError,
    ExactAmountSumError,
    InvalidFullOweSideError,
    ParticipantCountError,
    PercentageSumError,
    ZeroSharesError,
)
from ledger.itemized import allocate_items
from ledger.money import SUM_TOLERANCE, ZERO, round_money, to_decimal

logger = logging.getLogger(__name__)


class SplitOptions(NamedTuple):
    """Method-specific extras; only ITEMIZED and TWO_PERSON read them"""
    items: Tuple[ExpenseItem, ...] = ()
    tax_rate: Decimal = ZERO
    tip_rate: Decimal = ZERO
    creator_id: Optional[str] = None
    full_owe_side: Optional[str] = None


def paid_by_user(payers: List[Payer]) -> Dict[str, Decimal]:
    """Sum what each user paid; a user may appear more than once"""
    paid = {}
    for payer in payers:
        paid[payer.user_id] = paid.get(payer.user_id, ZERO) + to_decimal(payer.paid_amount)
    return paid


def _equal_shares(total: Decimal, participants: List[ParticipantInput], options: SplitOptions) -> List[Decimal]:
    count = len(participants)
    each = round_money(total / count) if count > 0 else ZERO
    return [each for _ in participants]


def _percentage_shares(total: Decimal, participants: List[ParticipantInput], options: SplitOptions) -> List[Decimal]:
    percents = [p.split.percent if isinstance(p.split, PercentSplit) else ZERO for p in participants]
    total_percent = sum(percents, ZERO)
    logger.debug(f"Total percentage found: {total_percent}")

    if abs(total_percent - 100) > SUM_TOLERANCE:
        raise PercentageSumError(f"Percentages sum to {total_percent}, expected 100")

    return [round_money(percent / 100 * total) for percent in percents]


def _exact_shares(total: Decimal, participants: List[ParticipantInput], options: SplitOptions) -> List[Decimal]:
    amounts = [p.split.amount if isinstance(p.split, ExactSplit) else ZERO for p in participants]
    total_exact = sum(amounts, ZERO)
    logger.debug(f"Exact amounts total: {total_exact}")

    if abs(total_exact - total) > SUM_TOLERANCE:
        raise ExactAmountSumError(f"Exact amounts sum to {total_exact}, expected {total}")

    return [round_money(amount) for amount in amounts]


def _weighted_shares(total: Decimal, participants: List[ParticipantInput], options: SplitOptions) -> List[Decimal]:
    weights = [p.split.weight if isinstance(p.split, SharesSplit) else 0 for p in participants]
    total_weight = sum(weights)
    logger.debug(f"Total shares: {total_weight}")

    if total_weight == 0:
        raise ZeroSharesError("No shares specified")

    return [round_money(Decimal(weight) / total_weight * total) for weight in weights]


def _itemized_shares(total: Decimal, participants: List[ParticipantInput], options: SplitOptions) -> List[Decimal]:
    owed = allocate_items(options.items, options.tax_rate, options.tip_rate, [p.user_id for p in participants])
    return [owed[p.user_id] for p in participants]


def parse_full_owe_side(value) -> FullOweSide:
    if isinstance(value, FullOweSide):
        return value
    try:
        return FullOweSide(str(value).strip().lower())
    except ValueError:
        raise InvalidFullOweSideError(f"fullOwe must be 'you' or 'other', got {value!r}")


def _two_person_shares(total: Decimal, participants: List[ParticipantInput], options: SplitOptions) -> List[Decimal]:
    if len(participants) != 2:
        raise ParticipantCountError(f"Two-person split needs exactly 2 participants, got {len(participants)}")
    if participants[0].user_id == participants[1].user_id:
        raise ParticipantCountError(f"Two-person split needs two different people, got {participants[0].user_id} twice")

    side = parse_full_owe_side(options.full_owe_side)

    creator_ids = [p.user_id == options.creator_id for p in participants]
    if not any(creator_ids):
        raise CreatorNotParticipantError(f"Creator {options.creator_id} is not one of the two participants")

    # The creator owes everything on "you", the other person on "other"
    creator_owes = side == FullOweSide.YOU
    return [
        round_money(total) if is_creator == creator_owes else ZERO
        for is_creator in creator_ids
    ]


ShareHandler = Callable[[Decimal, List[ParticipantInput], SplitOptions], List[Decimal]]

SPLIT_HANDLERS: Dict[SplitMethod, ShareHandler] = {
    SplitMethod.EQUALLY: _equal_shares,
    SplitMethod.PERCENTAGE: _percentage_shares,
    SplitMethod.EXACT_AMOUNTS: _exact_shares,
    SplitMethod.SHARES: _weighted_shares,
    SplitMethod.ITEMIZED: _itemized_shares,
    SplitMethod.TWO_PERSON: _two_person_shares,
}


def compute_split(
    split_method,
    total_amount,
    payers: List[Payer],
    participants: List[ParticipantInput],
    items: Optional[List[ExpenseItem]] = None,
    tax_rate=ZERO,
    tip_rate=ZERO,
    creator_id: Optional[str] = None,
    full_owe_side=None,
) -> List[Participant]:
    """Compute each participant's share, paid and net for one expense"""
    method = SplitMethod.parse(split_method)
    total = to_decimal(total_amount)
    options = SplitOptions(
        items=tuple(items or ()),
        tax_rate=to_decimal(tax_rate),
        tip_rate=to_decimal(tip_rate),
        creator_id=creator_id,
        full_owe_side=full_owe_side,
    )
    logger.debug(f"Computing {method.value} split of {total} across {len(participants)} participants")

    shares = SPLIT_HANDLERS.get(method, _equal_shares)(total, participants, options)
    paid_map = paid_by_user(payers)

    result = []
    for participant, share in zip(participants, shares):
        paid = round_money(paid_map.get(participant.user_id, ZERO))
        result.append(Participant(
            user_id=participant.user_id,
            name=participant.name,
            share=share,
            paid=paid,
            net=paid - share,
        ))
    return result
