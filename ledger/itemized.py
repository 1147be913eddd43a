"""
Itemized allocation: split each item by the fractions its users claimed,
then spread tax and tip in proportion to each user's part of the subtotal.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, List

from expense_types.types import ExpenseItem
from ledger.money import ZERO, round_money, to_decimal

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)


def tax_and_tip(subtotal: Decimal, tax_rate, tip_rate):
    """Tax on the subtotal, tip on the tax-inclusive subtotal"""
    tax_amount = subtotal * to_decimal(tax_rate) / HUNDRED
    tip_amount = (subtotal + tax_amount) * to_decimal(tip_rate) / HUNDRED
    return tax_amount, tip_amount


def item_subtotals(items: List[ExpenseItem]):
    """Return (per-user item subtotal, overall item subtotal)"""
    per_user: Dict[str, Decimal] = {}
    subtotal = ZERO

    for item in items:
        amount = to_decimal(item.amount)
        subtotal += amount

        fraction_sum = sum(item.user_shares.values(), ZERO)
        if fraction_sum <= 0:
            logger.debug(f"Item {item.name!r} has no claimed fractions, nothing allocated")
            continue

        for user_id, fraction in item.user_shares.items():
            per_user[user_id] = per_user.get(user_id, ZERO) + amount * fraction / fraction_sum

    return per_user, subtotal


def allocate_items(items: List[ExpenseItem], tax_rate, tip_rate, participant_ids: Iterable[str]) -> Dict[str, Decimal]:
    """Work out what each participant owes for an itemized expense, tax and tip included"""
    per_user, subtotal = item_subtotals(items)
    tax_amount, tip_amount = tax_and_tip(subtotal, tax_rate, tip_rate)
    logger.debug(f"Itemized subtotal={subtotal} tax={tax_amount} tip={tip_amount}")

    owed = {}
    for user_id in participant_ids:
        user_subtotal = per_user.get(user_id, ZERO)
        fraction_of_subtotal = user_subtotal / subtotal if subtotal != 0 else ZERO
        owed[user_id] = round_money(
            user_subtotal + fraction_of_subtotal * tax_amount + fraction_of_subtotal * tip_amount
        )
    return owed


def itemized_total(items: List[ExpenseItem], tax_rate, tip_rate) -> Decimal:
    """Grand total of an itemized bill"""
    subtotal = sum((to_decimal(item.amount) for item in items), ZERO)
    tax_amount, tip_amount = tax_and_tip(subtotal, tax_rate, tip_rate)
    return round_money(subtotal + tax_amount + tip_amount)
