"""
Balance netting across a user's expenses.

For every expense the user's net (paid - share) is spread evenly over all the
other people on that expense, payers and participants alike. This is an
approximation of who owes whom, not a pairwise debt graph, and dashboards
are built against exactly these numbers.
"""
import logging
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Set

from expense_types.types import (
    BalanceDirection,
    BalanceOverview,
    Expense,
    FriendBalance,
    GroupBalance,
    PendingSettlement,
)
from ledger.money import ZERO, round_money, to_decimal

logger = logging.getLogger(__name__)

NameResolver = Callable[[str], Optional[str]]


def user_paid(user_id: str, expense: Expense) -> Decimal:
    return sum((to_decimal(p.paid_amount) for p in expense.payers if p.user_id == user_id), ZERO)


def user_share(user_id: str, expense: Expense) -> Decimal:
    return sum((to_decimal(p.share) for p in expense.participants if p.user_id == user_id), ZERO)


def user_net(user_id: str, expense: Expense) -> Decimal:
    return user_paid(user_id, expense) - user_share(user_id, expense)


def other_parties(user_id: str, expense: Expense) -> Set[str]:
    """Everyone on the expense except the user"""
    others = {p.user_id for p in expense.participants if p.user_id != user_id}
    others.update(p.user_id for p in expense.payers if p.user_id != user_id)
    return others


def net_balances(user_id: str, expenses: List[Expense]) -> Dict[str, Decimal]:
    """Running balance with each counterparty; positive means they owe the user"""
    balances: Dict[str, Decimal] = {}

    for expense in expenses:
        net = user_net(user_id, expense)
        if net == 0:
            continue

        others = other_parties(user_id, expense)
        if not others:
            continue

        per_other = net / len(others)
        for other_id in others:
            balances[other_id] = balances.get(other_id, ZERO) + per_other

    return balances


def _name_lookup(expenses: List[Expense]) -> Dict[str, str]:
    """Names already attached to payers and participants"""
    names = {}
    for expense in expenses:
        for person in list(expense.payers) + list(expense.participants):
            if person.name:
                names[person.user_id] = person.name
    return names


def friend_balances(user_id: str, expenses: List[Expense], resolve_name: Optional[NameResolver] = None) -> List[FriendBalance]:
    """Non-zero balances with each counterparty, largest first"""
    balances = net_balances(user_id, expenses)
    known_names = _name_lookup(expenses)

    shared_counts: Dict[str, int] = {}
    total_shared: Dict[str, Decimal] = {}
    last_activity = {}

    for expense in expenses:
        if user_net(user_id, expense) == 0:
            continue
        for other_id in other_parties(user_id, expense):
            shared_counts[other_id] = shared_counts.get(other_id, 0) + 1
            total_shared[other_id] = total_shared.get(other_id, ZERO) + to_decimal(expense.total_amount)
            when = expense.created_at
            if when is not None and (other_id not in last_activity or when > last_activity[other_id]):
                last_activity[other_id] = when

    result = []
    for other_id, balance in balances.items():
        rounded = round_money(balance)
        # Skip settled pairs, a one-cent balance included
        # Skip settled pairs, including the �0.01 boundary
        if direction == BalanceDirection.SETTLED:
            continue

        name = known_names.get(other_id)
        if resolve_name is not None:
            name = resolve_name(other_id) or name

        result.append(FriendBalance(
            counterparty_id=other_id,
            counterparty_name=name,
            balance=rounded,
            direction=direction,
            shared_expenses=shared_counts.get(other_id, 0),
            total_shared=round_money(total_shared.get(other_id, ZERO)),
            last_activity=last_activity.get(other_id),
        ))

    result.sort(key=lambda fb: abs(fb.balance), reverse=True)
    return result


def group_balances(user_id: str, expenses: List[Expense]) -> List[GroupBalance]:
    """Per-group totals for the user, largest balance first"""
    groups: Dict[str, GroupBalance] = {}

    for expense in expenses:
        if expense.group_id is None:
            continue

        gb = groups.get(expense.group_id)
        if gb is None:
            gb = GroupBalance(group_id=expense.group_id, group_name=expense.group_name)
            groups[expense.group_id] = gb

        gb.expense_count += 1
        gb.total_group_spending += to_decimal(expense.total_amount)
        gb.your_contribution += user_paid(user_id, expense)
        gb.your_share += user_share(user_id, expense)

    result = list(groups.values())
    for gb in result:
        gb.total_group_spending = round_money(gb.total_group_spending)
        gb.your_contribution = round_money(gb.your_contribution)
        gb.your_share = round_money(gb.your_share)
        gb.your_balance = gb.your_contribution - gb.your_share
        gb.direction = BalanceDirection.of(gb.your_balance)

    result.sort(key=lambda gb: abs(gb.your_balance), reverse=True)
    return result


def balance_overview(balances: List[FriendBalance]) -> BalanceOverview:
    """Totals over a list of friend balances"""
    overview = BalanceOverview()

    for fb in balances:
        if fb.balance > 0:
            overview.total_owed_to_you += fb.balance
        else:
            overview.total_you_owe += abs(fb.balance)

    overview.net_balance = overview.total_owed_to_you - overview.total_you_owe
    overview.unsettled_count = len(balances)

    if balances:
        largest = max(balances, key=lambda fb: abs(fb.balance))
        overview.largest_balance = abs(largest.balance)
        overview.largest_balance_with = largest.counterparty_name or largest.counterparty_id

    return overview


def pending_settlements(user_id: str, expenses: List[Expense], limit: int = 5, resolve_name: Optional[NameResolver] = None) -> List[PendingSettlement]:
    """Counterparties the user still owes, largest debt first"""
    actions = []
    for fb in friend_balances(user_id, expenses, resolve_name):
        if fb.direction != BalanceDirection.YOU_OWE:
            continue
        amount = abs(fb.balance)
        who = fb.counterparty_name or fb.counterparty_id
        actions.append(PendingSettlement(
            counterparty_id=fb.counterparty_id,
            counterparty_name=fb.counterparty_name,
            amount=amount,
            description=f"You owe {who} ${amount:.2f}",
        ))

    actions.sort(key=lambda a: a.amount, reverse=True)
    return actions[:limit]
