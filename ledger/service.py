"""
Expense orchestration: ties the split calculator, reconciliation, settlement
tracker and balance netting to an ExpenseStore.
"""
import logging
from datetime import date
from typing import Callable, List, Optional

from database.repository import ExpenseStore
from expense_types.types import (
    ClientParticipant,
    CreateExpenseRequest,
    Dashboard,
    Expense,
    FriendBalance,
    GroupBalance,
    ParticipantInput,
    Payer,
    SettleExpenseRequest,
    SplitMethod,
)
from ledger import balances
from ledger.errors import SplitValidationError, UnknownUserError
from ledger.itemized import itemized_total
from ledger.reconciliation import reconcile
from ledger.settlement import initialize_settlement, refresh_settled_flag, settle_full, settle_partial
from ledger.split_calculator import compute_split

logger = logging.getLogger(__name__)

NameResolver = Callable[[str], Optional[str]]


class ExpenseService:
    def __init__(self, store: ExpenseStore, resolve_name: Optional[NameResolver] = None):
        self.store = store
        self.resolve_name = resolve_name

    def _name_for(self, user_id: str, fallback: Optional[str]) -> Optional[str]:
        """Look a user's display name up, failing for users the directory doesn't know"""
        if self.resolve_name is None:
            return fallback
        name = self.resolve_name(user_id)
        if name is None:
            raise UnknownUserError(user_id)
        return name

    def create_expense(self, request: CreateExpenseRequest) -> Expense:
        """Split, reconcile and store a new expense"""
        logger.info(f"create_expense called by {request.creator_id}: {request.description!r}")

        method = SplitMethod.parse(request.split_method)
        creator_name = self._name_for(request.creator_id, None)

        missing = [i for i, entry in enumerate(request.participants) if not entry.user_id]
        if missing:
            raise SplitValidationError(f"Participants at positions {missing} have no user id")

        user_ids = [entry.user_id for entry in request.participants]
        duplicates = sorted({u for u in user_ids if user_ids.count(u) > 1})
        if duplicates:
            raise SplitValidationError(f"Participants listed more than once: {duplicates}")

        payers = [
            Payer(user_id=p.user_id, name=self._name_for(p.user_id, p.name), paid_amount=p.paid_amount)
            for p in request.payers
        ]
        inputs = [
            ParticipantInput(user_id=entry.user_id, name=self._name_for(entry.user_id, entry.name), split=entry.split)
            for entry in request.participants
        ]

        if method == SplitMethod.ITEMIZED and request.items:
            total = itemized_total(request.items, request.tax_rate, request.tip_rate)
            logger.debug(f"Itemized grand total: {total}")
        else:
            total = request.total_amount

        server_parts = compute_split(
            method,
            total,
            payers,
            inputs,
            items=request.items,
            tax_rate=request.tax_rate,
            tip_rate=request.tip_rate,
            creator_id=request.creator_id,
            full_owe_side=request.full_owe,
        )

        # Only a client that sent every computed value gets a say
        if all(e.paid is not None and e.owes is not None and e.net is not None for e in request.participants):
            client_parts = [
                ClientParticipant(user_id=e.user_id, name=i.name, paid=e.paid, owes=e.owes, net=e.net)
                for e, i in zip(request.participants, inputs)
            ]
        else:
            client_parts = []

        participants = initialize_settlement(reconcile(client_parts, server_parts))

        expense = Expense(
            description=request.description,
            category=request.category,
            total_amount=total,
            date=request.date or date.today(),
            notes=request.notes,
            group_id=request.group_id,
            group_name=request.group_name,
            split_method=method,
            payers=payers,
            participants=participants,
            items=request.items if method == SplitMethod.ITEMIZED else [],
            tax_rate=request.tax_rate,
            tip_rate=request.tip_rate,
            creator_id=request.creator_id,
            creator_name=creator_name,
            is_personal=request.is_personal,
        )
        refresh_settled_flag(expense)
        return self.store.add(expense)

    def get_expense(self, expense_id: int) -> Expense:
        return self.store.get(expense_id)

    def delete_expense(self, expense_id: int):
        self.store.delete(expense_id)

    def list_expenses(self, user_id: str, involvement: str = "ALL", start: Optional[date] = None,
                      end: Optional[date] = None, counterparty_id: Optional[str] = None,
                      group_id: Optional[str] = None) -> List[Expense]:
        return self.store.expenses_for_user(user_id, involvement, start, end, counterparty_id, group_id)

    def group_expenses(self, group_id: str) -> List[Expense]:
        return self.store.expenses_for_group(group_id)

    def settle(self, expense_id: int, request: SettleExpenseRequest) -> Expense:
        """Settle part or all of one participant's debt"""
        expense = self.store.get(expense_id)
        amount = None if request.settle_full_amount else request.settle_amount
        settle_partial(expense, request.participant_user_id, amount)
        return self.store.save_settlement(expense)

    def settle_all(self, expense_id: int) -> Expense:
        expense = self.store.get(expense_id)
        settle_full(expense)
        return self.store.save_settlement(expense)

    def friend_balances(self, user_id: str, start: Optional[date] = None, end: Optional[date] = None,
                        group_id: Optional[str] = None) -> List[FriendBalance]:
        expenses = self.store.expenses_for_user(user_id, start=start, end=end, group_id=group_id)
        return balances.friend_balances(user_id, expenses, self.resolve_name)

    def group_balances(self, user_id: str) -> List[GroupBalance]:
        expenses = self.store.expenses_for_user(user_id)
        return balances.group_balances(user_id, expenses)

    def dashboard(self, user_id: str) -> Dashboard:
        """Balance overview, per-friend and per-group balances and what the user still owes"""
        expenses = self.store.expenses_for_user(user_id)
        friends = balances.friend_balances(user_id, expenses, self.resolve_name)
        return Dashboard(
            overview=balances.balance_overview(friends),
            friend_balances=friends,
            group_balances=balances.group_balances(user_id, expenses),
            pending_settlements=balances.pending_settlements(user_id, expenses, resolve_name=self.resolve_name),
        )
