from decimal import Decimal

import pytest

from expense_types.types import Expense, Participant, SettlementStatus
from ledger.errors import InvalidSettlementAmountError, ParticipantNotFoundError
from ledger.settlement import (
    initialize_settlement,
    is_expense_settled,
    remaining_amount,
    settle_full,
    settle_partial,
)


def make_expense():
    return Expense(
        id=7,
        description="Dinner",
        total_amount=Decimal("100"),
        participants=[
            Participant(user_id="a", share=Decimal("50"), paid=Decimal("100"), net=Decimal("50")),
            Participant(user_id="b", share=Decimal("50"), paid=Decimal("0"), net=Decimal("-50")),
        ],
    )


def test_initialize_clears_settlement_state():
    dirty = [Participant(user_id="a", net=Decimal("-5"), settled_amount=Decimal("5"), fully_settled=True)]
    fresh = initialize_settlement(dirty)

    assert fresh[0].settled_amount == Decimal("0")
    assert fresh[0].fully_settled is False
    assert fresh[0].status == SettlementStatus.UNSETTLED
    assert dirty[0].fully_settled is True


def test_partial_settlement_moves_to_partially_settled():
    expense = make_expense()
    applied = settle_partial(expense, "b", Decimal("30"))

    b = expense.find_participant("b")
    assert applied == Decimal("30")
    assert b.settled_amount == Decimal("30")
    assert b.status == SettlementStatus.PARTIALLY_SETTLED
    assert remaining_amount(b) == Decimal("20")
    assert expense.is_settled is False


def test_overpayment_is_clamped_to_remaining():
    expense = make_expense()
    settle_partial(expense, "b", Decimal("30"))
    applied = settle_partial(expense, "b", Decimal("40"))

    b = expense.find_participant("b")
    assert applied == Decimal("20")
    assert b.settled_amount == Decimal("50")
    assert b.fully_settled is True


def test_missing_amount_settles_the_remainder():
    expense = make_expense()
    settle_partial(expense, "b", Decimal("10"))
    assert settle_partial(expense, "b", None) == Decimal("40")
    assert expense.find_participant("b").fully_settled is True


def test_zero_amount_settles_the_remainder():
    expense = make_expense()
    assert settle_partial(expense, "b", 0) == Decimal("50")


def test_creditor_is_owed_abs_net():
    expense = make_expense()
    assert settle_partial(expense, "a") == Decimal("50")
    assert expense.find_participant("a").fully_settled is True


def test_expense_settled_once_everyone_is():
    expense = make_expense()
    settle_partial(expense, "a")
    assert expense.is_settled is False
    settle_partial(expense, "b")
    assert expense.is_settled is True


def test_zero_net_participant_counts_as_settled():
    participants = [
        Participant(user_id="a", share=Decimal("25"), paid=Decimal("25"), net=Decimal("0")),
        Participant(user_id="b", net=Decimal("-10"), fully_settled=True),
    ]
    assert is_expense_settled(participants) is True


def test_settled_participant_stays_settled():
    expense = make_expense()
    settle_partial(expense, "b")
    assert settle_partial(expense, "b", Decimal("5")) == Decimal("0")
    assert expense.find_participant("b").status == SettlementStatus.FULLY_SETTLED


def test_unknown_participant():
    with pytest.raises(ParticipantNotFoundError):
        settle_partial(make_expense(), "zed", Decimal("5"))


def test_negative_amount_is_rejected():
    expense = make_expense()
    with pytest.raises(InvalidSettlementAmountError):
        settle_partial(expense, "b", Decimal("-1"))
    assert expense.find_participant("b").settled_amount == Decimal("0")


def test_settle_full_overrides_partial_state():
    expense = make_expense()
    settle_partial(expense, "b", Decimal("12.34"))
    settle_full(expense)

    assert expense.is_settled is True
    for participant in expense.participants:
        assert participant.fully_settled is True
        assert participant.settled_amount == Decimal("50")
