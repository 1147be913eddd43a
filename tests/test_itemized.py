from decimal import Decimal

from expense_types.types import ExpenseItem
from ledger.itemized import allocate_items, item_subtotals, itemized_total, tax_and_tip


def item(amount, **shares):
    return ExpenseItem(name="item", amount=Decimal(amount), user_shares={k: Decimal(v) for k, v in shares.items()})


def test_tip_is_charged_on_tax_inclusive_subtotal():
    tax, tip = tax_and_tip(Decimal("100"), Decimal("10"), Decimal("10"))
    assert tax == Decimal("10")
    assert tip == Decimal("11")


def test_itemized_total():
    items = [item("60", a="1"), item("40", b="1")]
    assert itemized_total(items, Decimal("10"), Decimal("10")) == Decimal("121.00")


def test_itemized_total_without_tax_or_tip():
    assert itemized_total([item("12.345", a="1")], 0, 0) == Decimal("12.35")


def test_item_split_by_claimed_fractions():
    per_user, subtotal = item_subtotals([item("90", a="2", b="1")])
    assert subtotal == Decimal("90")
    assert per_user["a"] == Decimal("60")
    assert per_user["b"] == Decimal("30")


def test_item_with_no_claimed_fraction_is_not_allocated():
    items = [item("50", a="1"), item("50", a="0")]
    per_user, subtotal = item_subtotals(items)

    assert subtotal == Decimal("100")
    assert per_user == {"a": Decimal("50")}

    owed = allocate_items(items, 0, 0, ["a", "b"])
    assert owed == {"a": Decimal("50.00"), "b": Decimal("0.00")}


def test_tax_and_tip_follow_each_users_part_of_subtotal():
    items = [item("75", a="1"), item("25", b="1")]
    owed = allocate_items(items, Decimal("8"), Decimal("15"), ["a", "b"])

    # subtotal 100, tax 8, tip 16.20 on 108
    assert owed["a"] == Decimal("93.15")
    assert owed["b"] == Decimal("31.05")
    assert owed["a"] + owed["b"] == itemized_total(items, Decimal("8"), Decimal("15"))


def test_participant_without_items_owes_nothing():
    owed = allocate_items([item("20", a="1")], Decimal("10"), 0, ["a", "c"])
    assert owed["c"] == Decimal("0.00")
    assert owed["a"] == Decimal("22.00")


def test_empty_bill():
    assert allocate_items([], Decimal("10"), Decimal("10"), ["a"]) == {"a": Decimal("0.00")}
    assert itemized_total([], Decimal("10"), Decimal("10")) == Decimal("0.00")
