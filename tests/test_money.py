from decimal import Decimal

from ledger.money import is_zero, money_equal, round_money, to_decimal


def test_round_money_is_half_up():
    assert round_money(Decimal("2.345")) == Decimal("2.35")
    assert round_money(Decimal("2.344")) == Decimal("2.34")
    assert round_money(Decimal("-2.345")) == Decimal("-2.35")


def test_round_money_accepts_floats_without_binary_noise():
    # 1.005 as a binary float is slightly below 1.005
    assert round_money(1.005) == Decimal("1.01")
    assert to_decimal(0.1) == Decimal("0.1")
    assert round_money(None) == Decimal("0.00")


def test_money_equal_uses_cent_tolerance():
    assert money_equal(Decimal("10.00"), Decimal("10.01"))
    assert not money_equal(Decimal("10.00"), Decimal("10.02"))
    assert is_zero(Decimal("0.009"))
    assert not is_zero(Decimal("-0.01"))
