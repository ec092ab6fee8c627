from decimal import Decimal

from src.shared.utils.money import ZERO, line_total, round_money, sum_money


class TestRoundMoney:
    """Tests for round_money function."""

    def test_round_half_up(self):
        assert round_money(Decimal("10.125")) == Decimal("10.13")
        assert round_money("10.124") == Decimal("10.12")

    def test_from_int(self):
        assert round_money(1000000) == Decimal("1000000.00")

    def test_negative_numbers(self):
        assert round_money(Decimal("-10.125")) == Decimal("-10.12")

    def test_precision(self):
        assert str(round_money(10)) == "10.00"


class TestLineTotals:
    """Line subtotal and document total helpers."""

    def test_line_total(self):
        assert line_total(3, Decimal("33.335")) == Decimal("100.01")
        assert line_total(10, "100000") == Decimal("1000000.00")

    def test_line_total_zero_quantity(self):
        assert line_total(0, Decimal("99.99")) == ZERO

    def test_sum_money(self):
        assert sum_money([Decimal("0.10"), Decimal("0.20"), Decimal("0.30")]) == Decimal("0.60")

    def test_sum_money_empty(self):
        assert sum_money([]) == ZERO
