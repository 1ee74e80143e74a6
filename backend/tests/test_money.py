import pytest

from concessions.errors import ValidationError
from concessions.money import Denominations, format_cents, round_half_up_div


def test_value_counts_every_denomination():
    counts = Denominations(quarters=4, bills_1=1, bills_5=1, bills_10=1, bills_20=1, bills_50=1, bills_100=1)
    assert counts.value_cents() == 100 + 100 + 500 + 1000 + 2000 + 5000 + 10000


def test_empty_drawer_is_zero():
    assert Denominations().value_cents() == 0


def test_from_payload_defaults_missing_keys_and_ignores_total():
    counts = Denominations.from_payload({"quarters": 8, "bills_5": "2", "total_cents": 999})
    assert counts == Denominations(quarters=8, bills_5=2)
    assert counts.value_cents() == 1200


@pytest.mark.parametrize("payload", [
    {"quarters": -1},
    {"bills_1": 2.5},
    {"bills_20": "ten"},
    {"bills_10": True},
])
def test_from_payload_rejects_bad_counts(payload):
    with pytest.raises(ValidationError):
        Denominations.from_payload(payload)


def test_covers_and_subtract():
    box = Denominations(quarters=10, bills_1=5)
    assert box.covers(Denominations(quarters=10))
    assert not box.covers(Denominations(bills_5=1))
    assert box - Denominations(quarters=4) == Denominations(quarters=6, bills_1=5)
    with pytest.raises(ValidationError):
        box - Denominations(bills_1=6)


def test_add_and_to_dict():
    total = Denominations(bills_1=1) + Denominations(bills_1=2, quarters=1)
    data = total.to_dict()
    assert data["bills_1"] == 3
    assert data["quarters"] == 1
    assert data["total_cents"] == 325


def test_round_half_up_div():
    assert round_half_up_div(5, 2) == 3
    assert round_half_up_div(4, 3) == 1
    assert round_half_up_div(1029, 24) == 43
    assert round_half_up_div(-5, 2) == -3
    assert round_half_up_div(0, 7) == 0


def test_format_cents():
    assert format_cents(7325) == "$73.25"
    assert format_cents(5) == "$0.05"
    assert format_cents(-150) == "-$1.50"
    assert format_cents(123456) == "$1,234.56"
    assert format_cents(None) == "-"
