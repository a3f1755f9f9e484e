from decimal import Decimal

import pytest

from utils.currency import format_amount, format_currency, parse_amount
from utils.display import get_user_display_name, normalize_phone_number, selectable_members
from utils.splits import calculate_equal_split
from utils.validation import is_complete_invite_code, validate_trip_form


def test_equal_split_includes_payer():
    split = calculate_equal_split(Decimal("100"), 2, include_self=True)

    assert split.total_people == 3
    assert split.per_person == Decimal("33.33")
    assert split.per_person_text == "33.33"


def test_equal_split_without_payer():
    split = calculate_equal_split(Decimal("100"), 2, include_self=False)

    assert split.total_people == 2
    assert split.per_person_text == "50.00"


def test_equal_split_rounds_half_up():
    # 0.125 per person rounds to 0.13
    split = calculate_equal_split(Decimal("0.25"), 2, include_self=False)

    assert split.per_person_text == "0.13"


@pytest.mark.parametrize("total,members,include_self", [
    ("100", 2, True),
    ("10", 6, False),
    ("999.99", 7, True),
    ("0.05", 1, True),
    ("12345.67", 19, True),
])
def test_equal_split_stays_within_rounding_of_total(total, members, include_self):
    amount = Decimal(total)
    split = calculate_equal_split(amount, members, include_self)

    assert split.per_person.as_tuple().exponent == -2
    # Each share is off by at most half a cent
    drift = abs(split.per_person * split.total_people - amount)
    assert drift <= Decimal("0.005") * split.total_people


def test_equal_split_requires_members():
    with pytest.raises(ValueError):
        calculate_equal_split(Decimal("100"), 0, include_self=True)


@pytest.mark.parametrize("value,expected", [
    ("12.50", Decimal("12.50")),
    (" 7 ", Decimal("7")),
    ("0.01", Decimal("0.01")),
    ("1e2", Decimal("100")),
    ("0.005", Decimal("0.005")),
    ("0.001", None),
    ("1e30", None),
    ("99999999999999", None),
    ("0", None),
    ("-5", None),
    ("abc", None),
    ("", None),
    ("NaN", None),
    ("Infinity", None),
    (None, None),
])
def test_parse_amount(value, expected):
    assert parse_amount(value) == expected


def test_format_amount_two_decimals():
    assert format_amount("12.5") == "12.50"
    assert format_amount(Decimal("33.333")) == "33.33"
    assert format_amount("2.675") == "2.68"


def test_format_amount_rejects_garbage():
    with pytest.raises(ValueError):
        format_amount("twelve")


def test_format_currency():
    assert format_currency("12.345") == "₹12.35"
    assert format_currency("-5", "USD") == "-$5.00"
    assert format_currency("3", "CHF") == "CHF3.00"


def test_display_name_needs_both_parts():
    assert get_user_display_name("Asha", "Rao") == "Asha_Rao"
    assert get_user_display_name("Asha", None) is None


def test_selectable_members_excludes_current_user():
    assert selectable_members(["A", "B"], ["C"], "A") == ["B", "C"]
    assert selectable_members(["A"], ["C"], None) == ["A", "C"]


@pytest.mark.parametrize("raw,expected", [
    ("+91 98765-43210", "9876543210"),
    ("(555) 123-4567", "5551234567"),
    ("12345", "12345"),
    ("  ", ""),
    (None, ""),
])
def test_normalize_phone_number(raw, expected):
    assert normalize_phone_number(raw) == expected


def test_invite_code_length():
    assert not is_complete_invite_code("ABC12")
    assert is_complete_invite_code("ABC123")
    assert not is_complete_invite_code(None)


def test_trip_form_validation():
    assert validate_trip_form("Goa", ["A"]) == {}
    assert validate_trip_form("  ", []) == {"tripName": "Trip name is required"}
    assert "tripName" in validate_trip_form("Go", [])
    assert validate_trip_form("Goa", [str(i) for i in range(21)]) == {"members": "Maximum 20 members allowed"}
