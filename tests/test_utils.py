from __future__ import annotations

import pytest

import utils
from errors import InvalidAmount


@pytest.mark.parametrize(
    "raw,expected",
    [(500, 500.0), ("1,200.50", 1200.5), (" 75 ", 75.0), ("0", 0.0), (12.25, 12.25)],
)
def test_parse_amount_accepts(raw, expected):
    assert utils.parse_amount(raw) == expected


@pytest.mark.parametrize("raw", ["", "  ", None, "abc", "-5", "nan", "inf", True])
def test_parse_amount_rejects(raw):
    with pytest.raises(InvalidAmount):
        utils.parse_amount(raw)


def test_parse_amount_blank_and_zero_flags():
    assert utils.parse_amount("", allow_blank=True) is None
    assert utils.parse_amount(None, allow_blank=True) is None
    with pytest.raises(InvalidAmount):
        utils.parse_amount("0", allow_zero=False)


@pytest.mark.parametrize(
    "raw,expected",
    [(None, 0.0), ("", 0.0), ("abc", 0.0), (float("nan"), 0.0), ("250", 250.0), (99, 99.0), (True, 0.0)],
)
def test_as_amount_treats_malformed_as_zero(raw, expected):
    assert utils.as_amount(raw) == expected


def test_parse_allocations_keeps_blanks():
    assert utils.parse_allocations({"1": "400", 2: "", "3": "1,000"}) == {1: 400.0, 2: None, 3: 1000.0}
    assert utils.parse_allocations(None) == {}
    with pytest.raises(InvalidAmount):
        utils.parse_allocations({1: "-1"})


def test_month_labels():
    assert utils.month_label(1) == "Jan"
    assert utils.month_list_label([3, 1]) == "Jan, Mar"
