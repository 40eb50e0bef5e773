"""
Unit tests for money and quantity parsing.
"""

import pytest
from decimal import Decimal

from restopos.utils.number_format import round_money, parse_money, parse_quantity


@pytest.mark.parametrize('value, expected', [
    ('2.345', '2.35'),
    ('2.344', '2.34'),
    (Decimal('0.005'), '0.01'),
    (10, '10.00'),
])
def test_round_money_half_up(value, expected):
    assert round_money(value) == Decimal(expected)


def test_parse_money():
    assert parse_money(0.1) == Decimal('0.1')
    assert parse_money('3.50') == Decimal('3.50')
    assert parse_money(0) == Decimal('0')


@pytest.mark.parametrize('value', [None, True, 'abc', '-1', float('nan')])
def test_parse_money_rejects(value):
    with pytest.raises(ValueError):
        parse_money(value)


def test_parse_money_zero_not_allowed():
    with pytest.raises(ValueError):
        parse_money(0, allow_zero=False)


def test_parse_quantity():
    assert parse_quantity(3) == 3
    assert parse_quantity('2') == 2
    assert parse_quantity(4.0) == 4


@pytest.mark.parametrize('value', [0, -1, 1.5, None, False, 'two'])
def test_parse_quantity_rejects(value):
    with pytest.raises(ValueError):
        parse_quantity(value)


@pytest.mark.parametrize('value', ['1e30', Decimal('9' * 40), 'abc'])
def test_round_money_out_of_range(value):
    with pytest.raises(ValueError):
        round_money(value)
