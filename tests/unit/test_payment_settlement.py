"""
Unit tests for payment validation and settlement.
"""

import json
import pytest
from decimal import Decimal

from restopos.models import Currency
from restopos.services.payment_settlement import (
    PaymentRequest, settle, validate, compute_tender, derive_flags, resolve_primary_method
)
from restopos.exceptions import ValidationError


def _errors(payload):
    with pytest.raises(ValidationError) as exc:
        validate(PaymentRequest.from_dict(payload))
    return exc.value.payload['errors']


class TestParsing:

    def test_accepts_camel_and_snake_case(self):
        camel = PaymentRequest.from_dict({'paymentMethods': ['card'], 'rielAmount': 4100, 'currency': 'riel'})
        snake = PaymentRequest.from_dict({'payment_methods': ['CARD'], 'riel_amount': '4100', 'currency': 'RIEL'})
        assert camel == snake
        assert camel.riel_amount == Decimal('4100')

    def test_single_payment_method_key(self):
        request = PaymentRequest.from_dict({'paymentMethod': 'qr'})
        assert request.payment_methods == ('QR',)

    def test_non_object_is_rejected(self):
        with pytest.raises(ValidationError):
            PaymentRequest.from_dict(['CASH'])


class TestValidation:

    def test_simple_cash_payment_is_valid(self):
        validate(PaymentRequest.from_dict({'paymentMethods': ['CASH']}))

    def test_defaults_to_cash(self):
        assert resolve_primary_method(()) == 'CASH'
        validate(PaymentRequest.from_dict({}))

    def test_unknown_primary_method(self):
        assert _errors({'paymentMethods': ['BITCOIN']}) == ['Invalid payment method "BITCOIN"']

    def test_riel_requires_amount(self):
        errors = _errors({'currency': 'RIEL'})
        assert 'Riel amount must be greater than 0 when paying in RIEL' in errors

    def test_unknown_currency(self):
        assert _errors({'currency': 'EUR'}) == ['Invalid currency "EUR"']

    def test_split_amounts_must_be_positive(self):
        errors = _errors({
            'splitBill': True,
            'splitAmounts': [{'amount': 5}, {'amount': 0}, {'amount': 'abc'}],
        })
        assert 'Split 2: amount must be greater than 0' in errors
        assert 'Split 3: amount must be greater than 0' in errors

    def test_split_requires_entries(self):
        assert 'Split bill requires at least one split amount' in _errors({'splitBill': True})

    def test_mixed_collects_every_error(self):
        errors = _errors({
            'mixedPayments': True,
            'paymentDetails': [
                {'method': 'CASH', 'amount': -1},
                {'method': 'CHEQUE', 'amount': 3, 'currency': 'YEN'},
            ],
        })
        assert errors == [
            'Payment 1: amount must be greater than 0',
            'Payment 2: invalid payment method "CHEQUE"',
            'Payment 2: invalid currency "YEN"',
        ]

    def test_nested_mixed_entries_are_validated(self):
        errors = _errors({
            'splitBill': True,
            'splitAmounts': [{'amount': 10, 'mixedPayments': [{'method': 'GOLD', 'amount': 10}]}],
        })
        assert errors == ['Split 1 payment 1: invalid payment method "GOLD"']


class TestTender:

    def test_usd_records_total(self):
        tender = compute_tender('USD', Decimal('22.00'))
        assert tender.currency is Currency.USD
        assert tender.paid_usd == Decimal('22.00')
        assert tender.paid_riel == Decimal('0.00')

    def test_riel_records_amount_without_conversion(self):
        tender = compute_tender(Currency.RIEL, Decimal('10.00'), Decimal('90000'))
        assert tender.paid_riel == Decimal('90000.00')
        assert tender.paid_usd == Decimal('0.00')


class TestSettle:

    def test_settle_mixed_uses_first_entry_method(self):
        settlement = settle(PaymentRequest.from_dict({
            'mixedPayments': True,
            'paymentDetails': [
                {'method': 'CARD', 'amount': 10},
                {'method': 'CASH', 'amount': 5, 'currency': 'RIEL'},
            ],
        }), Decimal('15.00'))

        assert settlement.payment_method == 'CARD'
        assert settlement.mixed_currency is True
        assert settlement.split_json is None
        assert [e['method'] for e in json.loads(settlement.mixed_json)] == ['CARD', 'CASH']

    def test_split_flags(self):
        request = PaymentRequest.from_dict({
            'splitBill': True,
            'splitAmounts': [
                {'amount': 10, 'currency': 'USD', 'paymentMethod': 'CASH'},
                {'amount': 41000, 'currency': 'RIEL', 'mixedPayments': [
                    {'method': 'QR', 'amount': 20500, 'currency': 'RIEL'},
                    {'method': 'CASH', 'amount': 20500, 'currency': 'RIEL'},
                ]},
            ],
        })
        assert derive_flags(request) == {
            'nested_payments': True,
            'mixed_currency': False,
            'split_mixed_currency': True,
        }

        settlement = settle(request, Decimal('20.00'))
        split = json.loads(settlement.split_json)
        assert split[1]['mixedPayments'][0]['method'] == 'QR'
        assert settlement.mixed_json is None
