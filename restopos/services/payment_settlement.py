"""
Payment settlement: validation and normalization of tender information.

Settlement never converts between currencies. A RIEL payment records the
Riel amount exactly as supplied and a USD payment records the order total;
conversion for reporting happens downstream.
"""
import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from restopos.models import Currency
from restopos.exceptions import ValidationError
from restopos.utils.number_format import round_money, MAX_RIEL_AMOUNT

PAYMENT_METHODS = ('CASH', 'CARD', 'QR')
DEFAULT_METHOD = 'CASH'


def _to_decimal(value) -> Optional[Decimal]:
    """Lenient amount parse; None when the value is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() else None


def _upper(value, default: str) -> str:
    if value is None or value == '':
        return default
    return str(value).strip().upper()


@dataclass(frozen=True)
class MixedPaymentEntry:
    method: str
    amount: Optional[Decimal]
    currency: str = Currency.USD.value

    @classmethod
    def from_dict(cls, data: dict) -> 'MixedPaymentEntry':
        if not isinstance(data, dict):
            raise ValidationError('Each mixed payment entry must be an object')
        return cls(
            method=_upper(data.get('method'), ''),
            amount=_to_decimal(data.get('amount')),
            currency=_upper(data.get('currency'), Currency.USD.value),
        )

    def to_dict(self) -> dict:
        return {'method': self.method, 'amount': str(self.amount), 'currency': self.currency}


@dataclass(frozen=True)
class SplitEntry:
    amount: Optional[Decimal]
    currency: str = Currency.USD.value
    payment_method: str = DEFAULT_METHOD
    mixed_payments: Tuple[MixedPaymentEntry, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> 'SplitEntry':
        if not isinstance(data, dict):
            raise ValidationError('Each split entry must be an object')
        nested = data.get('mixedPayments') or data.get('mixed_payments') or ()
        if not isinstance(nested, (list, tuple)):
            raise ValidationError('Split entry mixedPayments must be a list')
        return cls(
            amount=_to_decimal(data.get('amount')),
            currency=_upper(data.get('currency'), Currency.USD.value),
            payment_method=_upper(data.get('paymentMethod') or data.get('payment_method'), DEFAULT_METHOD),
            mixed_payments=tuple(MixedPaymentEntry.from_dict(e) for e in nested),
        )

    def to_dict(self) -> dict:
        data = {
            'amount': str(self.amount),
            'currency': self.currency,
            'paymentMethod': self.payment_method,
        }
        if self.mixed_payments:
            data['mixedPayments'] = [e.to_dict() for e in self.mixed_payments]
        return data


@dataclass(frozen=True)
class PaymentRequest:
    payment_methods: Tuple[str, ...] = ()
    currency: str = Currency.USD.value
    riel_amount: Optional[Decimal] = None
    split_bill: bool = False
    split_entries: Tuple[SplitEntry, ...] = ()
    mixed_payments: bool = False
    mixed_entries: Tuple[MixedPaymentEntry, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> 'PaymentRequest':
        """Parse a JSON-style payment payload (camelCase or snake_case keys)."""
        if not isinstance(data, dict):
            raise ValidationError('Payment details must be an object')

        def pick(*keys, default=None):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        methods = pick('paymentMethods', 'payment_methods', default=None)
        if methods is None:
            single = pick('paymentMethod', 'payment_method')
            methods = [single] if single else []
        if isinstance(methods, str):
            methods = [methods]
        if not isinstance(methods, (list, tuple)):
            raise ValidationError('paymentMethods must be a list')

        split_raw = pick('splitAmounts', 'split_amounts', 'splitDetails', default=[])
        mixed_raw = pick('paymentDetails', 'payment_details', 'mixedPaymentDetails', default=[])
        if not isinstance(split_raw, (list, tuple)) or not isinstance(mixed_raw, (list, tuple)):
            raise ValidationError('Split and mixed payment details must be lists')

        riel_raw = pick('rielAmount', 'riel_amount')
        return cls(
            payment_methods=tuple(_upper(m, '') for m in methods),
            currency=_upper(pick('currency'), Currency.USD.value),
            riel_amount=_to_decimal(riel_raw),
            split_bill=bool(pick('splitBill', 'split_bill', default=False)),
            split_entries=tuple(SplitEntry.from_dict(e) for e in split_raw),
            mixed_payments=bool(pick('mixedPayments', 'mixed_payments', default=False)),
            mixed_entries=tuple(MixedPaymentEntry.from_dict(e) for e in mixed_raw),
        )


@dataclass(frozen=True)
class Tender:
    currency: Currency
    paid_usd: Decimal
    paid_riel: Decimal


@dataclass(frozen=True)
class Settlement:
    tender: Tender
    payment_method: str
    split_bill: bool
    split_entries: Tuple[SplitEntry, ...]
    mixed_payments: bool
    mixed_entries: Tuple[MixedPaymentEntry, ...]
    nested_payments: bool = False
    mixed_currency: bool = False
    split_mixed_currency: bool = False

    @property
    def split_json(self) -> Optional[str]:
        if not self.split_bill:
            return None
        return json.dumps([e.to_dict() for e in self.split_entries])

    @property
    def mixed_json(self) -> Optional[str]:
        if not self.mixed_payments:
            return None
        return json.dumps([e.to_dict() for e in self.mixed_entries])


# =====================================================
# OPERATIONS
# =====================================================

def _mixed_entry_errors(entries, label: str) -> List[str]:
    errors = []
    for i, entry in enumerate(entries, start=1):
        if entry.amount is None or entry.amount <= 0:
            errors.append(f'{label} {i}: amount must be greater than 0')
        if entry.method not in PAYMENT_METHODS:
            errors.append(f'{label} {i}: invalid payment method "{entry.method}"')
        if entry.currency not in Currency.__members__:
            errors.append(f'{label} {i}: invalid currency "{entry.currency}"')
    return errors


def validate(request: PaymentRequest) -> None:
    """
    Validate a payment request, collecting every problem.

    Raises:
        ValidationError: with ``payload['errors']`` listing all problems found.
    """
    errors = []

    if request.currency not in Currency.__members__:
        errors.append(f'Invalid currency "{request.currency}"')
    elif request.currency == Currency.RIEL.value:
        if request.riel_amount is None or request.riel_amount <= 0:
            errors.append('Riel amount must be greater than 0 when paying in RIEL')
        elif request.riel_amount > MAX_RIEL_AMOUNT:
            errors.append(f'Riel amount must not exceed {MAX_RIEL_AMOUNT}')

    if request.split_bill:
        if not request.split_entries:
            errors.append('Split bill requires at least one split amount')
        aggregate = Decimal('0')
        for i, entry in enumerate(request.split_entries, start=1):
            if entry.amount is None or entry.amount <= 0:
                errors.append(f'Split {i}: amount must be greater than 0')
            else:
                aggregate += entry.amount
            if entry.currency not in Currency.__members__:
                errors.append(f'Split {i}: invalid currency "{entry.currency}"')
            if entry.mixed_payments:
                errors.extend(_mixed_entry_errors(entry.mixed_payments, f'Split {i} payment'))
            elif entry.payment_method not in PAYMENT_METHODS:
                errors.append(f'Split {i}: invalid payment method "{entry.payment_method}"')
        if request.split_entries and aggregate <= 0:
            errors.append('Split amounts must add up to more than 0')

    if request.mixed_payments:
        if not request.mixed_entries:
            errors.append('Mixed payment requires at least one payment entry')
        errors.extend(_mixed_entry_errors(request.mixed_entries, 'Payment'))
    else:
        method = resolve_primary_method(request.payment_methods)
        if method not in PAYMENT_METHODS:
            errors.append(f'Invalid payment method "{method}"')

    if errors:
        raise ValidationError('Invalid payment details', payload={'errors': errors})


def resolve_primary_method(methods) -> str:
    """First provided method, CASH when none was given."""
    for method in methods or ():
        return method
    return DEFAULT_METHOD


def compute_tender(currency, total: Decimal, riel_amount: Optional[Decimal] = None) -> Tender:
    """Paid amounts for the chosen currency; the two currencies are never blended."""
    currency = currency if isinstance(currency, Currency) else Currency(currency)
    if currency is Currency.RIEL:
        return Tender(
            currency=currency,
            paid_usd=Decimal('0.00'),
            paid_riel=round_money(riel_amount if riel_amount is not None else 0),
        )
    return Tender(currency=currency, paid_usd=round_money(total), paid_riel=Decimal('0.00'))


def derive_flags(request: PaymentRequest) -> dict:
    """Reporting flags; they never influence settlement math."""
    nested = request.split_bill and any(e.mixed_payments for e in request.split_entries)

    mixed_currency = request.mixed_payments and len({e.currency for e in request.mixed_entries}) > 1

    split_currencies = set()
    if request.split_bill:
        for entry in request.split_entries:
            split_currencies.add(entry.currency)
            split_currencies.update(e.currency for e in entry.mixed_payments)

    return {
        'nested_payments': bool(nested),
        'mixed_currency': bool(mixed_currency),
        'split_mixed_currency': len(split_currencies) > 1,
    }


def settle(request: PaymentRequest, total: Decimal) -> Settlement:
    """Validate ``request`` and compute everything a payment stores on the order."""
    validate(request)
    tender = compute_tender(request.currency, total, request.riel_amount)

    methods = request.payment_methods
    if request.mixed_payments and not methods:
        methods = [e.method for e in request.mixed_entries]
    method = resolve_primary_method(methods)

    return Settlement(
        tender=tender,
        payment_method=method,
        split_bill=request.split_bill,
        split_entries=request.split_entries,
        mixed_payments=request.mixed_payments,
        mixed_entries=request.mixed_entries,
        **derive_flags(request),
    )
