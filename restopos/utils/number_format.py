"""Money and quantity parsing utilities."""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal('0.01')

# Largest values the Numeric(10, 2) and Numeric(14, 2) columns can hold
MAX_AMOUNT = Decimal('99999999.99')
MAX_RIEL_AMOUNT = Decimal('999999999999.99')
# Integer quantity columns
MAX_QUANTITY = 2147483647


def round_money(value) -> Decimal:
    """
    Round a Decimal-compatible value to 2 decimals, half up.

    Raises:
        ValueError: if the value is not numeric or too large to round to cents.
    """
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValueError(f'Amount out of range: {value!r}')


def parse_money(value, allow_zero: bool = True) -> Decimal:
    """
    Parse a JSON-style monetary amount (int, float, str or Decimal) to Decimal.

    Floats are converted through ``str`` so 0.1 stays 0.1.

    Raises:
        ValueError: if the value is missing, not numeric, negative,
            or zero when ``allow_zero`` is False.
    """
    if value is None or isinstance(value, bool):
        raise ValueError('Amount is required')

    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f'Invalid amount: {value!r}')

    if not amount.is_finite():
        raise ValueError(f'Invalid amount: {value!r}')
    if amount < 0:
        raise ValueError('Amount cannot be negative')
    if not allow_zero and amount == 0:
        raise ValueError('Amount must be greater than 0')

    return amount


def parse_quantity(value) -> int:
    """
    Parse an item quantity: a whole number of at least 1.

    Raises:
        ValueError: for booleans, fractions, non-numbers and values < 1.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError('Quantity must be at least 1')
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError('Quantity must be a whole number')
        value = int(value)
    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise ValueError(f'Invalid quantity: {value!r}')
    if qty < 1:
        raise ValueError('Quantity must be at least 1')
    return qty
