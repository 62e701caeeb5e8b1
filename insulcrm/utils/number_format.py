"""Number parsing utilities for form and JSON input."""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext

LEADING_NUMBER_PATTERN = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)")

CENT = Decimal('0.01')
TENTH = Decimal('0.1')


def to_decimal(value, default=Decimal('0')) -> Decimal:
    """
    Leniently convert live form input to Decimal.

    Mirrors what a browser number field hands over while the user is typing:
    - None, '' and unparsable text degrade to `default` instead of raising
    - Thousands separators (1,234.5) are tolerated
    - A leading number is kept from trailing junk ("12.5m2" -> 12.5)
    - NaN and infinities degrade to `default`

    Examples:
        to_decimal('20') -> Decimal('20')
        to_decimal('abc') -> Decimal('0')
        to_decimal(4.5) -> Decimal('4.5')
    """
    if value is None or isinstance(value, bool):
        return default

    if isinstance(value, Decimal):
        return value if value.is_finite() else default

    if isinstance(value, (int, float)):
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            return default
        return result if result.is_finite() else default

    cleaned = str(value).strip().replace(',', '')
    match = LEADING_NUMBER_PATTERN.match(cleaned)
    if not match:
        return default

    try:
        return Decimal(match.group(0))
    except (InvalidOperation, ValueError):
        return default


def to_non_negative_decimal(value, default=Decimal('0')) -> Decimal:
    """Like to_decimal, but negative quantities degrade to `default`."""
    result = to_decimal(value, default)
    return result if result >= 0 else default


def parse_decimal(value, field_name='value') -> Decimal:
    """
    Strictly parse a catalog or settings value to Decimal.

    Raises:
        ValueError: if the value is empty, malformed or negative.
    """
    if value is None or str(value).strip() == '':
        raise ValueError(f'{field_name} is required')

    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f'{field_name} must be a number')

    if not result.is_finite():
        raise ValueError(f'{field_name} must be a number')
    if result < 0:
        raise ValueError(f'{field_name} cannot be negative')

    return result


def _quantize(value, exponent: Decimal) -> Decimal:
    value = Decimal(value)
    if not value.is_finite():
        return Decimal('0').quantize(exponent)
    # quantize raises once the result needs more digits than the context holds
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() - exponent.as_tuple().exponent + 2)
        return value.quantize(exponent, rounding=ROUND_HALF_UP)


def round_money(value: Decimal) -> Decimal:
    """Round a currency amount to cents."""
    return _quantize(value, CENT)


def round_percent(value: Decimal) -> Decimal:
    """Round a percentage to one decimal place."""
    return _quantize(value, TENTH)
