"""
Formatting helpers for quote documents and JSON output.
Money is shown with a dollar sign, thousands separators and two decimals;
dates use the New Zealand DD/MM/YYYY order.
"""
from decimal import Decimal, InvalidOperation
from datetime import date, datetime
from typing import Union


def money(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Format a currency amount with exactly two decimals.

    Examples:
        money(1500) -> "$1,500.00"
        money(Decimal('-12.5')) -> "-$12.50"
        money(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value)).quantize(Decimal('0.01'))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    sign = "-" if num < 0 else ""
    return f"{sign}${abs(num):,.2f}"


def percent(value: Union[int, float, Decimal, str, None], decimals: int = 1) -> str:
    """Format a percentage, e.g. percent(37.5) -> "37.5%"."""
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value)).quantize(Decimal(10) ** -decimals)
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    return f"{num}%"


def area(value: Union[int, float, Decimal, str, None]) -> str:
    """Format an area in square metres, dropping insignificant zeros."""
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    if num == num.to_integral_value():
        return f"{int(num)} m²"
    return f"{num.normalize()} m²"


def date_nz(value: Union[date, datetime, None]) -> str:
    """
    Format a date as DD/MM/YYYY.

    Examples:
        date_nz(date(2026, 1, 12)) -> "12/01/2026"
    """
    if value is None:
        return "-"

    if isinstance(value, datetime):
        value = value.date()

    if not isinstance(value, date):
        return "-"

    return value.strftime("%d/%m/%Y")
