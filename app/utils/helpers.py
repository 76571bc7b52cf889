"""
Request payload helpers shared by the status blueprints.

Each ``parse_*`` helper raises ValueError with a client-facing message;
blueprints collect those into a ValidationError ``details`` mapping.
"""

from datetime import date
from decimal import Decimal, InvalidOperation


def parse_date_input(value):
    """Parse a YYYY-MM-DD date string, raising ValueError on bad input."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or len(value) != 10:
        raise ValueError("Invalid date format. Use YYYY-MM-DD.")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError("Invalid date format. Use YYYY-MM-DD.") from exc


def parse_bool(value, default=False):
    """Accept JSON booleans only; None falls back to *default*."""
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError("Must be a boolean.")
    return value


def parse_text(value, max_length):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("Must be a string.")
    if len(value) > max_length:
        raise ValueError(f"Must be at most {max_length} characters.")
    return value


def parse_int_range(value, minimum, maximum):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError("Must be an integer.")
    if not minimum <= value <= maximum:
        raise ValueError(f"Must be between {minimum} and {maximum}.")
    return value


def parse_decimal_range(value, minimum, maximum, places=2):
    """Parse a JSON number into a Decimal with at most *places* decimals."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("Must be a number.")
    try:
        number = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError("Must be a number.") from exc
    if not Decimal(str(minimum)) <= number <= Decimal(str(maximum)):
        raise ValueError(f"Must be between {minimum} and {maximum}.")
    if number.as_tuple().exponent < -places:
        raise ValueError(f"Must have at most {places} decimal places.")
    return number
