"""
Input validation functions.
"""

import re
from decimal import ROUND_CEILING, Decimal, InvalidOperation

_NAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9._-]*$")
_QUANTITY_RE = re.compile(r"^([0-9]+(?:\.[0-9]+)?)([KMGTPE]i|[kMGTPE])?$")

_BINARY_SUFFIXES = {
    "Ki": 2**10,
    "Mi": 2**20,
    "Gi": 2**30,
    "Ti": 2**40,
    "Pi": 2**50,
    "Ei": 2**60,
}

_DECIMAL_SUFFIXES = {
    "k": 10**3,
    "M": 10**6,
    "G": 10**9,
    "T": 10**12,
    "P": 10**15,
    "E": 10**18,
}


def validate_name(name: str) -> None:
    """
    Validate a volume name.

    The name doubles as the orchestrator job ID, so it is restricted to
    characters that are safe in URLs and file paths.

    Args:
        name: Name to validate

    Raises:
        ValueError: If name is invalid
    """
    if not name:
        raise ValueError("Name cannot be empty")

    if len(name) > 64:
        raise ValueError("Name must be between 1 and 64 characters")

    if not _NAME_RE.match(name):
        raise ValueError("Name must start with alphanumeric and contain only alphanumeric, dots, underscores, or hyphens")


def parse_quantity(quantity: str) -> int:
    """
    Parse a storage quantity into bytes.

    Accepts plain numbers plus binary (Ki, Mi, Gi, Ti, Pi, Ei) and decimal
    (k, M, G, T, P, E) suffixes, e.g. "5Gi", "500M", "1073741824".
    Fractions are rounded up to the next whole byte.

    Args:
        quantity: Quantity string

    Returns:
        Size in bytes

    Raises:
        ValueError: If quantity is malformed or not positive
    """
    raw = str(quantity).strip()
    match = _QUANTITY_RE.match(raw)
    if not match:
        raise ValueError(f"Invalid quantity '{quantity}'")

    number, suffix = match.groups()
    try:
        value = Decimal(number)
    except InvalidOperation:
        raise ValueError(f"Invalid quantity '{quantity}'")

    if suffix:
        value *= _BINARY_SUFFIXES.get(suffix) or _DECIMAL_SUFFIXES[suffix]

    size = int(value.to_integral_value(rounding=ROUND_CEILING))
    if size <= 0:
        raise ValueError(f"Quantity '{quantity}' must be positive")

    return size


def parse_positive_int(value) -> int:
    """
    Parse a positive integer from a string or int.

    Raises:
        ValueError: If value is not an integer greater than zero
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid integer '{value}'")
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValueError(f"Invalid integer '{value}'")
    if number <= 0:
        raise ValueError(f"Value '{value}' must be greater than zero")
    return number
