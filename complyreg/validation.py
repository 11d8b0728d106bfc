"""
Input validation for registry operations.

All helpers raise InvalidArgument naming the offending field and return the
normalised value on success.
"""

from typing import Any, List, Sequence

from .errors import InvalidArgument

MAX_ID_LENGTH = 64
MAX_TEXT_LENGTH = 1024


def validate_identifier(value: Any, field_name: str) -> str:
    """Validate a caller-supplied entity identifier (1-64 characters)."""
    if not isinstance(value, str):
        raise InvalidArgument(field_name, "must be a string")
    if not value:
        raise InvalidArgument(field_name, "cannot be empty")
    if len(value) > MAX_ID_LENGTH:
        raise InvalidArgument(field_name, f"must be at most {MAX_ID_LENGTH} characters")
    return value


def validate_text(value: Any, field_name: str, max_length: int = MAX_TEXT_LENGTH) -> str:
    """Validate descriptive text. Empty strings are allowed."""
    if not isinstance(value, str):
        raise InvalidArgument(field_name, "must be a string")
    if len(value) > max_length:
        raise InvalidArgument(field_name, f"must be at most {max_length} characters")
    return value


def validate_height(value: Any, field_name: str) -> int:
    """Validate a block height or caller-supplied date (non-negative int)."""
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(field_name, "must be an integer")
    if value < 0:
        raise InvalidArgument(field_name, "must be non-negative")
    return value


def validate_positive_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(field_name, "must be an integer")
    if value <= 0:
        raise InvalidArgument(field_name, "must be positive")
    return value


def validate_identifier_list(values: Any, field_name: str) -> List[str]:
    """Validate a non-empty, duplicate-free, ordered list of identifiers."""
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
        raise InvalidArgument(field_name, "must be a list of identifiers")
    if not values:
        raise InvalidArgument(field_name, "cannot be empty")

    seen = set()
    result = []
    for index, item in enumerate(values):
        item = validate_identifier(item, f"{field_name}[{index}]")
        if item in seen:
            raise InvalidArgument(field_name, f"duplicate identifier {item}")
        seen.add(item)
        result.append(item)
    return result
