"""
Coercion helpers for raw identifiers and enum values.

Services accept either parsed values or the raw strings that arrive with a
request; these helpers turn the raw form into the typed one and report bad
input as InvalidArgumentError.
"""

import uuid
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar, Union

from autohub.core.exceptions import InvalidArgumentError

E = TypeVar("E", bound=Enum)


def parse_uuid(value: Union[str, uuid.UUID, None], field: str) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Invalid {field}", **{field: value}) from e


def parse_enum(enum_cls: type[E], value: Union[str, E], field: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError as e:
        raise InvalidArgumentError(
            f"Invalid {field}",
            **{field: value},
            allowed=[member.value for member in enum_cls],
        ) from e


def parse_decimal(value: Any, field: str) -> Decimal:
    """Parse a money amount; floats go through ``str`` so 30.01 stays 30.01."""
    if isinstance(value, bool):
        raise InvalidArgumentError(f"Invalid {field}", **{field: value})
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Invalid {field}", **{field: value}) from e
    if not amount.is_finite():
        raise InvalidArgumentError(f"Invalid {field}", **{field: str(value)})
    return amount
