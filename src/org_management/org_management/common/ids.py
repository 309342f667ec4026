from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from ..core.exceptions import ValidationError


def normalize_id(value: Any) -> int:
    """Convert an identifier from a form, session or DB driver to ``int``.

    All id comparisons in the domain are strict; ids are normalized once here
    at the boundary instead of being compared loosely.
    """
    if isinstance(value, bool):
        raise ValidationError("ID tidak valid")
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal) and value == value.to_integral_value():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError("ID tidak valid")


def normalize_optional_id(value: Any) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return normalize_id(value)
