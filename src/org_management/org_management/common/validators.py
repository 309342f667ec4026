from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from ..core.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} wajib diisi")
    return value.strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value.strip()) < min_len:
        raise ValidationError(f"{field_name} minimal {min_len} karakter")
    return value


def require_email(value: str) -> str:
    v = (value or "").strip()
    if not _EMAIL_RE.match(v):
        raise ValidationError("Email tidak valid")
    return v


def require_username(value: str, min_len: int) -> str:
    v = require_min_length(value or "", "Username", min_len).strip()
    if not _USERNAME_RE.match(v):
        raise ValidationError("Username hanya boleh mengandung huruf, angka, dan underscore")
    return v


def optional_text(value: Optional[str]) -> Optional[str]:
    v = (value or "").strip()
    return v or None


def parse_budget(value) -> Decimal:
    """Anggaran kosong dianggap 0; nilai negatif ditolak."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return Decimal("0")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError("Anggaran tidak valid")
    if amount < 0:
        raise ValidationError("Anggaran tidak boleh negatif")
    return amount
