from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import DepartmentCategory


@dataclass(frozen=True)
class ExistingMembership:
    """Keanggotaan yang sudah dimiliki seorang user (maksimal satu)."""

    category: DepartmentCategory
    unit_id: Optional[int] = None
    unit_name: Optional[str] = None

    @property
    def message(self) -> str:
        if self.category == DepartmentCategory.SECRETARIAT:
            return "User sudah menjadi anggota Sekretaris"
        if self.category == DepartmentCategory.TREASURY:
            return "User sudah menjadi anggota Bendahara"
        return f"User sudah menjadi anggota Bidang {self.unit_name or ''}".rstrip()


@dataclass(frozen=True)
class DepartmentMember:
    user_id: int
    username: str
    email: str
    full_name: str
    role_name: str
    phone: Optional[str] = None
    is_active: bool = True
    joined_at: Optional[datetime] = None


@dataclass(frozen=True)
class AvailableUser:
    user_id: int
    username: str
    email: str
    full_name: str
    role_name: str
