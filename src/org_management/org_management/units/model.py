from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

UNIT_CHAIR_POSITION = "Ketua Bidang"
UNIT_MEMBER_POSITION = "Anggota"


@dataclass(frozen=True)
class Unit:
    """Bidang, dengan nama ketua dan jumlah anggota untuk tampilan daftar."""

    unit_id: int
    name: str
    description: Optional[str] = None
    chair_user_id: Optional[int] = None
    chair_name: Optional[str] = None
    member_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class UnitMember:
    user_id: int
    username: str
    email: str
    full_name: str
    role_name: str
    phone: Optional[str] = None
    joined_at: Optional[datetime] = None


@dataclass(frozen=True)
class UserUnit:
    """Bidang yang diikuti seorang user, dengan posisinya di bidang tersebut."""

    unit_id: int
    name: str
    description: Optional[str]
    chair_user_id: Optional[int]
    chair_name: Optional[str]
    position: str
