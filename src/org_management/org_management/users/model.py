from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import RoleLevel


@dataclass(frozen=True)
class User:
    """Entitas domain: User (sudah di-join dengan role-nya).

    Catatan: objek data murni, tidak berisi kode akses DB.
    """

    user_id: int
    username: str
    email: str
    password_hash: str
    full_name: str
    role_id: int
    role_level: RoleLevel
    role_name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    is_active: bool = True
    profile_photo: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class NewUser:
    username: str
    email: str
    password_hash: str
    full_name: str
    role_id: int
    phone: Optional[str] = None
    address: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class UserChanges:
    """Field yang boleh diubah lewat update (tanpa password)."""

    username: str
    email: str
    full_name: str
    role_id: int
    phone: Optional[str] = None
    address: Optional[str] = None
    is_active: bool = True
