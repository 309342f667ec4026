from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import RoleLevel


@dataclass(frozen=True)
class Role:
    role_id: int
    role_name: str
    role_level: RoleLevel
