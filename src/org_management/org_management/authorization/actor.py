from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from ..core.enums import RoleLevel


@dataclass(frozen=True)
class Actor:
    """Who is performing an action, with every scoping fact the rules need.

    Built once per request and passed explicitly into authorization and
    workflow calls; nothing reads role state from the session directly.
    """

    user_id: int
    role_level: RoleLevel
    chaired_unit_id: Optional[int] = None
    unit_ids: FrozenSet[int] = field(default_factory=frozenset)
    is_secretariat_member: bool = False
    is_treasury_member: bool = False

    @property
    def is_leadership(self) -> bool:
        return self.role_level in (RoleLevel.ADMIN, RoleLevel.GENERAL_CHAIR)

    @property
    def primary_unit_id(self) -> Optional[int]:
        if self.chaired_unit_id is not None:
            return self.chaired_unit_id
        return min(self.unit_ids) if self.unit_ids else None
