from __future__ import annotations

from ..common.ids import normalize_id
from ..core.enums import DepartmentCategory, RoleLevel
from ..departments.repository import MembershipRepository
from ..units.repository import UnitRepository
from .actor import Actor


class ActorService:
    """Builds the per-request :class:`Actor` from the membership stores."""

    def __init__(self, units: UnitRepository, memberships: MembershipRepository):
        self._units = units
        self._memberships = memberships

    def resolve(self, user_id, role_level) -> Actor:
        user_id = normalize_id(user_id)
        level = RoleLevel(normalize_id(role_level))

        chaired = self._units.find_chaired_unit_by(user_id) if level == RoleLevel.UNIT_CHAIR else None
        return Actor(
            user_id=user_id,
            role_level=level,
            chaired_unit_id=chaired.unit_id if chaired else None,
            unit_ids=frozenset(self._units.list_member_unit_ids(user_id)),
            is_secretariat_member=self._memberships.is_department_member(DepartmentCategory.SECRETARIAT, user_id),
            is_treasury_member=self._memberships.is_department_member(DepartmentCategory.TREASURY, user_id),
        )
