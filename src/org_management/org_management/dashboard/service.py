from __future__ import annotations

from collections import Counter
from typing import Any, Dict

from ..authorization.actor import Actor
from ..authorization.policy import program_visibility
from ..core.constants import DEFAULT_DASHBOARD_PREVIEW
from ..core.enums import DepartmentCategory, ProgramStatus, RoleLevel
from ..departments.repository import MembershipRepository
from ..programs.model import ProgramFilters
from ..programs.repository import ProgramRepository
from ..units.repository import UnitRepository
from ..users.repository import UserRepository


class DashboardService:
    """Statistik dashboard sesuai role user yang login."""

    def __init__(
        self,
        users: UserRepository,
        units: UnitRepository,
        memberships: MembershipRepository,
        programs: ProgramRepository,
    ):
        self._users = users
        self._units = units
        self._memberships = memberships
        self._programs = programs

    def stats_for(self, actor: Actor) -> Dict[str, Any]:
        level = actor.role_level
        if actor.is_leadership:
            return self._leadership_stats(actor)
        if level in (RoleLevel.SECRETARY, RoleLevel.TREASURER):
            return self._department_stats(actor)
        if level == RoleLevel.UNIT_CHAIR:
            return self._unit_chair_stats(actor)
        return self._member_stats(actor)

    def _program_block(self, actor: Actor) -> Dict[str, Any]:
        visibility = program_visibility(actor)
        counts = self._programs.count_by_status(visibility)
        return {
            "program_counts": counts,
            "program_total": sum(counts.values()),
            "recent_programs": list(self._programs.list_visible(visibility))[:DEFAULT_DASHBOARD_PREVIEW],
        }

    def _leadership_stats(self, actor: Actor) -> Dict[str, Any]:
        users = self._users.list_all()
        per_role = Counter(u.role_level for u in users)
        stats = {
            "kind": "leadership",
            "users_total": self._users.count(),
            "users_active": self._users.count_active(),
            "users_per_role": {level.label: per_role.get(level, 0) for level in RoleLevel},
            "units_total": self._units.count(),
            "unit_members_total": self._units.count_members(),
            "secretariat_members": self._memberships.count_department_members(DepartmentCategory.SECRETARIAT),
            "treasury_members": self._memberships.count_department_members(DepartmentCategory.TREASURY),
            "pending_approvals": list(self._programs.list(ProgramFilters(status=ProgramStatus.SUBMITTED)))[
                :DEFAULT_DASHBOARD_PREVIEW
            ],
        }
        stats.update(self._program_block(actor))
        return stats

    def _department_stats(self, actor: Actor) -> Dict[str, Any]:
        category = (
            DepartmentCategory.SECRETARIAT if actor.role_level == RoleLevel.SECRETARY else DepartmentCategory.TREASURY
        )
        stats: Dict[str, Any] = {
            "kind": category.value,
            "department_members": self._memberships.count_department_members(category),
        }
        stats.update(self._program_block(actor))
        if category == DepartmentCategory.TREASURY:
            visibility = program_visibility(actor)
            stats["budget_total"] = self._programs.total_budget(visibility)
            stats["budget_approved"] = self._programs.total_budget(visibility, status=ProgramStatus.APPROVED)
        return stats

    def _unit_chair_stats(self, actor: Actor) -> Dict[str, Any]:
        unit = self._units.get_by_id(actor.chaired_unit_id) if actor.chaired_unit_id is not None else None
        stats: Dict[str, Any] = {
            "kind": "ketua_bidang",
            "unit": unit,
            "unit_members": len(self._units.get_members(unit.unit_id)) if unit else 0,
        }
        stats.update(self._program_block(actor))
        return stats

    def _member_stats(self, actor: Actor) -> Dict[str, Any]:
        own = self._programs.list(ProgramFilters(proposer_id=actor.user_id))
        own_counts = Counter(p.status for p in own)
        stats: Dict[str, Any] = {
            "kind": "anggota",
            "my_units": self._units.find_units_for_user(actor.user_id),
            "my_program_total": len(own),
            "my_program_counts": {s: own_counts.get(s, 0) for s in ProgramStatus},
        }
        stats.update(self._program_block(actor))
        return stats
