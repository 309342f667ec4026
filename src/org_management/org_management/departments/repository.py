from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence

from ..core.enums import DepartmentCategory
from .model import AvailableUser, DepartmentMember, ExistingMembership

# Called inside the insert transaction with the user's current membership.
# Return True to insert, False to skip (already there), or raise ConflictError.
MembershipGuard = Callable[[Optional[ExistingMembership]], bool]


class MembershipRepository(Protocol):
    """Keanggotaan Sekretaris / Bendahara, plus pengecekan lintas kategori."""

    def get_existing_membership(self, user_id: int) -> Optional[ExistingMembership]:
        raise NotImplementedError

    def add_department_member(
        self,
        category: DepartmentCategory,
        user_id: int,
        *,
        guard: MembershipGuard,
    ) -> bool:
        """Run ``guard`` and the insert atomically; returns True when a row was inserted."""

        raise NotImplementedError

    def remove_department_member(self, category: DepartmentCategory, user_id: int) -> bool:
        raise NotImplementedError

    def is_department_member(self, category: DepartmentCategory, user_id: int) -> bool:
        raise NotImplementedError

    def list_department_members(self, category: DepartmentCategory) -> Sequence[DepartmentMember]:
        raise NotImplementedError

    def list_available_users(self) -> Sequence[AvailableUser]:
        """Active Members (role level 6) holding no membership at all."""

        raise NotImplementedError

    def count_department_members(self, category: DepartmentCategory) -> int:
        raise NotImplementedError
