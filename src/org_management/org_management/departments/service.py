from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..authorization.actor import Actor
from ..authorization.policy import can_manage_department
from ..core.enums import DepartmentCategory
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from .model import AvailableUser, DepartmentMember, ExistingMembership
from .repository import MembershipRepository

logger = logging.getLogger(__name__)

DEPARTMENT_LABELS = {
    DepartmentCategory.SECRETARIAT: "Sekretaris",
    DepartmentCategory.TREASURY: "Bendahara",
}


def check_existing_membership(existing: Optional[ExistingMembership]) -> bool:
    """Membership guard for a fresh insert: any existing membership is a conflict."""
    if existing is not None:
        raise ConflictError(existing.message)
    return True


def parse_department(value) -> DepartmentCategory:
    try:
        category = DepartmentCategory((value or "").strip().lower())
    except ValueError:
        raise ValidationError("Departemen tidak valid")
    if category not in DEPARTMENT_LABELS:
        raise ValidationError("Departemen tidak valid")
    return category


class DepartmentService:
    """Anggota departemen Sekretaris dan Bendahara.

    A user belongs to at most one of Sekretaris, Bendahara or a single Bidang;
    the check and the insert run in one repository transaction.
    """

    def __init__(self, memberships: MembershipRepository):
        self._memberships = memberships

    @staticmethod
    def _require_manage(actor: Actor, category: DepartmentCategory) -> None:
        decision = can_manage_department(actor, category)
        if not decision:
            raise AuthorizationError(decision.reason)

    def get_existing_membership(self, user_id: int) -> Optional[ExistingMembership]:
        return self._memberships.get_existing_membership(int(user_id))

    def get_user_department_category(self, user_id: int) -> DepartmentCategory:
        existing = self._memberships.get_existing_membership(int(user_id))
        return existing.category if existing else DepartmentCategory.NONE

    def is_member(self, category: DepartmentCategory, user_id: int) -> bool:
        return self._memberships.is_department_member(category, int(user_id))

    def list_members(self, actor: Actor, category: DepartmentCategory) -> Sequence[DepartmentMember]:
        self._require_manage(actor, category)
        return self._memberships.list_department_members(category)

    def list_available_users(self, actor: Actor, category: DepartmentCategory) -> Sequence[AvailableUser]:
        self._require_manage(actor, category)
        return self._memberships.list_available_users()

    def count_members(self, category: DepartmentCategory) -> int:
        return self._memberships.count_department_members(category)

    def add_member(self, category: DepartmentCategory, user_id: int, actor: Actor) -> DepartmentMember:
        self._require_manage(actor, category)
        inserted = self._memberships.add_department_member(
            category,
            int(user_id),
            guard=check_existing_membership,
        )
        if not inserted:
            raise ConflictError(f"User sudah menjadi anggota {DEPARTMENT_LABELS[category]}")
        logger.info("user %s added to %s by user %s", user_id, category.value, actor.user_id)

        for member in self._memberships.list_department_members(category):
            if member.user_id == int(user_id):
                return member
        raise NotFoundError("Anggota tidak ditemukan")

    def remove_member(self, category: DepartmentCategory, user_id: int, actor: Actor) -> None:
        self._require_manage(actor, category)
        if not self._memberships.remove_department_member(category, int(user_id)):
            raise NotFoundError("Anggota tidak ditemukan")
        logger.info("user %s removed from %s by user %s", user_id, category.value, actor.user_id)
