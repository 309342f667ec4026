from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..authorization.actor import Actor
from ..authorization.policy import UnitScope, can_list_units, can_manage_unit, can_view_unit, require_admin
from ..common.validators import optional_text, require_non_empty
from ..core.enums import DepartmentCategory, RoleLevel
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..departments.model import AvailableUser, ExistingMembership
from ..departments.repository import MembershipRepository
from ..users.repository import UserRepository
from .model import Unit, UnitMember, UserUnit
from .repository import UnitRepository

logger = logging.getLogger(__name__)


def _raise_if_denied(decision) -> None:
    if not decision:
        raise AuthorizationError(decision.reason)


def unit_membership_guard(unit_id: int):
    """Guard for adding to ``unit_id``: same unit is a no-op, anything else conflicts."""

    def guard(existing: Optional[ExistingMembership]) -> bool:
        if existing is None:
            return True
        if existing.category == DepartmentCategory.UNIT and existing.unit_id == int(unit_id):
            return False
        raise ConflictError(existing.message)

    return guard


class UnitService:
    def __init__(self, units: UnitRepository, users: UserRepository, memberships: MembershipRepository):
        self._units = units
        self._users = users
        self._memberships = memberships

    def get_unit(self, unit_id: int) -> Unit:
        unit = self._units.get_by_id(int(unit_id))
        if not unit:
            raise NotFoundError("Bidang tidak ditemukan")
        return unit

    def list_units(self, actor: Actor) -> Sequence[Unit]:
        _raise_if_denied(can_list_units(actor))
        units = self._units.list_all()
        if actor.is_leadership:
            return units
        return [u for u in units if u.chair_user_id == actor.user_id]

    def list_chair_candidates(self) -> Sequence:
        return self._users.list_by_role_level(RoleLevel.UNIT_CHAIR)

    def _validate_chair(self, chair_user_id: Optional[int]) -> Optional[int]:
        if chair_user_id is None:
            return None
        chair = self._users.get_by_id(int(chair_user_id))
        if not chair:
            raise ValidationError("Ketua bidang tidak ditemukan")
        if chair.role_level != RoleLevel.UNIT_CHAIR:
            raise ValidationError("Ketua bidang harus memiliki role Ketua Bidang")
        return chair.user_id

    def create_unit(
        self,
        actor: Actor,
        *,
        name: str,
        description: Optional[str] = None,
        chair_user_id: Optional[int] = None,
    ) -> int:
        _raise_if_denied(require_admin(actor))
        name = require_non_empty(name, "Nama bidang")
        unit_id = self._units.create(
            name=name,
            description=optional_text(description),
            chair_user_id=self._validate_chair(chair_user_id),
        )
        logger.info("bidang %s created by user %s", unit_id, actor.user_id)
        return unit_id

    def update_unit(
        self,
        actor: Actor,
        unit_id: int,
        *,
        name: str,
        description: Optional[str] = None,
        chair_user_id: Optional[int] = None,
    ) -> None:
        _raise_if_denied(require_admin(actor))
        self.get_unit(unit_id)
        name = require_non_empty(name, "Nama bidang")
        self._units.update(
            int(unit_id),
            name=name,
            description=optional_text(description),
            chair_user_id=self._validate_chair(chair_user_id),
        )

    def delete_unit(self, actor: Actor, unit_id: int) -> None:
        _raise_if_denied(require_admin(actor))
        self.get_unit(unit_id)
        self._units.delete(int(unit_id))
        logger.info("bidang %s deleted by user %s", unit_id, actor.user_id)

    def list_members(self, actor: Actor, unit_id: int) -> Sequence[UnitMember]:
        unit = self.get_unit(unit_id)
        _raise_if_denied(can_manage_unit(actor, UnitScope.of(unit)))
        return self._units.get_members(unit.unit_id)

    def list_available_users(self, actor: Actor, unit_id: int) -> Sequence[AvailableUser]:
        unit = self.get_unit(unit_id)
        _raise_if_denied(can_manage_unit(actor, UnitScope.of(unit)))
        return self._memberships.list_available_users()

    def add_member(self, actor: Actor, unit_id: int, user_id: int) -> bool:
        """Returns False when the user was already a member of this bidang."""
        unit = self.get_unit(unit_id)
        _raise_if_denied(can_manage_unit(actor, UnitScope.of(unit)))
        added = self._units.add_member(unit.unit_id, int(user_id), guard=unit_membership_guard(unit.unit_id))
        if added:
            logger.info("user %s added to bidang %s by user %s", user_id, unit.unit_id, actor.user_id)
        return added

    def remove_member(self, actor: Actor, unit_id: int, user_id: int) -> None:
        unit = self.get_unit(unit_id)
        _raise_if_denied(can_manage_unit(actor, UnitScope.of(unit)))
        if not self._units.remove_member(unit.unit_id, int(user_id)):
            raise NotFoundError("Anggota tidak ditemukan di bidang ini")
        logger.info("user %s removed from bidang %s by user %s", user_id, unit.unit_id, actor.user_id)

    def is_member_of(self, user_id: int, unit_id: int) -> bool:
        return self._units.is_member_of(int(user_id), int(unit_id))

    def my_units(self, actor: Actor) -> Sequence[UserUnit]:
        return self._units.find_units_for_user(actor.user_id)

    def view_unit(self, actor: Actor, unit_id: int):
        """Detail "Bidang Saya": the unit and its members."""
        unit = self.get_unit(unit_id)
        _raise_if_denied(can_view_unit(actor, UnitScope.of(unit)))
        return unit, self._units.get_members(unit.unit_id)
