from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..departments.repository import MembershipGuard
from .model import Unit, UnitMember, UserUnit


class UnitRepository(Protocol):
    def list_all(self) -> Sequence[Unit]:
        raise NotImplementedError

    def get_by_id(self, unit_id: int) -> Optional[Unit]:
        raise NotImplementedError

    def create(self, *, name: str, description: Optional[str], chair_user_id: Optional[int]) -> int:
        raise NotImplementedError

    def update(self, unit_id: int, *, name: str, description: Optional[str], chair_user_id: Optional[int]) -> bool:
        raise NotImplementedError

    def delete(self, unit_id: int) -> bool:
        raise NotImplementedError

    def get_members(self, unit_id: int) -> Sequence[UnitMember]:
        raise NotImplementedError

    def add_member(self, unit_id: int, user_id: int, *, guard: MembershipGuard) -> bool:
        """Guard and insert share one transaction; False when the guard skips the insert."""

        raise NotImplementedError

    def remove_member(self, unit_id: int, user_id: int) -> bool:
        raise NotImplementedError

    def is_member_of(self, user_id: int, unit_id: int) -> bool:
        raise NotImplementedError

    def find_units_for_user(self, user_id: int) -> Sequence[UserUnit]:
        """Chaired and member units, de-duplicated, chaired first."""

        raise NotImplementedError

    def find_chaired_unit_by(self, user_id: int) -> Optional[Unit]:
        raise NotImplementedError

    def list_member_unit_ids(self, user_id: int) -> Sequence[int]:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError

    def count_members(self) -> int:
        raise NotImplementedError
