from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import RoleLevel
from .model import NewUser, User, UserChanges


class UserRepository(Protocol):
    """Giao diện repository cho User.

    Service layer depends on this interface, not on a concrete database.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(self, data: NewUser) -> int:
        """Raises ConflictError when username or email is already taken."""

        raise NotImplementedError

    def update_user(self, user_id: int, changes: UserChanges) -> bool:
        raise NotImplementedError

    def update_profile(
        self,
        user_id: int,
        *,
        full_name: str,
        email: str,
        phone: Optional[str],
        address: Optional[str],
    ) -> bool:
        raise NotImplementedError

    def update_password(self, user_id: int, password_hash: str) -> bool:
        raise NotImplementedError

    def update_profile_photo(self, user_id: int, photo_path: Optional[str]) -> bool:
        raise NotImplementedError

    def delete_by_id(self, user_id: int) -> bool:
        raise NotImplementedError

    def list_all(self) -> Sequence[User]:
        raise NotImplementedError

    def list_by_role_level(self, role_level: RoleLevel, *, active_only: bool = True) -> Sequence[User]:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError

    def count_active(self) -> int:
        raise NotImplementedError
