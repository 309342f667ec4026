from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash
from werkzeug.utils import secure_filename

from ..authorization.actor import Actor
from ..authorization.policy import require_admin
from ..common.datetime_utils import now_local
from ..common.validators import optional_text, require_email, require_min_length, require_username
from ..core.constants import ALLOWED_PHOTO_EXTENSIONS, MIN_FULL_NAME_LENGTH, MIN_PASSWORD_LENGTH, MIN_USERNAME_LENGTH
from ..core.enums import RoleLevel
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from .model import NewUser, User, UserChanges
from .repository import UserRepository
from .role_model import Role
from .role_repository import RoleRepository

logger = logging.getLogger(__name__)


def verify_credential(plain: str, password_hash: str) -> bool:
    try:
        return check_password_hash(password_hash, plain or "")
    except (TypeError, ValueError):
        # placeholder or corrupted hashes in seeded rows
        return False


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    username: str
    full_name: str
    role_level: RoleLevel
    role_name: str
    profile_photo: Optional[str] = None


class AuthService:
    """Use case: authenticate user (login)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def authenticate(self, username: str, password: str) -> SessionUser:
        username = (username or "").strip()
        if not username or not password:
            raise AuthenticationError("Username dan password wajib diisi")

        user = self._users.get_by_username(username)
        if not user or not verify_credential(password, user.password_hash):
            raise AuthenticationError("Username atau password salah")
        if not user.is_active:
            raise AuthenticationError("Akun Anda tidak aktif")

        return SessionUser(
            user_id=user.user_id,
            username=user.username,
            full_name=user.full_name,
            role_level=user.role_level,
            role_name=user.role_name,
            profile_photo=user.profile_photo,
        )


class UserService:
    """Use case: manage users (admin) and one's own profile."""

    def __init__(self, users: UserRepository, roles: RoleRepository):
        self._users = users
        self._roles = roles

    @staticmethod
    def _require_admin(actor: Actor) -> None:
        decision = require_admin(actor)
        if not decision:
            raise AuthorizationError(decision.reason)

    def get_user(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User tidak ditemukan")
        return user

    def list_users(self, actor: Actor) -> Sequence[User]:
        self._require_admin(actor)
        return self._users.list_all()

    def list_roles(self) -> Sequence[Role]:
        return self._roles.list_all()

    def list_by_role_level(self, role_level: RoleLevel) -> Sequence[User]:
        return self._users.list_by_role_level(role_level)

    def _require_role(self, role_id) -> Role:
        if role_id in (None, ""):
            raise ValidationError("Role wajib dipilih")
        role = self._roles.get_by_id(int(role_id))
        if not role:
            raise ValidationError("Role tidak valid")
        return role

    def create_user(
        self,
        actor: Actor,
        *,
        username: str,
        email: str,
        password: str,
        full_name: str,
        role_id,
        phone: Optional[str] = None,
        address: Optional[str] = None,
        is_active: bool = True,
    ) -> int:
        self._require_admin(actor)
        username = require_username(username, MIN_USERNAME_LENGTH)
        email = require_email(email)
        require_min_length(password or "", "Password", MIN_PASSWORD_LENGTH)
        full_name = require_min_length(full_name or "", "Nama lengkap", MIN_FULL_NAME_LENGTH).strip()
        role = self._require_role(role_id)

        if self._users.get_by_username(username):
            raise ConflictError("Username sudah digunakan")
        if self._users.get_by_email(email):
            raise ConflictError("Email sudah digunakan")

        user_id = self._users.create_user(
            NewUser(
                username=username,
                email=email,
                password_hash=generate_password_hash(password),
                full_name=full_name,
                role_id=role.role_id,
                phone=optional_text(phone),
                address=optional_text(address),
                is_active=bool(is_active),
            )
        )
        logger.info("user %s (%s) created by user %s", user_id, username, actor.user_id)
        return user_id

    def update_user(
        self,
        actor: Actor,
        user_id: int,
        *,
        username: str,
        email: str,
        full_name: str,
        role_id,
        phone: Optional[str] = None,
        address: Optional[str] = None,
        is_active: bool = True,
        password: Optional[str] = None,
        confirm_password: Optional[str] = None,
    ) -> None:
        self._require_admin(actor)
        current = self.get_user(user_id)
        username = require_username(username, MIN_USERNAME_LENGTH)
        email = require_email(email)
        full_name = require_min_length(full_name or "", "Nama lengkap", MIN_FULL_NAME_LENGTH).strip()
        role = self._require_role(role_id)

        if password:
            require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
            if password != (confirm_password or ""):
                raise ValidationError("Konfirmasi password tidak cocok")

        other = self._users.get_by_username(username)
        if other and other.user_id != current.user_id:
            raise ConflictError("Username sudah digunakan")
        other = self._users.get_by_email(email)
        if other and other.user_id != current.user_id:
            raise ConflictError("Email sudah digunakan")

        self._users.update_user(
            current.user_id,
            UserChanges(
                username=username,
                email=email,
                full_name=full_name,
                role_id=role.role_id,
                phone=optional_text(phone),
                address=optional_text(address),
                is_active=bool(is_active),
            ),
        )
        if password:
            self._users.update_password(current.user_id, generate_password_hash(password))

    def delete_user(self, actor: Actor, user_id: int) -> None:
        if int(user_id) == actor.user_id:
            raise ConflictError("Anda tidak dapat menghapus akun sendiri")
        self._require_admin(actor)
        self.get_user(user_id)
        if not self._users.delete_by_id(int(user_id)):
            raise NotFoundError("User tidak ditemukan")
        logger.info("user %s deleted by user %s", user_id, actor.user_id)

    # --- profile ---------------------------------------------------------

    def update_profile(
        self,
        user_id: int,
        *,
        full_name: str,
        email: str,
        phone: Optional[str] = None,
        address: Optional[str] = None,
    ) -> None:
        current = self.get_user(user_id)
        full_name = require_min_length(full_name or "", "Nama lengkap", MIN_FULL_NAME_LENGTH).strip()
        email = require_email(email)

        other = self._users.get_by_email(email)
        if other and other.user_id != current.user_id:
            raise ConflictError("Email sudah digunakan oleh user lain")

        self._users.update_profile(
            current.user_id,
            full_name=full_name,
            email=email,
            phone=optional_text(phone),
            address=optional_text(address),
        )

    def change_password(self, user_id: int, *, current_password: str, new_password: str, confirm_password: str) -> None:
        user = self.get_user(user_id)
        if not verify_credential(current_password, user.password_hash):
            raise ValidationError("Password saat ini salah")
        require_min_length(new_password or "", "Password baru", MIN_PASSWORD_LENGTH)
        if new_password != confirm_password:
            raise ValidationError("Konfirmasi password tidak cocok")
        self._users.update_password(user.user_id, generate_password_hash(new_password))
        logger.info("user %s changed password", user.user_id)

    def update_password(self, user_id: int, new_password: str) -> None:
        require_min_length(new_password or "", "Password", MIN_PASSWORD_LENGTH)
        if not self._users.update_password(int(user_id), generate_password_hash(new_password)):
            raise NotFoundError("User tidak ditemukan")

    def update_profile_photo(self, user_id: int, file_storage, upload_folder: str) -> str:
        """Store an uploaded photo under ``upload_folder`` and return the saved filename."""
        user = self.get_user(user_id)
        original = secure_filename(getattr(file_storage, "filename", "") or "")
        if not original:
            raise ValidationError("Tidak ada file yang dipilih")

        ext = original.rsplit(".", 1)[-1].lower() if "." in original else ""
        if ext not in ALLOWED_PHOTO_EXTENSIONS:
            raise ValidationError("Format file tidak didukung (jpg, jpeg, png, gif)")

        filename = f"user_{user.user_id}_{now_local().strftime('%Y%m%d%H%M%S')}.{ext}"
        os.makedirs(upload_folder, exist_ok=True)
        file_storage.save(os.path.join(upload_folder, filename))

        if user.profile_photo and user.profile_photo != filename:
            old_path = os.path.join(upload_folder, user.profile_photo)
            if os.path.exists(old_path):
                os.remove(old_path)

        self._users.update_profile_photo(user.user_id, filename)
        return filename
