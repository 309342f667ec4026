from __future__ import annotations

from typing import Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import RoleLevel
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key, is_row_referenced
from .model import NewUser, User, UserChanges
from .repository import UserRepository

_USER_COLUMNS = """
    u.id, u.username, u.email, u.password, u.full_name, u.phone, u.address,
    u.role_id, u.is_active, u.profile_photo, u.created_at, u.updated_at,
    r.role_name, r.role_level
"""


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_user(row: dict) -> User:
        return User(
            user_id=int(row["id"]),
            username=row["username"],
            email=row["email"],
            password_hash=row["password"],
            full_name=row["full_name"],
            role_id=int(row["role_id"]),
            role_level=RoleLevel(int(row["role_level"])),
            role_name=row["role_name"],
            phone=row.get("phone"),
            address=row.get("address"),
            is_active=bool(row.get("is_active", True)),
            profile_photo=row.get("profile_photo"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def _get_one(self, where: str, value) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS}
                FROM users u
                JOIN roles r ON r.id = u.role_id
                WHERE {where}
                """,
                (value,),
            )
            row = fetchone(cur)
            return self._to_user(row) if row else None

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._get_one("u.id=%s", int(user_id))

    def get_by_username(self, username: str) -> Optional[User]:
        return self._get_one("u.username=%s", username)

    def get_by_email(self, email: str) -> Optional[User]:
        return self._get_one("u.email=%s", email)

    def create_user(self, data: NewUser) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO users(username, email, password, full_name, phone, address, role_id, is_active)
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        data.username,
                        data.email,
                        data.password_hash,
                        data.full_name,
                        data.phone,
                        data.address,
                        int(data.role_id),
                        1 if data.is_active else 0,
                    ),
                )
                return int(cur.lastrowid)
        except IntegrityError as e:
            if is_duplicate_key(e):
                raise ConflictError("Username atau email sudah digunakan") from e
            raise

    def update_user(self, user_id: int, changes: UserChanges) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE users
                    SET username=%s, email=%s, full_name=%s, phone=%s, address=%s,
                        role_id=%s, is_active=%s, updated_at=CURRENT_TIMESTAMP
                    WHERE id=%s
                    """,
                    (
                        changes.username,
                        changes.email,
                        changes.full_name,
                        changes.phone,
                        changes.address,
                        int(changes.role_id),
                        1 if changes.is_active else 0,
                        int(user_id),
                    ),
                )
                return cur.rowcount > 0
        except IntegrityError as e:
            if is_duplicate_key(e):
                raise ConflictError("Username atau email sudah digunakan") from e
            raise

    def update_profile(
        self,
        user_id: int,
        *,
        full_name: str,
        email: str,
        phone: Optional[str],
        address: Optional[str],
    ) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE users
                    SET full_name=%s, email=%s, phone=%s, address=%s, updated_at=CURRENT_TIMESTAMP
                    WHERE id=%s
                    """,
                    (full_name, email, phone, address, int(user_id)),
                )
                return cur.rowcount > 0
        except IntegrityError as e:
            if is_duplicate_key(e):
                raise ConflictError("Email sudah digunakan oleh user lain") from e
            raise

    def update_password(self, user_id: int, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET password=%s, updated_at=CURRENT_TIMESTAMP WHERE id=%s",
                (password_hash, int(user_id)),
            )
            return cur.rowcount > 0

    def update_profile_photo(self, user_id: int, photo_path: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET profile_photo=%s, updated_at=CURRENT_TIMESTAMP WHERE id=%s",
                (photo_path, int(user_id)),
            )
            return cur.rowcount > 0

    def delete_by_id(self, user_id: int) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("DELETE FROM users WHERE id=%s", (int(user_id),))
                return cur.rowcount > 0
        except IntegrityError as e:
            # proposer / history rows keep their author
            if is_row_referenced(e):
                raise ConflictError("User masih memiliki program kerja/riwayat") from e
            raise

    def list_all(self) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS}
                FROM users u
                JOIN roles r ON r.id = u.role_id
                ORDER BY r.role_level ASC, u.full_name ASC
                """
            )
            return [self._to_user(r) for r in fetchall(cur)]

    def list_by_role_level(self, role_level: RoleLevel, *, active_only: bool = True) -> Sequence[User]:
        active_clause = "AND u.is_active = 1" if active_only else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_USER_COLUMNS}
                FROM users u
                JOIN roles r ON r.id = u.role_id
                WHERE r.role_level=%s {active_clause}
                ORDER BY u.full_name ASC
                """,
                (int(role_level),),
            )
            return [self._to_user(r) for r in fetchall(cur)]

    def count(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total FROM users")
            return int(fetchone(cur)["total"])

    def count_active(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total FROM users WHERE is_active = 1")
            return int(fetchone(cur)["total"])
