from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import DepartmentCategory, RoleLevel
from ..core.exceptions import NotFoundError, ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AvailableUser, DepartmentMember, ExistingMembership
from .repository import MembershipGuard, MembershipRepository

_TABLES = {
    DepartmentCategory.SECRETARIAT: "anggota_sekretaris",
    DepartmentCategory.TREASURY: "anggota_bendahara",
}


def department_table(category: DepartmentCategory) -> str:
    try:
        return _TABLES[category]
    except KeyError:
        raise ValidationError("Departemen tidak valid")


def lock_user_row(cur, user_id: int) -> None:
    """Serialize membership changes of one user for the rest of the transaction."""
    cur.execute("SELECT id FROM users WHERE id=%s FOR UPDATE", (int(user_id),))
    if not fetchone(cur):
        raise NotFoundError("User tidak ditemukan")


def read_existing_membership(cur, user_id: int) -> Optional[ExistingMembership]:
    """Inspect all three membership categories, in the order Sekretaris, Bendahara, Bidang."""
    cur.execute("SELECT user_id FROM anggota_sekretaris WHERE user_id=%s", (int(user_id),))
    if fetchone(cur):
        return ExistingMembership(category=DepartmentCategory.SECRETARIAT)

    cur.execute("SELECT user_id FROM anggota_bendahara WHERE user_id=%s", (int(user_id),))
    if fetchone(cur):
        return ExistingMembership(category=DepartmentCategory.TREASURY)

    cur.execute(
        """
        SELECT b.id, b.nama_bidang
        FROM user_bidang ub
        JOIN bidang b ON b.id = ub.bidang_id
        WHERE ub.user_id=%s
        ORDER BY b.id ASC
        LIMIT 1
        """,
        (int(user_id),),
    )
    row = fetchone(cur)
    if row:
        return ExistingMembership(
            category=DepartmentCategory.UNIT,
            unit_id=int(row["id"]),
            unit_name=row["nama_bidang"],
        )
    return None


class MySQLDepartmentRepository(MembershipRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_existing_membership(self, user_id: int) -> Optional[ExistingMembership]:
        with db_cursor(self._conn_factory) as (_, cur):
            return read_existing_membership(cur, user_id)

    def add_department_member(
        self,
        category: DepartmentCategory,
        user_id: int,
        *,
        guard: MembershipGuard,
    ) -> bool:
        table = department_table(category)
        with db_cursor(self._conn_factory) as (_, cur):
            lock_user_row(cur, user_id)
            if not guard(read_existing_membership(cur, user_id)):
                return False
            cur.execute(f"INSERT INTO {table}(user_id) VALUES(%s)", (int(user_id),))
            return cur.rowcount > 0

    def remove_department_member(self, category: DepartmentCategory, user_id: int) -> bool:
        table = department_table(category)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"DELETE FROM {table} WHERE user_id=%s", (int(user_id),))
            return cur.rowcount > 0

    def is_department_member(self, category: DepartmentCategory, user_id: int) -> bool:
        table = department_table(category)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT user_id FROM {table} WHERE user_id=%s", (int(user_id),))
            return fetchone(cur) is not None

    def list_department_members(self, category: DepartmentCategory) -> Sequence[DepartmentMember]:
        table = department_table(category)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT u.id, u.username, u.email, u.full_name, u.phone, u.is_active,
                       r.role_name, d.created_at AS joined_at
                FROM {table} d
                JOIN users u ON u.id = d.user_id
                JOIN roles r ON r.id = u.role_id
                ORDER BY u.full_name ASC
                """
            )
            return [
                DepartmentMember(
                    user_id=int(r["id"]),
                    username=r["username"],
                    email=r["email"],
                    full_name=r["full_name"],
                    role_name=r["role_name"],
                    phone=r.get("phone"),
                    is_active=bool(r.get("is_active", True)),
                    joined_at=r.get("joined_at"),
                )
                for r in fetchall(cur)
            ]

    def list_available_users(self) -> Sequence[AvailableUser]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT u.id, u.username, u.email, u.full_name, r.role_name
                FROM users u
                JOIN roles r ON r.id = u.role_id
                WHERE r.role_level=%s
                  AND u.is_active = 1
                  AND u.id NOT IN (
                      SELECT user_id FROM anggota_sekretaris
                      UNION
                      SELECT user_id FROM anggota_bendahara
                      UNION
                      SELECT user_id FROM user_bidang
                  )
                ORDER BY u.full_name ASC
                """,
                (int(RoleLevel.MEMBER),),
            )
            return [
                AvailableUser(
                    user_id=int(r["id"]),
                    username=r["username"],
                    email=r["email"],
                    full_name=r["full_name"],
                    role_name=r["role_name"],
                )
                for r in fetchall(cur)
            ]

    def count_department_members(self, category: DepartmentCategory) -> int:
        table = department_table(category)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM {table}")
            return int(fetchone(cur)["total"])
