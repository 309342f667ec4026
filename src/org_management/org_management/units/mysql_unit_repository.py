from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from ..departments.mysql_department_repository import lock_user_row, read_existing_membership
from ..departments.repository import MembershipGuard
from .model import UNIT_CHAIR_POSITION, UNIT_MEMBER_POSITION, Unit, UnitMember, UserUnit
from .repository import UnitRepository

_UNIT_SELECT = """
    SELECT b.id, b.nama_bidang, b.deskripsi, b.ketua_bidang_id, b.created_at, b.updated_at,
           k.full_name AS ketua_nama,
           (SELECT COUNT(*) FROM user_bidang ub WHERE ub.bidang_id = b.id) AS jumlah_anggota
    FROM bidang b
    LEFT JOIN users k ON k.id = b.ketua_bidang_id
"""


class MySQLUnitRepository(UnitRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_unit(row: dict) -> Unit:
        chair_id = row.get("ketua_bidang_id")
        return Unit(
            unit_id=int(row["id"]),
            name=row["nama_bidang"],
            description=row.get("deskripsi"),
            chair_user_id=int(chair_id) if chair_id is not None else None,
            chair_name=row.get("ketua_nama"),
            member_count=int(row.get("jumlah_anggota") or 0),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def list_all(self) -> Sequence[Unit]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_UNIT_SELECT + " ORDER BY b.nama_bidang ASC")
            return [self._to_unit(r) for r in fetchall(cur)]

    def get_by_id(self, unit_id: int) -> Optional[Unit]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_UNIT_SELECT + " WHERE b.id=%s", (int(unit_id),))
            row = fetchone(cur)
            return self._to_unit(row) if row else None

    def create(self, *, name: str, description: Optional[str], chair_user_id: Optional[int]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO bidang(nama_bidang, deskripsi, ketua_bidang_id) VALUES(%s,%s,%s)",
                (name, description, chair_user_id),
            )
            return int(cur.lastrowid)

    def update(self, unit_id: int, *, name: str, description: Optional[str], chair_user_id: Optional[int]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE bidang
                SET nama_bidang=%s, deskripsi=%s, ketua_bidang_id=%s, updated_at=CURRENT_TIMESTAMP
                WHERE id=%s
                """,
                (name, description, chair_user_id, int(unit_id)),
            )
            return cur.rowcount > 0

    def delete(self, unit_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM bidang WHERE id=%s", (int(unit_id),))
            return cur.rowcount > 0

    def get_members(self, unit_id: int) -> Sequence[UnitMember]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT u.id, u.username, u.email, u.full_name, u.phone, r.role_name,
                       ub.created_at AS joined_at
                FROM user_bidang ub
                JOIN users u ON u.id = ub.user_id
                JOIN roles r ON r.id = u.role_id
                WHERE ub.bidang_id=%s
                ORDER BY u.full_name ASC
                """,
                (int(unit_id),),
            )
            return [
                UnitMember(
                    user_id=int(r["id"]),
                    username=r["username"],
                    email=r["email"],
                    full_name=r["full_name"],
                    role_name=r["role_name"],
                    phone=r.get("phone"),
                    joined_at=r.get("joined_at"),
                )
                for r in fetchall(cur)
            ]

    def add_member(self, unit_id: int, user_id: int, *, guard: MembershipGuard) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            lock_user_row(cur, user_id)
            if not guard(read_existing_membership(cur, user_id)):
                return False
            cur.execute(
                "INSERT INTO user_bidang(user_id, bidang_id) VALUES(%s,%s)",
                (int(user_id), int(unit_id)),
            )
            return cur.rowcount > 0

    def remove_member(self, unit_id: int, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM user_bidang WHERE bidang_id=%s AND user_id=%s",
                (int(unit_id), int(user_id)),
            )
            return cur.rowcount > 0

    def is_member_of(self, user_id: int, unit_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id FROM user_bidang WHERE user_id=%s AND bidang_id=%s",
                (int(user_id), int(unit_id)),
            )
            return fetchone(cur) is not None

    def find_units_for_user(self, user_id: int) -> Sequence[UserUnit]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT b.id, b.nama_bidang, b.deskripsi, b.ketua_bidang_id,
                       k.full_name AS ketua_nama, 1 AS is_chair
                FROM bidang b
                LEFT JOIN users k ON k.id = b.ketua_bidang_id
                WHERE b.ketua_bidang_id=%s
                UNION ALL
                SELECT b.id, b.nama_bidang, b.deskripsi, b.ketua_bidang_id,
                       k.full_name AS ketua_nama, 0 AS is_chair
                FROM user_bidang ub
                JOIN bidang b ON b.id = ub.bidang_id
                LEFT JOIN users k ON k.id = b.ketua_bidang_id
                WHERE ub.user_id=%s
                ORDER BY is_chair DESC, nama_bidang ASC
                """,
                (int(user_id), int(user_id)),
            )
            units: Dict[int, UserUnit] = {}
            for r in fetchall(cur):
                unit_id = int(r["id"])
                if unit_id in units:
                    continue
                chair_id = r.get("ketua_bidang_id")
                units[unit_id] = UserUnit(
                    unit_id=unit_id,
                    name=r["nama_bidang"],
                    description=r.get("deskripsi"),
                    chair_user_id=int(chair_id) if chair_id is not None else None,
                    chair_name=r.get("ketua_nama"),
                    position=UNIT_CHAIR_POSITION if int(r["is_chair"]) else UNIT_MEMBER_POSITION,
                )
            return list(units.values())

    def find_chaired_unit_by(self, user_id: int) -> Optional[Unit]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _UNIT_SELECT + " WHERE b.ketua_bidang_id=%s ORDER BY b.id ASC LIMIT 1",
                (int(user_id),),
            )
            row = fetchone(cur)
            return self._to_unit(row) if row else None

    def list_member_unit_ids(self, user_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT bidang_id FROM user_bidang WHERE user_id=%s", (int(user_id),))
            ids: List[int] = [int(r["bidang_id"]) for r in fetchall(cur)]
            return ids

    def count(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS total FROM bidang")
            return int(fetchone(cur)["total"])

    def count_members(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(DISTINCT user_id) AS total FROM user_bidang")
            return int(fetchone(cur)["total"])
