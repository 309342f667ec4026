from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import RoleLevel
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .role_model import Role
from .role_repository import RoleRepository


class MySQLRoleRepository(RoleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_role(r: dict) -> Role:
        return Role(role_id=int(r["id"]), role_name=r["role_name"], role_level=RoleLevel(int(r["role_level"])))

    def list_all(self) -> Sequence[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, role_name, role_level FROM roles ORDER BY role_level ASC")
            return [self._to_role(r) for r in fetchall(cur)]

    def get_by_id(self, role_id: int) -> Optional[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, role_name, role_level FROM roles WHERE id=%s", (int(role_id),))
            r = fetchone(cur)
            return self._to_role(r) if r else None
