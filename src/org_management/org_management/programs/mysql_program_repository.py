from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..authorization.policy import ProgramVisibility
from ..core.enums import DECIDED_STATUSES, ProgramCategory, ProgramStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import ProgramCategoryRow, ProgramData, ProgramFilters, ProgramHistoryEntry, WorkProgram
from .repository import ProgramRepository

_PROGRAM_SELECT = """
    SELECT p.id, p.judul, p.deskripsi, p.kategori_id, p.bidang_id, p.tanggal_mulai, p.tanggal_selesai,
           p.anggaran, p.pengusul_id, p.penanggung_jawab_id, p.status, p.approved_by, p.approved_at,
           p.catatan_approval, p.created_at, p.updated_at,
           k.nama_kategori, b.nama_bidang,
           up.full_name AS pengusul_nama,
           pj.full_name AS penanggung_jawab_nama,
           ap.full_name AS approver_nama
    FROM program_kerja p
    JOIN kategori_proker k ON k.id = p.kategori_id
    LEFT JOIN bidang b ON b.id = p.bidang_id
    LEFT JOIN users up ON up.id = p.pengusul_id
    LEFT JOIN users pj ON pj.id = p.penanggung_jawab_id
    LEFT JOIN users ap ON ap.id = p.approved_by
"""


def _placeholders(values: Sequence[Any]) -> str:
    return ",".join(["%s"] * len(values))


def visibility_clause(visibility: ProgramVisibility) -> Tuple[Optional[str], List[Any]]:
    """SQL form of the READ rules; ``(None, [])`` means no restriction."""
    if visibility.everything:
        return None, []
    if visibility.is_empty:
        return "1=0", []

    parts: List[str] = []
    params: List[Any] = []
    if visibility.categories:
        categories = sorted(c.value for c in visibility.categories)
        parts.append(f"k.nama_kategori IN ({_placeholders(categories)})")
        params.extend(categories)
    if visibility.unit_ids:
        unit_ids = sorted(int(u) for u in visibility.unit_ids)
        parts.append(f"p.bidang_id IN ({_placeholders(unit_ids)})")
        params.extend(unit_ids)
    return "(" + " OR ".join(parts) + ")", params


def filter_clauses(filters: ProgramFilters) -> Tuple[List[str], List[Any]]:
    clauses: List[str] = []
    params: List[Any] = []
    if filters.category_id is not None:
        clauses.append("p.kategori_id=%s")
        params.append(int(filters.category_id))
    if filters.unit_id is not None:
        clauses.append("p.bidang_id=%s")
        params.append(int(filters.unit_id))
    if filters.status is not None:
        clauses.append("p.status=%s")
        params.append(ProgramStatus(filters.status).value)
    if filters.proposer_id is not None:
        clauses.append("p.pengusul_id=%s")
        params.append(int(filters.proposer_id))
    return clauses, params


def _optional_int(value) -> Optional[int]:
    return int(value) if value is not None else None


def status_update_statement(
    program_id: int,
    status: ProgramStatus,
    *,
    expected_status: ProgramStatus,
    approved_by: Optional[int] = None,
    note: Optional[str] = None,
) -> Tuple[str, List[Any]]:
    status = ProgramStatus(status)
    if status in DECIDED_STATUSES:
        sql = """
            UPDATE program_kerja
            SET status=%s, approved_by=%s, approved_at=CURRENT_TIMESTAMP, catatan_approval=%s,
                updated_at=CURRENT_TIMESTAMP
            WHERE id=%s AND status=%s
        """
        params: List[Any] = [status.value, _optional_int(approved_by), note]
    else:
        sql = """
            UPDATE program_kerja
            SET status=%s, approved_by=NULL, approved_at=NULL, catatan_approval=NULL,
                updated_at=CURRENT_TIMESTAMP
            WHERE id=%s AND status=%s
        """
        params = [status.value]
    params.extend([int(program_id), ProgramStatus(expected_status).value])
    return sql, params


def _write_data(cur, program_id: int, data: ProgramData) -> bool:
    cur.execute(
        """
        UPDATE program_kerja
        SET judul=%s, deskripsi=%s, kategori_id=%s, bidang_id=%s, tanggal_mulai=%s,
            tanggal_selesai=%s, anggaran=%s, penanggung_jawab_id=%s, updated_at=CURRENT_TIMESTAMP
        WHERE id=%s
        """,
        (
            data.title,
            data.description,
            int(data.category_id),
            _optional_int(data.unit_id),
            data.start_date,
            data.end_date,
            data.budget if data.budget is not None else Decimal("0"),
            _optional_int(data.responsible_user_id),
            int(program_id),
        ),
    )
    return cur.rowcount > 0


class MySQLProgramRepository(ProgramRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _to_program(row: dict) -> WorkProgram:
        return WorkProgram(
            program_id=int(row["id"]),
            title=row["judul"],
            description=row.get("deskripsi"),
            category_id=int(row["kategori_id"]),
            category=ProgramCategory(row["nama_kategori"]),
            unit_id=_optional_int(row.get("bidang_id")),
            start_date=row.get("tanggal_mulai"),
            end_date=row.get("tanggal_selesai"),
            budget=Decimal(str(row.get("anggaran") or 0)),
            proposer_user_id=int(row["pengusul_id"]),
            responsible_user_id=_optional_int(row.get("penanggung_jawab_id")),
            status=ProgramStatus(row["status"]),
            approved_by=_optional_int(row.get("approved_by")),
            approved_at=row.get("approved_at"),
            approval_note=row.get("catatan_approval"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            unit_name=row.get("nama_bidang"),
            proposer_name=row.get("pengusul_nama"),
            responsible_name=row.get("penanggung_jawab_nama"),
            approver_name=row.get("approver_nama"),
        )

    def _select(self, clauses: List[str], params: List[Any]) -> Sequence[WorkProgram]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _PROGRAM_SELECT + f" WHERE {build_where(clauses)} ORDER BY p.created_at DESC, p.id DESC",
                tuple(params),
            )
            return [self._to_program(r) for r in fetchall(cur)]

    def list(self, filters: ProgramFilters = ProgramFilters()) -> Sequence[WorkProgram]:
        clauses, params = filter_clauses(filters)
        return self._select(clauses, params)

    def list_visible(self, visibility: ProgramVisibility, filters: ProgramFilters = ProgramFilters()) -> Sequence[WorkProgram]:
        clauses, params = filter_clauses(filters)
        clause, vis_params = visibility_clause(visibility)
        if clause:
            clauses.append(clause)
            params.extend(vis_params)
        return self._select(clauses, params)

    def find_by_id(self, program_id: int) -> Optional[WorkProgram]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_PROGRAM_SELECT + " WHERE p.id=%s", (int(program_id),))
            row = fetchone(cur)
            return self._to_program(row) if row else None

    def create(self, data: ProgramData, *, proposer_user_id: int, status: ProgramStatus = ProgramStatus.DRAFT) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO program_kerja(
                    judul, deskripsi, kategori_id, bidang_id, tanggal_mulai, tanggal_selesai,
                    anggaran, pengusul_id, penanggung_jawab_id, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    data.title,
                    data.description,
                    int(data.category_id),
                    _optional_int(data.unit_id),
                    data.start_date,
                    data.end_date,
                    data.budget if data.budget is not None else Decimal("0"),
                    int(proposer_user_id),
                    _optional_int(data.responsible_user_id),
                    ProgramStatus(status).value,
                ),
            )
            return int(cur.lastrowid)

    def update(self, program_id: int, data: ProgramData) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return _write_data(cur, program_id, data)

    def delete(self, program_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM program_kerja WHERE id=%s", (int(program_id),))
            return cur.rowcount > 0

    def transition(
        self,
        program_id: int,
        *,
        previous_status: ProgramStatus,
        new_status: ProgramStatus,
        changed_by: int,
        history_note: Optional[str] = None,
        approved_by: Optional[int] = None,
        approval_note: Optional[str] = None,
        data: Optional[ProgramData] = None,
    ) -> bool:
        sql, params = status_update_statement(
            program_id,
            new_status,
            expected_status=previous_status,
            approved_by=approved_by,
            note=approval_note,
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            if cur.rowcount == 0:
                return False
            if data is not None:
                _write_data(cur, program_id, data)
            cur.execute(
                """
                INSERT INTO proker_history(proker_id, status_lama, status_baru, catatan, changed_by)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (
                    int(program_id),
                    ProgramStatus(previous_status).value,
                    ProgramStatus(new_status).value,
                    history_note,
                    int(changed_by),
                ),
            )
            return True

    def get_history(self, program_id: int) -> Sequence[ProgramHistoryEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT h.id, h.proker_id, h.status_lama, h.status_baru, h.catatan, h.changed_by,
                       h.changed_at, u.full_name AS changed_by_nama
                FROM proker_history h
                LEFT JOIN users u ON u.id = h.changed_by
                WHERE h.proker_id=%s
                ORDER BY h.changed_at DESC, h.id DESC
                """,
                (int(program_id),),
            )
            return [
                ProgramHistoryEntry(
                    history_id=int(r["id"]),
                    program_id=int(r["proker_id"]),
                    previous_status=ProgramStatus(r["status_lama"]) if r.get("status_lama") else None,
                    new_status=ProgramStatus(r["status_baru"]),
                    note=r.get("catatan"),
                    changed_by=int(r["changed_by"]),
                    changed_at=r.get("changed_at"),
                    changed_by_name=r.get("changed_by_nama"),
                )
                for r in fetchall(cur)
            ]

    def _visibility_where(self, visibility: Optional[ProgramVisibility]) -> Tuple[List[str], List[Any]]:
        if visibility is None:
            return [], []
        clause, params = visibility_clause(visibility)
        return ([clause] if clause else []), params

    def count_by_status(self, visibility: Optional[ProgramVisibility] = None) -> Dict[ProgramStatus, int]:
        clauses, params = self._visibility_where(visibility)
        counts = {s: 0 for s in ProgramStatus}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT p.status, COUNT(*) AS total
                FROM program_kerja p
                JOIN kategori_proker k ON k.id = p.kategori_id
                WHERE {build_where(clauses)}
                GROUP BY p.status
                """,
                tuple(params),
            )
            for r in fetchall(cur):
                counts[ProgramStatus(r["status"])] = int(r["total"])
        return counts

    def total_budget(
        self,
        visibility: Optional[ProgramVisibility] = None,
        *,
        status: Optional[ProgramStatus] = None,
    ) -> Decimal:
        clauses, params = self._visibility_where(visibility)
        if status is not None:
            clauses.append("p.status=%s")
            params.append(ProgramStatus(status).value)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COALESCE(SUM(p.anggaran), 0) AS total
                FROM program_kerja p
                JOIN kategori_proker k ON k.id = p.kategori_id
                WHERE {build_where(clauses)}
                """,
                tuple(params),
            )
            return Decimal(str(fetchone(cur)["total"]))

    def list_categories(self) -> Sequence[ProgramCategoryRow]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, nama_kategori FROM kategori_proker ORDER BY id ASC")
            return [
                ProgramCategoryRow(category_id=int(r["id"]), name=ProgramCategory(r["nama_kategori"]))
                for r in fetchall(cur)
            ]
