from __future__ import annotations

from decimal import Decimal

import pytest

from src.org_management.org_management.authorization.actor import Actor
from src.org_management.org_management.authorization.policy import ProgramVisibility, program_visibility
from src.org_management.org_management.core.enums import ProgramCategory, ProgramStatus, RoleLevel
from src.org_management.org_management.database.mysql_base import build_where
from src.org_management.org_management.programs.model import ProgramData, ProgramFilters
from src.org_management.org_management.programs.mysql_program_repository import (
    MySQLProgramRepository,
    filter_clauses,
    status_update_statement,
    visibility_clause,
)


class RecordingCursor:
    def __init__(self, conn):
        self._conn = conn
        self.rowcount = 0
        self.lastrowid = None

    def execute(self, sql, params=()):
        self._conn.statements.append((" ".join(sql.split()), tuple(params)))
        if self._conn.fail_on and self._conn.fail_on in sql:
            raise RuntimeError("write failed")
        self.rowcount = self._conn.rowcount

    def fetchall(self):
        return []

    def fetchone(self):
        return None

    def close(self):
        pass


class RecordingConnection:
    def __init__(self, *, rowcount=1, fail_on=None):
        self.rowcount = rowcount
        self.fail_on = fail_on
        self.statements = []
        self.commits = 0
        self.rollbacks = 0

    def cursor(self, dictionary=True):
        return RecordingCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        pass


class SingleConnectionFactory:
    def __init__(self, conn):
        self.conn = conn
        self.connects = 0

    def connect(self):
        self.connects += 1
        return self.conn


def _repo(**kwargs):
    conn = RecordingConnection(**kwargs)
    factory = SingleConnectionFactory(conn)
    return MySQLProgramRepository(factory), conn, factory


DATA = ProgramData(title="Rapat", category_id=3, unit_id=1, budget=Decimal("10"), responsible_user_id=5)


# --- visibility / filters ----------------------------------------------


def test_leadership_has_no_restriction():
    assert visibility_clause(program_visibility(Actor(user_id=1, role_level=RoleLevel.ADMIN))) == (None, [])


def test_empty_visibility_matches_nothing():
    actor = Actor(user_id=6, role_level=RoleLevel.UNIT_CHAIR)
    assert visibility_clause(program_visibility(actor)) == ("1=0", [])


def test_secretary_sees_category_only():
    actor = Actor(user_id=3, role_level=RoleLevel.SECRETARY)
    assert visibility_clause(program_visibility(actor)) == ("(k.nama_kategori IN (%s))", ["Sekretaris"])


def test_chair_sees_chaired_unit_only():
    actor = Actor(user_id=5, role_level=RoleLevel.UNIT_CHAIR, chaired_unit_id=7)
    assert visibility_clause(program_visibility(actor)) == ("(p.bidang_id IN (%s))", [7])


def test_member_categories_and_units_are_or_combined():
    actor = Actor(
        user_id=9,
        role_level=RoleLevel.MEMBER,
        unit_ids=frozenset({4, 2}),
        is_secretariat_member=True,
        is_treasury_member=True,
    )
    clause, params = visibility_clause(program_visibility(actor))
    assert clause == "(k.nama_kategori IN (%s,%s) OR p.bidang_id IN (%s,%s))"
    assert params == ["Bendahara", "Sekretaris", 2, 4]


def test_filters_are_and_combined():
    clauses, params = filter_clauses(
        ProgramFilters(category_id="3", unit_id=2, status=ProgramStatus.SUBMITTED, proposer_id="8")
    )
    assert build_where(clauses) == "1=1 AND p.kategori_id=%s AND p.bidang_id=%s AND p.status=%s AND p.pengusul_id=%s"
    assert params == [3, 2, "diajukan", 8]
    assert filter_clauses(ProgramFilters()) == ([], [])


def test_list_visible_ands_visibility_after_filters():
    repo, conn, _ = _repo()
    visibility = ProgramVisibility(categories=frozenset({ProgramCategory.TREASURY}), unit_ids=frozenset({2}))

    assert repo.list_visible(visibility, ProgramFilters(status=ProgramStatus.DRAFT)) == []

    sql, params = conn.statements[-1]
    assert "WHERE 1=1 AND p.status=%s AND (k.nama_kategori IN (%s) OR p.bidang_id IN (%s))" in sql
    assert params == ("draft", "Bendahara", 2)


# --- status transition ---------------------------------------------------


def test_status_update_is_conditional_on_expected_status():
    sql, params = status_update_statement(12, ProgramStatus.APPROVED, expected_status=ProgramStatus.SUBMITTED, approved_by=1, note="ok")
    assert "approved_at=CURRENT_TIMESTAMP" in sql
    assert "WHERE id=%s AND status=%s" in sql
    assert params == ["disetujui", 1, "ok", 12, "diajukan"]

    sql, params = status_update_statement(12, ProgramStatus.DRAFT, expected_status=ProgramStatus.APPROVED)
    assert "approved_at=NULL" in sql
    assert params == ["draft", 12, "disetujui"]


def test_transition_writes_status_data_and_history_in_one_transaction():
    repo, conn, factory = _repo()

    ok = repo.transition(
        12,
        previous_status=ProgramStatus.DRAFT,
        new_status=ProgramStatus.SUBMITTED,
        changed_by=5,
        history_note="Proker diajukan untuk approval",
        data=DATA,
    )

    assert ok is True
    assert factory.connects == 1
    assert conn.commits == 1 and conn.rollbacks == 0
    assert [sql.split()[0] for sql, _ in conn.statements] == ["UPDATE", "UPDATE", "INSERT"]
    assert conn.statements[2][1] == (12, "draft", "diajukan", "Proker diajukan untuk approval", 5)


def test_history_failure_rolls_back_the_status_change():
    repo, conn, _ = _repo(fail_on="proker_history")

    with pytest.raises(RuntimeError):
        repo.transition(
            12,
            previous_status=ProgramStatus.DRAFT,
            new_status=ProgramStatus.SUBMITTED,
            changed_by=5,
        )

    assert conn.commits == 0
    assert conn.rollbacks == 1


def test_lost_race_writes_nothing_else():
    repo, conn, _ = _repo(rowcount=0)

    ok = repo.transition(
        12,
        previous_status=ProgramStatus.SUBMITTED,
        new_status=ProgramStatus.APPROVED,
        changed_by=1,
        approved_by=1,
        data=DATA,
    )

    assert ok is False
    assert len(conn.statements) == 1
