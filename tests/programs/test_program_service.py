from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from src.org_management.org_management.core.enums import DepartmentCategory, ProgramCategory, ProgramStatus
from src.org_management.org_management.core.exceptions import (
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from src.org_management.org_management.programs.model import ProgramFilters
from src.org_management.org_management.programs.service import ProgramForm


def _form(org, category, *, unit_id=None, responsible=None, **overrides):
    values = dict(
        title="Rapat kerja",
        category_id=str(org.programs.category_id(category)),
        unit_id=str(unit_id) if unit_id is not None else None,
        start_date="2026-04-01",
        end_date="2026-04-03",
        budget="250000",
        responsible_user_id=str((responsible or org.people.admin).user_id),
    )
    values.update(overrides)
    return ProgramForm(**values)


def test_create_unit_program_as_chair(org):
    service = org.container.program_service
    chair = org.people.chair1

    pid = service.create(org.actor(chair), _form(org, ProgramCategory.UNIT, unit_id=org.u1, responsible=chair))

    program = org.programs.find_by_id(pid)
    assert program.status == ProgramStatus.DRAFT
    assert program.proposer_user_id == chair.user_id
    assert program.unit_id == org.u1
    assert program.start_date == date(2026, 4, 1)
    assert program.budget == Decimal("250000")
    assert org.programs.get_history(pid) == []


def test_chair_cannot_create_for_another_unit(org):
    with pytest.raises(AuthorizationError):
        org.container.program_service.create(
            org.actor(org.people.chair1), _form(org, ProgramCategory.UNIT, unit_id=org.u2)
        )
    assert org.programs.list() == []


def test_secretary_creates_only_secretariat_programs(org):
    service = org.container.program_service
    actor = org.actor(org.people.secretary)

    service.create(actor, _form(org, ProgramCategory.SECRETARIAT))
    with pytest.raises(AuthorizationError):
        service.create(actor, _form(org, ProgramCategory.TREASURY))


def test_unit_is_dropped_for_non_unit_category(org):
    pid = org.container.program_service.create(
        org.actor(org.people.treasurer), _form(org, ProgramCategory.TREASURY, unit_id=org.u1)
    )
    assert org.programs.find_by_id(pid).unit_id is None


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"title": "  "}, "Judul wajib diisi"),
        ({"category_id": None}, "Kategori wajib dipilih"),
        ({"category_id": "42"}, "Kategori tidak valid"),
        ({"unit_id": None}, "Bidang wajib dipilih untuk kategori Bidang"),
        ({"responsible_user_id": ""}, "Penanggung jawab wajib dipilih"),
        ({"end_date": "2026-03-01"}, "Tanggal selesai tidak boleh sebelum tanggal mulai"),
        ({"start_date": "01/04/2026"}, "Tanggal mulai tidak valid"),
        ({"budget": "-5"}, "Anggaran tidak boleh negatif"),
        ({"budget": "banyak"}, "Anggaran tidak valid"),
    ],
)
def test_create_validation(org, overrides, message):
    form = _form(org, ProgramCategory.UNIT, **{"unit_id": org.u1, **overrides})
    with pytest.raises(ValidationError) as exc:
        org.container.program_service.create(org.actor(org.people.admin), form)
    assert message in str(exc.value)


def test_empty_budget_defaults_to_zero(org):
    pid = org.container.program_service.create(
        org.actor(org.people.admin), _form(org, ProgramCategory.SECRETARIAT, budget="")
    )
    assert org.programs.find_by_id(pid).budget == Decimal("0")


def test_visibility_of_unit_program(org):
    service = org.container.program_service
    pid = service.create(org.actor(org.people.chair1), _form(org, ProgramCategory.UNIT, unit_id=org.u1))

    for name in ("admin", "general_chair", "chair1", "member1"):
        actor = org.actor(getattr(org.people, name))
        assert [p.program_id for p in service.list_for_actor(actor)] == [pid]
        assert service.get_for_actor(actor, pid).program_id == pid

    for name in ("member2", "treasurer", "secretary", "chair2", "free_member"):
        actor = org.actor(getattr(org.people, name))
        assert service.list_for_actor(actor) == []
        with pytest.raises(AuthorizationError):
            service.get_for_actor(actor, pid)


def test_department_member_sees_department_programs(org):
    service = org.container.program_service
    pid = service.create(org.actor(org.people.secretary), _form(org, ProgramCategory.SECRETARIAT))
    org.container.department_service.add_member(
        DepartmentCategory.SECRETARIAT,
        org.people.free_member.user_id,
        org.actor(org.people.secretary),
    )

    actor = org.actor(org.people.free_member)
    assert [p.program_id for p in service.list_for_actor(actor)] == [pid]


def test_list_filters(org):
    service = org.container.program_service
    admin = org.actor(org.people.admin)
    unit_pid = service.create(admin, _form(org, ProgramCategory.UNIT, unit_id=org.u1))
    service.create(admin, _form(org, ProgramCategory.SECRETARIAT))

    by_unit = service.list_for_actor(admin, ProgramFilters(unit_id=org.u1))
    assert [p.program_id for p in by_unit] == [unit_pid]
    assert service.list_for_actor(admin, ProgramFilters(status=ProgramStatus.SUBMITTED)) == []


def test_get_unknown_program(org):
    with pytest.raises(NotFoundError):
        org.container.program_service.get_for_actor(org.actor(org.people.admin), 404)


def test_member_edits_own_program_but_not_others(org):
    service = org.container.program_service
    member = org.people.member1
    own = service.create(org.actor(member), _form(org, ProgramCategory.UNIT, unit_id=org.u1, responsible=member))
    theirs = service.create(org.actor(org.people.chair1), _form(org, ProgramCategory.UNIT, unit_id=org.u1))

    updated = service.update(
        org.actor(member), own, _form(org, ProgramCategory.UNIT, unit_id=org.u1, responsible=member, title="Baru")
    )
    assert updated.title == "Baru"

    with pytest.raises(AuthorizationError):
        service.update(org.actor(member), theirs, _form(org, ProgramCategory.UNIT, unit_id=org.u1, title="Baru"))
    with pytest.raises(AuthorizationError):
        service.delete(org.actor(member), theirs)


def test_chair_cannot_move_program_into_another_unit(org):
    service = org.container.program_service
    chair = org.actor(org.people.chair1)
    pid = service.create(chair, _form(org, ProgramCategory.UNIT, unit_id=org.u1))

    with pytest.raises(AuthorizationError):
        service.update(chair, pid, _form(org, ProgramCategory.UNIT, unit_id=org.u2))
    assert org.programs.find_by_id(pid).unit_id == org.u1


def test_update_with_rejected_status_leaves_record_untouched(org):
    service = org.container.program_service
    admin = org.actor(org.people.admin)
    pid = service.create(admin, _form(org, ProgramCategory.UNIT, unit_id=org.u1))

    with pytest.raises(InvalidTransitionError):
        service.update(
            admin,
            pid,
            _form(org, ProgramCategory.UNIT, unit_id=org.u1, title="Diubah", status=ProgramStatus.APPROVED.value),
        )

    program = org.programs.find_by_id(pid)
    assert program.title == "Rapat kerja"
    assert program.status == ProgramStatus.DRAFT


def test_update_with_status_change_saves_fields_and_history_together(org):
    service = org.container.program_service
    admin = org.actor(org.people.admin)
    pid = service.create(admin, _form(org, ProgramCategory.UNIT, unit_id=org.u1))

    program = service.update(
        admin,
        pid,
        _form(org, ProgramCategory.UNIT, unit_id=org.u1, title="Diubah", status=ProgramStatus.RUNNING.value),
    )

    assert program.title == "Diubah"
    assert program.status == ProgramStatus.RUNNING
    history = org.programs.get_history(pid)
    assert [(h.previous_status, h.new_status) for h in history] == [(ProgramStatus.DRAFT, ProgramStatus.RUNNING)]
    assert history[0].note == "Status diubah melalui form edit"


def test_update_keeps_fields_when_history_write_fails(org):
    service = org.container.program_service
    admin = org.actor(org.people.admin)
    pid = service.create(admin, _form(org, ProgramCategory.UNIT, unit_id=org.u1))
    org.programs.fail_history_write = True

    with pytest.raises(RuntimeError):
        service.update(
            admin,
            pid,
            _form(org, ProgramCategory.UNIT, unit_id=org.u1, title="Diubah", status=ProgramStatus.RUNNING.value),
        )

    program = org.programs.find_by_id(pid)
    assert program.title == "Rapat kerja"
    assert program.status == ProgramStatus.DRAFT
    assert org.programs.get_history(pid) == []


def test_update_with_unknown_status(org):
    service = org.container.program_service
    admin = org.actor(org.people.admin)
    pid = service.create(admin, _form(org, ProgramCategory.SECRETARIAT))

    with pytest.raises(ValidationError):
        service.update(admin, pid, _form(org, ProgramCategory.SECRETARIAT, status="arsip"))


def test_submit_then_approve_through_service(org):
    service = org.container.program_service
    pid = service.create(org.actor(org.people.chair1), _form(org, ProgramCategory.UNIT, unit_id=org.u1))

    service.submit(org.actor(org.people.chair1), pid)
    program = service.decide(org.actor(org.people.general_chair), pid, "approve", "Oke")

    assert program.status == ProgramStatus.APPROVED
    assert [h.new_status for h in service.history(org.actor(org.people.admin), pid)] == [
        ProgramStatus.APPROVED,
        ProgramStatus.SUBMITTED,
    ]


def test_decide_with_unknown_decision(org):
    with pytest.raises(ValidationError):
        org.container.program_service.decide(org.actor(org.people.admin), 1, "maybe")


def test_allowed_actions(org):
    service = org.container.program_service
    pid = service.create(org.actor(org.people.chair1), _form(org, ProgramCategory.UNIT, unit_id=org.u1))
    program = org.programs.find_by_id(pid)

    assert service.allowed_actions(org.actor(org.people.chair1), program) == {
        "can_edit": True,
        "can_delete": True,
        "can_submit": True,
        "can_approve": False,
    }
    assert service.allowed_actions(org.actor(org.people.member1), program)["can_edit"] is False


def test_form_options_limit_categories_and_units(org):
    options = org.container.program_service.form_options(org.actor(org.people.chair1))
    assert [c.name for c in options.categories] == [ProgramCategory.UNIT]
    assert [u.unit_id for u in options.units] == [org.u1]

    options = org.container.program_service.form_options(org.actor(org.people.admin))
    assert len(options.categories) == 3
    assert {u.unit_id for u in options.units} == {org.u1, org.u2}


def test_form_options_for_unaffiliated_member_offer_every_unit(org):
    service = org.container.program_service

    options = service.form_options(org.actor(org.people.free_member))
    assert [c.name for c in options.categories] == [ProgramCategory.UNIT]
    assert {u.unit_id for u in options.units} == {org.u1, org.u2}

    options = service.form_options(org.actor(org.people.member1))
    assert [u.unit_id for u in options.units] == [org.u1]
