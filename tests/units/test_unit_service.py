from __future__ import annotations

import pytest

from src.org_management.org_management.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.org_management.org_management.units.model import UNIT_CHAIR_POSITION, UNIT_MEMBER_POSITION


def test_chair_adds_free_member_to_own_unit(org):
    service = org.container.unit_service
    user = org.people.free_member

    assert service.add_member(org.actor(org.people.chair1), org.u1, user.user_id) is True
    assert service.is_member_of(user.user_id, org.u1)
    assert org.actor(user).unit_ids == frozenset({org.u1})


def test_adding_existing_member_again_is_a_noop(org):
    service = org.container.unit_service
    assert service.add_member(org.actor(org.people.admin), org.u1, org.people.member1.user_id) is False
    assert [m.user_id for m in service.list_members(org.actor(org.people.admin), org.u1)] == [
        org.people.member1.user_id
    ]


def test_member_of_another_unit_conflicts(org):
    with pytest.raises(ConflictError) as exc:
        org.container.unit_service.add_member(org.actor(org.people.admin), org.u1, org.people.member2.user_id)
    assert str(exc.value) == "User sudah menjadi anggota Bidang Sosial"
    assert not org.units.is_member_of(org.people.member2.user_id, org.u1)


def test_chair_cannot_manage_another_unit(org):
    service = org.container.unit_service
    chair = org.actor(org.people.chair1)

    with pytest.raises(AuthorizationError) as exc:
        service.add_member(chair, org.u2, org.people.free_member.user_id)
    assert "bidang yang Anda pimpin" in str(exc.value)
    with pytest.raises(AuthorizationError):
        service.remove_member(chair, org.u2, org.people.member2.user_id)
    with pytest.raises(AuthorizationError):
        service.list_members(chair, org.u2)


@pytest.mark.parametrize("role", ["secretary", "treasurer", "member1"])
def test_non_chairs_cannot_manage_units(org, role):
    with pytest.raises(AuthorizationError):
        org.container.unit_service.list_members(org.actor(getattr(org.people, role)), org.u1)


def test_remove_member(org):
    service = org.container.unit_service
    chair = org.actor(org.people.chair1)

    service.remove_member(chair, org.u1, org.people.member1.user_id)

    assert not service.is_member_of(org.people.member1.user_id, org.u1)
    with pytest.raises(NotFoundError):
        service.remove_member(chair, org.u1, org.people.member1.user_id)


def test_create_update_delete_are_admin_only(org):
    service = org.container.unit_service
    admin = org.actor(org.people.admin)

    unit_id = service.create_unit(admin, name="Humas", description=" ", chair_user_id=None)
    assert service.get_unit(unit_id).description is None

    service.update_unit(admin, unit_id, name="Humas & Media", chair_user_id=org.people.chair2.user_id)
    assert service.get_unit(unit_id).chair_user_id == org.people.chair2.user_id

    with pytest.raises(AuthorizationError):
        service.create_unit(org.actor(org.people.general_chair), name="Olahraga")
    with pytest.raises(AuthorizationError):
        service.delete_unit(org.actor(org.people.chair1), unit_id)

    service.delete_unit(admin, unit_id)
    with pytest.raises(NotFoundError):
        service.get_unit(unit_id)


def test_chair_must_have_unit_chair_role(org):
    service = org.container.unit_service
    admin = org.actor(org.people.admin)

    with pytest.raises(ValidationError) as exc:
        service.create_unit(admin, name="Humas", chair_user_id=org.people.member1.user_id)
    assert "role Ketua Bidang" in str(exc.value)
    with pytest.raises(ValidationError):
        service.create_unit(admin, name="  ")


def test_list_units(org):
    service = org.container.unit_service
    assert {u.unit_id for u in service.list_units(org.actor(org.people.general_chair))} == {org.u1, org.u2}
    assert [u.unit_id for u in service.list_units(org.actor(org.people.chair2))] == [org.u2]
    with pytest.raises(AuthorizationError):
        service.list_units(org.actor(org.people.member1))


def test_my_units_and_view(org):
    service = org.container.unit_service

    chair_units = service.my_units(org.actor(org.people.chair1))
    assert [(u.unit_id, u.position) for u in chair_units] == [(org.u1, UNIT_CHAIR_POSITION)]
    member_units = service.my_units(org.actor(org.people.member1))
    assert [(u.unit_id, u.position) for u in member_units] == [(org.u1, UNIT_MEMBER_POSITION)]

    unit, members = service.view_unit(org.actor(org.people.member1), org.u1)
    assert unit.name == "Pendidikan"
    assert unit.member_count == 1
    assert [m.user_id for m in members] == [org.people.member1.user_id]

    with pytest.raises(AuthorizationError):
        service.view_unit(org.actor(org.people.member2), org.u1)
