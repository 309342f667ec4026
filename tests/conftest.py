from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from src.org_management.org_management.authorization.policy import ProgramScope
from src.org_management.org_management.container import wire_container
from src.org_management.org_management.core.enums import (
    DECIDED_STATUSES,
    DepartmentCategory,
    ProgramCategory,
    ProgramStatus,
    RoleLevel,
)
from src.org_management.org_management.core.exceptions import ConflictError, NotFoundError
from src.org_management.org_management.departments.model import AvailableUser, DepartmentMember, ExistingMembership
from src.org_management.org_management.programs.model import (
    ProgramCategoryRow,
    ProgramFilters,
    ProgramHistoryEntry,
    WorkProgram,
)
from src.org_management.org_management.units.model import (
    UNIT_CHAIR_POSITION,
    UNIT_MEMBER_POSITION,
    Unit,
    UnitMember,
    UserUnit,
)
from src.org_management.org_management.users.model import User
from src.org_management.org_management.users.role_model import Role

FIXED_NOW = datetime(2026, 3, 1, 9, 0, 0)


class FakeRoleRepo:
    def __init__(self):
        self._roles = {int(level): Role(role_id=int(level), role_name=level.label, role_level=level) for level in RoleLevel}

    def list_all(self):
        return list(self._roles.values())

    def get_by_id(self, role_id):
        return self._roles.get(int(role_id))


class FakeUserRepo:
    def __init__(self, roles: FakeRoleRepo):
        self._roles = roles
        self._users = {}
        self._next_id = 1

    def add(self, username, level, *, password_hash="x", is_active=True, full_name=None, email=None):
        uid = self._next_id
        self._next_id += 1
        level = RoleLevel(level)
        self._users[uid] = User(
            user_id=uid,
            username=username,
            email=email or f"{username}@org.test",
            password_hash=password_hash,
            full_name=full_name or username.title(),
            role_id=int(level),
            role_level=level,
            role_name=level.label,
            is_active=is_active,
        )
        return self._users[uid]

    def get_by_id(self, user_id):
        return self._users.get(int(user_id))

    def get_by_username(self, username):
        return next((u for u in self._users.values() if u.username == username), None)

    def get_by_email(self, email):
        return next((u for u in self._users.values() if u.email == email), None)

    def create_user(self, data):
        if self.get_by_username(data.username) or self.get_by_email(data.email):
            raise ConflictError("Username atau email sudah digunakan")
        role = self._roles.get_by_id(data.role_id)
        user = self.add(data.username, role.role_level, password_hash=data.password_hash, is_active=data.is_active)
        self._users[user.user_id] = replace(user, email=data.email, full_name=data.full_name, phone=data.phone)
        return user.user_id

    def update_user(self, user_id, changes):
        user = self._users.get(int(user_id))
        if not user:
            return False
        role = self._roles.get_by_id(changes.role_id)
        self._users[user.user_id] = replace(
            user,
            username=changes.username,
            email=changes.email,
            full_name=changes.full_name,
            role_id=role.role_id,
            role_level=role.role_level,
            role_name=role.role_name,
            phone=changes.phone,
            address=changes.address,
            is_active=changes.is_active,
        )
        return True

    def update_profile(self, user_id, *, full_name, email, phone, address):
        user = self._users[int(user_id)]
        self._users[user.user_id] = replace(user, full_name=full_name, email=email, phone=phone, address=address)
        return True

    def update_password(self, user_id, password_hash):
        user = self._users.get(int(user_id))
        if not user:
            return False
        self._users[user.user_id] = replace(user, password_hash=password_hash)
        return True

    def update_profile_photo(self, user_id, photo_path):
        user = self._users[int(user_id)]
        self._users[user.user_id] = replace(user, profile_photo=photo_path)
        return True

    def delete_by_id(self, user_id):
        return self._users.pop(int(user_id), None) is not None

    def list_all(self):
        return sorted(self._users.values(), key=lambda u: (int(u.role_level), u.full_name))

    def list_by_role_level(self, role_level, *, active_only=True):
        return [u for u in self.list_all() if u.role_level == role_level and (u.is_active or not active_only)]

    def count(self):
        return len(self._users)

    def count_active(self):
        return sum(1 for u in self._users.values() if u.is_active)


class FakeUnitRepo:
    def __init__(self, users: FakeUserRepo):
        self._users = users
        self._units = {}
        self._members = {}
        self._next_id = 1
        self.departments = None

    def _with_counts(self, unit):
        chair = self._users.get_by_id(unit.chair_user_id) if unit.chair_user_id else None
        return replace(
            unit,
            chair_name=chair.full_name if chair else None,
            member_count=len(self._members.get(unit.unit_id, ())),
        )

    def list_all(self):
        return [self._with_counts(u) for u in sorted(self._units.values(), key=lambda u: u.name)]

    def get_by_id(self, unit_id):
        unit = self._units.get(int(unit_id))
        return self._with_counts(unit) if unit else None

    def create(self, *, name, description, chair_user_id):
        uid = self._next_id
        self._next_id += 1
        self._units[uid] = Unit(unit_id=uid, name=name, description=description, chair_user_id=chair_user_id)
        return uid

    def update(self, unit_id, *, name, description, chair_user_id):
        unit = self._units.get(int(unit_id))
        if not unit:
            return False
        self._units[unit.unit_id] = replace(unit, name=name, description=description, chair_user_id=chair_user_id)
        return True

    def delete(self, unit_id):
        self._members.pop(int(unit_id), None)
        return self._units.pop(int(unit_id), None) is not None

    def get_members(self, unit_id):
        members = []
        for user_id in sorted(self._members.get(int(unit_id), ())):
            u = self._users.get_by_id(user_id)
            members.append(
                UnitMember(user_id=u.user_id, username=u.username, email=u.email, full_name=u.full_name, role_name=u.role_name)
            )
        return members

    def add_member(self, unit_id, user_id, *, guard):
        if not self._users.get_by_id(user_id):
            raise NotFoundError("User tidak ditemukan")
        if not guard(self.departments.get_existing_membership(user_id)):
            return False
        self._members.setdefault(int(unit_id), set()).add(int(user_id))
        return True

    def remove_member(self, unit_id, user_id):
        members = self._members.get(int(unit_id), set())
        if int(user_id) not in members:
            return False
        members.discard(int(user_id))
        return True

    def is_member_of(self, user_id, unit_id):
        return int(user_id) in self._members.get(int(unit_id), set())

    def find_units_for_user(self, user_id):
        found = {}
        for unit in sorted(self._units.values(), key=lambda u: u.name):
            if unit.chair_user_id == int(user_id):
                found[unit.unit_id] = UNIT_CHAIR_POSITION
        for unit_id in sorted(self.list_member_unit_ids(user_id)):
            found.setdefault(unit_id, UNIT_MEMBER_POSITION)
        result = []
        for unit_id, position in found.items():
            unit = self.get_by_id(unit_id)
            result.append(
                UserUnit(
                    unit_id=unit.unit_id,
                    name=unit.name,
                    description=unit.description,
                    chair_user_id=unit.chair_user_id,
                    chair_name=unit.chair_name,
                    position=position,
                )
            )
        return result

    def find_chaired_unit_by(self, user_id):
        for unit in sorted(self._units.values(), key=lambda u: u.unit_id):
            if unit.chair_user_id == int(user_id):
                return self._with_counts(unit)
        return None

    def list_member_unit_ids(self, user_id):
        return [unit_id for unit_id, members in self._members.items() if int(user_id) in members]

    def count(self):
        return len(self._units)

    def count_members(self):
        return len(set().union(*self._members.values())) if self._members else 0


class FakeDepartmentRepo:
    def __init__(self, users: FakeUserRepo, units: FakeUnitRepo):
        self._users = users
        self._units = units
        self._members = {DepartmentCategory.SECRETARIAT: {}, DepartmentCategory.TREASURY: {}}
        units.departments = self

    def get_existing_membership(self, user_id):
        user_id = int(user_id)
        if user_id in self._members[DepartmentCategory.SECRETARIAT]:
            return ExistingMembership(category=DepartmentCategory.SECRETARIAT)
        if user_id in self._members[DepartmentCategory.TREASURY]:
            return ExistingMembership(category=DepartmentCategory.TREASURY)
        unit_ids = sorted(self._units.list_member_unit_ids(user_id))
        if unit_ids:
            unit = self._units.get_by_id(unit_ids[0])
            return ExistingMembership(category=DepartmentCategory.UNIT, unit_id=unit.unit_id, unit_name=unit.name)
        return None

    def add_department_member(self, category, user_id, *, guard):
        if not self._users.get_by_id(user_id):
            raise NotFoundError("User tidak ditemukan")
        if not guard(self.get_existing_membership(user_id)):
            return False
        self._members[category][int(user_id)] = FIXED_NOW
        return True

    def remove_department_member(self, category, user_id):
        return self._members[category].pop(int(user_id), None) is not None

    def is_department_member(self, category, user_id):
        return int(user_id) in self._members[category]

    def list_department_members(self, category):
        result = []
        for user_id, joined_at in self._members[category].items():
            u = self._users.get_by_id(user_id)
            result.append(
                DepartmentMember(
                    user_id=u.user_id,
                    username=u.username,
                    email=u.email,
                    full_name=u.full_name,
                    role_name=u.role_name,
                    joined_at=joined_at,
                )
            )
        return result

    def list_available_users(self):
        return [
            AvailableUser(user_id=u.user_id, username=u.username, email=u.email, full_name=u.full_name, role_name=u.role_name)
            for u in self._users.list_by_role_level(RoleLevel.MEMBER)
            if self.get_existing_membership(u.user_id) is None
        ]

    def count_department_members(self, category):
        return len(self._members[category])


class FakeProgramRepo:
    CATEGORIES = (
        ProgramCategoryRow(category_id=1, name=ProgramCategory.SECRETARIAT),
        ProgramCategoryRow(category_id=2, name=ProgramCategory.TREASURY),
        ProgramCategoryRow(category_id=3, name=ProgramCategory.UNIT),
    )

    def __init__(self, units: FakeUnitRepo, users: FakeUserRepo):
        self._units = units
        self._users = users
        self._programs = {}
        self._history = []
        self._next_id = 1
        self.lose_next_race = False
        self.fail_history_write = False

    def category_id(self, category: ProgramCategory) -> int:
        return next(r.category_id for r in self.CATEGORIES if r.name == category)

    def _hydrate(self, program):
        unit = self._units.get_by_id(program.unit_id) if program.unit_id else None
        proposer = self._users.get_by_id(program.proposer_user_id)
        return replace(
            program,
            unit_name=unit.name if unit else None,
            proposer_name=proposer.full_name if proposer else None,
        )

    def _matches(self, p, filters: ProgramFilters) -> bool:
        return (
            (filters.category_id is None or p.category_id == filters.category_id)
            and (filters.unit_id is None or p.unit_id == filters.unit_id)
            and (filters.status is None or p.status == filters.status)
            and (filters.proposer_id is None or p.proposer_user_id == filters.proposer_id)
        )

    def list(self, filters=ProgramFilters()):
        rows = [p for p in self._programs.values() if self._matches(p, filters)]
        return [self._hydrate(p) for p in sorted(rows, key=lambda p: p.program_id, reverse=True)]

    def list_visible(self, visibility, filters=ProgramFilters()):
        return [p for p in self.list(filters) if visibility.matches(ProgramScope.of(p))]

    def find_by_id(self, program_id):
        program = self._programs.get(int(program_id))
        return self._hydrate(program) if program else None

    def create(self, data, *, proposer_user_id, status=ProgramStatus.DRAFT):
        pid = self._next_id
        self._next_id += 1
        category = next(r.name for r in self.CATEGORIES if r.category_id == data.category_id)
        self._programs[pid] = WorkProgram(
            program_id=pid,
            title=data.title,
            description=data.description,
            category_id=data.category_id,
            category=category,
            unit_id=data.unit_id,
            start_date=data.start_date,
            end_date=data.end_date,
            budget=data.budget if data.budget is not None else Decimal("0"),
            proposer_user_id=int(proposer_user_id),
            responsible_user_id=data.responsible_user_id,
            status=ProgramStatus(status),
            created_at=FIXED_NOW,
        )
        return pid

    def _with_data(self, program, data):
        category = next(r.name for r in self.CATEGORIES if r.category_id == data.category_id)
        return replace(
            program,
            title=data.title,
            description=data.description,
            category_id=data.category_id,
            category=category,
            unit_id=data.unit_id,
            start_date=data.start_date,
            end_date=data.end_date,
            budget=data.budget,
            responsible_user_id=data.responsible_user_id,
        )

    def update(self, program_id, data):
        program = self._programs.get(int(program_id))
        if not program:
            return False
        self._programs[program.program_id] = self._with_data(program, data)
        return True

    def delete(self, program_id):
        return self._programs.pop(int(program_id), None) is not None

    def transition(
        self,
        program_id,
        *,
        previous_status,
        new_status,
        changed_by,
        history_note=None,
        approved_by=None,
        approval_note=None,
        data=None,
    ):
        program = self._programs.get(int(program_id))
        if not program:
            return False
        if self.lose_next_race:
            self.lose_next_race = False
            return False
        if program.status != previous_status:
            return False

        # one transaction: stage every write, publish only when all succeed
        if new_status in DECIDED_STATUSES:
            staged = replace(
                program, status=new_status, approved_by=approved_by, approved_at=FIXED_NOW, approval_note=approval_note
            )
        else:
            staged = replace(program, status=new_status, approved_by=None, approved_at=None, approval_note=None)
        if data is not None:
            staged = self._with_data(staged, data)
        if self.fail_history_write:
            raise RuntimeError("proker_history insert failed")
        entry = ProgramHistoryEntry(
            history_id=len(self._history) + 1,
            program_id=int(program_id),
            previous_status=previous_status,
            new_status=new_status,
            changed_by=int(changed_by),
            note=history_note,
            changed_at=FIXED_NOW,
        )
        self._programs[program.program_id] = staged
        self._history.append(entry)
        return True

    def get_history(self, program_id):
        rows = [h for h in self._history if h.program_id == int(program_id)]
        return sorted(rows, key=lambda h: h.history_id, reverse=True)

    def count_by_status(self, visibility=None):
        counts = {s: 0 for s in ProgramStatus}
        for p in self._programs.values():
            if visibility is None or visibility.matches(ProgramScope.of(p)):
                counts[p.status] += 1
        return counts

    def total_budget(self, visibility=None, *, status=None):
        return sum(
            (
                p.budget
                for p in self._programs.values()
                if (visibility is None or visibility.matches(ProgramScope.of(p)))
                and (status is None or p.status == status)
            ),
            Decimal("0"),
        )

    def list_categories(self):
        return list(self.CATEGORIES)


@pytest.fixture
def org():
    """A small organization with one user per role and two bidang.

    - ``chair1`` chairs U1 ("Pendidikan"), ``chair2`` chairs U2 ("Sosial")
    - ``member1`` is a member of U1, ``member2`` a member of U2
    - ``free_member`` has no membership yet
    """
    roles = FakeRoleRepo()
    users = FakeUserRepo(roles)
    units = FakeUnitRepo(users)
    departments = FakeDepartmentRepo(users, units)
    programs = FakeProgramRepo(units, users)
    container = wire_container(
        users_repo=users,
        roles_repo=roles,
        units_repo=units,
        memberships_repo=departments,
        programs_repo=programs,
    )

    people = SimpleNamespace(
        admin=users.add("admin", RoleLevel.ADMIN),
        general_chair=users.add("ketua", RoleLevel.GENERAL_CHAIR),
        secretary=users.add("sekretaris", RoleLevel.SECRETARY),
        treasurer=users.add("bendahara", RoleLevel.TREASURER),
        chair1=users.add("kabid1", RoleLevel.UNIT_CHAIR),
        chair2=users.add("kabid2", RoleLevel.UNIT_CHAIR),
        member1=users.add("anggota1", RoleLevel.MEMBER),
        member2=users.add("anggota2", RoleLevel.MEMBER),
        free_member=users.add("anggota3", RoleLevel.MEMBER),
    )
    u1 = units.create(name="Pendidikan", description=None, chair_user_id=people.chair1.user_id)
    u2 = units.create(name="Sosial", description=None, chair_user_id=people.chair2.user_id)
    units._members[u1] = {people.member1.user_id}
    units._members[u2] = {people.member2.user_id}

    def actor(user):
        return container.actor_service.resolve(user.user_id, user.role_level)

    return SimpleNamespace(
        container=container,
        users=users,
        roles=roles,
        units=units,
        departments=departments,
        programs=programs,
        people=people,
        u1=u1,
        u2=u2,
        actor=actor,
    )
