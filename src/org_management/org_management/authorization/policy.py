"""Role-scoped authorization rules.

Every permission question is answered by one interpreter, :func:`evaluate`,
walking an ordered rule table (role levels x actions x scope predicate). The
first matching rule decides; when nothing matches the action is denied with a
human-readable reason. Decisions are values (:class:`Allow` /
:class:`AccessDenied`), never exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Generic, Iterable, List, Optional, Sequence, TypeVar, Union

from ..core.enums import DepartmentCategory, ProgramAction, ProgramCategory, RoleLevel, UnitAction
from .actor import Actor


@dataclass(frozen=True)
class Allow:
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class AccessDenied:
    reason: str

    def __bool__(self) -> bool:
        return False


Decision = Union[Allow, AccessDenied]
ALLOW = Allow()

S = TypeVar("S")
A = TypeVar("A")


@dataclass(frozen=True)
class Rule(Generic[A, S]):
    levels: FrozenSet[RoleLevel]
    actions: FrozenSet[A]
    when: Callable[[Actor, S], bool]
    allow: bool = True
    reason: Optional[str] = None

    def matches(self, actor: Actor, action: A, scope: S) -> bool:
        return actor.role_level in self.levels and action in self.actions and self.when(actor, scope)


def evaluate(rules: Sequence[Rule], actor: Actor, action, scope, *, default_reason: str) -> Decision:
    for rule in rules:
        if rule.matches(actor, action, scope):
            return ALLOW if rule.allow else AccessDenied(rule.reason or default_reason)
    return AccessDenied(default_reason)


LEADERSHIP = frozenset({RoleLevel.ADMIN, RoleLevel.GENERAL_CHAIR})
ALL_LEVELS = frozenset(RoleLevel)
ADMIN_ONLY = frozenset({RoleLevel.ADMIN})


def _always(actor: Actor, scope) -> bool:
    return True


# ---------------------------------------------------------------------------
# Program kerja
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProgramScope:
    """The facts about a program that the rules look at.

    ``proposer_user_id`` is None for a program that does not exist yet.
    """

    category: ProgramCategory
    unit_id: Optional[int] = None
    proposer_user_id: Optional[int] = None

    @classmethod
    def of(cls, program) -> "ProgramScope":
        return cls(
            category=program.category,
            unit_id=program.unit_id,
            proposer_user_id=program.proposer_user_id,
        )


def _category_is(category: ProgramCategory) -> Callable[[Actor, ProgramScope], bool]:
    def check(actor: Actor, scope: ProgramScope) -> bool:
        return scope.category == category

    return check


def _in_chaired_unit(actor: Actor, scope: ProgramScope) -> bool:
    return actor.chaired_unit_id is not None and scope.unit_id == actor.chaired_unit_id


def _member_can_read(actor: Actor, scope: ProgramScope) -> bool:
    if scope.unit_id is not None and scope.unit_id in actor.unit_ids:
        return True
    if actor.is_secretariat_member and scope.category == ProgramCategory.SECRETARIAT:
        return True
    return actor.is_treasury_member and scope.category == ProgramCategory.TREASURY


def _is_proposer(actor: Actor, scope: ProgramScope) -> bool:
    return scope.proposer_user_id is not None and scope.proposer_user_id == actor.user_id


_ALL_PROGRAM_ACTIONS = frozenset(ProgramAction)
_SCOPED_ACTIONS = frozenset({ProgramAction.CREATE, ProgramAction.READ, ProgramAction.UPDATE, ProgramAction.DELETE})

APPROVE_DENIED = "Hanya Admin dan Ketua Umum yang dapat menyetujui program kerja"

PROGRAM_RULES: Sequence[Rule[ProgramAction, ProgramScope]] = (
    Rule(LEADERSHIP, _ALL_PROGRAM_ACTIONS, _always),
    Rule(ALL_LEVELS - LEADERSHIP, frozenset({ProgramAction.APPROVE}), _always, allow=False, reason=APPROVE_DENIED),
    Rule(frozenset({RoleLevel.SECRETARY}), _SCOPED_ACTIONS, _category_is(ProgramCategory.SECRETARIAT)),
    Rule(frozenset({RoleLevel.TREASURER}), _SCOPED_ACTIONS, _category_is(ProgramCategory.TREASURY)),
    Rule(frozenset({RoleLevel.UNIT_CHAIR}), _SCOPED_ACTIONS, _in_chaired_unit),
    Rule(frozenset({RoleLevel.MEMBER}), frozenset({ProgramAction.CREATE}), _always),
    Rule(frozenset({RoleLevel.MEMBER}), frozenset({ProgramAction.READ}), _member_can_read),
    Rule(frozenset({RoleLevel.MEMBER}), frozenset({ProgramAction.UPDATE, ProgramAction.DELETE}), _is_proposer),
)

PROGRAM_DENY_REASONS = {
    ProgramAction.CREATE: "Anda tidak memiliki akses untuk membuat program kerja",
    ProgramAction.READ: "Anda tidak memiliki akses untuk melihat program kerja ini",
    ProgramAction.UPDATE: "Anda tidak memiliki akses untuk mengubah program kerja ini",
    ProgramAction.DELETE: "Anda tidak memiliki akses untuk menghapus program kerja ini",
    ProgramAction.APPROVE: APPROVE_DENIED,
}


def can_perform(actor: Actor, action: ProgramAction, resource: ProgramScope) -> Decision:
    return evaluate(PROGRAM_RULES, actor, action, resource, default_reason=PROGRAM_DENY_REASONS[action])


@dataclass(frozen=True)
class ProgramVisibility:
    """Set form of the READ rules, used to filter program lists in SQL."""

    everything: bool = False
    categories: FrozenSet[ProgramCategory] = field(default_factory=frozenset)
    unit_ids: FrozenSet[int] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not self.everything and not self.categories and not self.unit_ids

    def matches(self, scope: ProgramScope) -> bool:
        if self.everything or scope.category in self.categories:
            return True
        return scope.unit_id is not None and scope.unit_id in self.unit_ids


def program_visibility(actor: Actor) -> ProgramVisibility:
    level = actor.role_level
    if level in LEADERSHIP:
        return ProgramVisibility(everything=True)
    if level == RoleLevel.SECRETARY:
        return ProgramVisibility(categories=frozenset({ProgramCategory.SECRETARIAT}))
    if level == RoleLevel.TREASURER:
        return ProgramVisibility(categories=frozenset({ProgramCategory.TREASURY}))
    if level == RoleLevel.UNIT_CHAIR:
        units = frozenset({actor.chaired_unit_id}) if actor.chaired_unit_id is not None else frozenset()
        return ProgramVisibility(unit_ids=units)

    categories: List[ProgramCategory] = []
    if actor.is_secretariat_member:
        categories.append(ProgramCategory.SECRETARIAT)
    if actor.is_treasury_member:
        categories.append(ProgramCategory.TREASURY)
    return ProgramVisibility(categories=frozenset(categories), unit_ids=frozenset(actor.unit_ids))


def creatable_categories(actor: Actor, available: Iterable[ProgramCategory] = tuple(ProgramCategory)) -> List[ProgramCategory]:
    """Categories offered on the create form for this actor."""
    available = list(available)
    level = actor.role_level
    if level in LEADERSHIP:
        return available
    if level == RoleLevel.SECRETARY:
        wanted = ProgramCategory.SECRETARIAT
    elif level == RoleLevel.TREASURER:
        wanted = ProgramCategory.TREASURY
    elif actor.is_secretariat_member:
        wanted = ProgramCategory.SECRETARIAT
    elif actor.is_treasury_member:
        wanted = ProgramCategory.TREASURY
    else:
        wanted = ProgramCategory.UNIT
    return [c for c in available if c == wanted]


# ---------------------------------------------------------------------------
# Bidang
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UnitScope:
    unit_id: int
    chair_user_id: Optional[int] = None

    @classmethod
    def of(cls, unit) -> "UnitScope":
        return cls(unit_id=unit.unit_id, chair_user_id=unit.chair_user_id)


def _chairs_unit(actor: Actor, scope: UnitScope) -> bool:
    return scope.chair_user_id is not None and scope.chair_user_id == actor.user_id


def _member_of_unit(actor: Actor, scope: UnitScope) -> bool:
    return scope.unit_id in actor.unit_ids


_CHAIR = frozenset({RoleLevel.UNIT_CHAIR})
_ALL_UNIT_ACTIONS = frozenset(UnitAction)

UNIT_RULES: Sequence[Rule[UnitAction, UnitScope]] = (
    Rule(LEADERSHIP, _ALL_UNIT_ACTIONS, _always),
    Rule(_CHAIR, _ALL_UNIT_ACTIONS, _chairs_unit),
    Rule(
        _CHAIR,
        frozenset({UnitAction.MANAGE}),
        _always,
        allow=False,
        reason="Anda hanya bisa mengelola bidang yang Anda pimpin",
    ),
    Rule(frozenset({RoleLevel.MEMBER}), frozenset({UnitAction.VIEW}), _member_of_unit),
)

UNIT_DENY_REASONS = {
    UnitAction.MANAGE: "Anda tidak memiliki akses ke halaman ini",
    UnitAction.VIEW: "Anda tidak terdaftar sebagai anggota atau ketua bidang ini",
}


def can_manage_unit(actor: Actor, unit: UnitScope) -> Decision:
    return evaluate(UNIT_RULES, actor, UnitAction.MANAGE, unit, default_reason=UNIT_DENY_REASONS[UnitAction.MANAGE])


def can_view_unit(actor: Actor, unit: UnitScope) -> Decision:
    return evaluate(UNIT_RULES, actor, UnitAction.VIEW, unit, default_reason=UNIT_DENY_REASONS[UnitAction.VIEW])


def can_list_units(actor: Actor) -> Decision:
    if actor.is_leadership or actor.role_level == RoleLevel.UNIT_CHAIR:
        return ALLOW
    return AccessDenied("Halaman ini hanya dapat diakses oleh Ketua Bidang atau Admin")


# ---------------------------------------------------------------------------
# Departemen, user & master data
# ---------------------------------------------------------------------------

DEPARTMENT_RULES: Sequence[Rule[UnitAction, DepartmentCategory]] = (
    Rule(LEADERSHIP, frozenset({UnitAction.MANAGE}), _always),
    Rule(
        frozenset({RoleLevel.SECRETARY}),
        frozenset({UnitAction.MANAGE}),
        lambda actor, category: category == DepartmentCategory.SECRETARIAT,
    ),
    Rule(
        frozenset({RoleLevel.TREASURER}),
        frozenset({UnitAction.MANAGE}),
        lambda actor, category: category == DepartmentCategory.TREASURY,
    ),
)


def can_manage_department(actor: Actor, category: DepartmentCategory) -> Decision:
    return evaluate(
        DEPARTMENT_RULES,
        actor,
        UnitAction.MANAGE,
        category,
        default_reason="Anda tidak memiliki akses ke halaman ini",
    )


def require_admin(actor: Actor) -> Decision:
    """User CRUD and bidang master data are Administrator-only."""
    if actor.role_level in ADMIN_ONLY:
        return ALLOW
    return AccessDenied("Halaman ini hanya dapat diakses oleh Administrator")
