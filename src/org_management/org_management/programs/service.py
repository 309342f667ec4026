from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from ..authorization.actor import Actor
from ..authorization.policy import (
    ProgramScope,
    can_perform,
    creatable_categories,
    program_visibility,
)
from ..common.datetime_utils import parse_optional_date
from ..common.ids import normalize_optional_id
from ..common.validators import optional_text, parse_budget, require_non_empty
from ..core.enums import ApprovalDecision, ProgramAction, ProgramCategory, ProgramStatus, RoleLevel
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..units.repository import UnitRepository
from ..users.repository import UserRepository
from .model import ProgramCategoryRow, ProgramData, ProgramFilters, ProgramHistoryEntry, WorkProgram
from .repository import ProgramRepository
from .workflow import ProgramWorkflow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgramForm:
    """Raw form input for create/edit, before validation."""

    title: str
    category_id: Optional[str]
    description: Optional[str] = None
    unit_id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    budget: Optional[str] = None
    responsible_user_id: Optional[str] = None
    status: Optional[str] = None


@dataclass(frozen=True)
class FormOptions:
    categories: Sequence[ProgramCategoryRow]
    units: Sequence
    responsible_candidates: Sequence


class ProgramService:
    def __init__(
        self,
        programs: ProgramRepository,
        workflow: ProgramWorkflow,
        units: UnitRepository,
        users: UserRepository,
    ):
        self._programs = programs
        self._workflow = workflow
        self._units = units
        self._users = users

    @staticmethod
    def _authorize(actor: Actor, action: ProgramAction, scope: ProgramScope) -> None:
        decision = can_perform(actor, action, scope)
        if not decision:
            raise AuthorizationError(decision.reason)

    def _load(self, program_id: int) -> WorkProgram:
        program = self._programs.find_by_id(int(program_id))
        if not program:
            raise NotFoundError("Program kerja tidak ditemukan")
        return program

    # --- reads -----------------------------------------------------------

    def list_for_actor(self, actor: Actor, filters: ProgramFilters = ProgramFilters()) -> Sequence[WorkProgram]:
        return self._programs.list_visible(program_visibility(actor), filters)

    def get_for_actor(self, actor: Actor, program_id: int) -> WorkProgram:
        program = self._load(program_id)
        self._authorize(actor, ProgramAction.READ, ProgramScope.of(program))
        return program

    def history(self, actor: Actor, program_id: int) -> Sequence[ProgramHistoryEntry]:
        program = self.get_for_actor(actor, program_id)
        return self._programs.get_history(program.program_id)

    def list_categories(self) -> Sequence[ProgramCategoryRow]:
        return self._programs.list_categories()

    def allowed_actions(self, actor: Actor, program: WorkProgram) -> Dict[str, bool]:
        """Flags for the detail page buttons."""
        scope = ProgramScope.of(program)
        return {
            "can_edit": bool(can_perform(actor, ProgramAction.UPDATE, scope)),
            "can_delete": bool(can_perform(actor, ProgramAction.DELETE, scope)),
            "can_submit": program.status == ProgramStatus.DRAFT
            and bool(can_perform(actor, ProgramAction.UPDATE, scope)),
            "can_approve": program.status == ProgramStatus.SUBMITTED
            and bool(can_perform(actor, ProgramAction.APPROVE, scope)),
        }

    def form_options(self, actor: Actor) -> FormOptions:
        rows = self._programs.list_categories()
        allowed = set(creatable_categories(actor, [r.name for r in rows]))
        units = list(self._units.list_all())
        unaffiliated_member = (
            actor.role_level == RoleLevel.MEMBER
            and not actor.unit_ids
            and not actor.is_secretariat_member
            and not actor.is_treasury_member
        )
        if not actor.is_leadership and not unaffiliated_member:
            own: List[int] = [u for u in [actor.chaired_unit_id] if u is not None] + sorted(actor.unit_ids)
            units = [u for u in units if u.unit_id in own]
        responsible = [u for u in self._users.list_all() if u.is_active]
        return FormOptions(
            categories=[r for r in rows if r.name in allowed],
            units=units,
            responsible_candidates=responsible,
        )

    # --- writes ----------------------------------------------------------

    def _category_of(self, category_id) -> ProgramCategoryRow:
        cid = normalize_optional_id(category_id)
        if cid is None:
            raise ValidationError("Kategori wajib dipilih")
        for row in self._programs.list_categories():
            if row.category_id == cid:
                return row
        raise ValidationError("Kategori tidak valid")

    def _validate(self, form: ProgramForm) -> tuple:
        title = require_non_empty(form.title, "Judul")
        category = self._category_of(form.category_id)

        unit_id = normalize_optional_id(form.unit_id)
        if category.name == ProgramCategory.UNIT:
            if unit_id is None:
                raise ValidationError("Bidang wajib dipilih untuk kategori Bidang")
            if not self._units.get_by_id(unit_id):
                raise ValidationError("Bidang tidak ditemukan")
        else:
            unit_id = None

        responsible_id = normalize_optional_id(form.responsible_user_id)
        if responsible_id is None:
            raise ValidationError("Penanggung jawab wajib dipilih")
        if not self._users.get_by_id(responsible_id):
            raise ValidationError("Penanggung jawab tidak ditemukan")

        start = parse_optional_date(form.start_date, "Tanggal mulai")
        end = parse_optional_date(form.end_date, "Tanggal selesai")
        if start and end and end < start:
            raise ValidationError("Tanggal selesai tidak boleh sebelum tanggal mulai")

        data = ProgramData(
            title=title,
            category_id=category.category_id,
            description=optional_text(form.description),
            unit_id=unit_id,
            start_date=start,
            end_date=end,
            budget=parse_budget(form.budget),
            responsible_user_id=responsible_id,
        )
        return data, category

    def create(self, actor: Actor, form: ProgramForm) -> int:
        data, category = self._validate(form)
        self._authorize(actor, ProgramAction.CREATE, ProgramScope(category=category.name, unit_id=data.unit_id))
        program_id = self._programs.create(data, proposer_user_id=actor.user_id)
        logger.info("proker %s created by user %s", program_id, actor.user_id)
        return program_id

    def update(self, actor: Actor, program_id: int, form: ProgramForm) -> WorkProgram:
        program = self._load(program_id)
        self._authorize(actor, ProgramAction.UPDATE, ProgramScope.of(program))

        data, category = self._validate(form)
        self._authorize(
            actor,
            ProgramAction.UPDATE,
            ProgramScope(category=category.name, unit_id=data.unit_id, proposer_user_id=program.proposer_user_id),
        )

        new_status = None
        if form.status:
            try:
                new_status = ProgramStatus(form.status.strip())
            except ValueError:
                raise ValidationError("Status tidak valid")

        # a status change carries the field update in its own transaction
        if new_status is not None and new_status != program.status:
            return self._workflow.apply_edit_status(program, new_status, actor, data)
        self._programs.update(program.program_id, data)
        return self._load(program.program_id)

    def delete(self, actor: Actor, program_id: int) -> None:
        program = self._load(program_id)
        self._authorize(actor, ProgramAction.DELETE, ProgramScope.of(program))
        self._programs.delete(program.program_id)
        logger.info("proker %s deleted by user %s", program.program_id, actor.user_id)

    def submit(self, actor: Actor, program_id: int) -> WorkProgram:
        return self._workflow.submit(program_id, actor)

    def decide(self, actor: Actor, program_id: int, decision, note: Optional[str] = None) -> WorkProgram:
        try:
            decision = ApprovalDecision(decision)
        except ValueError:
            raise ValidationError("Keputusan tidak valid")
        return self._workflow.decide(program_id, actor, decision, note)
