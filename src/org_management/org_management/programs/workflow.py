"""Status state machine for program kerja.

    draft --submit--> diajukan --decide--> disetujui | ditolak

``berjalan``, ``selesai`` and a return to ``draft`` are set directly from the
edit form. Every effective change writes one history row, and every status
write is conditional on the status that was read, so two concurrent
transitions cannot both succeed.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..authorization.actor import Actor
from ..authorization.policy import ProgramScope, can_perform
from ..core.constants import EDIT_FORM_HISTORY_NOTE, SUBMIT_HISTORY_NOTE
from ..core.enums import DECIDED_STATUSES, ApprovalDecision, ProgramAction, ProgramStatus
from ..core.exceptions import AuthorizationError, InvalidTransitionError, NotFoundError
from .model import ProgramData, WorkProgram
from .repository import ProgramRepository

logger = logging.getLogger(__name__)

DECISION_HISTORY_NOTES = {
    ApprovalDecision.APPROVE: "Proker disetujui",
    ApprovalDecision.REJECT: "Proker ditolak",
}


class ProgramWorkflow:
    def __init__(self, programs: ProgramRepository):
        self._programs = programs

    def _load(self, program_id: int) -> WorkProgram:
        program = self._programs.find_by_id(int(program_id))
        if not program:
            raise NotFoundError("Program kerja tidak ditemukan")
        return program

    @staticmethod
    def _authorize(actor: Actor, action: ProgramAction, program: WorkProgram) -> None:
        decision = can_perform(actor, action, ProgramScope.of(program))
        if not decision:
            raise AuthorizationError(decision.reason)

    def _transition(
        self,
        program: WorkProgram,
        new_status: ProgramStatus,
        actor: Actor,
        *,
        history_note: Optional[str],
        approved_by: Optional[int] = None,
        approval_note: Optional[str] = None,
        data: Optional[ProgramData] = None,
    ) -> WorkProgram:
        ok = self._programs.transition(
            program.program_id,
            previous_status=program.status,
            new_status=new_status,
            changed_by=actor.user_id,
            history_note=history_note,
            approved_by=approved_by,
            approval_note=approval_note,
            data=data,
        )
        if not ok:
            raise InvalidTransitionError("Status program kerja sudah berubah, silakan muat ulang halaman")

        logger.info(
            "proker %s: %s -> %s by user %s",
            program.program_id,
            program.status.value,
            new_status.value,
            actor.user_id,
        )
        return self._load(program.program_id)

    def _submit(
        self,
        program: WorkProgram,
        actor: Actor,
        *,
        history_note: str,
        data: Optional[ProgramData] = None,
    ) -> WorkProgram:
        self._authorize(actor, ProgramAction.UPDATE, program)
        if program.status != ProgramStatus.DRAFT:
            raise InvalidTransitionError("Hanya proker dengan status draft yang bisa diajukan")
        return self._transition(program, ProgramStatus.SUBMITTED, actor, history_note=history_note, data=data)

    def _decide(
        self,
        program: WorkProgram,
        actor: Actor,
        decision: ApprovalDecision,
        note: Optional[str],
        *,
        history_note: Optional[str] = None,
        data: Optional[ProgramData] = None,
    ) -> WorkProgram:
        self._authorize(actor, ProgramAction.APPROVE, program)
        if program.status != ProgramStatus.SUBMITTED:
            raise InvalidTransitionError("Hanya proker dengan status diajukan yang bisa disetujui atau ditolak")
        note = (note or "").strip() or None
        return self._transition(
            program,
            decision.target_status,
            actor,
            history_note=history_note or note or DECISION_HISTORY_NOTES[decision],
            approved_by=actor.user_id,
            approval_note=note,
            data=data,
        )

    def submit(self, program_id: int, actor: Actor) -> WorkProgram:
        return self._submit(self._load(program_id), actor, history_note=SUBMIT_HISTORY_NOTE)

    def decide(
        self,
        program_id: int,
        actor: Actor,
        decision: ApprovalDecision,
        note: Optional[str] = None,
    ) -> WorkProgram:
        return self._decide(self._load(program_id), actor, ApprovalDecision(decision), note)

    def apply_edit_status(
        self,
        program: WorkProgram,
        new_status: ProgramStatus,
        actor: Actor,
        data: Optional[ProgramData] = None,
    ) -> WorkProgram:
        """Status change requested through the edit form.

        Unchanged status is a no-op. Approve/reject go through the decision
        gate and a move to ``diajukan`` follows the submit precondition.
        ``data`` is saved in the same transaction as the status change.
        """
        new_status = ProgramStatus(new_status)
        if new_status == program.status:
            return program

        if new_status in DECIDED_STATUSES:
            decision = ApprovalDecision.APPROVE if new_status == ProgramStatus.APPROVED else ApprovalDecision.REJECT
            return self._decide(program, actor, decision, None, history_note=EDIT_FORM_HISTORY_NOTE, data=data)

        if new_status == ProgramStatus.SUBMITTED:
            return self._submit(program, actor, history_note=EDIT_FORM_HISTORY_NOTE, data=data)

        self._authorize(actor, ProgramAction.UPDATE, program)
        return self._transition(program, new_status, actor, history_note=EDIT_FORM_HISTORY_NOTE, data=data)
