from __future__ import annotations

from decimal import Decimal
from typing import Dict, Optional, Protocol, Sequence

from ..authorization.policy import ProgramVisibility
from ..core.enums import ProgramStatus
from .model import ProgramCategoryRow, ProgramData, ProgramFilters, ProgramHistoryEntry, WorkProgram


class ProgramRepository(Protocol):
    """Penyimpanan program kerja, kategori dan riwayat status."""

    def list(self, filters: ProgramFilters = ProgramFilters()) -> Sequence[WorkProgram]:
        """Newest first."""

        raise NotImplementedError

    def list_visible(self, visibility: ProgramVisibility, filters: ProgramFilters = ProgramFilters()) -> Sequence[WorkProgram]:
        raise NotImplementedError

    def find_by_id(self, program_id: int) -> Optional[WorkProgram]:
        raise NotImplementedError

    def create(self, data: ProgramData, *, proposer_user_id: int, status: ProgramStatus = ProgramStatus.DRAFT) -> int:
        raise NotImplementedError

    def update(self, program_id: int, data: ProgramData) -> bool:
        raise NotImplementedError

    def delete(self, program_id: int) -> bool:
        raise NotImplementedError

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
        """Move ``program_id`` from ``previous_status`` to ``new_status`` in one transaction.

        The status update is conditional on ``previous_status``; when it no
        longer matches nothing is written and False is returned. Otherwise the
        history row (and ``data``, when given) are written in the same
        transaction. ``approved_at`` is stamped only for decided statuses;
        other statuses clear the approval fields.
        """

        raise NotImplementedError

    def get_history(self, program_id: int) -> Sequence[ProgramHistoryEntry]:
        """Most recent first."""

        raise NotImplementedError

    def count_by_status(self, visibility: Optional[ProgramVisibility] = None) -> Dict[ProgramStatus, int]:
        raise NotImplementedError

    def list_categories(self) -> Sequence[ProgramCategoryRow]:
        raise NotImplementedError

    def total_budget(
        self,
        visibility: Optional[ProgramVisibility] = None,
        *,
        status: Optional[ProgramStatus] = None,
    ) -> Decimal:
        raise NotImplementedError
