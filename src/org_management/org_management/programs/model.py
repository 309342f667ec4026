from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import ProgramCategory, ProgramStatus


@dataclass(frozen=True)
class ProgramCategoryRow:
    category_id: int
    name: ProgramCategory


@dataclass(frozen=True)
class WorkProgram:
    """Program kerja, sudah di-join dengan nama kategori, bidang dan user terkait."""

    program_id: int
    title: str
    category_id: int
    category: ProgramCategory
    proposer_user_id: int
    status: ProgramStatus
    description: Optional[str] = None
    unit_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: Decimal = Decimal("0")
    responsible_user_id: Optional[int] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    approval_note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    unit_name: Optional[str] = None
    proposer_name: Optional[str] = None
    responsible_name: Optional[str] = None
    approver_name: Optional[str] = None


@dataclass(frozen=True)
class ProgramData:
    """Non-status fields written on create and on full update."""

    title: str
    category_id: int
    description: Optional[str] = None
    unit_id: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    budget: Decimal = Decimal("0")
    responsible_user_id: Optional[int] = None


@dataclass(frozen=True)
class ProgramHistoryEntry:
    history_id: int
    program_id: int
    new_status: ProgramStatus
    changed_by: int
    previous_status: Optional[ProgramStatus] = None
    note: Optional[str] = None
    changed_at: Optional[datetime] = None
    changed_by_name: Optional[str] = None


@dataclass(frozen=True)
class ProgramFilters:
    """AND-combined list filters; None means "any"."""

    category_id: Optional[int] = None
    unit_id: Optional[int] = None
    status: Optional[ProgramStatus] = None
    proposer_id: Optional[int] = None
