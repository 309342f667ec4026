from __future__ import annotations

from enum import Enum, IntEnum


class RoleLevel(IntEnum):
    """Six fixed role levels; lower number means wider access."""

    ADMIN = 1
    GENERAL_CHAIR = 2
    SECRETARY = 3
    TREASURER = 4
    UNIT_CHAIR = 5
    MEMBER = 6

    @property
    def label(self) -> str:
        return ROLE_LABELS[self]


ROLE_LABELS = {
    RoleLevel.ADMIN: "Admin",
    RoleLevel.GENERAL_CHAIR: "Ketua Umum",
    RoleLevel.SECRETARY: "Sekretaris",
    RoleLevel.TREASURER: "Bendahara",
    RoleLevel.UNIT_CHAIR: "Ketua Bidang",
    RoleLevel.MEMBER: "Anggota",
}


class ProgramStatus(str, Enum):
    """Status program kerja. Nilai string disimpan apa adanya di basis data."""

    DRAFT = "draft"
    SUBMITTED = "diajukan"
    APPROVED = "disetujui"
    REJECTED = "ditolak"
    RUNNING = "berjalan"
    COMPLETED = "selesai"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


STATUS_LABELS = {
    ProgramStatus.DRAFT: "Draft",
    ProgramStatus.SUBMITTED: "Diajukan",
    ProgramStatus.APPROVED: "Disetujui",
    ProgramStatus.REJECTED: "Ditolak",
    ProgramStatus.RUNNING: "Berjalan",
    ProgramStatus.COMPLETED: "Selesai",
}

DECIDED_STATUSES = frozenset({ProgramStatus.APPROVED, ProgramStatus.REJECTED})


class ProgramCategory(str, Enum):
    """Kategori proker; nilai = ``kategori_proker.nama_kategori``."""

    SECRETARIAT = "Sekretaris"
    TREASURY = "Bendahara"
    UNIT = "Bidang"


class ProgramAction(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"


class ApprovalDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def target_status(self) -> ProgramStatus:
        return ProgramStatus.APPROVED if self is ApprovalDecision.APPROVE else ProgramStatus.REJECTED


class DepartmentCategory(str, Enum):
    """Jenis keanggotaan seorang user (saling eksklusif)."""

    SECRETARIAT = "sekretaris"
    TREASURY = "bendahara"
    UNIT = "bidang"
    NONE = "none"


class UnitAction(str, Enum):
    MANAGE = "manage"
    VIEW = "view"
