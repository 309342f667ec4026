from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .role_model import Role


class RoleRepository(Protocol):
    def list_all(self) -> Sequence[Role]:
        raise NotImplementedError

    def get_by_id(self, role_id: int) -> Optional[Role]:
        raise NotImplementedError
