"""Principal abstractions for authenticated callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet

from .core.enums import RoleName


@dataclass(frozen=True)
class UserPrincipal:
    """The identity acting on a request, as asserted by its bearer token."""

    user_id: str
    roles: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def id(self) -> str:
        return self.user_id

    def has_role(self, role: RoleName) -> bool:
        return role.value in self.roles

    @property
    def is_provider(self) -> bool:
        return self.has_role(RoleName.PROVIDER)
