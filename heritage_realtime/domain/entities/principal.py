"""Domain entity representing an authenticated actor."""

from __future__ import annotations

from dataclasses import dataclass

ROLE_VISITOR = "visitor"
ROLE_ORGANIZER = "organizer"
ROLE_MUSEUM_ADMIN = "museum_admin"
ROLE_SUPER_ADMIN = "super_admin"


@dataclass(frozen=True)
class Principal:
    """Identity attached to a connection for its whole lifetime."""

    id: str
    role: str
    tenant_id: str | None = None

    def has_role(self, role: str) -> bool:
        return self.role == role


@dataclass
class DirectoryEntry:
    """Known principal stored in the identity directory."""

    id: str
    role: str
    tenant_id: str | None
    display_name: str | None
    is_active: bool


__all__ = [
    "DirectoryEntry",
    "Principal",
    "ROLE_MUSEUM_ADMIN",
    "ROLE_ORGANIZER",
    "ROLE_SUPER_ADMIN",
    "ROLE_VISITOR",
]
