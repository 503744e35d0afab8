"""Persistence layer for the principal directory."""

from __future__ import annotations

from sqlalchemy.orm import Session

from heritage_realtime.domain.entities import DirectoryEntry, Principal
from heritage_realtime.infrastructure.models import PrincipalModel
from heritage_realtime.utils import storage_now


class PrincipalRepository:
    """Provide lookup and upsert operations for known principals."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, principal_id: str) -> DirectoryEntry | None:
        model = self.session.get(PrincipalModel, principal_id)
        return self._to_entity(model) if model else None

    def upsert(
        self,
        principal: Principal,
        *,
        display_name: str | None = None,
        is_active: bool | None = None,
    ) -> DirectoryEntry:
        """Create or refresh the directory entry for ``principal``."""

        model = self.session.get(PrincipalModel, principal.id)
        if model is None:
            model = PrincipalModel(id=principal.id, is_active=True)
        model.role = principal.role
        model.tenant_id = principal.tenant_id
        if display_name is not None:
            model.display_name = display_name
        if is_active is not None:
            model.is_active = is_active
        model.last_seen_at = storage_now()
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def list_active_ids_by_role(self, role: str) -> set[str]:
        query = (
            self.session.query(PrincipalModel.id)
            .filter(PrincipalModel.role == role)
            .filter(PrincipalModel.is_active.is_(True))
        )
        return {principal_id for (principal_id,) in query.all()}

    def list_active_ids_by_tenant(self, tenant_id: str) -> set[str]:
        query = (
            self.session.query(PrincipalModel.id)
            .filter(PrincipalModel.tenant_id == tenant_id)
            .filter(PrincipalModel.is_active.is_(True))
        )
        return {principal_id for (principal_id,) in query.all()}

    @staticmethod
    def _to_entity(model: PrincipalModel) -> DirectoryEntry:
        return DirectoryEntry(
            id=model.id,
            role=model.role,
            tenant_id=model.tenant_id,
            display_name=model.display_name,
            is_active=bool(model.is_active),
        )


__all__ = ["PrincipalRepository"]
