"""
Share links for saved calculations.

Tokens are issued by the store. Expiry is checked by the store when a token
is resolved, not here. Resolving a link makes two store calls (read, then
bump the view counter) and they are not transactional: a failure between
them leaves a successful read with an unchanged counter.

Every operation returns a ServiceResult; nothing is raised to the caller.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from .config import settings
from .errors import StoreError
from .schemas import ServiceResult
from .store import DataStore

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = "Usuário não autenticado"


def _to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class SharingService:
    def __init__(self, store: DataStore, base_url: Optional[str] = None):
        self.store = store
        self.base_url = (base_url or settings.PUBLIC_BASE_URL).rstrip("/")

    def share_url(self, token: str) -> str:
        return f"{self.base_url}/shared/{token}"

    def create_link(
        self,
        user_id: Optional[int],
        calculation_id: str,
        expires_at: Optional[datetime] = None,
    ) -> ServiceResult:
        """One new link per call, no dedup against existing links."""
        if user_id is None:
            return ServiceResult.fail(NOT_AUTHENTICATED)

        try:
            row = self.store.insert_shared_calculation(
                user_id=user_id,
                calculation_id=calculation_id,
                expires_at=_to_utc_naive(expires_at),
            )
        except StoreError as e:
            logger.error("Erro ao criar link de compartilhamento: %s", e)
            return ServiceResult.fail(e.message)

        token = row["share_token"]
        logger.info("Share link %s created for calculation %s", row["id"], calculation_id)
        return ServiceResult.ok(share_url=self.share_url(token), token=token, data=row)

    def resolve_link(self, token: str) -> ServiceResult:
        """Public, no identity needed. Counts one view per successful resolution."""
        try:
            snapshot = self.store.get_shared_calculation(token)
        except StoreError as e:
            logger.warning("Erro ao buscar cálculo compartilhado: %s", e)
            return ServiceResult.fail(e.message)

        try:
            self.store.increment_share_view_count(token)
        except StoreError as e:
            logger.warning("View count not incremented for share token: %s", e)

        return ServiceResult.ok(data=snapshot)

    def list_links(self, user_id: Optional[int]) -> ServiceResult:
        if user_id is None:
            return ServiceResult.fail(NOT_AUTHENTICATED)
        try:
            return ServiceResult.ok(data=self.store.select_shared_calculations(user_id))
        except StoreError as e:
            logger.error("Erro ao buscar compartilhamentos: %s", e)
            return ServiceResult.fail(e.message)

    def deactivate_link(self, user_id: Optional[int], share_id: str) -> ServiceResult:
        """Soft delete. Ownership is checked by the store."""
        if user_id is None:
            return ServiceResult.fail(NOT_AUTHENTICATED)
        try:
            row = self.store.deactivate_shared_calculation(share_id, user_id)
        except StoreError as e:
            logger.error("Erro ao desativar link: %s", e)
            return ServiceResult.fail(e.message)
        return ServiceResult.ok(data=row)
