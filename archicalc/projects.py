"""
Projects: named groups of saved calculations (client, site address, status).

A calculation belongs to at most one project. Deleting a project leaves its
calculations in place, unassigned.
"""

import logging
from typing import Optional

from .errors import StoreError
from .schemas import ServiceResult
from .store import DataStore

logger = logging.getLogger(__name__)

PROJECT_STATUSES = ("active", "completed", "archived")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class ProjectService:
    def __init__(self, store: DataStore):
        self.store = store

    def create_project(
        self,
        user_id: Optional[int],
        name: str,
        client_name: Optional[str] = None,
        address: Optional[str] = None,
        status: str = "active",
    ) -> ServiceResult:
        if user_id is None:
            return ServiceResult.fail("Usuário não autenticado")
        name = _clean(name)
        if not name:
            return ServiceResult.fail("Por favor, informe o nome do projeto.")
        if status not in PROJECT_STATUSES:
            return ServiceResult.fail(f"Status inválido: {status}")

        try:
            row = self.store.insert_project(
                user_id=user_id,
                name=name,
                client_name=_clean(client_name),
                address=_clean(address),
                status=status,
            )
        except StoreError as e:
            logger.error("Erro ao criar projeto: %s", e)
            return ServiceResult.fail(e.message)
        logger.info("Project %s created for user %s", row["id"], user_id)
        return ServiceResult.ok(data=row)

    def list_projects(self, user_id: Optional[int], status: Optional[str] = None) -> ServiceResult:
        if user_id is None:
            return ServiceResult.fail("Usuário não autenticado")
        try:
            return ServiceResult.ok(data=self.store.select_projects(user_id, status=status))
        except StoreError as e:
            logger.error("Erro ao buscar projetos: %s", e)
            return ServiceResult.fail(e.message)

    def get_project(self, user_id: Optional[int], project_id: str) -> ServiceResult:
        """The project plus its calculations, newest first."""
        if user_id is None:
            return ServiceResult.fail("Usuário não autenticado")
        try:
            project = self.store.select_project(user_id, project_id)
            if project is None:
                return ServiceResult.fail("Projeto não encontrado")
            project["calculations"] = self.store.select_calculations(user_id, project_id=project_id)
        except StoreError as e:
            logger.error("Erro ao carregar projeto %s: %s", project_id, e)
            return ServiceResult.fail(e.message)
        return ServiceResult.ok(data=project)

    def delete_project(self, user_id: Optional[int], project_id: str) -> ServiceResult:
        if user_id is None:
            return ServiceResult.fail("Usuário não autenticado")
        try:
            self.store.delete_project(user_id, project_id)
        except StoreError as e:
            logger.error("Erro ao excluir projeto %s: %s", project_id, e)
            return ServiceResult.fail(e.message)
        return ServiceResult.ok()
