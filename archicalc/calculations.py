import logging
from typing import Optional

from .errors import StoreError
from .schemas import ServiceResult
from .store import DataStore

logger = logging.getLogger(__name__)


class CalculationService:
    """Saved calculator runs — the remote history a signed-in user can share."""

    def __init__(self, store: DataStore):
        self.store = store

    def save_calculation(
        self,
        user_id: Optional[int],
        calculator_type: str,
        input_data: dict,
        result: dict,
        name: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> ServiceResult:
        if user_id is None:
            return ServiceResult.fail("Usuário não autenticado")
        try:
            row = self.store.insert_calculation(
                user_id=user_id,
                calculator_type=calculator_type,
                input_data=input_data,
                result=result,
                name=name,
                project_id=project_id,
            )
        except StoreError as e:
            logger.error("Erro ao salvar cálculo: %s", e)
            return ServiceResult.fail(e.message)
        return ServiceResult.ok(data=row)

    def list_calculations(
        self,
        user_id: Optional[int],
        limit: int = 100,
        project_id: Optional[str] = None,
    ) -> ServiceResult:
        if user_id is None:
            return ServiceResult.fail("Usuário não autenticado")
        try:
            rows = self.store.select_calculations(user_id, limit=limit, project_id=project_id)
            return ServiceResult.ok(data=rows)
        except StoreError as e:
            logger.error("Erro ao buscar cálculos: %s", e)
            return ServiceResult.fail(e.message)

    def get_calculation(self, user_id: Optional[int], calculation_id: str) -> ServiceResult:
        if user_id is None:
            return ServiceResult.fail("Usuário não autenticado")
        try:
            row = self.store.select_calculation(user_id, calculation_id)
        except StoreError as e:
            logger.error("Erro ao buscar cálculo %s: %s", calculation_id, e)
            return ServiceResult.fail(e.message)
        if row is None:
            return ServiceResult.fail("Cálculo não encontrado")
        return ServiceResult.ok(data=row)

    def delete_calculation(self, user_id: Optional[int], calculation_id: str) -> ServiceResult:
        if user_id is None:
            return ServiceResult.fail("Usuário não autenticado")
        try:
            self.store.delete_calculation(user_id, calculation_id)
        except StoreError as e:
            logger.error("Erro ao excluir cálculo %s: %s", calculation_id, e)
            return ServiceResult.fail(e.message)
        logger.info("Calculation %s deleted by user %s", calculation_id, user_id)
        return ServiceResult.ok()
