"""
Data store gateway — tables and procedures the sync layers talk to.

Every public method is one independent call: its own session, its own
transaction, committed or rolled back before returning. Nothing spans two
calls. Row-level policy lives here: user-scoped reads and writes always
filter by user_id, so a caller can never touch another user's rows.

Rows come back as plain dicts. Any SQLAlchemy failure or policy rejection
surfaces as StoreError.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from . import models
from .database import SessionLocal
from .errors import StoreError

logger = logging.getLogger(__name__)

# Columns of user_settings a client may write (user_id and updated_at are managed here)
SETTINGS_COLUMNS = (
    "theme",
    "email_notifications",
    "default_margin",
    "auto_save_calculations",
    "decimal_places",
    "bdi_percent",
    "social_charges_percent",
    "technical_hour_rate",
    "material_waste_percent",
    "language",
    "unit_preference",
)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _price_to_dict(row: models.MaterialPrice) -> dict:
    return {
        "material_key": row.material_key,
        "composition_index": row.composition_index,
        "composition_name": row.composition_name,
        "unit": row.unit,
        "unit_price": row.unit_price,
        "user_id": row.user_id,
    }


def _settings_to_dict(row: models.UserSettings) -> dict:
    data = {column: getattr(row, column) for column in SETTINGS_COLUMNS}
    data["user_id"] = row.user_id
    data["updated_at"] = _iso(row.updated_at)
    return data


def _calculation_to_dict(row: models.Calculation) -> dict:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "calculator_type": row.calculator_type,
        "project_id": row.project_id,
        "name": row.name,
        "input_data": row.input_data or {},
        "result": row.result or {},
        "created_at": _iso(row.created_at),
    }


def _project_to_dict(row: models.Project, calculations_count: int = 0) -> dict:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "name": row.name,
        "client_name": row.client_name,
        "address": row.address,
        "status": row.status,
        "calculations_count": calculations_count,
        "created_at": _iso(row.created_at),
        "updated_at": _iso(row.updated_at),
    }


def _share_to_dict(row: models.SharedCalculation) -> dict:
    return {
        "id": row.id,
        "calculation_id": row.calculation_id,
        "user_id": row.user_id,
        "share_token": row.share_token,
        "expires_at": _iso(row.expires_at),
        "is_active": row.is_active,
        "view_count": row.view_count,
        "created_at": _iso(row.created_at),
    }


class DataStore:
    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    @contextmanager
    def _transaction(self, operation: str):
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except StoreError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Store call %s failed: %s", operation, e)
            raise StoreError(str(e), operation) from e
        finally:
            db.close()

    # --- material_prices ---

    def select_material_prices(self, user_id: int) -> List[dict]:
        with self._transaction("select material_prices") as db:
            rows = db.query(models.MaterialPrice).filter(
                models.MaterialPrice.user_id == user_id,
            ).all()
            return [_price_to_dict(r) for r in rows]

    def upsert_material_price(
        self,
        user_id: int,
        material_key: str,
        composition_index: int,
        composition_name: str,
        unit: str,
        unit_price: float,
    ) -> dict:
        """Insert or update on (material_key, composition_index, user_id). Last write wins."""
        with self._transaction("upsert material_prices") as db:
            row = db.query(models.MaterialPrice).filter(
                models.MaterialPrice.material_key == material_key,
                models.MaterialPrice.composition_index == composition_index,
                models.MaterialPrice.user_id == user_id,
            ).first()
            if row is None:
                row = models.MaterialPrice(
                    material_key=material_key,
                    composition_index=composition_index,
                    user_id=user_id,
                )
                db.add(row)
            row.composition_name = composition_name
            row.unit = unit
            row.unit_price = unit_price
            db.flush()
            return _price_to_dict(row)

    def delete_material_prices(self, user_id: int) -> int:
        """Bulk delete of every override the user owns, in a single statement."""
        with self._transaction("delete material_prices") as db:
            return db.query(models.MaterialPrice).filter(
                models.MaterialPrice.user_id == user_id,
            ).delete(synchronize_session=False)

    # --- user_settings ---

    def select_user_settings(self, user_id: int) -> Optional[dict]:
        with self._transaction("select user_settings") as db:
            row = db.query(models.UserSettings).filter(
                models.UserSettings.user_id == user_id,
            ).first()
            return _settings_to_dict(row) if row else None

    def upsert_user_settings(self, user_id: int, changes: dict) -> dict:
        """Write only the given columns plus a server timestamp."""
        unknown = set(changes) - set(SETTINGS_COLUMNS)
        if unknown:
            raise StoreError(f"unknown columns: {sorted(unknown)}", "upsert user_settings")

        with self._transaction("upsert user_settings") as db:
            row = db.query(models.UserSettings).filter(
                models.UserSettings.user_id == user_id,
            ).first()
            if row is None:
                row = models.UserSettings(user_id=user_id)
                db.add(row)
            for column, value in changes.items():
                setattr(row, column, value)
            row.updated_at = datetime.utcnow()
            db.flush()
            return _settings_to_dict(row)

    # --- projects ---

    def insert_project(
        self,
        user_id: int,
        name: str,
        client_name: Optional[str] = None,
        address: Optional[str] = None,
        status: str = "active",
    ) -> dict:
        with self._transaction("insert projects") as db:
            row = models.Project(
                user_id=user_id,
                name=name,
                client_name=client_name,
                address=address,
                status=status,
            )
            db.add(row)
            db.flush()
            return _project_to_dict(row, calculations_count=0)

    def select_projects(self, user_id: int, status: Optional[str] = None) -> List[dict]:
        """The user's projects, newest first, each with its saved-calculation count."""
        with self._transaction("select projects") as db:
            query = db.query(models.Project).filter(models.Project.user_id == user_id)
            if status is not None:
                query = query.filter(models.Project.status == status)
            rows = query.order_by(models.Project.created_at.desc()).all()

            counts = dict(
                db.query(models.Calculation.project_id, func.count(models.Calculation.id)).filter(
                    models.Calculation.user_id == user_id,
                    models.Calculation.project_id.isnot(None),
                ).group_by(models.Calculation.project_id).all()
            )
            return [_project_to_dict(r, calculations_count=counts.get(r.id, 0)) for r in rows]

    def select_project(self, user_id: int, project_id: str) -> Optional[dict]:
        with self._transaction("select projects") as db:
            row = db.query(models.Project).filter(
                models.Project.id == project_id,
                models.Project.user_id == user_id,
            ).first()
            if row is None:
                return None
            count = db.query(models.Calculation).filter(
                models.Calculation.project_id == row.id,
            ).count()
            return _project_to_dict(row, calculations_count=count)

    def delete_project(self, user_id: int, project_id: str) -> None:
        """Hard delete. Calculations in the project are kept and become unassigned."""
        with self._transaction("delete projects") as db:
            row = db.query(models.Project).filter(
                models.Project.id == project_id,
                models.Project.user_id == user_id,
            ).first()
            if row is None:
                raise StoreError("project not found", "delete projects")
            db.query(models.Calculation).filter(
                models.Calculation.project_id == project_id,
            ).update({models.Calculation.project_id: None}, synchronize_session=False)
            db.delete(row)

    # --- calculations ---

    def insert_calculation(
        self,
        user_id: int,
        calculator_type: str,
        input_data: dict,
        result: dict,
        name: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> dict:
        with self._transaction("insert calculations") as db:
            if project_id is not None:
                owned = db.query(models.Project.id).filter(
                    models.Project.id == project_id,
                    models.Project.user_id == user_id,
                ).first()
                if owned is None:
                    raise StoreError("project not found", "insert calculations")
            row = models.Calculation(
                user_id=user_id,
                project_id=project_id,
                calculator_type=calculator_type,
                input_data=input_data,
                result=result,
                name=name,
            )
            db.add(row)
            db.flush()
            return _calculation_to_dict(row)

    def select_calculations(
        self,
        user_id: int,
        limit: int = 100,
        project_id: Optional[str] = None,
    ) -> List[dict]:
        with self._transaction("select calculations") as db:
            query = db.query(models.Calculation).filter(models.Calculation.user_id == user_id)
            if project_id is not None:
                query = query.filter(models.Calculation.project_id == project_id)
            rows = query.order_by(models.Calculation.created_at.desc()).limit(limit).all()
            return [_calculation_to_dict(r) for r in rows]

    def delete_calculation(self, user_id: int, calculation_id: str) -> None:
        """Hard delete, share links included."""
        with self._transaction("delete calculations") as db:
            row = db.query(models.Calculation).filter(
                models.Calculation.id == calculation_id,
                models.Calculation.user_id == user_id,
            ).first()
            if row is None:
                raise StoreError("calculation not found", "delete calculations")
            db.delete(row)

    def select_calculation(self, user_id: int, calculation_id: str) -> Optional[dict]:
        with self._transaction("select calculations") as db:
            row = db.query(models.Calculation).filter(
                models.Calculation.id == calculation_id,
                models.Calculation.user_id == user_id,
            ).first()
            return _calculation_to_dict(row) if row else None

    # --- shared_calculations ---

    def insert_shared_calculation(
        self,
        user_id: int,
        calculation_id: str,
        expires_at: Optional[datetime] = None,
    ) -> dict:
        """Create a share row. The token is generated here, never by the caller."""
        with self._transaction("insert shared_calculations") as db:
            calculation = db.query(models.Calculation).filter(
                models.Calculation.id == calculation_id,
                models.Calculation.user_id == user_id,
            ).first()
            if calculation is None:
                raise StoreError("calculation not found", "insert shared_calculations")

            row = models.SharedCalculation(
                calculation_id=calculation_id,
                user_id=user_id,
                expires_at=expires_at,
            )
            db.add(row)
            db.flush()
            return _share_to_dict(row)

    def select_shared_calculations(self, user_id: int) -> List[dict]:
        """Active shares owned by the user, joined with calculation metadata, newest first."""
        with self._transaction("select shared_calculations") as db:
            rows = db.query(models.SharedCalculation, models.Calculation).join(
                models.Calculation,
                models.SharedCalculation.calculation_id == models.Calculation.id,
            ).filter(
                models.SharedCalculation.user_id == user_id,
                models.SharedCalculation.is_active.is_(True),
            ).order_by(models.SharedCalculation.created_at.desc()).all()

            results = []
            for share, calculation in rows:
                data = _share_to_dict(share)
                data["calculation"] = {
                    "name": calculation.name,
                    "calculator_type": calculation.calculator_type,
                    "created_at": _iso(calculation.created_at),
                }
                results.append(data)
            return results

    def deactivate_shared_calculation(self, share_id: str, user_id: int) -> dict:
        """Soft delete. Rows owned by someone else are rejected as not found."""
        with self._transaction("update shared_calculations") as db:
            row = db.query(models.SharedCalculation).filter(
                models.SharedCalculation.id == share_id,
                models.SharedCalculation.user_id == user_id,
            ).first()
            if row is None:
                raise StoreError("share not found", "update shared_calculations")
            row.is_active = False
            db.flush()
            return _share_to_dict(row)

    # --- procedures ---

    def get_shared_calculation(self, token: str) -> dict:
        """Resolve a token to its calculation snapshot. Inactive or expired tokens are rejected."""
        with self._transaction("rpc get_shared_calculation") as db:
            found = db.query(models.SharedCalculation, models.Calculation).join(
                models.Calculation,
                models.SharedCalculation.calculation_id == models.Calculation.id,
            ).filter(
                models.SharedCalculation.share_token == token,
            ).first()
            if found is None:
                raise StoreError("share token not found", "rpc get_shared_calculation")

            share, calculation = found
            if not share.is_active:
                raise StoreError("share link is no longer active", "rpc get_shared_calculation")
            if share.expires_at is not None and share.expires_at <= datetime.utcnow():
                raise StoreError("share link has expired", "rpc get_shared_calculation")

            return {
                "calculation_id": calculation.id,
                "calculator_type": calculation.calculator_type,
                "name": calculation.name,
                "input_data": calculation.input_data or {},
                "result": calculation.result or {},
                "created_at": _iso(calculation.created_at),
                "share_expires_at": _iso(share.expires_at),
                "is_active": share.is_active,
            }

    def increment_share_view_count(self, token: str) -> None:
        with self._transaction("rpc increment_share_view_count") as db:
            db.query(models.SharedCalculation).filter(
                models.SharedCalculation.share_token == token,
            ).update(
                {models.SharedCalculation.view_count: models.SharedCalculation.view_count + 1},
                synchronize_session=False,
            )
