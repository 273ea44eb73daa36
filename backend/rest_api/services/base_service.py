"""
Base Service Classes.

Provides a generic CRUD service for the simple catalog-style entities
(users, tables, categories, products):

    Router (thin) → Service (business rules) → Model

Usage:
    from rest_api.services.base_service import BaseCRUDService

    class CategoryService(BaseCRUDService[Category, CategoryOutput]):
        def __init__(self, db: Session):
            super().__init__(db=db, model=Category, output_schema=CategoryOutput, entity_name="Category")

        def _validate_delete(self, entity: Category) -> None:
            ...

Writes commit through safe_commit(); subclasses add rules through the
_validate_* hooks and side effects through the _after_* hooks.
"""

from __future__ import annotations

from typing import Any, Generic, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from rest_api.models import Base
from rest_api.routers._common.pagination import Pagination
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import NotFoundError

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)
OutputT = TypeVar("OutputT", bound=BaseModel)


class BaseCRUDService(Generic[ModelT, OutputT]):
    """
    Base service for entities with CRUD operations and soft delete.

    Models are expected to carry AuditMixin (is_active, soft_delete()).
    """

    def __init__(
        self,
        db: Session,
        model: Type[ModelT],
        output_schema: Type[OutputT],
        entity_name: str,
    ):
        self._db = db
        self._model = model
        self._output_schema = output_schema
        self._entity_name = entity_name

    @property
    def db(self) -> Session:
        return self._db

    @property
    def entity_name(self) -> str:
        """Human-readable entity name for messages."""
        return self._entity_name

    # =========================================================================
    # Read Operations
    # =========================================================================

    def base_query(self, include_inactive: bool = False) -> Select:
        stmt = select(self._model)
        if not include_inactive:
            stmt = stmt.where(self._model.is_active.is_(True))
        return stmt

    def get_entity(self, entity_id: int, *, include_inactive: bool = False) -> ModelT:
        """
        Raises:
            NotFoundError: Unknown id, or soft-deleted without include_inactive.
        """
        entity = self._db.get(self._model, entity_id)
        if entity is None or (not include_inactive and not entity.is_active):
            raise NotFoundError(self._entity_name, entity_id)
        return entity

    def get_by_id(self, entity_id: int, *, include_inactive: bool = False) -> OutputT:
        return self.to_output(self.get_entity(entity_id, include_inactive=include_inactive))

    def list_page(self, pagination: Pagination, stmt: Select | None = None) -> tuple[list[OutputT], int]:
        """One page of entities as output DTOs, plus the total count."""
        entities, total = pagination.apply(self._db, stmt if stmt is not None else self.base_query())
        return [self.to_output(e) for e in entities], total

    def list_all(self, stmt: Select | None = None) -> list[OutputT]:
        entities = self._db.scalars(stmt if stmt is not None else self.base_query())
        return [self.to_output(e) for e in entities]

    # =========================================================================
    # Write Operations
    # =========================================================================

    def create(self, data: dict[str, Any]) -> OutputT:
        """
        Raises:
            ValidationError / ConflictError: From _validate_create.
        """
        self._validate_create(data)

        entity = self._model(**data)
        self._db.add(entity)
        safe_commit(self._db)
        self._db.refresh(entity)

        logger.info(f"{self._entity_name} created", entity_id=entity.id)
        self._after_create(entity)
        return self.to_output(entity)

    def update(self, entity_id: int, data: dict[str, Any]) -> OutputT:
        """
        Raises:
            NotFoundError: If entity not found.
        """
        entity = self.get_entity(entity_id)
        self._validate_update(entity, data)

        old_values = {k: getattr(entity, k) for k in data if hasattr(entity, k)}
        for field_name, value in data.items():
            if hasattr(entity, field_name):
                setattr(entity, field_name, value)

        safe_commit(self._db)
        self._db.refresh(entity)

        self._after_update(entity, old_values)
        return self.to_output(entity)

    def delete(self, entity_id: int) -> None:
        """Soft delete."""
        entity = self.get_entity(entity_id)
        self._validate_delete(entity)

        entity.soft_delete()
        safe_commit(self._db)
        logger.info(f"{self._entity_name} deleted", entity_id=entity_id)

    # =========================================================================
    # Transformation
    # =========================================================================

    def to_output(self, entity: ModelT) -> OutputT:
        """Override for custom transformation logic."""
        return self._output_schema.model_validate(entity)

    # =========================================================================
    # Hooks (override in subclasses)
    # =========================================================================

    def _validate_create(self, data: dict[str, Any]) -> None:
        pass

    def _validate_update(self, entity: ModelT, data: dict[str, Any]) -> None:
        pass

    def _validate_delete(self, entity: ModelT) -> None:
        pass

    def _after_create(self, entity: ModelT) -> None:
        pass

    def _after_update(self, entity: ModelT, old_values: dict[str, Any]) -> None:
        pass
