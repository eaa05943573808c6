"""Generic Async Repository.

Common CRUD operations on top of SQLAlchemy 2.0 async sessions. Domain
repositories subclass it and add their own queries.
"""

from typing import Any, Generic, Sequence, TypeVar

from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from juno.infra.database import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class GenericRepository(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """Generic async repository providing standard CRUD operations.

    Type Parameters:
        ModelType: The SQLAlchemy model class
        CreateSchemaType: Pydantic schema for creation
        UpdateSchemaType: Pydantic schema for updates

    Example:
        class TripRepository(GenericRepository[Trip, TripCreate, TripUpdate]):
            def __init__(self, session: AsyncSession):
                super().__init__(Trip, session)
    """

    def __init__(self, model: type[ModelType], session: AsyncSession) -> None:
        self._model = model
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Get the database session."""
        return self._session

    # ==================== CREATE Operations ====================

    async def create(self, data: CreateSchemaType | dict[str, Any]) -> ModelType:
        """Create a new record and flush it to obtain its id."""
        if isinstance(data, BaseModel):
            obj_data = data.model_dump(exclude_unset=True)
        else:
            obj_data = data

        db_obj = self._model(**obj_data)
        self._session.add(db_obj)
        await self._session.flush()
        await self._session.refresh(db_obj)
        return db_obj

    # ==================== READ Operations ====================

    async def find_one(self, *conditions: Any) -> ModelType | None:
        """Find a single record matching the conditions."""
        stmt = select(self._model).where(*conditions)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_many(
        self,
        *conditions: Any,
        skip: int = 0,
        limit: int = 100,
        order_by: Any | None = None,
    ) -> Sequence[ModelType]:
        """Find multiple records matching the conditions.

        Args:
            *conditions: SQLAlchemy filter conditions
            skip: Number of records to skip (offset)
            limit: Maximum number of records to return
            order_by: Column or list of columns for ordering

        Returns:
            Sequence of model instances
        """
        stmt = select(self._model)
        if conditions:
            stmt = stmt.where(*conditions)
        stmt = self._apply_ordering(stmt, order_by)
        stmt = stmt.offset(skip).limit(limit)

        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def count(self, *conditions: Any) -> int:
        """Count records matching the conditions."""
        stmt = select(func.count()).select_from(self._model)
        if conditions:
            stmt = stmt.where(*conditions)
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    # ==================== UPDATE Operations ====================

    async def update(
        self,
        db_obj: ModelType,
        data: UpdateSchemaType | dict[str, Any],
    ) -> ModelType:
        """Apply field updates to a loaded record and flush."""
        if isinstance(data, BaseModel):
            update_data = data.model_dump(exclude_unset=True)
        else:
            update_data = data

        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        await self._session.flush()
        await self._session.refresh(db_obj)
        return db_obj

    # ==================== Helper Methods ====================

    def _apply_ordering(
        self,
        stmt: Select[tuple[ModelType]],
        order_by: Any | None,
    ) -> Select[tuple[ModelType]]:
        """Apply ordering to the query."""
        if order_by is not None:
            if isinstance(order_by, (list, tuple)):
                stmt = stmt.order_by(*order_by)
            else:
                stmt = stmt.order_by(order_by)
        else:
            # Default ordering by created_at descending
            stmt = stmt.order_by(self._model.created_at.desc())
        return stmt
