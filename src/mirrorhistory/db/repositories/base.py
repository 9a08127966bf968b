"""
Base repository with common CRUD operations.
"""

import uuid
from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from mirrorhistory.models.db import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Generic repository providing CRUD operations for one model."""

    def __init__(self, model: Type[ModelType], session: Session):
        self.model = model
        self.session = session

    def get(self, id: uuid.UUID) -> Optional[ModelType]:
        """
        Get a record by primary key.

        Args:
            id: Record UUID

        Returns:
            Model instance or None
        """
        return self.session.get(self.model, id)

    def create(self, **kwargs: Any) -> ModelType:
        """
        Create a new record.

        The record is flushed so generated ids are available; committing
        is left to the caller.

        Args:
            **kwargs: Column values

        Returns:
            Created model instance
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        self.session.flush()
        return instance

    def delete(self, id: uuid.UUID) -> bool:
        """
        Delete a record by primary key.

        Returns:
            True if a record was deleted, False if it did not exist
        """
        instance = self.get(id)
        if instance is None:
            return False
        self.session.delete(instance)
        self.session.flush()
        return True

    def count(self) -> int:
        """Count all records."""
        stmt = select(func.count()).select_from(self.model)
        return self.session.execute(stmt).scalar_one()
