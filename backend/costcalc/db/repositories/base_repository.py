"""
Base repository class with common CRUD operations.
Repositories keep records in an in-process store keyed by record id.
"""

from typing import Dict, Generic, TypeVar, Optional, List
from pydantic import BaseModel

ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """Base repository with common CRUD operations."""

    def __init__(self):
        self._records: Dict[str, ModelType] = {}

    async def create(self, instance: ModelType) -> ModelType:
        """
        Store a new record.

        Args:
            instance: Model instance carrying an ``id`` attribute

        Returns:
            Stored model instance
        """
        self._records[instance.id] = instance
        return instance

    async def get(self, id: str) -> Optional[ModelType]:
        """
        Get a record by ID.

        Args:
            id: Record ID

        Returns:
            Model instance or None
        """
        return self._records.get(id)

    async def list(
        self,
        skip: int = 0,
        limit: int = 100,
        **filters,
    ) -> List[ModelType]:
        """
        List records with pagination and filters.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return
            **filters: Attribute equality criteria

        Returns:
            List of model instances
        """
        records = [
            record
            for record in self._records.values()
            if all(getattr(record, key, None) == value for key, value in filters.items())
        ]
        return records[skip:skip + limit]

    async def count(self, **filters) -> int:
        """Count records matching the filters."""
        return len(await self.list(skip=0, limit=len(self._records), **filters))

    async def update(self, instance: ModelType) -> Optional[ModelType]:
        """
        Replace an existing record.

        Returns:
            Updated model instance or None when the id is unknown
        """
        if instance.id not in self._records:
            return None
        self._records[instance.id] = instance
        return instance

    async def delete(self, id: str) -> bool:
        """
        Delete a record.

        Args:
            id: Record ID

        Returns:
            True if deleted, False if not found
        """
        return self._records.pop(id, None) is not None
