"""
Project repository for computed project snapshots.
"""

from typing import List

from costcalc.db.repositories.base_repository import BaseRepository
from costcalc.schemas.project import ProjectResponse


class ProjectRepository(BaseRepository[ProjectResponse]):
    """Repository for project operations."""

    def _in_currency(self, currency: str) -> List[ProjectResponse]:
        return [
            project
            for project in self._records.values()
            if project.project_settings.target_currency == currency.upper()
        ]

    async def list_by_currency(self, currency: str, skip: int = 0, limit: int = 100) -> List[ProjectResponse]:
        """List projects reported in a target currency."""
        return self._in_currency(currency)[skip:skip + limit]

    async def count_by_currency(self, currency: str) -> int:
        """Count projects reported in a target currency."""
        return len(self._in_currency(currency))
