"""
Writer lookup service.
"""

from typing import List, Optional

import structlog

from .database import CatalogDatabase
from .models import Writer

logger = structlog.get_logger(__name__)


class WriterService:
    """Read access to writers, plus creation for maintenance tooling."""

    def __init__(self, database: CatalogDatabase):
        self.database = database

    async def get_writer_list(self) -> List[Writer]:
        return await self.database.list_writers()

    async def get_writer(self, writer_id: int) -> Optional[Writer]:
        return await self.database.get_writer(writer_id)

    async def add_writer(self, name: str) -> Writer:
        """
        Create a writer.

        Raises:
            ValueError: If the name is blank
        """
        name = name.strip()
        if not name:
            raise ValueError("Writer name cannot be blank")

        writer = await self.database.save_writer(Writer(name=name))
        logger.info("Writer added", writer_id=writer.id, name=writer.name)
        return writer
