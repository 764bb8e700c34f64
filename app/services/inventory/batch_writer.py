import logging
from abc import ABC, abstractmethod
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from app.models.inventory.product_batch import ProductBatch
from app.schemas.inventory.product_batch_schema import ProductBatchCreate

logger = logging.getLogger(__name__)

class BatchWriteError(Exception):
    """The inventory store rejected or failed to persist a batch"""
    pass

class InventoryBatchWriter(ABC):
    """System of record for received stock batches"""

    @abstractmethod
    async def create_batch(self, batch: ProductBatchCreate) -> int:
        """Persist one batch and return its id; raise BatchWriteError on failure"""
        pass

class SqlAlchemyBatchWriter(InventoryBatchWriter):
    """
    Writes batches into the caller's session so they commit or roll back
    together with the receipt that produced them.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_batch(self, batch: ProductBatchCreate) -> int:
        try:
            row = ProductBatch(**batch.model_dump())
            self.session.add(row)
            await self.session.flush()
            logger.info(
                f"Inventory batch {batch.batch_number} created for product {batch.product_id} "
                f"(qty {batch.quantity})"
            )
            return row.id
        except SQLAlchemyError as e:
            logger.error(f"Error writing inventory batch {batch.batch_number}: {str(e)}")
            raise BatchWriteError(str(e)) from e
