import logging
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_
from app.models.inventory.product import Product

logger = logging.getLogger(__name__)

class ProductService:
    """Read-only product lookups used by purchase order line pickers"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_product_options(self, search: Optional[str] = None) -> List[Product]:
        query = select(Product).where(
            and_(
                Product.is_active == True,
                Product.is_deleted == False
            )
        )
        if search:
            query = query.where(
                or_(
                    Product.name.ilike(f"%{search}%"),
                    Product.sku.ilike(f"%{search}%")
                )
            )
        result = await self.session.execute(query.order_by(Product.name))
        return list(result.scalars().all())
