from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ProductNotFound
from app.models.product import Product
from app.schemas.product import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = {"name", "unit", "unit_price", "stock", "is_active"}


class ProductService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_products(
        self,
        company_id: str,
        category: Optional[str] = None,
        search: Optional[str] = None,
        active_only: bool = False,
    ) -> List[Product]:
        query = select(Product).where(Product.company_id == company_id)
        if category:
            query = query.where(Product.category == category.upper())
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    Product.name.ilike(pattern),
                    Product.brand.ilike(pattern),
                    Product.model.ilike(pattern),
                )
            )
        if active_only:
            query = query.where(Product.is_active.is_(True))
        result = await self.db.execute(query.order_by(Product.name))
        return list(result.scalars().all())

    async def get_product(self, company_id: str, product_id: str) -> Product:
        result = await self.db.execute(
            select(Product).where(Product.id == product_id, Product.company_id == company_id)
        )
        product = result.scalar_one_or_none()
        if not product:
            raise ProductNotFound(product_id)
        return product

    async def create_product(self, company_id: str, payload: ProductCreate) -> Product:
        data = payload.model_dump()
        if data.get("category"):
            data["category"] = data["category"].upper()
        product = Product(id=str(uuid.uuid4()), company_id=company_id, **data)
        self.db.add(product)
        await self.db.commit()
        await self.db.refresh(product)
        logger.info(f"Product created: {product.id} ({product.name}), stock={product.stock}")
        return product

    async def update_product(self, company_id: str, product_id: str, payload: ProductUpdate) -> Product:
        product = await self.get_product(company_id, product_id)
        updates = payload.model_dump(exclude_unset=True)
        if updates.get("category"):
            updates["category"] = updates["category"].upper()
        for field, value in updates.items():
            if value is None and field in _REQUIRED_FIELDS:
                continue
            setattr(product, field, value)
        await self.db.commit()
        await self.db.refresh(product)
        return product
