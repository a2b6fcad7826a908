from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_permission
from app.core.db import get_db
from app.core.rbac import Action, Resource
from app.models.user import User
from app.schemas.product import ProductCreate, ProductResponse, ProductUpdate
from app.services.product import ProductService

router = APIRouter()


async def _service(db: AsyncSession = Depends(get_db)) -> ProductService:
    return ProductService(db)


@router.get("", response_model=List[ProductResponse])
async def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    active_only: bool = False,
    user: User = Depends(require_permission(Resource.PRODUCTS, Action.VIEW)),
    service: ProductService = Depends(_service),
) -> List[ProductResponse]:
    products = await service.list_products(user.company_id, category=category, search=search, active_only=active_only)
    return [ProductResponse.model_validate(p) for p in products]


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    user: User = Depends(require_permission(Resource.PRODUCTS, Action.CREATE)),
    service: ProductService = Depends(_service),
) -> ProductResponse:
    return ProductResponse.model_validate(await service.create_product(user.company_id, payload))


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    user: User = Depends(require_permission(Resource.PRODUCTS, Action.VIEW)),
    service: ProductService = Depends(_service),
) -> ProductResponse:
    return ProductResponse.model_validate(await service.get_product(user.company_id, product_id))


@router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    payload: ProductUpdate,
    user: User = Depends(require_permission(Resource.PRODUCTS, Action.UPDATE)),
    service: ProductService = Depends(_service),
) -> ProductResponse:
    return ProductResponse.model_validate(await service.update_product(user.company_id, product_id, payload))
