from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_permission
from app.core.db import get_db
from app.core.rbac import Action, Resource
from app.models.user import User
from app.schemas.quote import (
    QuoteApprovalResponse,
    QuoteCreate,
    QuoteReject,
    QuoteResponse,
    QuoteStatusType,
    QuoteUpdate,
)
from app.services.quote import QuoteService

router = APIRouter()


async def _service(db: AsyncSession = Depends(get_db)) -> QuoteService:
    return QuoteService(db)


@router.get("", response_model=List[QuoteResponse])
async def list_quotes(
    status_filter: Optional[QuoteStatusType] = Query(default=None, alias="status"),
    project_request_id: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(require_permission(Resource.QUOTES, Action.VIEW)),
    service: QuoteService = Depends(_service),
) -> List[QuoteResponse]:
    quotes = await service.list_quotes(
        user.company_id,
        status=status_filter,
        project_request_id=project_request_id,
        limit=limit,
        offset=offset,
    )
    return [QuoteResponse.model_validate(q) for q in quotes]


@router.post("", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
async def create_quote(
    payload: QuoteCreate,
    user: User = Depends(require_permission(Resource.QUOTES, Action.CREATE)),
    service: QuoteService = Depends(_service),
) -> QuoteResponse:
    quote = await service.create_quote(user.company_id, payload, actor_id=user.id)
    return QuoteResponse.model_validate(quote)


@router.get("/{quote_id}", response_model=QuoteResponse)
async def get_quote(
    quote_id: str,
    user: User = Depends(require_permission(Resource.QUOTES, Action.VIEW)),
    service: QuoteService = Depends(_service),
) -> QuoteResponse:
    return QuoteResponse.model_validate(await service.get_quote(user.company_id, quote_id))


@router.patch("/{quote_id}", response_model=QuoteResponse)
async def update_quote(
    quote_id: str,
    payload: QuoteUpdate,
    user: User = Depends(require_permission(Resource.QUOTES, Action.UPDATE)),
    service: QuoteService = Depends(_service),
) -> QuoteResponse:
    return QuoteResponse.model_validate(await service.update_quote(user.company_id, quote_id, payload))


@router.post("/{quote_id}/send", response_model=QuoteResponse)
async def send_quote(
    quote_id: str,
    user: User = Depends(require_permission(Resource.QUOTES, Action.UPDATE)),
    service: QuoteService = Depends(_service),
) -> QuoteResponse:
    return QuoteResponse.model_validate(await service.send_quote(user.company_id, quote_id))


@router.post("/{quote_id}/view", response_model=QuoteResponse)
async def mark_quote_viewed(
    quote_id: str,
    user: User = Depends(require_permission(Resource.QUOTES, Action.UPDATE)),
    service: QuoteService = Depends(_service),
) -> QuoteResponse:
    return QuoteResponse.model_validate(await service.mark_viewed(user.company_id, quote_id))


@router.post("/{quote_id}/reject", response_model=QuoteResponse)
async def reject_quote(
    quote_id: str,
    payload: Optional[QuoteReject] = None,
    user: User = Depends(require_permission(Resource.QUOTES, Action.UPDATE)),
    service: QuoteService = Depends(_service),
) -> QuoteResponse:
    return QuoteResponse.model_validate(await service.reject_quote(user.company_id, quote_id, payload.reason if payload else None))


@router.post("/{quote_id}/approve", response_model=QuoteApprovalResponse)
async def approve_quote(
    quote_id: str,
    user: User = Depends(require_permission(Resource.QUOTES, Action.APPROVE)),
    service: QuoteService = Depends(_service),
) -> QuoteApprovalResponse:
    """
    Approve the quote and decrement stock for every product line, atomically.

    400 with ``insufficient_stock`` if any product cannot cover its quantity;
    400 with ``quote_already_approved`` on a second approval.
    """
    quote = await service.approve_quote(user.company_id, quote_id, actor_id=user.id)
    return QuoteApprovalResponse(quote=QuoteResponse.model_validate(quote))
