from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, require_permission
from app.core.db import get_db
from app.core.rbac import Action, Resource
from app.models.user import User
from app.schemas.project_request import (
    PriorityType,
    ProjectRequestCreate,
    ProjectRequestNoteCreate,
    ProjectRequestResponse,
    ProjectRequestStatusType,
    ProjectRequestUpdate,
    ProjectTypeType,
    RequestSourceType,
    StatusTransitionRequest,
    ValidTransitionsResponse,
)
from app.services.project_request import ProjectRequestService
from app.services.project_request_workflow import get_valid_transitions

router = APIRouter()


async def _service(db: AsyncSession = Depends(get_db)) -> ProjectRequestService:
    return ProjectRequestService(db)


@router.get("/statuses/{current_status}/transitions", response_model=ValidTransitionsResponse)
async def list_valid_transitions(
    current_status: ProjectRequestStatusType,
    _: User = Depends(get_current_user),
) -> ValidTransitionsResponse:
    """Statuses the UI may offer from ``current_status``; the server enforces the same table."""
    return ValidTransitionsResponse(
        status=current_status,
        valid_transitions=[s.value for s in get_valid_transitions(current_status)],
    )


@router.get("", response_model=List[ProjectRequestResponse])
async def list_project_requests(
    search: Optional[str] = None,
    status_filter: Optional[ProjectRequestStatusType] = Query(default=None, alias="status"),
    project_type: Optional[ProjectTypeType] = None,
    priority: Optional[PriorityType] = None,
    source: Optional[RequestSourceType] = None,
    assigned_engineer_id: Optional[str] = None,
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(require_permission(Resource.PROJECT_REQUESTS, Action.VIEW)),
    service: ProjectRequestService = Depends(_service),
) -> List[ProjectRequestResponse]:
    requests = await service.list_requests(
        user.company_id,
        viewer=user,
        search=search,
        status=status_filter,
        project_type=project_type,
        priority=priority,
        source=source,
        assigned_engineer_id=assigned_engineer_id,
        created_from=created_from,
        created_to=created_to,
        limit=limit,
        offset=offset,
    )
    return [service.to_response(r) for r in requests]


@router.post("", response_model=ProjectRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_project_request(
    payload: ProjectRequestCreate,
    user: User = Depends(require_permission(Resource.PROJECT_REQUESTS, Action.CREATE)),
    service: ProjectRequestService = Depends(_service),
) -> ProjectRequestResponse:
    request = await service.create_request(user.company_id, payload, actor=user)
    return service.to_response(request)


@router.get("/{request_id}", response_model=ProjectRequestResponse)
async def get_project_request(
    request_id: str,
    user: User = Depends(require_permission(Resource.PROJECT_REQUESTS, Action.VIEW)),
    service: ProjectRequestService = Depends(_service),
) -> ProjectRequestResponse:
    return service.to_response(await service.get_request(user.company_id, request_id))


@router.patch("/{request_id}", response_model=ProjectRequestResponse)
async def update_project_request(
    request_id: str,
    payload: ProjectRequestUpdate,
    user: User = Depends(require_permission(Resource.PROJECT_REQUESTS, Action.UPDATE)),
    service: ProjectRequestService = Depends(_service),
) -> ProjectRequestResponse:
    return service.to_response(await service.update_request(user.company_id, request_id, payload))


@router.patch("/{request_id}/status", response_model=ProjectRequestResponse)
async def change_project_request_status(
    request_id: str,
    payload: StatusTransitionRequest,
    user: User = Depends(require_permission(Resource.PROJECT_REQUESTS, Action.UPDATE)),
    service: ProjectRequestService = Depends(_service),
) -> ProjectRequestResponse:
    """
    Move the request to ``payload.status``.

    400 with ``invalid_transition`` when the target is not reachable from
    the current status.
    """
    request = await service.transition_status(
        user.company_id, request_id, payload.status, actor=user, note=payload.note
    )
    return service.to_response(request)


@router.post("/{request_id}/notes", response_model=ProjectRequestResponse)
async def add_project_request_note(
    request_id: str,
    payload: ProjectRequestNoteCreate,
    user: User = Depends(require_permission(Resource.PROJECT_REQUESTS, Action.UPDATE)),
    service: ProjectRequestService = Depends(_service),
) -> ProjectRequestResponse:
    return service.to_response(await service.add_note(user.company_id, request_id, payload.note, actor=user))
