from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import case, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidTransition, ProjectRequestNotFound, ValidationFailed
from app.core.rbac import SystemRole
from app.models.project_request import (
    Priority,
    ProjectRequest,
    ProjectRequestStatus,
    ProjectRequestStatusHistory,
    ProjectType,
    RequestSource,
)
from app.models.user import User
from app.schemas.project_request import (
    ProjectRequestCreate,
    ProjectRequestResponse,
    ProjectRequestUpdate,
    StatusHistoryResponse,
)
from app.services.event_dispatcher import EventType, emit_event
from app.services.project_request_workflow import (
    CREATED_NOTE,
    INITIAL_STATUS,
    can_transition,
    default_transition_note,
    get_valid_transitions,
    status_label,
)

logger = logging.getLogger(__name__)

SYSTEM_USER_NAME = "System"

_PRIORITY_RANK = case(
    (ProjectRequest.priority == Priority.HIGH, 3),
    (ProjectRequest.priority == Priority.MEDIUM, 2),
    else_=1,
)


def _actor_name(actor: Optional[User]) -> str:
    if actor is None:
        return SYSTEM_USER_NAME
    return actor.full_name or actor.email


class ProjectRequestService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_request(self, company_id: str, request_id: str) -> ProjectRequest:
        result = await self.db.execute(
            select(ProjectRequest)
            .where(ProjectRequest.id == request_id, ProjectRequest.company_id == company_id)
            .execution_options(populate_existing=True)
        )
        request = result.scalar_one_or_none()
        if not request:
            raise ProjectRequestNotFound(request_id)
        return request

    async def list_requests(
        self,
        company_id: str,
        viewer: Optional[User] = None,
        search: Optional[str] = None,
        status: Optional[str] = None,
        project_type: Optional[str] = None,
        priority: Optional[str] = None,
        source: Optional[str] = None,
        assigned_engineer_id: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ProjectRequest]:
        query = select(ProjectRequest).where(ProjectRequest.company_id == company_id)

        # Company staff see their own leads plus the unassigned pool
        if viewer is not None and viewer.role == SystemRole.COMPANY.value:
            query = query.where(
                or_(
                    ProjectRequest.assigned_engineer_id == viewer.id,
                    ProjectRequest.assigned_engineer_id.is_(None),
                )
            )

        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(
                    ProjectRequest.customer_name.ilike(pattern),
                    ProjectRequest.customer_email.ilike(pattern),
                    ProjectRequest.location.ilike(pattern),
                    ProjectRequest.description.ilike(pattern),
                )
            )
        if status:
            query = query.where(ProjectRequest.status == ProjectRequestStatus(status))
        if project_type:
            query = query.where(ProjectRequest.project_type == ProjectType(project_type))
        if priority:
            query = query.where(ProjectRequest.priority == Priority(priority))
        if source:
            query = query.where(ProjectRequest.source == RequestSource(source))
        if assigned_engineer_id:
            query = query.where(ProjectRequest.assigned_engineer_id == assigned_engineer_id)
        if created_from:
            query = query.where(ProjectRequest.created_at >= created_from)
        if created_to:
            query = query.where(ProjectRequest.created_at <= created_to)

        query = (
            query.order_by(_PRIORITY_RANK.desc(), ProjectRequest.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create_request(
        self,
        company_id: str,
        payload: ProjectRequestCreate,
        actor: Optional[User] = None,
    ) -> ProjectRequest:
        await self._check_engineer(company_id, payload.assigned_engineer_id)

        request_id = str(uuid.uuid4())
        now = datetime.utcnow()
        request = ProjectRequest(
            id=request_id,
            company_id=company_id,
            request_number=f"PR-{now.year}-{request_id.replace('-', '')[-6:].upper()}",
            customer_name=payload.customer_name.strip(),
            customer_email=payload.customer_email.lower(),
            customer_phone=payload.customer_phone,
            location=payload.location,
            address=payload.address,
            contact_preference=payload.contact_preference,
            project_type=ProjectType(payload.project_type),
            estimated_capacity_kw=payload.estimated_capacity_kw,
            estimated_budget=payload.estimated_budget,
            description=payload.description,
            status=INITIAL_STATUS,
            priority=Priority(payload.priority),
            source=RequestSource(payload.source),
            assigned_engineer_id=payload.assigned_engineer_id,
            scheduled_visit_date=payload.scheduled_visit_date,
            tags=list(payload.tags),
            notes=[],
        )
        request.status_history = [
            ProjectRequestStatusHistory(
                id=str(uuid.uuid4()),
                status=INITIAL_STATUS,
                previous_status=None,
                user_id=actor.id if actor else None,
                user_name=_actor_name(actor),
                note=CREATED_NOTE,
                timestamp=now,
            )
        ]
        self.db.add(request)
        await self.db.commit()
        logger.info(f"Project request created: {request.request_number} ({request_id})")
        return await self.get_request(company_id, request_id)

    async def update_request(
        self,
        company_id: str,
        request_id: str,
        payload: ProjectRequestUpdate,
    ) -> ProjectRequest:
        request = await self.get_request(company_id, request_id)
        updates = payload.model_dump(exclude_unset=True)

        if "assigned_engineer_id" in updates:
            await self._check_engineer(company_id, updates["assigned_engineer_id"])

        enum_fields = {"project_type": ProjectType, "priority": Priority, "source": RequestSource}
        required = {"customer_name", "customer_email", "project_type", "priority", "source", "tags"}
        for field, value in updates.items():
            if value is None and field in required:
                continue
            if field in enum_fields and value is not None:
                value = enum_fields[field](value)
            if field == "customer_email" and value is not None:
                value = value.lower()
            setattr(request, field, value)

        await self.db.commit()
        return await self.get_request(company_id, request_id)

    async def add_note(self, company_id: str, request_id: str, note: str, actor: Optional[User] = None) -> ProjectRequest:
        """Append a timestamped note. Existing notes are never rewritten."""
        if not note or not note.strip():
            raise ValidationFailed("Note is required and must be a non-empty string")

        request = await self.get_request(company_id, request_id)
        entry = f"[{datetime.utcnow().isoformat()}] {_actor_name(actor)}: {note.strip()}"
        # Reassign so the JSON column registers the change
        request.notes = list(request.notes or []) + [entry]
        await self.db.commit()
        return await self.get_request(company_id, request_id)

    async def transition_status(
        self,
        company_id: str,
        request_id: str,
        target: ProjectRequestStatus | str,
        actor: Optional[User] = None,
        note: Optional[str] = None,
    ) -> ProjectRequest:
        """
        Move a project request to ``target`` and record the change in its history.

        Raises:
            ProjectRequestNotFound: no such request for this company
            InvalidTransition: ``target`` is not reachable from the current status
        """
        target = ProjectRequestStatus(target)
        request = await self.get_request(company_id, request_id)
        current = request.status

        if not can_transition(current, target):
            logger.warning(
                f"Rejected status change for {request.request_number}: {current.value} -> {target.value}"
            )
            raise InvalidTransition(current.value, target.value)

        request.status = target
        request.status_history.append(
            ProjectRequestStatusHistory(
                id=str(uuid.uuid4()),
                status=target,
                previous_status=current,
                user_id=actor.id if actor else None,
                user_name=_actor_name(actor),
                note=default_transition_note(target, note),
                timestamp=datetime.utcnow(),
            )
        )
        await self.db.commit()
        logger.info(f"Project request {request.request_number} moved {current.value} -> {target.value}")

        await emit_event(
            EventType.PROJECT_REQUEST_STATUS_CHANGED,
            {
                "project_request_id": request.id,
                "request_number": request.request_number,
                "customer_name": request.customer_name,
                "previous_status": current.value,
                "status": target.value,
            },
            company_id=company_id,
            target_user_id=request.assigned_engineer_id,
        )
        return await self.get_request(company_id, request_id)

    async def _check_engineer(self, company_id: str, engineer_id: Optional[str]) -> None:
        if not engineer_id:
            return
        result = await self.db.execute(
            select(User.id).where(User.id == engineer_id, User.company_id == company_id)
        )
        if result.scalar_one_or_none() is None:
            raise ValidationFailed("Assigned engineer not found", {"assigned_engineer_id": engineer_id})

    @staticmethod
    def to_response(request: ProjectRequest) -> ProjectRequestResponse:
        history = sorted(request.status_history, key=lambda h: h.timestamp, reverse=True)
        engineer = request.assigned_engineer
        return ProjectRequestResponse(
            id=request.id,
            company_id=request.company_id,
            request_number=request.request_number,
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            customer_phone=request.customer_phone,
            location=request.location,
            address=request.address,
            contact_preference=request.contact_preference,
            project_type=request.project_type.value,
            estimated_capacity_kw=request.estimated_capacity_kw,
            estimated_budget=request.estimated_budget,
            description=request.description,
            status=request.status.value,
            status_label=status_label(request.status),
            priority=request.priority.value,
            source=request.source.value,
            assigned_engineer_id=request.assigned_engineer_id,
            assigned_engineer_name=engineer.full_name if engineer else None,
            scheduled_visit_date=request.scheduled_visit_date,
            tags=list(request.tags or []),
            notes=list(request.notes or []),
            valid_transitions=[s.value for s in get_valid_transitions(request.status)],
            status_history=[
                StatusHistoryResponse(
                    id=h.id,
                    status=h.status.value,
                    previous_status=h.previous_status.value if h.previous_status else None,
                    timestamp=h.timestamp,
                    user_id=h.user_id,
                    user_name=h.user_name,
                    note=h.note,
                )
                for h in history
            ],
            created_at=request.created_at,
            updated_at=request.updated_at,
        )
