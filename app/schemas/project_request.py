from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


ProjectRequestStatusType = Literal["OPEN", "CONTACTED", "ASSIGNED", "SITE_VISIT", "CONVERTED_TO_PROJECT", "LOST"]
ProjectTypeType = Literal[
    "RESIDENTIAL", "COMMERCIAL", "INDUSTRIAL", "AGRICULTURAL", "ROOFTOP", "LAND",
    "AGRISOLAR", "CARPARK", "ONGRID", "OFFGRID", "STORAGE", "HYBRID",
]
PriorityType = Literal["LOW", "MEDIUM", "HIGH"]
RequestSourceType = Literal[
    "WEBSITE", "PHONE", "EMAIL", "REFERRAL", "SOCIAL_MEDIA", "WALK_IN", "PARTNER_REFERRAL", "WHATSAPP", "OTHER",
]


class ProjectRequestCreate(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: EmailStr
    customer_phone: Optional[str] = None
    location: Optional[str] = None
    address: Optional[str] = None
    contact_preference: Optional[str] = None
    project_type: ProjectTypeType
    estimated_capacity_kw: Optional[Decimal] = Field(default=None, ge=0)
    estimated_budget: Optional[Decimal] = Field(default=None, ge=0)
    description: Optional[str] = None
    priority: PriorityType = "MEDIUM"
    source: RequestSourceType = "WEBSITE"
    assigned_engineer_id: Optional[str] = None
    scheduled_visit_date: Optional[datetime] = None
    tags: List[str] = []


class ProjectRequestUpdate(BaseModel):
    """Editable lead fields. Status is deliberately absent; use the status endpoint."""

    customer_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    location: Optional[str] = None
    address: Optional[str] = None
    contact_preference: Optional[str] = None
    project_type: Optional[ProjectTypeType] = None
    estimated_capacity_kw: Optional[Decimal] = Field(default=None, ge=0)
    estimated_budget: Optional[Decimal] = Field(default=None, ge=0)
    description: Optional[str] = None
    priority: Optional[PriorityType] = None
    source: Optional[RequestSourceType] = None
    assigned_engineer_id: Optional[str] = None
    scheduled_visit_date: Optional[datetime] = None
    tags: Optional[List[str]] = None


class StatusTransitionRequest(BaseModel):
    status: ProjectRequestStatusType
    note: Optional[str] = Field(default=None, max_length=2000)


class ProjectRequestNoteCreate(BaseModel):
    note: str = Field(..., max_length=5000)

    @field_validator("note")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Note is required and must be a non-empty string")
        return value.strip()


class StatusHistoryResponse(BaseModel):
    id: str
    status: ProjectRequestStatusType
    previous_status: Optional[ProjectRequestStatusType] = None
    timestamp: datetime
    user_id: Optional[str] = None
    user_name: str
    note: Optional[str] = None

    model_config = {"from_attributes": True}


class ProjectRequestResponse(BaseModel):
    id: str
    company_id: str
    request_number: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    location: Optional[str] = None
    address: Optional[str] = None
    contact_preference: Optional[str] = None
    project_type: ProjectTypeType
    estimated_capacity_kw: Optional[Decimal] = None
    estimated_budget: Optional[Decimal] = None
    description: Optional[str] = None
    status: ProjectRequestStatusType
    status_label: str
    priority: PriorityType
    source: RequestSourceType
    assigned_engineer_id: Optional[str] = None
    assigned_engineer_name: Optional[str] = None
    scheduled_visit_date: Optional[datetime] = None
    tags: List[str] = []
    notes: List[str] = []
    valid_transitions: List[ProjectRequestStatusType] = []
    status_history: List[StatusHistoryResponse] = []
    created_at: datetime
    updated_at: datetime


class ValidTransitionsResponse(BaseModel):
    status: ProjectRequestStatusType
    valid_transitions: List[ProjectRequestStatusType]
