"""Project request (inbound sales lead) and its status history."""

import enum

from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from app.models.base import Base


class ProjectRequestStatus(str, enum.Enum):
    OPEN = "OPEN"
    CONTACTED = "CONTACTED"
    ASSIGNED = "ASSIGNED"
    SITE_VISIT = "SITE_VISIT"
    CONVERTED_TO_PROJECT = "CONVERTED_TO_PROJECT"
    LOST = "LOST"


class ProjectType(str, enum.Enum):
    RESIDENTIAL = "RESIDENTIAL"
    COMMERCIAL = "COMMERCIAL"
    INDUSTRIAL = "INDUSTRIAL"
    AGRICULTURAL = "AGRICULTURAL"
    ROOFTOP = "ROOFTOP"
    LAND = "LAND"
    AGRISOLAR = "AGRISOLAR"
    CARPARK = "CARPARK"
    ONGRID = "ONGRID"
    OFFGRID = "OFFGRID"
    STORAGE = "STORAGE"
    HYBRID = "HYBRID"


class Priority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class RequestSource(str, enum.Enum):
    WEBSITE = "WEBSITE"
    PHONE = "PHONE"
    EMAIL = "EMAIL"
    REFERRAL = "REFERRAL"
    SOCIAL_MEDIA = "SOCIAL_MEDIA"
    WALK_IN = "WALK_IN"
    PARTNER_REFERRAL = "PARTNER_REFERRAL"
    WHATSAPP = "WHATSAPP"
    OTHER = "OTHER"


def _enum_values(enum_class):
    return [e.value for e in enum_class]


class ProjectRequest(Base):
    """Inbound lead, tracked until it becomes a project or is lost."""

    __tablename__ = "project_request"

    id = Column(String, primary_key=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)
    request_number = Column(String, unique=True, nullable=False, index=True)

    # Customer contact
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False, index=True)
    customer_phone = Column(String, nullable=True)
    location = Column(String, nullable=True)  # City / district
    address = Column(Text, nullable=True)
    contact_preference = Column(String, nullable=True)

    # Lead details
    project_type = Column(Enum(ProjectType, values_callable=_enum_values), nullable=False)
    estimated_capacity_kw = Column(Numeric(10, 2), nullable=True)
    estimated_budget = Column(Numeric(14, 2), nullable=True)
    description = Column(Text, nullable=True)
    status = Column(
        Enum(ProjectRequestStatus, values_callable=_enum_values),
        nullable=False,
        default=ProjectRequestStatus.OPEN,
        index=True,
    )
    priority = Column(Enum(Priority, values_callable=_enum_values), nullable=False, default=Priority.MEDIUM)
    source = Column(Enum(RequestSource, values_callable=_enum_values), nullable=False, default=RequestSource.WEBSITE)

    # Assignment
    assigned_engineer_id = Column(String, ForeignKey("user.id"), nullable=True, index=True)
    scheduled_visit_date = Column(DateTime, nullable=True)

    tags = Column(JSON, nullable=False, default=list)
    notes = Column(JSON, nullable=False, default=list)  # Append-only, "[ts] user: text"

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    assigned_engineer = relationship("User", foreign_keys=[assigned_engineer_id], lazy="selectin")
    status_history = relationship(
        "ProjectRequestStatusHistory",
        back_populates="project_request",
        order_by="ProjectRequestStatusHistory.timestamp",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ProjectRequestStatusHistory(Base):
    """Append-only audit row, one per status change."""

    __tablename__ = "project_request_status_history"

    id = Column(String, primary_key=True)
    project_request_id = Column(
        String, ForeignKey("project_request.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = Column(Enum(ProjectRequestStatus, values_callable=_enum_values), nullable=False)
    previous_status = Column(Enum(ProjectRequestStatus, values_callable=_enum_values), nullable=True)
    user_id = Column(String, nullable=True)  # NULL for system entries
    user_name = Column(String, nullable=False, default="System")
    note = Column(Text, nullable=True)
    timestamp = Column(DateTime, nullable=False, server_default=func.now(), index=True)

    project_request = relationship("ProjectRequest", back_populates="status_history")
