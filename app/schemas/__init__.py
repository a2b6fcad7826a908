"""Pydantic schemas."""

from app.schemas.auth import AuthSessionResponse, UserLogin, UserResponse  # noqa: F401
from app.schemas.product import ProductCreate, ProductResponse, ProductUpdate  # noqa: F401
from app.schemas.quote import (  # noqa: F401
    CustomLineItem,
    ProductLineItem,
    QuoteApprovalResponse,
    QuoteCreate,
    QuoteReject,
    QuoteResponse,
    QuoteUpdate,
)
from app.schemas.project_request import (  # noqa: F401
    ProjectRequestCreate,
    ProjectRequestNoteCreate,
    ProjectRequestResponse,
    ProjectRequestUpdate,
    StatusTransitionRequest,
    ValidTransitionsResponse,
)
from app.schemas.user_notification import (  # noqa: F401
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
)
