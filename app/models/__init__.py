"""SQLAlchemy models for the EnerjiOS backend."""

from app.models.company import Company  # noqa: F401
from app.models.user import User  # noqa: F401
from app.models.product import Product  # noqa: F401
from app.models.quote import Quote, QuoteItem, QuoteItemKind, QuoteStatus  # noqa: F401
from app.models.project_request import (  # noqa: F401
    Priority,
    ProjectRequest,
    ProjectRequestStatus,
    ProjectRequestStatusHistory,
    ProjectType,
    RequestSource,
)
from app.models.user_notification import UserNotification  # noqa: F401
