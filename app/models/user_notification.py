from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, func

from app.models.base import Base


class UserNotification(Base):
    """In-app notifications (quote approved/expired, system alerts)."""

    __tablename__ = "user_notification"

    id = Column(String, primary_key=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("user.id"), nullable=True, index=True)  # NULL = all users in company

    type = Column(String, nullable=False, index=True)  # quote, project_request, system
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String, nullable=True)

    # Related entity
    entity_type = Column(String, nullable=True)  # quote, project_request, product
    entity_id = Column(String, nullable=True)

    read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime, nullable=True)
    priority = Column(String, nullable=False, default="normal")  # low, normal, high, urgent

    created_at = Column(DateTime, nullable=False, server_default=func.now())
