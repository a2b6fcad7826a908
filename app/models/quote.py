"""Quote and quote line item models."""

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from app.models.base import Base


class QuoteStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    VIEWED = "VIEWED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class QuoteItemKind(str, enum.Enum):
    PRODUCT = "PRODUCT"  # References a real inventory row, consumes stock on approval
    CUSTOM = "CUSTOM"  # Free-form line (labour, permits, transport), no stock


class Quote(Base):
    """Priced proposal sent to a customer."""

    __tablename__ = "quote"

    id = Column(String, primary_key=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)
    quote_number = Column(String, unique=True, nullable=False)
    project_request_id = Column(String, ForeignKey("project_request.id"), nullable=True, index=True)
    status = Column(
        Enum(QuoteStatus, values_callable=lambda enum_class: [e.value for e in enum_class]),
        nullable=False,
        default=QuoteStatus.DRAFT,
        index=True,
    )

    # Customer contact
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)

    title = Column(String, nullable=False)
    project_type = Column(String, nullable=True)
    capacity_kw = Column(Numeric(10, 2), nullable=True)

    # Pricing
    subtotal = Column(Numeric(14, 2), nullable=False, default=0)
    discount = Column(Numeric(14, 2), nullable=False, default=0)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=20)  # KDV percent
    tax = Column(Numeric(14, 2), nullable=False, default=0)
    total = Column(Numeric(14, 2), nullable=False, default=0)

    notes = Column(Text, nullable=True)
    terms = Column(Text, nullable=True)

    # Validity
    valid_until = Column(DateTime, nullable=True)

    # Tracking
    sent_at = Column(DateTime, nullable=True)
    viewed_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    approved_by_id = Column(String, ForeignKey("user.id"), nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    expired_at = Column(DateTime, nullable=True)

    created_by_id = Column(String, ForeignKey("user.id"), nullable=True)
    # Same clock as the expiry runner: naive UTC from the application
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, server_default=func.now())
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, server_default=func.now(), onupdate=datetime.utcnow
    )

    # Relationships
    items = relationship(
        "QuoteItem",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteItem.position",
        lazy="selectin",
    )


class QuoteItem(Base):
    """One quote line: either a real product or a custom entry."""

    __tablename__ = "quote_item"
    __table_args__ = (
        CheckConstraint(
            "(kind = 'PRODUCT' AND product_id IS NOT NULL) OR (kind = 'CUSTOM' AND product_id IS NULL)",
            name="kind_matches_product",
        ),
        CheckConstraint("quantity > 0", name="quantity_positive"),
    )

    id = Column(String, primary_key=True)
    quote_id = Column(String, ForeignKey("quote.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    kind = Column(
        Enum(QuoteItemKind, values_callable=lambda enum_class: [e.value for e in enum_class]),
        nullable=False,
    )
    product_id = Column(String, ForeignKey("product.id"), nullable=True, index=True)

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    line_total = Column(Numeric(14, 2), nullable=False, default=0)

    quote = relationship("Quote", back_populates="items")
