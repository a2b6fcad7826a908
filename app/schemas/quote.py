from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.quote import QuoteItemKind, QuoteStatus


QuoteStatusType = Literal["DRAFT", "SENT", "VIEWED", "APPROVED", "REJECTED", "EXPIRED"]


class _LineItemBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    quantity: Decimal = Field(..., gt=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)


class ProductLineItem(_LineItemBase):
    """Line tied to an inventory product; consumes stock when the quote is approved."""

    kind: Literal["PRODUCT"] = "PRODUCT"
    product_id: str

    @field_validator("quantity")
    @classmethod
    def whole_units(cls, value: Decimal) -> Decimal:
        if value != value.to_integral_value():
            raise ValueError("Product quantities must be whole units")
        return value


class CustomLineItem(_LineItemBase):
    """Free-form line (labour, permits, transport) with no inventory row."""

    kind: Literal["CUSTOM"] = "CUSTOM"


QuoteLineItemCreate = Annotated[Union[ProductLineItem, CustomLineItem], Field(discriminator="kind")]


class QuoteCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    project_request_id: Optional[str] = None
    customer_name: str = Field(..., min_length=1)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    project_type: Optional[str] = None
    capacity_kw: Optional[Decimal] = Field(default=None, ge=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    tax_rate: Decimal = Field(default=Decimal("20"), ge=0, le=100)  # KDV percent
    validity_days: Optional[int] = Field(default=None, ge=1, le=365)
    notes: Optional[str] = None
    terms: Optional[str] = None
    items: List[QuoteLineItemCreate] = Field(..., min_length=1)


class QuoteUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    customer_name: Optional[str] = None
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    project_type: Optional[str] = None
    capacity_kw: Optional[Decimal] = Field(default=None, ge=0)
    discount: Optional[Decimal] = Field(default=None, ge=0)
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    valid_until: Optional[datetime] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    items: Optional[List[QuoteLineItemCreate]] = Field(default=None, min_length=1)


class QuoteReject(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=2000)


class QuoteItemResponse(BaseModel):
    id: str
    position: int
    kind: QuoteItemKind
    product_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    quantity: Decimal
    unit_price: Decimal
    line_total: Decimal

    model_config = {"from_attributes": True}


class QuoteResponse(BaseModel):
    id: str
    company_id: str
    quote_number: str
    project_request_id: Optional[str] = None
    status: QuoteStatus
    title: str
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    project_type: Optional[str] = None
    capacity_kw: Optional[Decimal] = None
    subtotal: Decimal
    discount: Decimal
    tax_rate: Decimal
    tax: Decimal
    total: Decimal
    notes: Optional[str] = None
    terms: Optional[str] = None
    valid_until: Optional[datetime] = None
    sent_at: Optional[datetime] = None
    viewed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approved_by_id: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    expired_at: Optional[datetime] = None
    created_by_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: List[QuoteItemResponse] = []

    model_config = {"from_attributes": True}


class QuoteApprovalResponse(BaseModel):
    message: str = "Quote approved successfully and stock updated"
    quote: QuoteResponse
