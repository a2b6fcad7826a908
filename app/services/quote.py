"""
Quote lifecycle and the approval engine.

Approval is the one place in the system that mutates inventory. It runs in
a single transaction:

1. re-read the quote with a row lock,
2. aggregate required quantities per product over PRODUCT line items,
3. lock the product rows in ascending id order,
4. decrement each with a guarded UPDATE (stock >= qty),
5. flip the quote to APPROVED and commit.

Any failure rolls back the whole unit, so either every decrement and the
status change land together or nothing does. PostgreSQL takes the row locks
via SELECT ... FOR UPDATE; on SQLite the engine opens every transaction with
BEGIN IMMEDIATE (see ``app.core.db``), which serializes writers instead.
"""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.exceptions import (
    InsufficientStock,
    InvalidQuoteState,
    ProductNotFound,
    ProjectRequestNotFound,
    QuoteAlreadyApproved,
    QuoteLocked,
    QuoteNotFound,
)
from app.models.product import Product
from app.models.project_request import ProjectRequest
from app.models.quote import Quote, QuoteItem, QuoteItemKind, QuoteStatus
from app.schemas.quote import ProductLineItem, QuoteCreate, QuoteLineItemCreate, QuoteUpdate
from app.services.event_dispatcher import EventType, emit_event

logger = logging.getLogger(__name__)
settings = get_settings()

CENT = Decimal("0.01")

# Statuses a customer can still act on; these are the ones that expire.
OPEN_STATUSES = (QuoteStatus.SENT, QuoteStatus.VIEWED)


def _money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_totals(
    items: Sequence[QuoteLineItemCreate],
    discount: Decimal,
    tax_rate: Decimal,
) -> Tuple[List[Decimal], Decimal, Decimal, Decimal]:
    """Return (line_totals, subtotal, tax, total).

    Tax is charged on the discounted subtotal; total = subtotal - discount + tax.
    """
    line_totals = [_money(item.quantity * item.unit_price) for item in items]
    subtotal = _money(sum(line_totals, Decimal("0")))
    discount = _money(min(discount, subtotal))
    tax = _money((subtotal - discount) * tax_rate / Decimal("100"))
    return line_totals, subtotal, tax, _money(subtotal - discount + tax)


def required_stock(items: Iterable[QuoteItem]) -> "OrderedDict[str, int]":
    """Units needed per product id, in ascending id order.

    CUSTOM lines carry no product and are ignored.
    """
    totals: Dict[str, int] = {}
    for item in items:
        if item.kind != QuoteItemKind.PRODUCT or not item.product_id:
            continue
        totals[item.product_id] = totals.get(item.product_id, 0) + int(item.quantity)
    return OrderedDict(sorted(totals.items()))


class QuoteService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _load(self, company_id: str, quote_id: str, for_update: bool = False) -> Quote:
        query = (
            select(Quote)
            .where(Quote.id == quote_id, Quote.company_id == company_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        quote = result.scalar_one_or_none()
        if not quote:
            raise QuoteNotFound(quote_id)
        return quote

    async def get_quote(self, company_id: str, quote_id: str) -> Quote:
        return await self._load(company_id, quote_id)

    async def list_quotes(
        self,
        company_id: str,
        status: Optional[str] = None,
        project_request_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Quote]:
        query = select(Quote).where(Quote.company_id == company_id)
        if status:
            query = query.where(Quote.status == QuoteStatus(status))
        if project_request_id:
            query = query.where(Quote.project_request_id == project_request_id)
        query = query.order_by(Quote.created_at.desc()).offset(offset).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Drafting
    # ------------------------------------------------------------------

    async def _next_quote_number(self, now: datetime) -> str:
        prefix = f"Q-{now:%Y%m%d}-"
        result = await self.db.execute(
            select(func.count()).select_from(Quote).where(Quote.quote_number.like(f"{prefix}%"))
        )
        sequence = (result.scalar() or 0) + 1
        return f"{prefix}{sequence:04d}"

    async def _check_products(self, company_id: str, items: Sequence[QuoteLineItemCreate]) -> None:
        product_ids = {item.product_id for item in items if isinstance(item, ProductLineItem)}
        if not product_ids:
            return
        result = await self.db.execute(
            select(Product.id).where(Product.id.in_(product_ids), Product.company_id == company_id)
        )
        found = set(result.scalars().all())
        missing = sorted(product_ids - found)
        if missing:
            raise ProductNotFound(missing[0])

    def _build_items(self, items: Sequence[QuoteLineItemCreate], line_totals: List[Decimal]) -> List[QuoteItem]:
        rows = []
        for position, (item, line_total) in enumerate(zip(items, line_totals)):
            rows.append(
                QuoteItem(
                    id=str(uuid.uuid4()),
                    position=position,
                    kind=QuoteItemKind(item.kind),
                    product_id=item.product_id if isinstance(item, ProductLineItem) else None,
                    name=item.name,
                    description=item.description,
                    quantity=item.quantity,
                    unit_price=_money(item.unit_price),
                    line_total=line_total,
                )
            )
        return rows

    async def create_quote(self, company_id: str, payload: QuoteCreate, actor_id: Optional[str] = None) -> Quote:
        if payload.project_request_id:
            request = await self.db.execute(
                select(ProjectRequest.id).where(
                    ProjectRequest.id == payload.project_request_id,
                    ProjectRequest.company_id == company_id,
                )
            )
            if request.scalar_one_or_none() is None:
                raise ProjectRequestNotFound(payload.project_request_id)
        await self._check_products(company_id, payload.items)

        now = datetime.utcnow()
        line_totals, subtotal, tax, total = calculate_totals(payload.items, payload.discount, payload.tax_rate)
        validity_days = payload.validity_days or settings.quote_validity_days

        quote = Quote(
            id=str(uuid.uuid4()),
            company_id=company_id,
            quote_number=await self._next_quote_number(now),
            project_request_id=payload.project_request_id,
            status=QuoteStatus.DRAFT,
            customer_name=payload.customer_name,
            customer_email=payload.customer_email,
            customer_phone=payload.customer_phone,
            title=payload.title,
            project_type=payload.project_type,
            capacity_kw=payload.capacity_kw,
            subtotal=subtotal,
            discount=_money(payload.discount),
            tax_rate=payload.tax_rate,
            tax=tax,
            total=total,
            notes=payload.notes,
            terms=payload.terms,
            valid_until=now + timedelta(days=validity_days),
            created_by_id=actor_id,
        )
        quote.items = self._build_items(payload.items, line_totals)
        self.db.add(quote)
        await self.db.commit()
        logger.info(f"Quote created: {quote.quote_number} ({quote.id}), total={total}")
        return await self._load(company_id, quote.id)

    async def update_quote(self, company_id: str, quote_id: str, payload: QuoteUpdate) -> Quote:
        """Edit a DRAFT quote. Items, when given, replace the existing lines wholesale."""
        quote = await self._load(company_id, quote_id, for_update=True)
        if quote.status != QuoteStatus.DRAFT:
            raise QuoteLocked(quote_id, quote.status.value)

        updates = payload.model_dump(exclude_unset=True, exclude={"items", "discount", "tax_rate"})
        for field, value in updates.items():
            if value is None and field in ("title", "customer_name"):
                continue
            setattr(quote, field, value)

        if payload.items is not None:
            await self._check_products(company_id, payload.items)
            pricing_items: Sequence = payload.items
        else:
            pricing_items = quote.items

        discount = payload.discount if payload.discount is not None else quote.discount
        tax_rate = payload.tax_rate if payload.tax_rate is not None else quote.tax_rate
        line_totals, subtotal, tax, total = calculate_totals(pricing_items, discount, tax_rate)

        if payload.items is not None:
            quote.items = self._build_items(payload.items, line_totals)
        quote.subtotal = subtotal
        quote.discount = _money(discount)
        quote.tax_rate = tax_rate
        quote.tax = tax
        quote.total = total

        await self.db.commit()
        return await self._load(company_id, quote_id)

    # ------------------------------------------------------------------
    # Customer-facing status changes
    # ------------------------------------------------------------------

    async def send_quote(self, company_id: str, quote_id: str) -> Quote:
        quote = await self._load(company_id, quote_id, for_update=True)
        if quote.status != QuoteStatus.DRAFT:
            raise InvalidQuoteState(quote_id, quote.status.value, "send")
        quote.status = QuoteStatus.SENT
        quote.sent_at = datetime.utcnow()
        await self.db.commit()
        logger.info(f"Quote sent: {quote.quote_number}")
        return await self._load(company_id, quote_id)

    async def mark_viewed(self, company_id: str, quote_id: str) -> Quote:
        quote = await self._load(company_id, quote_id, for_update=True)
        if quote.status == QuoteStatus.VIEWED:
            await self.db.rollback()
            return await self._load(company_id, quote_id)
        if quote.status != QuoteStatus.SENT:
            raise InvalidQuoteState(quote_id, quote.status.value, "view")
        quote.status = QuoteStatus.VIEWED
        quote.viewed_at = datetime.utcnow()
        await self.db.commit()
        return await self._load(company_id, quote_id)

    async def reject_quote(self, company_id: str, quote_id: str, reason: Optional[str] = None) -> Quote:
        quote = await self._load(company_id, quote_id, for_update=True)
        if quote.status in (QuoteStatus.APPROVED, QuoteStatus.REJECTED):
            raise InvalidQuoteState(quote_id, quote.status.value, "reject")
        quote.status = QuoteStatus.REJECTED
        quote.rejected_at = datetime.utcnow()
        quote.rejection_reason = reason
        await self.db.commit()
        logger.info(f"Quote rejected: {quote.quote_number}")

        await emit_event(
            EventType.QUOTE_REJECTED,
            {
                "quote_id": quote.id,
                "quote_number": quote.quote_number,
                "customer_name": quote.customer_name,
                "reason": reason,
            },
            company_id=company_id,
            target_user_id=quote.created_by_id,
        )
        return await self._load(company_id, quote_id)

    # ------------------------------------------------------------------
    # Approval
    # ------------------------------------------------------------------

    async def approve_quote(self, company_id: str, quote_id: str, actor_id: Optional[str] = None) -> Quote:
        """
        Approve a quote and consume inventory for its product lines.

        Raises:
            QuoteNotFound: no such quote for this company
            QuoteAlreadyApproved: the quote is already APPROVED
            InvalidQuoteState: the quote has expired
            InsufficientStock: some product cannot cover the required quantity
        """
        try:
            quote = await self._load(company_id, quote_id, for_update=True)
            if quote.status == QuoteStatus.APPROVED:
                raise QuoteAlreadyApproved(quote_id)
            if quote.status == QuoteStatus.EXPIRED:
                raise InvalidQuoteState(quote_id, quote.status.value, "approve")

            await self._consume_stock(required_stock(quote.items))

            quote.status = QuoteStatus.APPROVED
            quote.approved_at = datetime.utcnow()
            quote.approved_by_id = actor_id
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Quote approved: {quote.quote_number} ({quote.id}) by {actor_id or 'system'}"
        )
        await emit_event(
            EventType.QUOTE_APPROVED,
            {
                "quote_id": quote.id,
                "quote_number": quote.quote_number,
                "customer_name": quote.customer_name,
                "total": str(quote.total),
                "approved_by_id": actor_id,
            },
            company_id=company_id,
            target_user_id=quote.created_by_id,
        )
        return await self._load(company_id, quote_id)

    async def _consume_stock(self, required: "OrderedDict[str, int]") -> None:
        if not required:
            return

        result = await self.db.execute(
            select(Product.id, Product.name, Product.stock)
            .where(Product.id.in_(list(required)))
            .order_by(Product.id)
            .with_for_update()
        )
        locked = {row.id: row for row in result.all()}

        for product_id, quantity in required.items():
            product = locked.get(product_id)
            if product is None:
                logger.warning(f"Product {product_id} on quote no longer exists; skipping stock update")
                continue
            if product.stock < quantity:
                logger.warning(
                    f"Insufficient stock for {product.name}: available={product.stock}, required={quantity}"
                )
                raise InsufficientStock(product.name, product.stock, quantity)

            decremented = await self.db.execute(
                update(Product)
                .where(Product.id == product_id, Product.stock >= quantity)
                .values(stock=Product.stock - quantity, updated_at=func.now())
                .execution_options(synchronize_session=False)
            )
            if decremented.rowcount != 1:
                raise InsufficientStock(product.name, product.stock, quantity)

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    async def expire_quotes(self, now: Optional[datetime] = None) -> List[str]:
        """Move SENT/VIEWED quotes past valid_until to EXPIRED. Returns the ids changed."""
        now = now or datetime.utcnow()
        result = await self.db.execute(
            select(Quote.id, Quote.company_id).where(
                Quote.status.in_(OPEN_STATUSES),
                Quote.valid_until.is_not(None),
                Quote.valid_until < now,
            )
        )
        candidates = result.all()
        await self.db.rollback()
        logger.info(f"Found {len(candidates)} expired quotes to update")

        expired: List[str] = []
        for quote_id, company_id in candidates:
            try:
                quote = await self._load(company_id, quote_id, for_update=True)
                if quote.status not in OPEN_STATUSES:
                    await self.db.rollback()
                    continue
                quote.status = QuoteStatus.EXPIRED
                quote.expired_at = now
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                logger.exception(f"Failed to expire quote {quote_id}")
                continue

            expired.append(quote.id)
            await emit_event(
                EventType.QUOTE_EXPIRED,
                {"quote_id": quote.id, "quote_number": quote.quote_number},
                company_id=company_id,
                target_user_id=quote.created_by_id,
            )
        return expired

    async def find_expiring(self, now: Optional[datetime] = None, within_days: Optional[int] = None) -> List[Quote]:
        """Open quotes that expire within the warning window and were not touched in the last 24h."""
        now = now or datetime.utcnow()
        window = within_days if within_days is not None else settings.quote_expiry_warning_days
        result = await self.db.execute(
            select(Quote).where(
                Quote.status.in_(OPEN_STATUSES),
                Quote.valid_until >= now,
                Quote.valid_until <= now + timedelta(days=window),
                Quote.updated_at < now - timedelta(hours=24),
            )
        )
        return list(result.scalars().all())

    async def send_expiry_warnings(self, now: Optional[datetime] = None) -> List[str]:
        """Emit quote.expiring for each quote in the warning window. Returns the ids warned."""
        now = now or datetime.utcnow()
        quotes = await self.find_expiring(now)
        warnings = [
            (q.id, q.company_id, q.quote_number, q.created_by_id, q.valid_until) for q in quotes
        ]
        if not warnings:
            await self.db.rollback()
            return []

        # Touching updated_at keeps the next run from warning again within 24h
        await self.db.execute(
            update(Quote)
            .where(Quote.id.in_([w[0] for w in warnings]))
            .values(updated_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        logger.info(f"Sending expiry warnings for {len(warnings)} quotes")

        for quote_id, company_id, quote_number, created_by_id, valid_until in warnings:
            await emit_event(
                EventType.QUOTE_EXPIRING,
                {
                    "quote_id": quote_id,
                    "quote_number": quote_number,
                    "valid_until": valid_until.strftime("%d.%m.%Y"),
                },
                company_id=company_id,
                target_user_id=created_by_id,
            )
        return [w[0] for w in warnings]
