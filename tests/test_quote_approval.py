import asyncio
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import update

from app.core.db import AsyncSessionFactory
from app.core.exceptions import InsufficientStock, InvalidQuoteState, QuoteAlreadyApproved, QuoteNotFound
from app.models.quote import Quote, QuoteItemKind, QuoteStatus
from app.schemas.quote import QuoteCreate
from app.services.event_dispatcher import EventType, subscribe
from app.services.quote import QuoteService, calculate_totals, required_stock
from tests.conftest import stock_of


async def create_quote(company_id: str, items: list, actor_id: str = None, **fields) -> str:
    payload = QuoteCreate(title="10 kW çatı GES", customer_name="Hasan Demir", items=items, **fields)
    async with AsyncSessionFactory() as session:
        quote = await QuoteService(session).create_quote(company_id, payload, actor_id=actor_id)
        return quote.id


def product_line(product, quantity, unit_price="1000"):
    return {"kind": "PRODUCT", "product_id": product.id, "name": product.name, "quantity": quantity, "unit_price": unit_price}


def custom_line(name, quantity, unit_price):
    return {"kind": "CUSTOM", "name": name, "quantity": quantity, "unit_price": unit_price}


async def approve_in_own_session(company_id: str, quote_id: str):
    async with AsyncSessionFactory() as session:
        return await QuoteService(session).approve_quote(company_id, quote_id)


def test_calculate_totals_applies_discount_before_tax():
    items = [
        SimpleNamespace(quantity=Decimal("2"), unit_price=Decimal("1500")),
        SimpleNamespace(quantity=Decimal("1"), unit_price=Decimal("999.99")),
    ]

    line_totals, subtotal, tax, total = calculate_totals(items, Decimal("499.99"), Decimal("20"))

    assert line_totals == [Decimal("3000.00"), Decimal("999.99")]
    assert subtotal == Decimal("3999.99")
    assert tax == Decimal("700.00")
    assert total == Decimal("4200.00")


def test_calculate_totals_caps_discount_at_subtotal():
    items = [SimpleNamespace(quantity=Decimal("1"), unit_price=Decimal("100"))]

    _, subtotal, tax, total = calculate_totals(items, Decimal("250"), Decimal("20"))

    assert subtotal == Decimal("100.00")
    assert tax == Decimal("0.00")
    assert total == Decimal("0.00")


def test_required_stock_sums_per_product_and_skips_custom_lines():
    items = [
        SimpleNamespace(kind=QuoteItemKind.PRODUCT, product_id="b", quantity=Decimal("2")),
        SimpleNamespace(kind=QuoteItemKind.CUSTOM, product_id=None, quantity=Decimal("8")),
        SimpleNamespace(kind=QuoteItemKind.PRODUCT, product_id="a", quantity=Decimal("1")),
        SimpleNamespace(kind=QuoteItemKind.PRODUCT, product_id="b", quantity=Decimal("3")),
    ]

    assert list(required_stock(items).items()) == [("a", 1), ("b", 5)]


async def test_approve_decrements_each_product(db, company, company_user, make_product):
    panel = await make_product("Panel 550W", stock=40)
    inverter = await make_product("Inverter 10kW", stock=3)
    quote_id = await create_quote(
        company.id,
        [product_line(panel, 18), product_line(inverter, 1), custom_line("Montaj işçiliği", 1, "15000")],
    )

    quote = await QuoteService(db).approve_quote(company.id, quote_id, actor_id=company_user.id)

    assert quote.status == QuoteStatus.APPROVED
    assert quote.approved_by_id == company_user.id
    assert quote.approved_at is not None
    assert await stock_of(panel.id, db) == 22
    assert await stock_of(inverter.id, db) == 2


async def test_repeated_product_lines_are_aggregated(db, company, make_product):
    panel = await make_product(stock=10)
    quote_id = await create_quote(company.id, [product_line(panel, 4), product_line(panel, 6)])

    await QuoteService(db).approve_quote(company.id, quote_id)

    assert await stock_of(panel.id, db) == 0


async def test_second_approval_fails_and_stock_moves_once(db, company, make_product):
    panel = await make_product(stock=10)
    quote_id = await create_quote(company.id, [product_line(panel, 4)])
    service = QuoteService(db)
    await service.approve_quote(company.id, quote_id)

    with pytest.raises(QuoteAlreadyApproved) as excinfo:
        await service.approve_quote(company.id, quote_id)

    assert excinfo.value.message == "Quote is already approved"
    assert await stock_of(panel.id, db) == 6


async def test_insufficient_stock_leaves_everything_untouched(db, company, make_product):
    p1 = await make_product("Panel 550W", stock=10)
    p2 = await make_product("Batarya 5kWh", stock=2)
    quote_id = await create_quote(company.id, [product_line(p1, 5), product_line(p2, 3)])
    service = QuoteService(db)

    with pytest.raises(InsufficientStock) as excinfo:
        await service.approve_quote(company.id, quote_id)

    error = excinfo.value
    assert error.product_name == "Batarya 5kWh"
    assert error.available == 2
    assert error.required == 3
    assert error.message == "Insufficient stock for product Batarya 5kWh. Available: 2, Required: 3"
    assert await stock_of(p1.id, db) == 10
    assert await stock_of(p2.id, db) == 2
    quote = await service.get_quote(company.id, quote_id)
    assert quote.status == QuoteStatus.DRAFT
    assert quote.approved_at is None


async def test_quote_without_product_lines_approves_without_stock_changes(db, company, make_product):
    panel = await make_product(stock=5)
    quote_id = await create_quote(company.id, [custom_line("Proje danışmanlığı", 1, "25000")])

    quote = await QuoteService(db).approve_quote(company.id, quote_id)

    assert quote.status == QuoteStatus.APPROVED
    assert await stock_of(panel.id, db) == 5


async def test_expired_quote_cannot_be_approved(db, company, make_product):
    panel = await make_product(stock=5)
    quote_id = await create_quote(company.id, [product_line(panel, 1)])
    await db.execute(update(Quote).where(Quote.id == quote_id).values(status=QuoteStatus.EXPIRED))
    await db.commit()

    with pytest.raises(InvalidQuoteState):
        await QuoteService(db).approve_quote(company.id, quote_id)

    assert await stock_of(panel.id, db) == 5


async def test_rejected_quote_can_still_be_approved(db, company, make_product):
    panel = await make_product(stock=5)
    quote_id = await create_quote(company.id, [product_line(panel, 2)])
    service = QuoteService(db)
    await service.reject_quote(company.id, quote_id, reason="Fiyat yüksek")

    quote = await service.approve_quote(company.id, quote_id)

    assert quote.status == QuoteStatus.APPROVED
    assert await stock_of(panel.id, db) == 3


async def test_approve_unknown_quote(db, company, other_company, make_product):
    panel = await make_product(stock=5)
    quote_id = await create_quote(company.id, [product_line(panel, 1)])

    with pytest.raises(QuoteNotFound):
        await QuoteService(db).approve_quote(other_company.id, quote_id)
    with pytest.raises(QuoteNotFound):
        await QuoteService(db).approve_quote(company.id, "missing")


async def test_concurrent_approvals_consume_stock_once(company, make_product):
    panel = await make_product(stock=10)
    quote_id = await create_quote(company.id, [product_line(panel, 6)])

    results = await asyncio.gather(
        approve_in_own_session(company.id, quote_id),
        approve_in_own_session(company.id, quote_id),
        return_exceptions=True,
    )

    approved = [r for r in results if isinstance(r, Quote)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(approved) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], QuoteAlreadyApproved)
    assert await stock_of(panel.id) == 4


async def test_competing_quotes_never_oversell(company, make_product):
    panel = await make_product(stock=10)
    first = await create_quote(company.id, [product_line(panel, 6)])
    second = await create_quote(company.id, [product_line(panel, 6)])

    results = await asyncio.gather(
        approve_in_own_session(company.id, first),
        approve_in_own_session(company.id, second),
        return_exceptions=True,
    )

    assert sum(isinstance(r, Quote) for r in results) == 1
    assert sum(isinstance(r, InsufficientStock) for r in results) == 1
    assert await stock_of(panel.id) == 4


async def test_approval_emits_event_after_commit(db, company, company_user, make_product):
    received = []

    async def handler(event):
        received.append((event, await stock_of(panel.id)))

    panel = await make_product(stock=10)
    quote_id = await create_quote(company.id, [product_line(panel, 3)], actor_id=company_user.id)
    subscribe(EventType.QUOTE_APPROVED, handler)

    await QuoteService(db).approve_quote(company.id, quote_id, actor_id=company_user.id)

    assert len(received) == 1
    event, stock_seen = received[0]
    assert event.data["quote_id"] == quote_id
    assert event.company_id == company.id
    assert event.target_user_id == company_user.id
    assert stock_seen == 7


async def test_failed_approval_emits_nothing(db, company, make_product):
    received = []
    subscribe(EventType.QUOTE_APPROVED, lambda event: received.append(event))
    panel = await make_product(stock=1)
    quote_id = await create_quote(company.id, [product_line(panel, 2)])

    with pytest.raises(InsufficientStock):
        await QuoteService(db).approve_quote(company.id, quote_id)

    assert received == []
