from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.core.config import get_settings
from app.core.db import AsyncSessionFactory
from app.services.quote import QuoteService

logger = logging.getLogger(__name__)
settings = get_settings()

quote_scheduler = AsyncIOScheduler()


async def expire_overdue_quotes() -> int:
    """SENT/VIEWED quotes past their validity date become EXPIRED."""
    async with AsyncSessionFactory() as session:
        try:
            expired = await QuoteService(session).expire_quotes()
        except Exception as exc:
            logger.exception("Quote expiry job failed", extra={"error": str(exc)})
            return 0
    if expired:
        logger.info("quote_expiry", extra={"expired_count": len(expired)})
    return len(expired)


async def warn_expiring_quotes() -> int:
    """Notify quote creators a few days before a quote lapses."""
    async with AsyncSessionFactory() as session:
        try:
            warned = await QuoteService(session).send_expiry_warnings()
        except Exception as exc:
            logger.exception("Quote expiry warning job failed", extra={"error": str(exc)})
            return 0
    if warned:
        logger.info(
            "quote_expiry_warnings",
            extra={"warned_count": len(warned), "window_days": settings.quote_expiry_warning_days},
        )
    return len(warned)


async def run_quote_maintenance() -> None:
    await expire_overdue_quotes()
    await warn_expiring_quotes()


def start_scheduler() -> None:
    if quote_scheduler.running:
        return
    quote_scheduler.add_job(
        run_quote_maintenance,
        "interval",
        minutes=settings.quote_expiry_interval_minutes,
        id="quote-maintenance",
        max_instances=1,
        coalesce=True,
    )
    quote_scheduler.start()
    logger.info("Quote scheduler started", extra={"interval_minutes": settings.quote_expiry_interval_minutes})


def shutdown_scheduler() -> None:
    if quote_scheduler.running:
        quote_scheduler.shutdown(wait=False)
        logger.info("Quote scheduler stopped")
