"""
Turns domain events into in-app notifications.

Handlers open their own session: the emitting transaction has already
committed by the time an event is dispatched.
"""
import logging

from app.core.db import AsyncSessionFactory
from app.schemas.user_notification import NotificationCreate
from app.services.event_dispatcher import Event, EventType, get_dispatcher
from app.services.project_request_workflow import status_label
from app.services.user_notification import UserNotificationService

logger = logging.getLogger(__name__)


def _quote_link(event: Event) -> str:
    return f"/dashboard/quotes/{event.data['quote_id']}"


def build_notification(event: Event) -> NotificationCreate | None:
    """Map an event to the notification it produces, or None if it produces none."""
    data = event.data

    if event.type == EventType.QUOTE_APPROVED:
        return NotificationCreate(
            type="quote",
            title="Teklif Onaylandı",
            message=f"{data['quote_number']} numaralı teklif onaylandı ve stok güncellendi.",
            link=_quote_link(event),
            entity_type="quote",
            entity_id=data["quote_id"],
            priority="high",
            user_id=event.target_user_id,
        )
    if event.type == EventType.QUOTE_REJECTED:
        reason = data.get("reason")
        return NotificationCreate(
            type="quote",
            title="Teklif Reddedildi",
            message=(
                f"{data.get('customer_name') or 'Müşteri'} adlı müşteri {data['quote_number']} numaralı teklifi reddetti."
                + (f" Sebep: {reason}" if reason else "")
            ),
            link=_quote_link(event),
            entity_type="quote",
            entity_id=data["quote_id"],
            user_id=event.target_user_id,
        )
    if event.type == EventType.QUOTE_EXPIRED:
        return NotificationCreate(
            type="quote",
            title="Teklif Süresi Doldu",
            message=f"{data['quote_number']} numaralı teklif süresi doldu.",
            link=_quote_link(event),
            entity_type="quote",
            entity_id=data["quote_id"],
            user_id=event.target_user_id,
        )
    if event.type == EventType.QUOTE_EXPIRING:
        return NotificationCreate(
            type="quote",
            title="Teklif Süresi Yakında Doluyor",
            message=f"{data['quote_number']} numaralı teklif {data['valid_until']} tarihinde sona erecek.",
            link=_quote_link(event),
            entity_type="quote",
            entity_id=data["quote_id"],
            user_id=event.target_user_id,
        )
    if event.type == EventType.PROJECT_REQUEST_STATUS_CHANGED:
        # Only the assigned engineer cares; unassigned leads would otherwise broadcast
        if not event.target_user_id:
            return None
        return NotificationCreate(
            type="project_request",
            title="Proje Talebi Güncellendi",
            message=f"{data['request_number']} durumu {status_label(data['status'])} olarak güncellendi.",
            link=f"/dashboard/project-requests/{data['project_request_id']}",
            entity_type="project_request",
            entity_id=data["project_request_id"],
            user_id=event.target_user_id,
        )
    return None


async def create_notification_for_event(event: Event) -> None:
    payload = build_notification(event)
    if payload is None or not event.company_id:
        return
    async with AsyncSessionFactory() as session:
        await UserNotificationService(session).create_notification(event.company_id, payload)
    logger.debug(f"Notification created for {event.type.value}")


NOTIFYING_EVENTS = (
    EventType.QUOTE_APPROVED,
    EventType.QUOTE_REJECTED,
    EventType.QUOTE_EXPIRED,
    EventType.QUOTE_EXPIRING,
    EventType.PROJECT_REQUEST_STATUS_CHANGED,
)


def register_notification_handlers() -> None:
    """Subscribe the notification handler. Safe to call more than once."""
    dispatcher = get_dispatcher()
    for event_type in NOTIFYING_EVENTS:
        dispatcher.subscribe(event_type, create_notification_for_event)
