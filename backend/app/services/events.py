from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable
import logging

from app.models.schedule_template import ScheduleTemplate
from app.services.notification_hub import notification_hub

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleEvent:
    name: str
    template_id: str
    actor_id: str | None
    recipients: tuple[str, ...]
    payload: dict = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_message(self) -> dict:
        return {
            "event": self.name,
            "template_id": self.template_id,
            "actor_id": self.actor_id,
            "occurred_at": self.occurred_at.isoformat(),
            "data": self.payload,
        }


def template_event(name: str, template: ScheduleTemplate, *, actor_id: str | None, **payload) -> ScheduleEvent:
    recipients = tuple(dict.fromkeys(item for item in (template.teacher_id, template.created_by_id) if item))
    data = {
        "day_of_week": template.day_of_week.value,
        "start_time": template.start_time,
        "end_time": template.end_time,
        "room": template.room,
        "approval_status": template.approval_status.value,
        "is_active": template.is_active,
    }
    data.update(payload)
    return ScheduleEvent(name=name, template_id=template.id, actor_id=actor_id, recipients=recipients, payload=data)


Subscriber = Callable[[ScheduleEvent], Awaitable[None]]


class EventDispatcher:
    """Fans schedule events out to subscribers once the transaction has committed.

    A failing subscriber is logged and skipped; it never reaches the caller.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> Subscriber:
        self._subscribers.append(subscriber)
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    async def dispatch(self, events: Iterable[ScheduleEvent]) -> None:
        for event in list(events):
            for subscriber in list(self._subscribers):
                try:
                    await subscriber(event)
                except Exception:
                    logger.warning(
                        "Schedule event subscriber %r failed for %s",
                        subscriber,
                        event.name,
                        exc_info=True,
                    )


async def publish_to_notification_hub(event: ScheduleEvent) -> None:
    message = event.to_message()
    for user_id in event.recipients:
        if user_id == event.actor_id:
            continue
        await notification_hub.publish(user_id, message)


event_dispatcher = EventDispatcher()
event_dispatcher.subscribe(publish_to_notification_hub)
