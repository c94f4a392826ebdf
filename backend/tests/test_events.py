import asyncio

import pytest
from starlette.websockets import WebSocketDisconnect

from api_helpers import create_template
from app.services.events import EventDispatcher, ScheduleEvent, event_dispatcher, publish_to_notification_hub
from app.services.notification_hub import NotificationHub


class FakeWebSocket:
    def __init__(self, fail: bool = False) -> None:
        self.sent: list[dict] = []
        self.accepted = False
        self.fail = fail

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, payload: dict) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(payload)


def make_event(**overrides) -> ScheduleEvent:
    values = {
        "name": "schedule.approved",
        "template_id": "tpl-1",
        "actor_id": "manager-1",
        "recipients": ("teacher-1", "manager-1"),
        "payload": {"approval_status": "approved"},
    }
    values.update(overrides)
    return ScheduleEvent(**values)


def test_event_message_shape():
    message = make_event().to_message()
    assert message["event"] == "schedule.approved"
    assert message["template_id"] == "tpl-1"
    assert message["data"] == {"approval_status": "approved"}
    assert message["occurred_at"]


def test_failing_subscriber_does_not_stop_the_others():
    dispatcher = EventDispatcher()
    received: list[str] = []

    async def broken(event: ScheduleEvent) -> None:
        raise RuntimeError("subscriber down")

    async def recorder(event: ScheduleEvent) -> None:
        received.append(event.name)

    dispatcher.subscribe(broken)
    dispatcher.subscribe(recorder)
    asyncio.run(dispatcher.dispatch([make_event(), make_event(name="schedule.rejected")]))
    assert received == ["schedule.approved", "schedule.rejected"]

    dispatcher.unsubscribe(recorder)
    asyncio.run(dispatcher.dispatch([make_event()]))
    assert received == ["schedule.approved", "schedule.rejected"]


def test_hub_delivers_and_drops_stale_sockets():
    hub = NotificationHub()
    healthy = FakeWebSocket()
    stale = FakeWebSocket(fail=True)

    async def scenario() -> int:
        await hub.connect("teacher-1", healthy)
        await hub.connect("teacher-1", stale)
        return await hub.publish("teacher-1", {"event": "ping"})

    assert asyncio.run(scenario()) == 1
    assert healthy.accepted
    assert healthy.sent == [{"event": "ping"}]
    assert hub.connection_count("teacher-1") == 1
    assert asyncio.run(hub.publish("nobody", {"event": "ping"})) == 0


def test_hub_subscriber_skips_the_actor(monkeypatch):
    hub = NotificationHub()
    teacher_socket = FakeWebSocket()
    manager_socket = FakeWebSocket()
    monkeypatch.setattr("app.services.events.notification_hub", hub)

    async def scenario() -> None:
        await hub.connect("teacher-1", teacher_socket)
        await hub.connect("manager-1", manager_socket)
        await publish_to_notification_hub(make_event())

    asyncio.run(scenario())
    assert [item["event"] for item in teacher_socket.sent] == ["schedule.approved"]
    assert manager_socket.sent == []


def test_committed_changes_are_dispatched_after_the_response(client, campus):
    received: list[ScheduleEvent] = []

    async def recorder(event: ScheduleEvent) -> None:
        received.append(event)

    event_dispatcher.subscribe(recorder)
    try:
        created = create_template(client, campus)
        client.post(f"/api/schedules/{created['id']}/approve", headers=campus.manager.headers)
        client.post(f"/api/schedules/{created['id']}/reject", json={"notes": "late"}, headers=campus.manager.headers)
    finally:
        event_dispatcher.unsubscribe(recorder)

    # The failed rejection rolled back and emitted nothing.
    assert [event.name for event in received] == ["schedule.created", "schedule.approved"]
    assert received[0].recipients == (campus.teacher.id, campus.coordinator.id)
    assert received[1].actor_id == campus.manager.id


def test_websocket_receives_schedule_events(client, campus):
    with client.websocket_connect(f"/api/notifications/ws?token={campus.teacher.token}") as websocket:
        assert websocket.receive_json() == {"event": "connected", "user_id": campus.teacher.id}
        websocket.send_text("ping")
        assert websocket.receive_json() == {"event": "pong"}

        created = create_template(client, campus)
        message = websocket.receive_json()
        assert message["event"] == "schedule.created"
        assert message["template_id"] == created["id"]
        assert message["actor_id"] == campus.coordinator.id


def test_websocket_without_token_is_closed(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/api/notifications/ws") as websocket:
            websocket.receive_json()
