import anyio
import pytest
from starlette.websockets import WebSocketDisconnect

from sitetrack.services.realtime import INSERT, ChangeHub, Subscription, parse_filter


def test_parse_filter_forms():
    assert parse_filter(None) == {}
    assert parse_filter({"year": 2025}) == {"year": "2025"}
    assert parse_filter("year=eq.2025, tower=eq.T1") == {"year": "2025", "tower": "T1"}
    with pytest.raises(ValueError):
        parse_filter("year=gt.2025")


def test_subscription_matches_on_every_filter_column():
    sub = Subscription(table="concrete_plan", filters={"year": "2025", "tower": "T1"})
    assert sub.matches("concrete_plan", {"year": 2025, "tower": "T1", "planned": 10})
    assert not sub.matches("concrete_plan", {"year": 2025, "tower": "T2"})
    assert not sub.matches("concrete_actual", {"year": 2025, "tower": "T1"})
    assert not sub.matches("concrete_plan", None)
    assert Subscription(table="hindrances").matches("hindrances", None)


def test_websocket_rejects_missing_or_bad_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/changes") as ws:
            ws.receive_json()
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/changes?token=garbage") as ws:
            ws.receive_json()


def test_change_events_follow_writes(auth_client, tokens):
    with auth_client.websocket_connect(f"/ws/changes?token={tokens['access_token']}") as ws:
        ws.send_json({"action": "subscribe", "table": "hindrances", "filter": "tower=eq.tower2"})
        subscribed = ws.receive_json()
        assert subscribed["event"] == "subscribed"
        sub_id = subscribed["data"]["id"]

        # other tower: no event for this subscription
        auth_client.post("/hindrances", json={"tower": "tower1", "sr_no": 1, "item_particulars": "Rebar"})
        row = auth_client.post("/hindrances", json={"tower": "tower2", "sr_no": 1, "item_particulars": "Cement"}).json()

        event = ws.receive_json()
        assert event["event"] == "change"
        assert event["data"]["type"] == "INSERT"
        assert event["data"]["record"]["id"] == row["id"]
        assert event["data"]["subscription"] == sub_id

        auth_client.delete(f"/hindrances/{row['id']}")
        event = ws.receive_json()
        assert event["data"]["type"] == "DELETE"
        assert event["data"]["record"] is None
        assert event["data"]["old_record"]["id"] == row["id"]

        ws.send_text("ping")
        assert ws.receive_text() == "pong"


def test_websocket_reports_bad_subscriptions(auth_client, tokens):
    with auth_client.websocket_connect(f"/ws/changes?token={tokens['access_token']}") as ws:
        ws.send_json({"action": "subscribe", "table": "users"})
        assert ws.receive_json()["event"] == "error"
        ws.send_json({"action": "subscribe", "table": "cashflow_plan", "filter": "year=lt.2025"})
        assert ws.receive_json()["event"] == "error"
        ws.send_json({"action": "unsubscribe", "id": "missing"})
        assert ws.receive_json()["data"]["removed"] is False


def test_filters_match_typed_columns():
    done = Subscription(table="monthly_non_negotiables", filters=parse_filter("is_completed=eq.true"))
    assert done.matches("monthly_non_negotiables", {"is_completed": True})
    assert not done.matches("monthly_non_negotiables", {"is_completed": False})

    planned = Subscription(table="concrete_plan", filters=parse_filter("planned=eq.120"))
    assert planned.matches("concrete_plan", {"planned": 120.0})
    assert not planned.matches("concrete_plan", {"planned": 120.5})

    by_dict = Subscription(table="cashflow_plan", filters=parse_filter({"planned": 2.5, "month": 3}))
    assert by_dict.matches("cashflow_plan", {"planned": 2.5, "month": 3})
    assert not Subscription(table="concrete_plan", filters={"year": "twenty"}).matches("concrete_plan", {"year": 2025})


def test_hub_created_outside_a_running_loop():
    hub = ChangeHub()
    received = []

    class FakeSocket:
        async def send_json(self, data):
            received.append(data)

    ws = FakeSocket()

    async def subscribe():
        await hub.connect("1", ws)
        await hub.subscribe(ws, "concrete_plan", {"year": "2025"})

    async def publish():
        return await hub.publish("concrete_plan", INSERT, {"year": 2025, "planned": 10.0})

    anyio.run(subscribe)
    assert anyio.run(publish) == 1
    assert received[0]["data"]["record"]["planned"] == 10.0


def test_year_filtered_concrete_subscription(auth_client, tokens):
    entry = {"year": 2025, "month": 4, "week": 2, "tower": "T3", "planned": 120.0}
    with auth_client.websocket_connect(f"/ws/changes?token={tokens['access_token']}") as ws:
        ws.send_json({"action": "subscribe", "table": "concrete_plan", "filter": "year=eq.2025"})
        assert ws.receive_json()["event"] == "subscribed"

        # a 2024 write is filtered out, so the first event is the 2025 insert
        auth_client.post("/concrete/entries", json=dict(entry, year=2024))
        auth_client.post("/concrete/entries", json=entry)
        inserted = ws.receive_json()["data"]
        assert inserted["type"] == "INSERT"
        assert inserted["record"]["year"] == 2025
        assert inserted["old_record"] is None

        r = auth_client.post("/concrete/entries", params={"overwrite": "true"}, json=dict(entry, planned=150.0))
        assert r.status_code == 200
        updated = ws.receive_json()["data"]
        assert updated["type"] == "UPDATE"
        assert updated["record"]["planned"] == 150.0
        assert updated["old_record"]["planned"] == 120.0
        assert updated["record"]["id"] == inserted["record"]["id"]


def test_boolean_filter_over_websocket(auth_client, tokens):
    with auth_client.websocket_connect(f"/ws/changes?token={tokens['access_token']}") as ws:
        ws.send_json({"action": "subscribe", "table": "monthly_non_negotiables", "filter": "is_completed=eq.true"})
        ws.receive_json()

        task = auth_client.post("/non-negotiables", json={"tower": "T1", "task_description": "Cube test"}).json()
        auth_client.post(f"/non-negotiables/{task['id']}/toggle")
        event = ws.receive_json()["data"]
        assert event["type"] == "UPDATE"
        assert event["record"]["is_completed"] is True
        assert event["old_record"]["is_completed"] is False
