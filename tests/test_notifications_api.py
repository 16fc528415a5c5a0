import json

from sqlalchemy.exc import OperationalError

from api.notifications import parse_history_limit
from core.database_models import db, Notification


def _broadcast(client, headers, **body):
    return client.post("/api/notifications/broadcast", json=body, headers=headers)


def test_broadcast_requires_token(client):
    response = client.post("/api/notifications/broadcast", json={"message": "hi", "type": "info"})
    assert response.status_code == 401


def test_broadcast_rejects_bad_token(client):
    response = _broadcast(client, {"Authorization": "Bearer not-a-jwt"}, message="hi", type="info")
    assert response.status_code == 403


def test_broadcast_validates_body(client, auth_headers):
    assert _broadcast(client, auth_headers, message="hi").status_code == 400
    assert _broadcast(client, auth_headers, type="info").status_code == 400

    response = _broadcast(client, auth_headers, message="hi", type="urgent")
    assert response.status_code == 400
    assert "info" in response.get_json()["error"]


def test_broadcast_persists_then_pushes(app, client, auth_headers, fake_connection_factory):
    listener = fake_connection_factory("dashboard")
    app.hub.register(listener)

    response = _broadcast(client, auth_headers, message="Shop opens at 9", type="success")

    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    record = body["notification"]
    assert record["message"] == "Shop opens at 9"
    assert record["type"] == "success"
    assert record["site_key"] == app.config["SITE_KEY"]
    assert record["created_at"].endswith("Z")

    assert len(listener.sent) == 1
    pushed = json.loads(listener.sent[0])
    assert pushed == {
        "id": record["id"],
        "message": "Shop opens at 9",
        "type": "success",
        "created_at": record["created_at"],
    }

    with app.app_context():
        assert Notification.query.count() == 1


def test_failed_persist_is_not_broadcast(app, client, auth_headers, fake_connection_factory, monkeypatch):
    listener = fake_connection_factory("dashboard")
    app.hub.register(listener)

    def failing_commit():
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(db.session, "commit", failing_commit)

    response = _broadcast(client, auth_headers, message="lost", type="info")

    assert response.status_code == 500
    assert response.get_json() == {"error": "Failed to store notification."}
    assert listener.sent == []


def test_broadcast_success_does_not_depend_on_delivery(app, client, auth_headers, fake_connection_factory):
    app.hub.register(fake_connection_factory("dead", fail=True))

    response = _broadcast(client, auth_headers, message="still stored", type="warning")

    assert response.status_code == 200
    assert app.hub.size() == 0


def test_history_is_newest_first_and_public(client, auth_headers):
    for i in range(3):
        _broadcast(client, auth_headers, message=f"note {i}", type="info")

    response = client.get("/api/notifications/history")

    assert response.status_code == 200
    messages = [item["message"] for item in response.get_json()]
    assert messages == ["note 2", "note 1", "note 0"]


def test_history_limit(client, auth_headers):
    for i in range(5):
        _broadcast(client, auth_headers, message=f"note {i}", type="info")

    response = client.get("/api/notifications/history?limit=2")

    assert [item["message"] for item in response.get_json()] == ["note 4", "note 3"]


def test_history_is_scoped_to_site(app, client, auth_headers):
    with app.app_context():
        db.session.add(Notification(site_key="other-site", message="not ours", type="info"))
        db.session.commit()
    _broadcast(client, auth_headers, message="ours", type="info")

    response = client.get("/api/notifications/history")

    assert [item["message"] for item in response.get_json()] == ["ours"]


def test_parse_history_limit():
    assert parse_history_limit(None, 20, 100) == 20
    assert parse_history_limit("abc", 20, 100) == 20
    assert parse_history_limit("30", 20, 100) == 30
    assert parse_history_limit("1000", 20, 100) == 100
    assert parse_history_limit("0", 20, 100) == 1
    assert parse_history_limit("-5", 20, 100) == 1


def test_reload_failure_after_commit_is_reported(app, client, auth_headers, fake_connection_factory, monkeypatch):
    listener = fake_connection_factory("dashboard")
    app.hub.register(listener)

    def failing_refresh(instance):
        raise OperationalError("SELECT", {}, Exception("connection dropped"))

    monkeypatch.setattr(db.session, "refresh", failing_refresh)

    response = _broadcast(client, auth_headers, message="half done", type="info")

    assert response.status_code == 500
    assert response.get_json() == {"error": "Failed to store notification."}
    assert listener.sent == []
