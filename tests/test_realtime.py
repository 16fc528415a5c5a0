import json

import pytest

from api.realtime import SocketIOConnection
from core.hub import TransportError


def _messages(socket_client):
    return [packet["args"] for packet in socket_client.get_received() if packet["name"] == "message"]


def test_connect_registers_with_hub(app, socket_client):
    assert socket_client.is_connected()
    assert app.hub.size() == 1


def test_disconnect_unregisters(app, socket_client):
    socket_client.disconnect()
    assert app.hub.size() == 0


def test_several_clients_each_registered_once(app):
    clients = [app.socketio.test_client(app) for _ in range(3)]
    try:
        assert app.hub.size() == 3
    finally:
        for client in clients:
            client.disconnect()
    assert app.hub.size() == 0


def test_rest_broadcast_reaches_socket_clients(app, client, auth_headers, socket_client):
    other = app.socketio.test_client(app)
    socket_client.get_received()
    other.get_received()

    response = client.post(
        "/api/notifications/broadcast",
        json={"message": "New booking", "type": "info"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    record = response.get_json()["notification"]

    first = _messages(socket_client)
    second = _messages(other)
    other.disconnect()

    assert len(first) == 1
    assert first == second
    assert json.loads(first[0]) == {
        "id": record["id"],
        "message": "New booking",
        "type": "info",
        "created_at": record["created_at"],
    }


def test_client_messages_are_accepted(app, socket_client):
    socket_client.send("Hello from client!")
    assert app.hub.size() == 1


def test_connection_send_fails_after_disconnect(app, socket_client):
    sid = next(iter(app.push_gateway._sessions))
    connection = SocketIOConnection(app.socketio, sid)
    socket_client.disconnect()

    with pytest.raises(TransportError):
        connection.send("too late")


def test_connection_callbacks_fire(app):
    connection = SocketIOConnection(app.socketio, "sid-1")
    closed, errors = [], []
    connection.on_close(lambda: closed.append(True))
    connection.on_error(errors.append)

    connection.notify_closed()
    connection.notify_error(RuntimeError("bad frame"))

    assert closed == [True]
    assert [str(e) for e in errors] == ["bad frame"]


def test_handler_error_unregisters_the_session(app, socket_client):
    def explode(data=None):
        raise RuntimeError("handler blew up")

    app.socketio.on_event("explode", explode)
    assert app.hub.size() == 1

    socket_client.emit("explode", {"x": 1})

    assert app.hub.size() == 0
