import os
from typing import Callable, List

import pytest

os.environ.setdefault("FLASK_ENV", "testing")

from app import create_app  # noqa: E402
from core.database_models import db, AdminUser  # noqa: E402
from core.hub import TransportError  # noqa: E402


class FakeConnection:
    """In-memory push connection that records what it was sent"""

    def __init__(self, name: str = "client", fail_with: Exception = None):
        self.name = name
        self.fail_with = fail_with
        self.sent: List[str] = []
        self.close_callbacks: List[Callable[[], None]] = []
        self.error_callbacks: List[Callable[[Exception], None]] = []

    def __repr__(self):
        return f"<FakeConnection {self.name}>"

    def send(self, text: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(text)

    def on_close(self, callback):
        self.close_callbacks.append(callback)

    def on_error(self, callback):
        self.error_callbacks.append(callback)

    def close(self):
        for callback in list(self.close_callbacks):
            callback()

    def error(self, exc: Exception):
        for callback in list(self.error_callbacks):
            callback(exc)


@pytest.fixture
def fake_connection_factory():
    def _make(name="client", fail=False):
        return FakeConnection(name, TransportError(f"{name} is gone") if fail else None)
    return _make


@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
    app.hub.shutdown()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_user(app):
    with app.app_context():
        password_hash, salt = app.security_manager.hash_password("s3cret-pass")
        user = AdminUser(
            site_key=app.config["SITE_KEY"],
            username="admin",
            password_hash=password_hash,
            password_salt=salt,
        )
        db.session.add(user)
        db.session.commit()
        return {"id": user.id, "username": "admin", "password": "s3cret-pass"}


@pytest.fixture
def auth_headers(app, admin_user):
    token = app.security_manager.issue_token(admin_user["id"], admin_user["username"])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def socket_client(app):
    client = app.socketio.test_client(app)
    yield client
    if client.is_connected():
        client.disconnect()
