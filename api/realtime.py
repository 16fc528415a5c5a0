# api/realtime.py
"""
Push channel for real-time notifications

Clients connect over Socket.IO at the configured path (api/ws by default).
Each session is wrapped in a SocketIOConnection and registered with the
notification hub. Disconnects and errors only signal the connection; the
hub's own observers do the unregistering.
"""

import logging
import threading
from typing import Callable, Dict, List

from flask import request
from flask_socketio import SocketIO

from core.hub import NotificationHub, TransportError

logger = logging.getLogger(__name__)


class SocketIOConnection:
    """One Socket.IO session exposed through the hub's connection interface"""

    def __init__(self, socketio: SocketIO, sid: str, namespace: str = '/'):
        self.socketio = socketio
        self.sid = sid
        self.namespace = namespace
        self._close_callbacks: List[Callable[[], None]] = []
        self._error_callbacks: List[Callable[[Exception], None]] = []

    def __repr__(self):
        return f"<SocketIOConnection sid={self.sid}>"

    def send(self, text: str) -> None:
        if not self.socketio.server.manager.is_connected(self.sid, self.namespace):
            raise TransportError(f"Session {self.sid} is no longer connected")
        try:
            self.socketio.send(text, to=self.sid, namespace=self.namespace)
        except Exception as e:
            raise TransportError(f"Send to {self.sid} failed: {e}") from e

    def on_close(self, callback: Callable[[], None]) -> None:
        self._close_callbacks.append(callback)

    def on_error(self, callback: Callable[[Exception], None]) -> None:
        self._error_callbacks.append(callback)

    def notify_closed(self) -> None:
        for callback in list(self._close_callbacks):
            callback()

    def notify_error(self, error: Exception) -> None:
        for callback in list(self._error_callbacks):
            callback(error)


class PushGateway:
    """
    Socket.IO event handlers bridging sessions to the hub

    Keeps the sid -> connection map for the sessions it created; the hub
    alone decides registry membership.
    """

    def __init__(self, socketio: SocketIO, hub: NotificationHub):
        self.socketio = socketio
        self.hub = hub
        self._sessions: Dict[str, SocketIOConnection] = {}
        self._lock = threading.Lock()

    def attach(self) -> None:
        self.socketio.on_event('connect', self.handle_connect)
        self.socketio.on_event('disconnect', self.handle_disconnect)
        self.socketio.on_event('message', self.handle_message)
        self.socketio.on_error_default(self.handle_error)

    def handle_connect(self, auth=None):
        connection = SocketIOConnection(self.socketio, request.sid, request.namespace)
        with self._lock:
            self._sessions[request.sid] = connection
        logger.info(f"Push client connected: {request.sid}")
        self.hub.register(connection)

    def handle_disconnect(self, reason=None):
        with self._lock:
            connection = self._sessions.pop(request.sid, None)
        logger.info(f"Push client disconnected: {request.sid}")
        if connection is not None:
            connection.notify_closed()

    def handle_message(self, data):
        if isinstance(data, str):
            logger.debug(f"Received from {request.sid}: {data[:200]}")

    def handle_error(self, error):
        logger.error(f"Push channel error for {request.sid}: {error}")
        with self._lock:
            connection = self._sessions.get(request.sid)
        if connection is not None:
            connection.notify_error(error)


def init_socketio(app, hub: NotificationHub) -> SocketIO:
    """Initialize SocketIO with the Flask app and wire it to the hub"""
    socketio = SocketIO(
        app,
        path=app.config['SOCKETIO_PATH'],
        cors_allowed_origins=app.config['SOCKETIO_CORS_ALLOWED_ORIGINS'],
        async_mode='threading',
        logger=False,
        engineio_logger=False,
    )
    gateway = PushGateway(socketio, hub)
    gateway.attach()
    app.push_gateway = gateway
    return socketio
