# core/hub.py
"""
Connection registry and broadcast hub for real-time notifications

The hub owns the set of open push connections for this process and fans a
notification payload out to every one of them. Delivery is best-effort:
no queueing, no retries, no acknowledgements.

Unregistration happens on two paths that both funnel through
NotificationHub.unregister():
- the connection's own close/error observers, attached at register() time
- a failed send during broadcast()
unregister() is idempotent so a connection removed by one path is silently
ignored by the other.
"""

import json
import logging
import threading
import time
from typing import Any, Callable, List, Mapping, Optional, Protocol, Set, Union

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised by a connection when a frame cannot be delivered"""


class PushConnection(Protocol):
    """Capability interface the hub needs from a push channel"""

    def send(self, text: str) -> None:
        ...

    def on_close(self, callback: Callable[[], None]) -> None:
        ...

    def on_error(self, callback: Callable[[Exception], None]) -> None:
        ...


Payload = Union[str, Mapping[str, Any]]


def encode_payload(payload: Payload) -> str:
    """
    Encode a broadcast payload to its wire text

    Text is sent verbatim. Mappings are encoded as canonical JSON (sorted
    keys, compact separators) so key order never changes the bytes.

    Raises:
        TypeError: payload is neither text nor JSON-serializable
    """
    if isinstance(payload, str):
        return payload
    if isinstance(payload, (bytes, bytearray)):
        raise TypeError('Broadcast payload must be text or a mapping, not bytes')
    return json.dumps(payload, sort_keys=True, separators=(',', ':'), ensure_ascii=False)


class NotificationHub:
    """
    Registry of live push connections with synchronous fan-out

    Args:
        send_timeout: Upper bound in seconds for a single send, measured from
            the moment that send starts. When set, every send runs on its own
            daemon thread and a connection whose send is still running after
            the timeout is pruned. None means a plain sequential loop.
    """

    def __init__(self, send_timeout: Optional[float] = None):
        self._connections: Set[PushConnection] = set()
        self._lock = threading.Lock()
        self._send_timeout = send_timeout

    def register(self, connection: PushConnection) -> None:
        """Add a connection and attach the hub's close/error observers"""
        with self._lock:
            if connection in self._connections:
                return
            self._connections.add(connection)
            total = len(self._connections)

        connection.on_close(lambda: self.unregister(connection))
        connection.on_error(lambda error: self._handle_connection_error(connection, error))

        logger.info(f"Push client registered. Total clients: {total}")

    def unregister(self, connection: PushConnection) -> None:
        """Remove a connection; no-op when it is not registered"""
        with self._lock:
            if connection not in self._connections:
                return
            self._connections.discard(connection)
            total = len(self._connections)

        logger.info(f"Push client unregistered. Total clients: {total}")

    def broadcast(self, payload: Payload) -> None:
        """
        Deliver one payload to every registered connection

        The payload is encoded once; every recipient receives the same text.
        A recipient whose send raises is unregistered and the fan-out goes on.
        Never raises.
        """
        try:
            message = encode_payload(payload)
        except (TypeError, ValueError) as e:
            logger.error(f"Dropping unencodable broadcast payload: {e}")
            return

        targets = self._snapshot()
        logger.info(f"Broadcasting to {len(targets)} clients: {message[:200]}")

        if not targets:
            return

        if self._send_timeout is None:
            for connection in targets:
                self._deliver(connection, message)
            return

        self._deliver_with_timeout(targets, message)

    def size(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        with self._lock:
            return connection in self._connections

    def shutdown(self) -> None:
        """Discard every registration without closing it"""
        with self._lock:
            self._connections.clear()
        logger.info("Notification hub shut down")

    def _snapshot(self) -> List[PushConnection]:
        with self._lock:
            return list(self._connections)

    def _deliver_with_timeout(self, targets: List[PushConnection], message: str) -> None:
        # One thread per send: a stuck peer only ever holds its own thread
        sends = []
        for connection in targets:
            sender = threading.Thread(
                target=self._deliver,
                args=(connection, message),
                name='hub-send',
                daemon=True
            )
            sender.start()
            sends.append((connection, sender, time.monotonic()))

        for connection, sender, started in sends:
            sender.join(max(0.0, started + self._send_timeout - time.monotonic()))
            if sender.is_alive():
                logger.warning(f"Push send exceeded {self._send_timeout}s, dropping client")
                self.unregister(connection)

    def _deliver(self, connection: PushConnection, message: str) -> None:
        try:
            connection.send(message)
        except TransportError as e:
            logger.warning(f"Push delivery failed, dropping client: {e}")
            self.unregister(connection)
        except Exception as e:
            logger.error(f"Unexpected error sending to push client: {e}", exc_info=True)
            self.unregister(connection)

    def _handle_connection_error(self, connection: PushConnection, error: Exception) -> None:
        logger.warning(f"Push client error: {error}")
        self.unregister(connection)
