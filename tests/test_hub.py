import json
import threading
import time

import pytest

from core.hub import NotificationHub, encode_payload


@pytest.fixture
def hub():
    hub = NotificationHub()
    yield hub
    hub.shutdown()


def test_register_is_idempotent(hub, fake_connection_factory):
    conn = fake_connection_factory("a")
    hub.register(conn)
    hub.register(conn)

    assert hub.size() == 1
    # observers attached once, on the first registration
    assert len(conn.close_callbacks) == 1
    assert len(conn.error_callbacks) == 1


def test_unregister_twice_or_unknown_is_silent(hub, fake_connection_factory):
    conn = fake_connection_factory("a")
    other = fake_connection_factory("b")
    hub.register(conn)

    hub.unregister(conn)
    assert hub.size() == 0
    hub.unregister(conn)
    hub.unregister(other)
    assert hub.size() == 0


def test_broadcast_reaches_every_connection_with_identical_text(hub, fake_connection_factory):
    connections = [fake_connection_factory(f"c{i}") for i in range(5)]
    for conn in connections:
        hub.register(conn)

    hub.broadcast({"message": "hello", "type": "info"})

    sent = [conn.sent for conn in connections]
    assert all(len(messages) == 1 for messages in sent)
    assert len({messages[0] for messages in sent}) == 1


def test_text_payload_is_sent_verbatim(hub, fake_connection_factory):
    conn = fake_connection_factory()
    hub.register(conn)

    hub.broadcast("plain announcement")

    assert conn.sent == ["plain announcement"]


def test_failed_send_prunes_only_that_connection(hub, fake_connection_factory):
    good = [fake_connection_factory(f"ok{i}") for i in range(3)]
    bad = fake_connection_factory("bad", fail=True)
    for conn in good + [bad]:
        hub.register(conn)

    hub.broadcast({"message": "x", "type": "info"})

    assert hub.size() == 3
    assert bad not in hub
    assert all(len(conn.sent) == 1 for conn in good)


def test_unexpected_exception_also_prunes(hub, fake_connection_factory):
    conn = fake_connection_factory("boom")
    conn.fail_with = RuntimeError("socket exploded")
    hub.register(conn)

    hub.broadcast("hi")

    assert hub.size() == 0


def test_close_event_removes_connection(hub, fake_connection_factory):
    a = fake_connection_factory("a")
    b = fake_connection_factory("b")
    hub.register(a)
    hub.register(b)

    a.close()
    hub.broadcast("after close")

    assert hub.size() == 1
    assert a.sent == []
    assert b.sent == ["after close"]


def test_error_event_removes_connection(hub, fake_connection_factory):
    conn = fake_connection_factory()
    hub.register(conn)

    conn.error(ConnectionResetError("reset by peer"))

    assert hub.size() == 0


def test_close_after_failed_send_is_harmless(hub, fake_connection_factory):
    conn = fake_connection_factory("a", fail=True)
    hub.register(conn)
    hub.broadcast("x")

    conn.close()

    assert hub.size() == 0


def test_key_order_does_not_change_wire_text(hub, fake_connection_factory):
    first = fake_connection_factory("first")
    hub.register(first)

    hub.broadcast({"message": "hi", "type": "info"})
    hub.broadcast({"type": "info", "message": "hi"})

    assert first.sent[0] == first.sent[1]
    assert json.loads(first.sent[0]) == {"message": "hi", "type": "info"}


def test_scenario_one_of_three_fails(hub, fake_connection_factory):
    a = fake_connection_factory("A")
    b = fake_connection_factory("B", fail=True)
    c = fake_connection_factory("C")
    for conn in (a, b, c):
        hub.register(conn)
    assert hub.size() == 3

    record = {
        "id": 1,
        "message": "test",
        "type": "success",
        "created_at": "2024-01-01T00:00:00Z",
    }
    hub.broadcast(record)

    expected = encode_payload(record)
    assert hub.size() == 2
    assert a in hub and c in hub and b not in hub
    assert a.sent == [expected]
    assert c.sent == [expected]
    assert json.loads(expected) == record


def test_unencodable_payload_is_dropped_without_raising(hub, fake_connection_factory):
    conn = fake_connection_factory()
    hub.register(conn)

    hub.broadcast({"when": object()})
    hub.broadcast(b"raw bytes")

    assert conn.sent == []
    assert hub.size() == 1


def test_broadcast_with_no_connections_is_a_noop(hub):
    hub.broadcast({"message": "nobody home", "type": "info"})
    assert hub.size() == 0


def test_encode_payload_is_compact_and_sorted():
    assert encode_payload({"b": 1, "a": "é"}) == '{"a":"é","b":1}'


class BlockingConnection:
    """Connection whose send blocks until released, or sleeps a fixed delay"""

    def __init__(self, release=None, delay=None):
        self.release = release
        self.delay = delay
        self.sent = []

    def send(self, text):
        if self.release is not None:
            self.release.wait(5)
        if self.delay is not None:
            time.sleep(self.delay)
        self.sent.append(text)

    def on_close(self, callback):
        pass

    def on_error(self, callback):
        pass


def test_slow_connection_is_pruned_when_send_timeout_is_set(fake_connection_factory):
    release = threading.Event()
    hub = NotificationHub(send_timeout=0.2)
    stuck = BlockingConnection(release=release)
    fast = fake_connection_factory("fast")
    hub.register(stuck)
    hub.register(fast)

    try:
        hub.broadcast("ping")

        assert fast.sent == ["ping"]
        assert stuck not in hub
        assert hub.size() == 1
    finally:
        release.set()
        hub.shutdown()


def test_stuck_peers_do_not_starve_later_broadcasts(fake_connection_factory):
    release = threading.Event()
    hub = NotificationHub(send_timeout=0.2)
    stuck = [BlockingConnection(release=release) for _ in range(4)]
    for conn in stuck:
        hub.register(conn)

    try:
        hub.broadcast("first")
        assert hub.size() == 0

        healthy = [fake_connection_factory(f"h{i}") for i in range(3)]
        for conn in healthy:
            hub.register(conn)
        hub.broadcast("second")

        assert hub.size() == 3
        assert [conn.sent for conn in healthy] == [["second"]] * 3
    finally:
        release.set()
        hub.shutdown()


def test_timeout_applies_to_each_send_not_the_whole_fan_out():
    hub = NotificationHub(send_timeout=0.3)
    peers = [BlockingConnection(delay=0.15) for _ in range(6)]
    for conn in peers:
        hub.register(conn)

    hub.broadcast("x")

    assert hub.size() == 6
    assert [conn.sent for conn in peers] == [["x"]] * 6
    hub.shutdown()


def test_concurrent_register_and_broadcast_keep_the_set_consistent(fake_connection_factory):
    hub = NotificationHub()
    healthy = [fake_connection_factory(f"h{i}") for i in range(50)]
    failing = [fake_connection_factory(f"f{i}", fail=True) for i in range(50)]

    def register_all(connections):
        for conn in connections:
            hub.register(conn)

    threads = [
        threading.Thread(target=register_all, args=(healthy,)),
        threading.Thread(target=register_all, args=(failing,)),
    ]
    for thread in threads:
        thread.start()
    for _ in range(10):
        hub.broadcast("tick")
    for thread in threads:
        thread.join()

    hub.broadcast("final")

    assert hub.size() == 50
    assert all(conn in hub for conn in healthy)
    assert all(conn.sent[-1] == "final" for conn in healthy)
    hub.shutdown()


def test_shutdown_discards_registrations(fake_connection_factory):
    hub = NotificationHub(send_timeout=1.0)
    hub.register(fake_connection_factory())
    hub.shutdown()

    assert hub.size() == 0
