from __future__ import annotations

import logging

from audioctl.services.auth.bus import AUTH_ERROR, PAIRING_SUCCESS, AuthSignalBus, get_bus


def test_handlers_receive_signals_in_registration_order():
    bus = AuthSignalBus()
    seen: list[tuple[str, dict]] = []
    bus.subscribe(AUTH_ERROR, lambda s: seen.append(("first", s.payload)))
    bus.subscribe(AUTH_ERROR, lambda s: seen.append(("second", s.payload)))

    signal = bus.publish(AUTH_ERROR, {"kind": "UNAUTHORIZED"})

    assert signal.topic == AUTH_ERROR
    assert seen == [("first", {"kind": "UNAUTHORIZED"}), ("second", {"kind": "UNAUTHORIZED"})]


def test_topics_are_independent():
    bus = AuthSignalBus()
    seen = []
    bus.subscribe(PAIRING_SUCCESS, seen.append)
    bus.publish(AUTH_ERROR)
    assert seen == []


def test_failing_handler_does_not_stop_delivery(caplog):
    bus = AuthSignalBus()
    seen = []

    def broken(_signal):
        raise RuntimeError("handler bug")

    bus.subscribe(AUTH_ERROR, broken)
    bus.subscribe(AUTH_ERROR, seen.append)

    with caplog.at_level(logging.WARNING, logger="audioctl.bus"):
        bus.publish(AUTH_ERROR)

    assert len(seen) == 1
    assert any("handler failed" in record.getMessage() for record in caplog.records)


def test_unsubscribe_and_no_replay():
    bus = AuthSignalBus()
    seen = []
    bus.publish(AUTH_ERROR)
    unsubscribe = bus.subscribe(AUTH_ERROR, seen.append)
    assert seen == []
    assert bus.subscriber_count(AUTH_ERROR) == 1

    unsubscribe()
    unsubscribe()
    bus.publish(AUTH_ERROR)
    assert seen == []
    assert bus.subscriber_count(AUTH_ERROR) == 0


def test_handler_may_unsubscribe_itself_during_delivery():
    bus = AuthSignalBus()
    seen = []
    holder = {}

    def once(signal):
        seen.append("once")
        holder["unsubscribe"]()

    holder["unsubscribe"] = bus.subscribe(AUTH_ERROR, once)
    bus.subscribe(AUTH_ERROR, lambda s: seen.append("other"))

    bus.publish(AUTH_ERROR)
    bus.publish(AUTH_ERROR)
    assert seen == ["once", "other", "other"]


def test_get_bus_is_a_singleton():
    assert get_bus() is get_bus()
