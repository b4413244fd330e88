"""
Client state store tests.
"""

import asyncio

from livetranslate.client.connection import ConnectionManager, ConnectivityError
from livetranslate.client.state import (
    CONNECT_FAILED_MESSAGE,
    DISCONNECTED_MESSAGE,
    NOT_CONNECTED_MESSAGE,
    SEND_FAILED_MESSAGE,
    ClientStateStore,
)
from livetranslate.protocol import decode_event

from fakes import FakeConnector, FakeTransport, wait_until


def result_payload(original, translated="x"):
    return {
        "original": original,
        "translated": translated,
        "targetLanguage": "es",
        "timestamp": "2024-05-01T12:00:00.000Z",
    }


def make_store(*outcomes, **kwargs):
    kwargs.setdefault("reconnection_delay_ms", 0)
    connector = FakeConnector(list(outcomes))
    connection = ConnectionManager("http://relay:3001", connector=connector, **kwargs)
    return ClientStateStore(connection), connector


def test_initial_state():
    store, _ = make_store()
    assert store.connected is False
    assert store.last_error is None
    assert store.results == []


def test_send_while_disconnected_sets_error_and_transmits_nothing():
    store, connector = make_store()

    assert asyncio.run(store.send_translation("hello")) is False
    assert store.last_error == NOT_CONNECTED_MESSAGE
    assert connector.urls == []


def test_connect_sets_connected_and_clears_error():
    transport = FakeTransport()
    store, _ = make_store(transport)
    store.last_error = "stale"

    async def scenario():
        await store.connection.connect()
        assert store.connected is True
        assert store.last_error is None
        await store.connection.disconnect()

    asyncio.run(scenario())


def test_connect_error_is_recorded_not_raised_by_store():
    store, _ = make_store(OSError("refused"))

    async def scenario():
        try:
            await store.connection.connect()
        except ConnectivityError:
            pass

    asyncio.run(scenario())
    assert store.connected is False
    assert store.last_error == CONNECT_FAILED_MESSAGE


def test_send_clears_stale_error_and_delegates():
    transport = FakeTransport()
    store, _ = make_store(transport)

    async def scenario():
        await store.connection.connect()
        store.last_error = "Translation failed"
        assert await store.send_translation("hello", "fr") is True
        await store.connection.disconnect()

    asyncio.run(scenario())
    assert store.last_error is None
    assert [decode_event(raw) for raw in transport.sent] == [("translate", {"text": "hello", "targetLanguage": "fr"})]


def test_send_failure_is_reported():
    transport = FakeTransport(fail_send=True)
    store, _ = make_store(transport)

    async def scenario():
        await store.connection.connect()
        sent = await store.send_translation("hello")
        await store.connection.disconnect()
        return sent

    assert asyncio.run(scenario()) is False
    assert store.last_error == SEND_FAILED_MESSAGE


def test_results_append_in_arrival_order_and_errors_overwrite():
    transport = FakeTransport()
    store, _ = make_store(transport)

    async def scenario():
        await store.connection.connect()
        transport.push("translation-result", result_payload("second"))
        transport.push("translation-result", result_payload("first"))
        transport.push("translation-result", result_payload("first"))
        transport.push("translation-error", {"error": "Translation failed"})
        transport.push("translation-error", {"error": "Text cannot be empty"})
        await wait_until(lambda: store.last_error == "Text cannot be empty")
        await store.connection.disconnect()

    asyncio.run(scenario())
    assert [r.original for r in store.results] == ["second", "first", "first"]
    assert store.last_error == "Text cannot be empty"


def test_clear_only_removes_existing_results():
    transport = FakeTransport()
    store, _ = make_store(transport)

    async def scenario():
        await store.connection.connect()
        transport.push("translation-result", result_payload("old"))
        await wait_until(lambda: len(store.results) == 1)
        store.clear()
        assert store.results == []
        assert store.connected is True
        transport.push("translation-result", result_payload("in flight"))
        await wait_until(lambda: len(store.results) == 1)
        await store.connection.disconnect()

    asyncio.run(scenario())
    assert [r.original for r in store.results] == ["in flight"]


def test_clear_on_empty_store_is_idempotent():
    store, _ = make_store()
    store.clear()
    store.clear()
    assert store.results == []


def test_drop_then_reconnect_restores_connected_state():
    first, second = FakeTransport(), FakeTransport()
    store, connector = make_store(first, second)
    states = []
    store.on_change = lambda: states.append((store.connected, store.last_error))

    async def scenario():
        await store.connection.connect()
        first.drop()
        await wait_until(lambda: len(connector.urls) == 2 and store.connected)
        await store.connection.disconnect()

    asyncio.run(scenario())
    assert (False, DISCONNECTED_MESSAGE) in states
    assert states[-1] == (True, None)
    assert store.last_error is None


def test_exhausted_reconnects_leave_store_disconnected():
    first = FakeTransport()
    store, connector = make_store(first, OSError("down"), reconnection_attempts=1)

    async def scenario():
        await store.connection.connect()
        first.drop()
        await wait_until(lambda: len(connector.urls) == 2)
        await asyncio.sleep(0.02)
        await store.connection.disconnect()

    asyncio.run(scenario())
    assert store.connected is False
    assert store.last_error == CONNECT_FAILED_MESSAGE
