import asyncio
import os
import socket
import struct
import threading
import time

import pytest

from clipreceiver.errors import BindError
from clipreceiver.network import ConnectionHandler, ConnectionListener, ListenerState
from clipreceiver.services import ClipboardWriter, PortAllocator

from conftest import FakeSink, wait_for


async def start_listener(sink, max_bytes=None, port=0):
    listener = ConnectionListener(ConnectionHandler(ClipboardWriter(sink), max_bytes=max_bytes))
    bound = await listener.bind("127.0.0.1", port)
    await listener.start_accepting()
    return listener, bound


async def send(port: int, data: bytes) -> None:
    reader, writer = await asyncio.open_connection("127.0.0.1", port)
    writer.write(data)
    await writer.drain()
    writer.close()
    await writer.wait_closed()


def test_message_delivered_once_after_close(sink):
    data = os.urandom(5000)

    async def scenario():
        listener, port = await start_listener(sink)
        assert listener.state is ListenerState.ACCEPTING
        try:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(data)
            await writer.drain()
            await asyncio.sleep(0.2)
            assert sink.writes == []

            writer.write_eof()
            await wait_for(lambda: sink.writes)
            await asyncio.sleep(0.1)
            writer.close()
        finally:
            await listener.close()

    asyncio.run(scenario())
    assert sink.writes == [data]


def test_open_connection_never_delivers(sink):
    async def scenario():
        listener, port = await start_listener(sink)
        try:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(b"still typing")
            await writer.drain()
            await asyncio.sleep(0.3)
            assert sink.writes == []
            writer.close()
        finally:
            await listener.close()

    asyncio.run(scenario())


def test_empty_message_is_delivered(sink):
    async def scenario():
        listener, port = await start_listener(sink)
        try:
            await send(port, b"")
            await wait_for(lambda: sink.writes)
        finally:
            await listener.close()

    asyncio.run(scenario())
    assert sink.writes == [b""]


def test_oversized_message_is_dropped(sink):
    async def scenario():
        listener, port = await start_listener(sink, max_bytes=10)
        try:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(b"x" * 20)
            await writer.drain()
            try:
                assert await asyncio.wait_for(reader.read(), timeout=3.0) == b""
            except ConnectionResetError:
                pass
            writer.close()

            await send(port, b"small")
            await wait_for(lambda: sink.writes)
        finally:
            await listener.close()

    asyncio.run(scenario())
    assert sink.writes == [b"small"]


def test_sink_failure_does_not_stop_listener():
    sink = FakeSink(results=[False])

    async def scenario():
        listener, port = await start_listener(sink)
        try:
            await send(port, b"first")
            await wait_for(lambda: len(sink.writes) == 1)
            await send(port, b"second")
            await wait_for(lambda: len(sink.writes) == 2)
        finally:
            await listener.close()

    asyncio.run(scenario())
    assert sink.writes == [b"first", b"second"]


def test_concurrent_connections_each_deliver(sink):
    messages = [f"message {i}".encode() for i in range(8)]

    async def scenario():
        listener, port = await start_listener(sink)
        try:
            await asyncio.gather(*(send(port, m) for m in messages))
            await wait_for(lambda: len(sink.writes) == len(messages))
        finally:
            await listener.close()

    asyncio.run(scenario())
    assert sorted(sink.writes) == sorted(messages)


def test_port_in_use_is_fatal(sink):
    async def scenario():
        first, port = await start_listener(sink)
        try:
            with pytest.raises(BindError):
                await start_listener(sink, port=port)
        finally:
            await first.close()

    asyncio.run(scenario())


def test_serves_on_reserved_random_port(sink, tmp_path):
    port_file = tmp_path / "receiver.port"
    reservation = PortAllocator("127.0.0.1").resolve(0, True, port_file)

    async def scenario():
        listener = ConnectionListener(ConnectionHandler(ClipboardWriter(sink)))
        task = asyncio.create_task(
            listener.serve("127.0.0.1", reservation.port, reservation.sock))
        await wait_for(lambda: listener.state is ListenerState.ACCEPTING)
        try:
            assert listener.bound_port == int(port_file.read_text())
            await send(reservation.port, b"hello")
            await wait_for(lambda: sink.writes)
        finally:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    try:
        asyncio.run(scenario())
    finally:
        reservation.release()
    assert sink.writes == [b"hello"]


def test_writer_serializes_sink_calls():
    in_flight = 0
    peak = 0
    lock = threading.Lock()

    class SlowSink(FakeSink):
        def _set_clipboard(self, payload, metadata):
            nonlocal in_flight, peak
            with lock:
                in_flight += 1
                peak = max(peak, in_flight)
            time.sleep(0.02)
            with lock:
                in_flight -= 1
            return super()._set_clipboard(payload, metadata)

    sink = SlowSink()
    writer = ClipboardWriter(sink)

    async def scenario():
        return await asyncio.gather(*(writer.write(bytes([i])) for i in range(5)))

    results = asyncio.run(scenario())
    assert results == [True] * 5
    assert peak == 1
    assert sink.writes == [bytes([i]) for i in range(5)]


def test_writer_reports_raising_sink():
    class BrokenSink(FakeSink):
        def write(self, payload):
            raise RuntimeError("display gone")

    assert asyncio.run(ClipboardWriter(BrokenSink()).write(b"data")) is False


def test_states_follow_the_socket(sink):
    async def scenario():
        listener = ConnectionListener(ConnectionHandler(ClipboardWriter(sink)))
        assert listener.state is ListenerState.UNBOUND

        await listener.bind("127.0.0.1", 0)
        try:
            assert listener.state is ListenerState.BOUND
            assert listener.server.is_serving() is False

            await listener.start_accepting()
            assert listener.state is ListenerState.ACCEPTING
            assert listener.server.is_serving() is True
        finally:
            await listener.close()
        assert listener.state is ListenerState.UNBOUND

    asyncio.run(scenario())


def test_reset_connection_discards_partial_data(sink, caplog):
    async def scenario():
        listener, port = await start_listener(sink)
        try:
            reader, writer = await asyncio.open_connection("127.0.0.1", port)
            writer.write(b"half a message")
            await writer.drain()
            await asyncio.sleep(0.1)

            # zero linger turns the close into a RST
            writer.get_extra_info("socket").setsockopt(
                socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
            writer.transport.abort()
            await wait_for(lambda: "Dropped data" in caplog.text)
            assert sink.writes == []

            await send(port, b"after the reset")
            await wait_for(lambda: sink.writes)
        finally:
            await listener.close()

    asyncio.run(scenario())
    assert sink.writes == [b"after the reset"]
