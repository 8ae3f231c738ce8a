"""Tests for RTMConnection against an in-memory websocket."""

import asyncio

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK
from websockets.frames import Close

from rtmbot.session.connection import RTMConnection


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class FakeWebSocket:
    """Records sends and tracks how many run at the same time."""

    def __init__(self, send_delay: float = 0.01):
        self.send_delay = send_delay
        self.sent: list[str] = []
        self.active = 0
        self.max_active = 0
        self.close_codes: list[int] = []
        self.incoming: list = []
        self.hang_on_close = False
        self.close_error: Exception | None = None

    async def send(self, data: str) -> None:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.send_delay)
            self.sent.append(data)
        finally:
            self.active -= 1

    async def recv(self):
        item = self.incoming.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self, code: int = 1000) -> None:
        if self.close_error is not None:
            raise self.close_error
        if self.hang_on_close:
            await asyncio.Event().wait()
        self.close_codes.append(code)


def _closed_ok() -> ConnectionClosedOK:
    return ConnectionClosedOK(Close(1000, ""), Close(1000, ""), rcvd_then_sent=True)


# ---------------------------------------------------------------------------
# read_frame
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_read_frame_returns_text_and_bytes():
    ws = FakeWebSocket()
    ws.incoming = ['{"type": "hello"}', b"\x00\x01"]
    conn = RTMConnection(ws)

    assert await conn.read_frame() == '{"type": "hello"}'
    assert await conn.read_frame() == b"\x00\x01"


@pytest.mark.asyncio
async def test_read_frame_returns_none_on_clean_close():
    ws = FakeWebSocket()
    ws.incoming = [_closed_ok()]

    assert await RTMConnection(ws).read_frame() is None


@pytest.mark.asyncio
async def test_read_frame_raises_on_abnormal_close():
    ws = FakeWebSocket()
    ws.incoming = [ConnectionClosedError(None, None)]

    with pytest.raises(ConnectionClosedError):
        await RTMConnection(ws).read_frame()


# ---------------------------------------------------------------------------
# write_frame / close
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_concurrent_writes_never_overlap():
    ws = FakeWebSocket()
    conn = RTMConnection(ws)

    await asyncio.gather(*(conn.write_frame(f"m{i}") for i in range(5)))

    assert ws.max_active == 1
    assert sorted(ws.sent) == [f"m{i}" for i in range(5)]


@pytest.mark.asyncio
async def test_close_waits_for_in_flight_write():
    ws = FakeWebSocket(send_delay=0.05)
    conn = RTMConnection(ws)

    write = asyncio.create_task(conn.write_frame("last"))
    await asyncio.sleep(0)
    await conn.close(timeout=1.0)

    assert write.done()
    assert ws.sent == ["last"]
    assert ws.close_codes == [1000]


@pytest.mark.asyncio
async def test_close_is_bounded_by_timeout():
    ws = FakeWebSocket()
    ws.hang_on_close = True
    conn = RTMConnection(ws)

    loop = asyncio.get_running_loop()
    started = loop.time()
    await conn.close(timeout=0.05)

    assert loop.time() - started < 1.0
    assert not conn.write_lock.locked()


@pytest.mark.asyncio
async def test_close_errors_are_not_raised():
    ws = FakeWebSocket()
    ws.close_error = ConnectionClosedError(None, None)

    await RTMConnection(ws).close(timeout=0.5)

    ws.close_error = OSError("broken pipe")
    await RTMConnection(ws).close(timeout=0.5)
