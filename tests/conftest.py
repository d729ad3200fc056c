import math
import typing

import pytest
import trio
import trio.testing

from parlance.config import ConnectionConfig
from parlance.frames import ChatLine, FrameTag, RawFrame
from parlance.models import Identity, MessageKind
from parlance.session import Session
from parlance.sink import ChatStore


class RecordingSink(ChatStore):
    """A ChatStore that also remembers every call, and can be told to fail."""

    def __init__(self):
        super().__init__()
        self.calls = []
        self.failing = set()

    def _record(self, name, *args):
        self.calls.append((name, args))

        if name in self.failing:
            raise RuntimeError("{} is broken".format(name))

    def add_log(self, entry):
        self._record("add_log", entry)
        super().add_log(entry)

    def update_room_state(self, state):
        self._record("update_room_state", state)
        super().update_room_state(state)

    def update_status(self, status):
        self._record("update_status", status)
        super().update_status(status)

    def add_chatter_with_message(self, user, message_id):
        self._record("add_chatter_with_message", user, message_id)
        super().add_chatter_with_message(user, message_id)

    def statuses(self):
        return [args[0] for name, args in self.calls if name == "update_status"]


class ServerConnection:
    """The server's end of one client connection."""

    def __init__(self, stream: trio.abc.Stream):
        self.stream = stream
        self.buffer = b""

    async def read_line(self) -> str:
        while b"\r\n" not in self.buffer:
            data = await self.stream.receive_some()

            if not data:
                raise EOFError("client went away")

            self.buffer += data

        line, self.buffer = self.buffer.split(b"\r\n", 1)
        return line.decode("utf-8")

    async def read_lines(self, count: int) -> typing.List[str]:
        return [await self.read_line() for _ in range(count)]

    async def send(self, *lines: str):
        for line in lines:
            await self.stream.send_all(line.encode("utf-8") + b"\r\n")

    async def close(self):
        await self.stream.aclose()


class FakeServer:
    """A connector that hands out in-memory streams instead of sockets."""

    def __init__(self):
        self.connections = 0
        self.refuse = False
        self._accepted_send, self._accepted = trio.open_memory_channel(math.inf)

    async def connect(self, host, port, ssl_context):
        if self.refuse:
            raise OSError("connection refused")

        client, server = trio.testing.memory_stream_pair()
        self.connections += 1
        self._accepted_send.send_nowait(ServerConnection(server))

        return client

    async def accept(self) -> ServerConnection:
        with trio.fail_after(5):
            return await self._accepted.receive()


async def wait_for(predicate, timeout: float = 5.0):
    with trio.fail_after(timeout):
        while not predicate():
            await trio.sleep(0.01)


def chat_frame(text="hello", login="bob", kind=MessageKind.CHAT, **tags):
    tags = {key.replace("_", "-"): value for key, value in tags.items()}
    return RawFrame(FrameTag.MESSAGE, ChatLine("#chan", login, text, kind, tags))


@pytest.fixture
def identity():
    return Identity("parlancebot", "secret")


@pytest.fixture
def session(identity):
    return Session(identity, "#chan")


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def fake_server():
    return FakeServer()


@pytest.fixture
def config():
    return ConnectionConfig(
        use_ssl=False,
        throttle=False,
        reconnect_interval=0.01,
        max_reconnect_interval=0.05,
    )
