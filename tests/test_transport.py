import math

import attr
import pytest
import trio

from parlance.frames import FrameTag
from parlance.transport import IRCTransport


@pytest.fixture
def frames():
    return trio.open_memory_channel(math.inf)


@pytest.fixture
async def running(config, identity, fake_server, frames, nursery):
    async def start(**changes):
        transport = IRCTransport(
            attr.evolve(config, **changes),
            identity,
            "#chan",
            frames[0],
            connector=fake_server.connect,
        )
        nursery.start_soon(transport.run)

        server = await fake_server.accept()
        await server.read_lines(4)

        return transport, server

    return start


async def test_lines_split_across_reads(running, frames):
    transport, server = await running()
    data = ":bob!bob@bob.tmi.twitch.tv PRIVMSG #chan :héllo\r\n:tmi.twitch.tv 001 bob :hi\n".encode("utf-8")

    for n in range(len(data)):
        await server.stream.send_all(data[n:n + 1])

    tags = []
    texts = []

    with trio.fail_after(5):
        while len(tags) < 3:
            frame = await frames[1].receive()
            tags.append(frame.tag)

            if frame.tag is FrameTag.MESSAGE:
                texts.append(frame.payload.text)

    assert tags == [FrameTag.CONNECTED, FrameTag.MESSAGE, FrameTag.LOGON]
    assert texts == ["héllo"]


async def test_throttling(running, autojump_clock):
    transport, server = await running(throttle=True, max_heat=2, cooldown_hertz=1.0)

    for n in range(4):
        assert transport.join("#c{}".format(n))

    assert await server.read_lines(2) == ["JOIN #c0", "JOIN #c1"]

    with trio.move_on_after(0.5) as scope:
        await server.read_line()

    assert scope.cancelled_caught
    assert await server.read_lines(2) == ["JOIN #c2", "JOIN #c3"]


async def test_global_and_channel_userstate_are_merged(running, frames):
    transport, server = await running()

    await server.send(
        "@color=#0000FF;display-name=ParlanceBot;user-id=7 :tmi.twitch.tv GLOBALUSERSTATE",
        "@color=#00FF00;id=abc;mod=1 :tmi.twitch.tv USERSTATE #chan",
    )

    with trio.fail_after(5):
        while "#chan" not in transport.userstates:
            await trio.sleep(0.01)

    transport.say("hello")

    with trio.fail_after(5):
        while True:
            frame = await frames[1].receive()

            if frame.tag is FrameTag.MESSAGE:
                break

    line = frame.payload

    assert line.is_self
    assert line.tags == {
        "color": "#00FF00",
        "display-name": "ParlanceBot",
        "user-id": "7",
        "mod": "1",
    }


async def test_close_is_idempotent(config, identity, frames):
    transport = IRCTransport(config, identity, "#chan", frames[0])

    await transport.aclose()
    await transport.aclose()

    assert transport.closed()
    assert not transport.say("too late")
    assert not transport.join("#chan")


async def test_line_breaks_are_rejected(config, identity, frames):
    transport = IRCTransport(config, identity, "#chan", frames[0])

    for send in (
        lambda: transport.say("hi\r\nPART #chan"),
        lambda: transport.action("waves\n"),
        lambda: transport.join("#a\rb"),
    ):
        with pytest.raises(ValueError):
            send()

    with pytest.raises(trio.WouldBlock):
        transport._out_receive.receive_nowait()
