"""
The IRC transport.

Owns the socket of a Session: logs on, keeps the connection alive,
throttles what goes out, turns what comes in into frames, and
reconnects when the connection is lost. IRC networks can be rather
rigid with client behavior, which is why throttling is enabled by
default.
"""

import codecs
import logging
import math
import re
import ssl
import typing
from typing import Optional

import trio

from .config import ConnectionConfig
from .errors import AuthenticationError, ParseError, TransportError
from .frames import ChatLine, FrameTag, RawFrame
from .irc import ACTION_PREFIX, IRC_SOFT_NEWLINE, LOGIN_FAILURES, IRCLine, translate
from .models import Identity, MessageKind

Connector = typing.Callable[
    [str, int, Optional[ssl.SSLContext]], typing.Awaitable[trio.abc.Stream]
]


async def open_stream(
    host: str, port: int, ssl_context: Optional[ssl.SSLContext] = None
) -> trio.abc.Stream:
    """Opens a TCP connection, wrapped in TLS if given a context."""

    stream = await trio.open_tcp_stream(host, port)

    if ssl_context is not None:
        stream = trio.SSLStream(stream, ssl_context, server_hostname=host)

    return stream


class IRCTransport:
    """
    The connection of one Session to the chat server.

    Everything received is sent, in order, into the frame channel
    given at construction. Transport failures never escape run();
    they are reported as RECONNECTING (or DISCONNECTED) frames.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        identity: Identity,
        channel: str,
        frames: trio.MemorySendChannel,
        connector: Optional[Connector] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Arguments:
            config {ConnectionConfig} -- Where to connect and how.
            identity {Identity} -- The credentials to log on with.
            channel {str} -- The channel to join once logged on.
            frames {trio.MemorySendChannel} -- Where received frames go.

        Keyword Arguments:
            connector {Connector} -- Opens the underlying stream. (default: open_stream)
            logger {logging.Logger} -- The logger to use. (default: this module's)
        """

        self.config = config
        self.identity = identity
        self.channel = channel
        self.frames = frames
        self.connector = connector or open_stream
        self.logger = logger or logging.getLogger(__name__)

        self.stream = None  # type: Optional[trio.abc.Stream]
        self.heat = 0
        self.attempt = 0
        self.global_userstate = {}  # type: dict[str, str]
        self.userstates = {}  # type: dict[str, dict[str, str]]

        self._out_send, self._out_receive = trio.open_memory_channel(math.inf)
        self._write_lock = trio.Lock()
        self._lost = None  # type: Optional[TransportError]
        self._loop_scope = None  # type: Optional[trio.CancelScope]
        self._closed = False
        self._logged_on = False

    def closed(self) -> bool:
        return self._closed

    # === Lifecycle ===

    async def run(self):
        """
        Connects, and keeps reconnecting until cancelled (or until the
        connection is lost while reconnecting is disabled, or the
        credentials are refused). Closes the frame channel and the
        outbound queue when done.
        """

        try:
            await self._reconnect_loop()

        finally:
            self._out_send.close()

    async def _reconnect_loop(self):
        async with self.frames:
            reason = None
            first = True

            while not self._closed:
                if not first:
                    await self._emit(FrameTag.CONNECTING)

                first = False

                try:
                    await self._connection_loop()

                except AuthenticationError as err:
                    self.logger.error("Logon to %s failed: %s", self.config.host, err)
                    await self._emit(FrameTag.DISCONNECTED, str(err))
                    return

                except TransportError as err:
                    reason = str(err)
                    self.logger.warning(
                        "Connection to %s:%d lost: %s",
                        self.config.host,
                        self.config.port,
                        err,
                    )

                finally:
                    await self._close_stream()

                if not self.config.reconnect:
                    await self._emit(FrameTag.DISCONNECTED, reason)
                    return

                await self._emit(FrameTag.RECONNECTING, reason)

                delay = self.config.reconnect_delay(self.attempt)
                self.logger.info("Reconnecting in %.2f seconds", delay)

                await trio.sleep(delay)
                self.attempt += 1

    async def _connection_loop(self):
        try:
            self.stream = await self.connector(
                self.config.host, self.config.port, self.config.make_ssl_context()
            )

        except OSError as err:
            raise TransportError(
                "Could not connect to {}:{}: {}".format(self.config.host, self.config.port, err)
            ) from err

        await self._emit(FrameTag.CONNECTED)

        self._lost = None
        self._logged_on = False

        async with trio.open_nursery() as nursery:
            self._loop_scope = nursery.cancel_scope

            nursery.start_soon(self._until_lost, self._cooldown)
            nursery.start_soon(self._until_lost, self._handshake_and_receive, nursery)

        raise self._lost or TransportError("Connection closed")

    async def _until_lost(self, func: typing.Callable[..., typing.Awaitable[None]], *args):
        try:
            await func(*args)

        except TransportError as err:
            if self._lost is None:
                self._lost = err

            self._loop_scope.cancel()

    async def aclose(self):
        """
        Releases the connection. Only the first call does anything;
        the stream itself is closed at most once.
        """

        if self._closed:
            return

        self._closed = True
        self._out_send.close()

        await self._close_stream()

    async def _close_stream(self):
        stream, self.stream = self.stream, None

        if stream is not None:
            await trio.aclose_forcefully(stream)

    # === Sending ===

    async def _write(self, line: str):
        if self.stream is None:
            raise TransportError("Not connected")

        async with self._write_lock:
            try:
                await self.stream.send_all(line.encode("utf-8") + b"\r\n")

            except (trio.BrokenResourceError, trio.ClosedResourceError, OSError) as err:
                raise TransportError("Could not send: {}".format(err)) from err

        if line.startswith("PASS "):
            self.logger.debug("> PASS ***")

        else:
            self.logger.debug("> %s", line)

    async def _handshake(self):
        """
        Sends the logon handshake: capabilities, credentials, and
        the JOIN of the session's channel.
        """

        if self.config.capabilities:
            await self._write("CAP REQ :" + " ".join(self.config.capabilities))

        await self._write("PASS " + self.identity.password())
        await self._write("NICK " + self.identity.username.lower())
        await self._write("JOIN " + self.channel)

    async def _cooldown(self):
        """
        This async loop is responsible for 'cooling' the transport
        down, at a specified frequency. It's part of the
        throttling mechanism.
        """

        if not self.config.throttle:
            return

        while True:
            await trio.sleep(1 / self.config.cooldown_hertz)
            self.heat = max(self.heat - 1, 0)

    async def _sender(self):
        """
        This async loop is responsible for sending queued lines,
        handling throttling, and echoing our own chat lines back
        as frames.
        """

        async for line, echo in self._out_receive:
            if self.config.throttle:
                while self.heat >= self.config.max_heat:
                    await trio.sleep(1 / self.config.cooldown_hertz)

                self.heat += 1

            await self._write(line)

            if echo is not None:
                await self.frames.send(echo)

    def queue(self, line: str, echo: Optional[RawFrame] = None) -> bool:
        """
        Queues a raw IRC line to be sent, without waiting for it.

        Arguments:
            line {str} -- The line to send.

        Keyword Arguments:
            echo {RawFrame} -- A frame to emit once the line is sent. (default: None)

        Raises:
            ValueError: The line contains a line break.

        Returns:
            bool -- False if the transport is closed and the line was dropped.
        """

        if "\r" in line or "\n" in line:
            raise ValueError("Outbound line contains a line break: {}".format(repr(line)))

        try:
            self._out_send.send_nowait((line, echo))

        except trio.ClosedResourceError:
            self.logger.debug("Dropping %r, transport is closed", line)
            return False

        return True

    def _self_echo(self, channel: str, text: str, kind: MessageKind) -> RawFrame:
        tags = dict(self.global_userstate)
        tags.update(self.userstates.get(channel, {}))
        tags.pop("id", None)

        return RawFrame(
            FrameTag.MESSAGE,
            ChatLine(channel, self.identity.username.lower(), text, kind, tags, is_self=True),
        )

    def say(self, text: str, channel: Optional[str] = None) -> bool:
        """Sends a chat message to a channel (default: the session's)."""

        channel = channel or self.channel

        return self.queue(
            "PRIVMSG {} :{}".format(channel, text),
            self._self_echo(channel, text, MessageKind.CHAT),
        )

    def action(self, text: str, channel: Optional[str] = None) -> bool:
        """Sends an action (/me) message to a channel (default: the session's)."""

        channel = channel or self.channel

        return self.queue(
            "PRIVMSG {} :{}{}\x01".format(channel, ACTION_PREFIX, text),
            self._self_echo(channel, text, MessageKind.ACTION),
        )

    def join(self, channel: str) -> bool:
        return self.queue("JOIN " + channel)

    def part(self, channel: str) -> bool:
        return self.queue("PART " + channel)

    # === Receiving ===

    async def _emit(self, tag: FrameTag, payload: typing.Any = None):
        await self.frames.send(RawFrame(tag, payload))

    async def _handshake_and_receive(self, nursery: trio.Nursery):
        await self._handshake()

        # queued lines wait until the JOIN is out
        nursery.start_soon(self._until_lost, self._sender)

        await self._receiver()

    async def _receiver(self):
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        buffer = ""

        try:
            async for data in self.stream:
                lines = re.split(IRC_SOFT_NEWLINE, buffer + decoder.decode(data))
                buffer = lines.pop()

                for line in lines:
                    if line:
                        await self._receive(line)

        except (trio.BrokenResourceError, trio.ClosedResourceError) as err:
            raise TransportError("Connection broke: {}".format(err)) from err

        raise TransportError("Server closed the connection")

    async def _receive(self, line: str):
        """
        Called for every line received from the server, stripped
        of its trailing newline.

        Arguments:
            line {str} -- The line received.
        """

        self.logger.debug("< %s", line)

        try:
            irc_line = IRCLine.parse(line)
            frames = translate(irc_line)

        except ParseError as err:
            self.logger.warning("Dropping malformed line: %s", err)
            return

        if irc_line.kind == "PING":
            await self._write("PONG :{}".format(irc_line.data or ""))
            return

        if irc_line.kind == "RECONNECT":
            raise TransportError("Server asked us to reconnect")

        if irc_line.kind == "001":
            self.attempt = 0
            self._logged_on = True

        elif irc_line.kind == "GLOBALUSERSTATE":
            self.global_userstate = dict(irc_line.tags)

        elif irc_line.kind == "USERSTATE" and irc_line.args:
            self.userstates[irc_line.args[0]] = dict(irc_line.tags)

        for frame in frames:
            await self.frames.send(frame)

        if (
            irc_line.kind == "NOTICE"
            and not self._logged_on
            and (irc_line.data or "").startswith(LOGIN_FAILURES)
        ):
            raise AuthenticationError(irc_line.data)

    def __repr__(self):
        return "{}({}:{} {})".format(
            type(self).__name__, self.config.host, self.config.port, self.channel
        )
