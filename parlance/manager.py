"""
The ConnectionManager: the one entry point collaborators talk to.
"""

import logging
from collections.abc import Mapping
from typing import Optional, Union

import trio

from .colors import ColorAssigner
from .config import ConnectionConfig
from .dispatcher import EventDispatcher
from .errors import ConfigurationError
from .models import Identity, Status
from .notices import NoticeFactory
from .roomstate import RoomStateTracker
from .session import Session, normalize_channel
from .sink import EventSink
from .transport import Connector, IRCTransport


def coerce_identity(identity: Union[Identity, Mapping[str, str], None]) -> Identity:
    """Accepts an Identity, or a mapping with username and token keys.

    Raises:
        ConfigurationError: The identity is missing or incomplete.
    """

    if isinstance(identity, Mapping):
        identity = Identity(identity.get("username") or "", identity.get("token") or "")

    if not isinstance(identity, Identity) or not identity.username or not identity.token:
        raise ConfigurationError("Missing login details.")

    return identity


class ConnectionManager:
    """
    Owns the Session, if any, and everything it runs.

    Run serve() in a nursery first; then connect() and disconnect()
    as needed. There is at most one live Session at a time.

        >>> manager = ConnectionManager(None)
        >>> manager.running(), manager.status
        (False, <Status.DISCONNECTED: 'disconnected'>)
    """

    def __init__(
        self,
        sink: EventSink,
        config: Optional[ConnectionConfig] = None,
        connector: Optional[Connector] = None,
        notices: Optional[NoticeFactory] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Arguments:
            sink {EventSink} -- Where the events of every session go.

        Keyword Arguments:
            config {ConnectionConfig} -- Connection settings. (default: ConnectionConfig())
            connector {Connector} -- Opens the underlying streams. (default: TCP, with TLS
                                     as configured)
            notices {NoticeFactory} -- Builds notices; register extra titles on it.
                                       (default: a new one)
            logger {logging.Logger} -- The logger to use. (default: 'parlance')
        """

        self.sink = sink
        self.config = config or ConnectionConfig()
        self.connector = connector
        self.notices = notices or NoticeFactory()
        self.logger = logger or logging.getLogger("parlance")

        self.session = None  # type: Optional[Session]
        self.dispatcher = None  # type: Optional[EventDispatcher]
        self.nursery = None  # type: Optional[trio.Nursery]

    def running(self) -> bool:
        """Whether serve() is running, and sessions can thus be started."""
        return self.nursery is not None

    @property
    def status(self) -> Status:
        if self.session is None:
            return Status.DISCONNECTED

        return self.session.status

    async def serve(self, *, task_status=trio.TASK_STATUS_IGNORED):
        """
        Runs the tasks of this manager's sessions, until cancelled.
        Use with nursery.start, so that connect() can be called as
        soon as it returns.
        """

        try:
            async with trio.open_nursery() as nursery:
                self.nursery = nursery
                task_status.started()

                await trio.sleep_forever()

        finally:
            self.nursery = None
            session, self.session = self.session, None

            if session is not None:
                session.teardown()

    # === Session lifecycle ===

    async def connect(
        self,
        identity: Union[Identity, Mapping[str, str], None],
        channel: Optional[str],
    ) -> Session:
        """Starts a new Session, ending the current one first, if any.

        The session's status becomes Connecting immediately; the rest
        is up to the transport.

        Arguments:
            identity {Identity} -- The credentials to log on with.
            channel {str} -- The channel to join.

        Raises:
            ConfigurationError: The identity or channel is missing or empty.
            RuntimeError: The manager isn't serving.

        Returns:
            Session -- The new session.
        """

        identity = coerce_identity(identity)

        if not channel or not channel.strip().lstrip("#"):
            raise ConfigurationError("Missing channel.")

        if self.nursery is None:
            raise RuntimeError("Tried to connect while the manager isn't serving!")

        await self.disconnect()

        session = Session(
            identity,
            normalize_channel(channel),
            colors=ColorAssigner(self.config.palette),
            rooms=RoomStateTracker(self.logger.getChild("roomstate")),
        )

        send_frames, receive_frames = trio.open_memory_channel(self.config.frame_buffer)

        session.transport = IRCTransport(
            self.config,
            identity,
            session.channel,
            send_frames,
            connector=self.connector,
            logger=self.logger.getChild("transport"),
        )

        dispatcher = EventDispatcher(
            session, self.sink, self.notices, self.logger.getChild("dispatcher")
        )

        self.session = session
        self.dispatcher = dispatcher

        session.transition(Status.CONNECTING)
        dispatcher.emit("update_status", Status.CONNECTING)

        self.logger.info("Connecting to %s as %s", session.channel, identity.username)
        self.nursery.start_soon(self._run_session, session, dispatcher, receive_frames)

        return session

    async def _run_session(
        self,
        session: Session,
        dispatcher: EventDispatcher,
        frames: trio.MemoryReceiveChannel,
    ):
        try:
            with session.cancel_scope:
                async with trio.open_nursery() as nursery:
                    nursery.start_soon(session.transport.run)
                    nursery.start_soon(dispatcher.run, frames)

        finally:
            session.finished.set()

    async def disconnect(self):
        """
        Ends the current Session: aborts any reconnect in progress,
        releases the connection, forgets the session's colors and room
        states, and reports Disconnected. Does nothing if there is no
        session, so calling it twice is harmless.
        """

        session, self.session = self.session, None
        dispatcher, self.dispatcher = self.dispatcher, None

        if session is None:
            return

        session.cancel_scope.cancel()
        await session.finished.wait()

        if session.transport is not None:
            await session.transport.aclose()

        previous = session.status
        session.teardown()

        self.logger.info("Disconnected from %s", session.channel)

        if previous is not Status.DISCONNECTED:
            dispatcher.emit("update_status", Status.DISCONNECTED)

    async def switch_channel(self, channel: Optional[str]) -> Session:
        """Ends the current Session and starts one on another channel, as the same user.

        Raises:
            ConfigurationError: There is no session to take the identity from,
                                or the channel is missing.
        """

        if self.session is None:
            raise ConfigurationError("Not connected; there is no identity to switch with.")

        return await self.connect(self.session.identity, channel)

    # === Outbound requests ===
    # These only queue; none of them wait for the line to be sent.
    # Text with line breaks raises ValueError.

    def _transport(self) -> Optional[IRCTransport]:
        if self.session is None or self.session.transport is None:
            self.logger.debug("Not connected, dropping outbound request")
            return None

        return self.session.transport

    def say(self, text: str, channel: Optional[str] = None) -> bool:
        transport = self._transport()
        return transport is not None and transport.say(text, channel and normalize_channel(channel))

    def action(self, text: str, channel: Optional[str] = None) -> bool:
        transport = self._transport()
        return transport is not None and transport.action(text, channel and normalize_channel(channel))

    def join(self, channel: str) -> bool:
        transport = self._transport()
        return transport is not None and transport.join(normalize_channel(channel))

    def part(self, channel: str) -> bool:
        transport = self._transport()
        return transport is not None and transport.part(normalize_channel(channel))

    def __repr__(self):
        return "{}({}, {})".format(type(self).__name__, self.config.host, self.session)
