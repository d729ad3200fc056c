"""
The event dispatcher: routes frames by tag, one at a time, in the
order they arrived.
"""

import logging
import typing
from typing import Callable, Optional

import trio

from .errors import DownstreamError, ParlanceError, ParseError
from .frames import (ChatLine, FollowersOnlyChange, FrameTag, Membership, RawFrame,
                     RoomStateUpdate, ServerNotice)
from .models import Status, User
from .notices import NoticeFactory
from .parser import LOGGED_KINDS, MessageParser
from .session import Session
from .sink import EventSink

STATUS_BY_TAG = {
    FrameTag.CONNECTING: Status.CONNECTING,
    FrameTag.CONNECTED: Status.CONNECTED,
    FrameTag.LOGON: Status.LOGON,
    FrameTag.DISCONNECTED: Status.DISCONNECTED,
    FrameTag.RECONNECTING: Status.RECONNECTING,
}


class EventDispatcher:
    """
    Routes the frames of one Session to their handlers and emits the
    resulting events to the sink.

    There is exactly one handler per known tag; frames with other
    tags are dropped. Every mutation of the Session (status, colors,
    room states) happens in here, from a single task, so none of them
    are ever interleaved.
    """

    def __init__(
        self,
        session: Session,
        sink: EventSink,
        notices: Optional[NoticeFactory] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Arguments:
            session {Session} -- The session whose frames are dispatched.
            sink {EventSink} -- Where normalized events go.

        Keyword Arguments:
            notices {NoticeFactory} -- Builds notices. (default: a new one)
            logger {logging.Logger} -- The logger to use. (default: this module's)
        """

        self.session = session
        self.sink = sink
        self.parser = MessageParser(session.colors)
        self.notices = notices or NoticeFactory()
        self.logger = logger or logging.getLogger(__name__)

        self.handlers: dict[FrameTag, Callable[[RawFrame], None]] = {
            FrameTag.CONNECTING: self.on_status,
            FrameTag.CONNECTED: self.on_status,
            FrameTag.LOGON: self.on_status,
            FrameTag.DISCONNECTED: self.on_status,
            FrameTag.RECONNECTING: self.on_status,
            FrameTag.JOIN: self.on_join,
            FrameTag.ROOMSTATE: self.on_roomstate,
            FrameTag.MESSAGE: self.on_message,
            FrameTag.FOLLOWERS_ONLY: self.on_notice,
            FrameTag.NOTICE: self.on_notice,
        }

    async def run(self, frames: trio.MemoryReceiveChannel):
        """Dispatches every frame received from a channel, until it's closed."""

        async with frames:
            async for frame in frames:
                self.dispatch(frame)

    def dispatch(self, frame: RawFrame):
        """
        Hands a frame to its handler. Never raises: a failing handler
        is logged, and the next frame is processed as usual.

        Arguments:
            frame {RawFrame} -- The frame to dispatch.
        """

        handler = self.handlers.get(frame.tag)

        if handler is None:
            self.logger.debug("No handler for %r frames, dropping", frame.tag_name)
            return

        try:
            handler(frame)

        except ParlanceError as err:
            self.logger.warning(
                "Dropped %r frame: %s: %s", frame.tag_name, type(err).__name__, err
            )

        # pylint: disable=broad-except
        except Exception:
            self.logger.exception("Unexpected error handling %r frame", frame.tag_name)

    def emit(self, name: str, *args: typing.Any) -> bool:
        """
        Calls a sink method. A sink that raises is logged and otherwise
        ignored; the event is not retried.

        Returns:
            bool -- Whether the sink accepted the event.
        """

        try:
            getattr(self.sink, name)(*args)

        # pylint: disable=broad-except
        except Exception as err:
            error = DownstreamError("Sink rejected {}: {}".format(name, err))
            self.logger.warning("%s", error, exc_info=err)
            return False

        return True

    @staticmethod
    def _payload(frame: RawFrame, kind: type) -> typing.Any:
        if not isinstance(frame.payload, kind):
            raise ParseError(
                "Expected a {} payload, got {}".format(kind.__name__, repr(frame.payload))
            )

        return frame.payload

    # === Handlers ===

    def on_status(self, frame: RawFrame):
        status = STATUS_BY_TAG[frame.tag]

        if self.session.transition(status):
            self.emit("update_status", status)

    def on_join(self, frame: RawFrame):
        membership = self._payload(frame, Membership)

        if membership.login.lower() != self.session.identity.username.lower():
            return

        if membership.channel == self.session.channel:
            self.session.transition(Status.JOINED)

    def on_roomstate(self, frame: RawFrame):
        update = self._payload(frame, RoomStateUpdate)
        state = self.session.rooms.update(update.channel, update.fields)

        self.emit("update_room_state", state)

    def on_message(self, frame: RawFrame):
        line = self._payload(frame, ChatLine)
        user = User.from_tags(line.login, line.tags, is_self=line.is_self)
        message = self.parser.parse(frame, user, line.is_self)

        if message is None:
            return

        self.emit("add_log", message)

        if message.kind in LOGGED_KINDS:
            self.emit("add_chatter_with_message", user, message.id)

    def on_notice(self, frame: RawFrame):
        expected = FollowersOnlyChange if frame.tag is FrameTag.FOLLOWERS_ONLY else ServerNotice
        payload = self._payload(frame, expected)

        self.emit("add_log", self.notices.wrap(frame.tag, payload))
