"""
Frames are what the transport hands to the dispatcher: one discrete
protocol event each, tagged with what kind of event it is.
"""

import datetime
import enum
import typing
from typing import Optional, Union

import attr

from .models import MessageKind, utcnow


class FrameTag(enum.Enum):
    """The frame tags the dispatcher knows how to handle."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    LOGON = "logon"
    JOIN = "join"
    DISCONNECTED = "disconnected"
    RECONNECTING = "reconnect"
    ROOMSTATE = "roomstate"
    MESSAGE = "message"
    FOLLOWERS_ONLY = "followersonly"
    NOTICE = "notice"


@attr.s(auto_attribs=True, frozen=True)
class RawFrame:
    """
    A tagged protocol event.

    Tags the dispatcher doesn't know are kept as plain lowercase
    strings (usually the IRC command they came from).
    """

    tag: Union[FrameTag, str]
    payload: typing.Any = None
    received: datetime.datetime = attr.Factory(utcnow)

    @property
    def tag_name(self) -> str:
        return self.tag.value if isinstance(self.tag, FrameTag) else str(self.tag)


@attr.s(auto_attribs=True, frozen=True)
class ChatLine:
    """Payload of a MESSAGE frame."""

    channel: str
    login: str
    text: str
    kind: MessageKind = MessageKind.CHAT
    tags: dict[str, str] = attr.Factory(dict)
    is_self: bool = False


@attr.s(auto_attribs=True, frozen=True)
class RoomStateUpdate:
    """Payload of a ROOMSTATE frame. Fields are named after RoomState's."""

    channel: str
    fields: dict[str, typing.Any] = attr.Factory(dict)


@attr.s(auto_attribs=True, frozen=True)
class FollowersOnlyChange:
    """Payload of a FOLLOWERS_ONLY frame."""

    channel: str
    enabled: bool
    minutes: int = 0


@attr.s(auto_attribs=True, frozen=True)
class ServerNotice:
    """Payload of a NOTICE frame."""

    channel: Optional[str]
    text: str
    msg_id: Optional[str] = None

    def __str__(self) -> str:
        return self.text


@attr.s(auto_attribs=True, frozen=True)
class Membership:
    """Payload of a JOIN frame."""

    channel: str
    login: str
