"""
The domain values Parlance hands out to its event sink.

Messages, notices and room state snapshots are immutable once
built. Users are the one exception: their color may be filled
in later by the session's ColorAssigner.
"""

import datetime
import enum
import typing
import uuid
from typing import Optional

import attr


class Status(enum.Enum):
    """Connection status of a Session."""

    DEFAULT = "default"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    LOGON = "logon"
    JOINED = "joined"
    DISCONNECTED = "disconnected"
    RECONNECTING = "reconnecting"


class MessageKind(enum.Enum):
    """The kind of a chat message, as told by the service."""

    CHAT = "chat"
    ACTION = "action"
    WHISPER = "whisper"


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


@attr.s(auto_attribs=True, frozen=True)
class Identity:
    """The credentials a Session logs on with."""

    username: str
    token: str = attr.ib(repr=False)

    def password(self) -> str:
        """Returns the token in the form the PASS command expects.

            >>> Identity('bob', 'abc123').password()
            'oauth:abc123'
            >>> Identity('bob', 'oauth:abc123').password()
            'oauth:abc123'
        """

        if self.token.startswith("oauth:"):
            return self.token

        return "oauth:" + self.token


@attr.s(auto_attribs=True)
class User:
    """
    A chatter, as seen through the tags of one of their lines.

    Messages keep a reference to the User that sent them, rather
    than a copy, so a color assigned later is seen by both.
    """

    id: str
    login: str
    display_name: str
    color: Optional[str] = None
    badges: Optional[str] = None
    is_self: bool = False
    is_mod: bool = False
    is_broadcaster: bool = False
    is_subscriber: bool = False

    @classmethod
    def from_tags(
        cls: typing.Type["User"],
        login: str,
        tags: typing.Mapping[str, str],
        is_self: bool = False,
    ) -> "User":
        """Builds a User from the IRCv3 tags of a chat line.

            >>> user = User.from_tags('bob', {'user-id': '42', 'display-name': 'Bob', 'mod': '1'})
            >>> user.id, user.display_name, user.is_mod, user.color
            ('42', 'Bob', True, None)

        Arguments:
            login {str} -- The login name, taken from the line's prefix.
            tags {Mapping[str, str]} -- The line's tags.

        Keyword Arguments:
            is_self {bool} -- Whether the line was sent by this session. (default: False)

        Returns:
            User -- The new user record.
        """

        badges = tags.get("badges") or None
        badge_names = {badge.split("/")[0] for badge in (badges or "").split(",")}

        return cls(
            id=tags.get("user-id") or login,
            login=login,
            display_name=tags.get("display-name") or login,
            color=tags.get("color") or None,
            badges=badges,
            is_self=is_self,
            is_mod=tags.get("mod") == "1" or "moderator" in badge_names,
            is_broadcaster="broadcaster" in badge_names,
            is_subscriber=tags.get("subscriber") == "1" or "subscriber" in badge_names,
        )

    @property
    def show_login(self) -> bool:
        """Whether the login should be shown next to the display name."""
        return self.display_name.lower() != self.login.lower()


@attr.s(auto_attribs=True, frozen=True, repr=False)
class Message:
    """A chat message, ready to be rendered without further lookups."""

    id: str
    timestamp: datetime.datetime
    kind: MessageKind
    user: User = attr.ib(eq=False)
    text: str
    color: Optional[str]
    channel: str
    badges: Optional[str] = None
    is_self: bool = False

    @property
    def time(self) -> str:
        return self.timestamp.strftime("%H:%M")

    def __repr__(self) -> str:
        return "{}({} in {}: {})".format(
            type(self).__name__, self.user.login, self.channel, repr(self.text)
        )


@attr.s(auto_attribs=True, frozen=True)
class Notice:
    """A system-generated log entry."""

    title: str
    source: str
    details: Optional[str] = None
    id: str = attr.Factory(new_id)
    timestamp: datetime.datetime = attr.Factory(utcnow)


@attr.s(auto_attribs=True, frozen=True)
class RoomState:
    """
    The mode flags of one channel.

    A None field has never been reported by the service. Values are
    kept as received: a malformed one is passed through untouched.
    """

    channel: str
    slow_mode: typing.Any = None
    followers_only: typing.Any = None
    emote_only: typing.Any = None
    r9k: typing.Any = None
    subs_only: typing.Any = None


ROOM_STATE_FIELDS = tuple(
    field.name for field in attr.fields(RoomState) if field.name != "channel"
)
