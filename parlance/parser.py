"""
Turns MESSAGE frames into typed chat Messages.
"""

import datetime
import unicodedata
from typing import Optional

from .colors import ColorAssigner
from .errors import ParseError
from .frames import ChatLine, FrameTag, RawFrame
from .models import Message, MessageKind, User, new_id

LOGGED_KINDS = frozenset({MessageKind.CHAT, MessageKind.ACTION})


def strip_control_characters(text: str) -> str:
    """Removes control characters, leaving everything else untouched.

        >>> strip_control_characters('hi\\x01 there\\x07!')
        'hi there!'
    """

    return "".join(char for char in text if unicodedata.category(char) != "Cc")


def sent_timestamp(line: ChatLine, fallback: datetime.datetime) -> datetime.datetime:
    """The time the service says a line was sent at, if it says so."""

    sent = line.tags.get("tmi-sent-ts")

    if not sent:
        return fallback

    try:
        return datetime.datetime.fromtimestamp(int(sent) / 1000, datetime.timezone.utc)

    except (ValueError, OverflowError, OSError):
        return fallback


class MessageParser:
    """
    Builds Messages out of chat and action lines. Colors are resolved
    through the session's ColorAssigner, which it holds by reference.
    """

    def __init__(self, colors: ColorAssigner):
        self.colors = colors

    def parse(self, frame: RawFrame, user: User, is_self: bool = False) -> Optional[Message]:
        """Parses a frame into a Message.

        Only MESSAGE frames of the chat and action kinds yield a Message;
        anything else yields None.

        Arguments:
            frame {RawFrame} -- The frame to parse.
            user {User} -- The sender. Their color may be filled in.

        Keyword Arguments:
            is_self {bool} -- Whether this session sent the line. (default: False)

        Raises:
            ParseError: A MESSAGE frame doesn't carry a ChatLine.

        Returns:
            Optional[Message] -- The message, if the frame stands for one.
        """

        if frame.tag is not FrameTag.MESSAGE:
            return None

        line = frame.payload

        if not isinstance(line, ChatLine):
            raise ParseError("MESSAGE frame without a chat line: {}".format(repr(line)))

        if line.kind not in LOGGED_KINDS:
            return None

        color = self.colors.colorize(user)

        return Message(
            id=line.tags.get("id") or new_id(),
            timestamp=sent_timestamp(line, frame.received),
            kind=line.kind,
            user=user,
            text=strip_control_characters(line.text),
            color=color,
            channel=line.channel,
            badges=user.badges,
            is_self=is_self or user.is_self,
        )
