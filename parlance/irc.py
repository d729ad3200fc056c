"""
IRC wire handling: lexing server lines (IRCv3 tags included) and
translating them into tagged frames for the dispatcher.
"""

import typing
from typing import Iterable, List, Optional, Tuple

import attr

from .errors import ParseError
from .frames import (ChatLine, FollowersOnlyChange, FrameTag, Membership, RawFrame,
                     RoomStateUpdate, ServerNotice)
from .models import MessageKind

IRC_SOFT_NEWLINE = "\r?\n"

TAG_ESCAPES = {":": ";", "s": " ", "\\": "\\", "r": "\r", "n": "\n"}

ACTION_PREFIX = "\x01ACTION "

# NOTICE texts the server sends, before 001, when it refuses to log us on
LOGIN_FAILURES = (
    "Login authentication failed",
    "Login unsuccessful",
    "Improperly formatted auth",
    "Invalid NICK",
)

# Twitch ROOMSTATE tag -> (RoomState field, value kind)
ROOMSTATE_TAGS = {
    "slow": ("slow_mode", int),
    "followers-only": ("followers_only", int),
    "emote-only": ("emote_only", bool),
    "r9k": ("r9k", bool),
    "subs-only": ("subs_only", bool),
}


def unescape_tag_value(value: str) -> str:
    r"""Undoes IRCv3 tag value escaping.

        >>> unescape_tag_value(r'hello\sworld\:\\')
        'hello world;\\'

    Arguments:
        value {str} -- The escaped value, as found on the wire.

    Returns:
        str -- The original value.
    """

    result = []
    chars = iter(value)

    for char in chars:
        if char == "\\":
            escaped = next(chars, "")
            result.append(TAG_ESCAPES.get(escaped, escaped))

        else:
            result.append(char)

    return "".join(result)


def parse_tags(raw: str) -> dict[str, str]:
    """Parses the tag section of a line, without its leading '@'."""

    tags = {}

    for item in raw.split(";"):
        if not item:
            continue

        key, _, value = item.partition("=")
        tags[key] = unescape_tag_value(value)

    return tags


@attr.s(auto_attribs=True, frozen=True, repr=False)
class IRCLine:
    """A single lexed IRC line."""

    line: str
    origin: str
    kind: str
    is_numeric: bool
    args: Tuple[str, ...] = ()
    data: Optional[str] = None
    tags: dict[str, str] = attr.Factory(dict)

    def __repr__(self):
        return "IRCLine({})".format(repr(self.line))

    @property
    def nick(self) -> Optional[str]:
        """The nickname in the origin, if the line came from a user."""
        if "!" not in self.origin:
            return None

        return self.origin.split("!")[0]

    @staticmethod
    def lex(line: str) -> Tuple[dict[str, str], str, str, List[str], Optional[str]]:
        """Splits a single IRC line into its constituent parts."""

        tags = {}
        rest = line.strip("\r\n")

        if rest.startswith("@"):
            raw_tags, _, rest = rest.partition(" ")
            tags = parse_tags(raw_tags[1:])

        origin = ""

        if rest.startswith(":"):
            origin, _, rest = rest[1:].partition(" ")

        tokens = iter(rest.split(" "))
        kind = next(tokens, "")

        if not kind:
            raise ParseError("IRC line has no command: {}".format(repr(line)))

        args = []
        data = None

        for tok in tokens:
            if data is not None:
                data += " " + tok

            elif tok.startswith(":"):
                data = tok[1:]

            elif tok:
                args.append(tok)

        return tags, origin, kind, args, data

    @classmethod
    def parse(cls: typing.Type["IRCLine"], line: str) -> "IRCLine":
        """Parses an IRC server line, according to RFC 1459 and IRCv3 message tags.

            >>> IRCLine.parse(':zirconium.libera.chat 404 :Not Found').kind
            '404'

            >>> print(IRCLine.parse('@mod=1 :bob!bob@host PRIVMSG #chan :a Good Word').data)
            a Good Word

        Arguments:
            line {str} -- The IRC line to parse.

        Raises:
            ParseError: The line has no command.

        Returns:
            IRCLine -- The parsed representation.
        """

        tags, origin, kind, args, data = cls.lex(line)
        is_numeric = kind.isdigit() and len(kind) == 3

        return cls(line, origin, kind if is_numeric else kind.upper(), is_numeric, tuple(args), data, tags)


def convert_room_value(value: str, kind: type) -> typing.Any:
    """Converts a ROOMSTATE tag value, passing malformed values through as received.

        >>> convert_room_value('30', int), convert_room_value('1', bool), convert_room_value('x', int)
        (30, True, 'x')
    """

    if kind is bool and value in ("0", "1"):
        return value == "1"

    if kind is int:
        try:
            return int(value)

        except ValueError:
            pass

    return value


def _require_args(irc_line: IRCLine, count: int):
    if len(irc_line.args) < count:
        raise ParseError("Not enough arguments in {} line: {}".format(irc_line.kind, repr(irc_line.line)))


def _translate_message(irc_line: IRCLine, kind: MessageKind) -> RawFrame:
    _require_args(irc_line, 1)

    if irc_line.nick is None:
        raise ParseError("Chat line without a user origin: {}".format(repr(irc_line.line)))

    text = irc_line.data or ""

    if text.startswith(ACTION_PREFIX):
        text = text[len(ACTION_PREFIX):].rstrip("\x01")

        if kind is MessageKind.CHAT:
            kind = MessageKind.ACTION

    return RawFrame(
        FrameTag.MESSAGE,
        ChatLine(irc_line.args[0], irc_line.nick, text, kind, dict(irc_line.tags)),
    )


def _translate_roomstate(irc_line: IRCLine) -> Iterable[RawFrame]:
    _require_args(irc_line, 1)

    channel = irc_line.args[0]
    fields = {}

    for tag, (field, kind) in ROOMSTATE_TAGS.items():
        if tag in irc_line.tags:
            fields[field] = convert_room_value(irc_line.tags[tag], kind)

    yield RawFrame(FrameTag.ROOMSTATE, RoomStateUpdate(channel, fields))

    # A lone followers-only change is a toggle; the full set arrives on join.
    minutes = fields.get("followers_only")

    if isinstance(minutes, int) and len(fields) < len(ROOMSTATE_TAGS):
        yield RawFrame(
            FrameTag.FOLLOWERS_ONLY,
            FollowersOnlyChange(channel, minutes >= 0, max(minutes, 0)),
        )


def translate(irc_line: IRCLine) -> List[RawFrame]:
    """Translates a parsed IRC line into the frames it stands for.

        >>> [frame.tag for frame in translate(IRCLine.parse(':tmi.twitch.tv 001 bob :Welcome, GLHF!'))]
        [<FrameTag.LOGON: 'logon'>]

    Lines with no particular meaning become a single frame tagged with
    their lowercased command, which the dispatcher is free to drop.

    Arguments:
        irc_line {IRCLine} -- The line to translate.

    Raises:
        ParseError: The line is malformed for its command.

    Returns:
        List[RawFrame] -- The resulting frames, in order.
    """

    kind = irc_line.kind

    if kind == "001":
        return [RawFrame(FrameTag.LOGON, irc_line.data)]

    if kind == "PRIVMSG":
        return [_translate_message(irc_line, MessageKind.CHAT)]

    if kind == "WHISPER":
        return [_translate_message(irc_line, MessageKind.WHISPER)]

    if kind == "ROOMSTATE":
        return list(_translate_roomstate(irc_line))

    if kind == "NOTICE":
        channel = irc_line.args[0] if irc_line.args and irc_line.args[0].startswith("#") else None
        return [RawFrame(FrameTag.NOTICE, ServerNotice(channel, irc_line.data or "", irc_line.tags.get("msg-id")))]

    if kind == "JOIN":
        _require_args(irc_line, 1)

        if irc_line.nick is None:
            raise ParseError("JOIN without a user origin: {}".format(repr(irc_line.line)))

        return [RawFrame(FrameTag.JOIN, Membership(irc_line.args[0], irc_line.nick))]

    return [RawFrame(kind.lower(), irc_line)]
