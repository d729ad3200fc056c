import datetime

import pytest

from conftest import chat_frame
from parlance.colors import ColorAssigner
from parlance.errors import ParseError
from parlance.frames import FrameTag, RawFrame, ServerNotice
from parlance.models import MessageKind, User
from parlance.parser import MessageParser, strip_control_characters


@pytest.fixture
def parser():
    return MessageParser(ColorAssigner(["red", "green"]))


def user_for(frame):
    line = frame.payload
    return User.from_tags(line.login, line.tags, is_self=line.is_self)


def test_chat_frame_yields_message(parser):
    frame = chat_frame("hi there", id="abc", user_id="42", display_name="Bob", badges="moderator/1")
    user = user_for(frame)

    message = parser.parse(frame, user)

    assert message.id == "abc"
    assert message.kind is MessageKind.CHAT
    assert message.text == "hi there"
    assert message.user is user
    assert message.channel == "#chan"
    assert message.badges == "moderator/1"
    assert user.is_mod


def test_action_frame_yields_message(parser):
    frame = chat_frame("waves", kind=MessageKind.ACTION)

    assert parser.parse(frame, user_for(frame)).kind is MessageKind.ACTION


def test_whisper_yields_nothing(parser):
    frame = chat_frame("psst", kind=MessageKind.WHISPER)

    assert parser.parse(frame, user_for(frame)) is None


@pytest.mark.parametrize(
    "frame",
    [
        RawFrame(FrameTag.NOTICE, ServerNotice("#chan", "hello")),
        RawFrame(FrameTag.CONNECTED),
        RawFrame("clearchat", None),
    ],
)
def test_other_tags_yield_nothing(parser, frame):
    assert parser.parse(frame, User("1", "bob", "bob")) is None


def test_malformed_message_payload(parser):
    with pytest.raises(ParseError):
        parser.parse(RawFrame(FrameTag.MESSAGE, {"text": "hi"}), User("1", "bob", "bob"))


def test_control_characters_are_stripped(parser):
    frame = chat_frame("ding\x07 dong\x00!")

    assert parser.parse(frame, user_for(frame)).text == "ding dong!"


def test_strip_keeps_unicode():
    assert strip_control_characters("héllo ✨ 日本") == "héllo ✨ 日本"


def test_assigned_color_is_written_back(parser):
    frame = chat_frame(user_id="42")
    user = user_for(frame)

    message = parser.parse(frame, user)

    assert message.color == user.color == "red"


def test_same_user_keeps_color_across_messages(parser):
    colors = []

    for login, user_id in [("bob", "1"), ("amy", "2"), ("bob", "1"), ("cat", "3"), ("bob", "1")]:
        frame = chat_frame(login=login, user_id=user_id)
        message = parser.parse(frame, user_for(frame))

        if user_id == "1":
            colors.append(message.color)

    assert colors == ["red", "red", "red"]


def test_chosen_color_wins(parser):
    frame = chat_frame(user_id="42", color="#ABCDEF")

    assert parser.parse(frame, user_for(frame)).color == "#ABCDEF"
    assert "42" not in parser.colors.cache


def test_missing_id_gets_a_fresh_one(parser):
    first = chat_frame()
    second = chat_frame()

    assert parser.parse(first, user_for(first)).id != parser.parse(second, user_for(second)).id


def test_timestamp_from_sent_tag(parser):
    frame = chat_frame(tmi_sent_ts="1500000000000")

    message = parser.parse(frame, user_for(frame))

    assert message.timestamp == datetime.datetime(2017, 7, 14, 2, 40, tzinfo=datetime.timezone.utc)
    assert message.time == "02:40"


def test_timestamp_falls_back_to_receive_time(parser):
    frame = chat_frame(tmi_sent_ts="yesterday")

    assert parser.parse(frame, user_for(frame)).timestamp == frame.received


def test_self_flag(parser):
    frame = chat_frame()

    assert parser.parse(frame, user_for(frame), is_self=True).is_self
    assert not parser.parse(frame, user_for(frame)).is_self
