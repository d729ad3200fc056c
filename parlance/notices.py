"""
Notices: system events wrapped up as log entries.
"""

import typing
from typing import Callable, Optional, Union

from .frames import FollowersOnlyChange, FrameTag, ServerNotice
from .models import Notice

TitleBuilder = Callable[[typing.Any], Union[str, typing.Tuple[str, Optional[str]]]]


def followers_only_title(change: FollowersOnlyChange) -> str:
    """
        >>> from parlance.frames import FollowersOnlyChange
        >>> followers_only_title(FollowersOnlyChange('#chan', True, 10))
        'This room is in 10 minutes followers-only mode.'
        >>> followers_only_title(FollowersOnlyChange('#chan', False))
        'This room is no longer in followers-only mode.'
    """

    if not change.enabled:
        return "This room is no longer in followers-only mode."

    if change.minutes > 0:
        return "This room is in {} minutes followers-only mode.".format(change.minutes)

    return "This room is in followers-only mode."


def server_notice_title(notice: ServerNotice) -> typing.Tuple[str, Optional[str]]:
    return notice.text, notice.msg_id


class NoticeFactory:
    """
    Builds Notice log entries from tagged events.

    Each tag may have a title builder, returning either a title or a
    (title, details) pair. Tags without one fall back to the payload's
    string form. Every call makes a new Notice; nothing is deduplicated.
    """

    def __init__(self):
        self.builders: dict[str, TitleBuilder] = {}

        self.register(FrameTag.FOLLOWERS_ONLY, followers_only_title)
        self.register(FrameTag.NOTICE, server_notice_title)

    @staticmethod
    def _key(tag: Union[FrameTag, str]) -> str:
        return tag.value if isinstance(tag, FrameTag) else str(tag)

    def register(self, tag: Union[FrameTag, str], builder: TitleBuilder):
        """Installs the title builder for a tag, replacing any previous one.

        Arguments:
            tag {FrameTag|str} -- The tag of the events to build titles for.
            builder {TitleBuilder} -- Called with the event payload.
        """

        self.builders[self._key(tag)] = builder

    def wrap(self, tag: Union[FrameTag, str], payload: typing.Any) -> Notice:
        """Wraps an event into a fresh Notice, whose source is the tag.

        Arguments:
            tag {FrameTag|str} -- The event's tag.
            payload {any} -- The event's data.

        Returns:
            Notice -- The new log entry.
        """

        source = self._key(tag)
        builder = self.builders.get(source)

        if builder is None:
            return Notice(str(payload), source)

        built = builder(payload)

        if isinstance(built, tuple):
            title, details = built
            return Notice(title, source, details)

        return Notice(built, source)
