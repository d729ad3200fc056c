"""
Where normalized events go.

The EventSink protocol is everything Parlance needs from the outside
world; ChatStore is an in-memory implementation of it that keeps what a
chat window would show.
"""

import collections
import typing
from typing import Optional, Union

import attr

from .models import Message, Notice, RoomState, Status, User

LogEntry = Union[Message, Notice]


class EventSink(typing.Protocol):
    """
    The receiving end of a session's events. Calls arrive one at a
    time, in the order the frames that caused them arrived.

    A sink may raise to reject an event; Parlance logs that and
    carries on.
    """

    def add_log(self, entry: LogEntry):
        """Appends a chat message or a notice to the log."""
        ...

    def update_room_state(self, state: RoomState):
        """Receives the merged room state of a channel, after an update."""
        ...

    def update_status(self, status: Status):
        """Receives the new connection status."""
        ...

    def add_chatter_with_message(self, user: User, message_id: str):
        """Records that a user sent a chat or action message."""
        ...


@attr.s(auto_attribs=True)
class Chatter:
    """A user seen in chat, with the ids of the messages they sent."""

    user: User
    message_ids: typing.List[str] = attr.Factory(list)


class ChatStore:
    """
    Keeps the latest log entries, chatters, room states and status.

        >>> store = ChatStore(max_logs=2)
        >>> for title in ('a', 'b', 'c'):
        ...     store.add_log(Notice(title, 'notice'))
        ...
        >>> [entry.title for entry in store.logs]
        ['b', 'c']
    """

    def __init__(self, max_logs: Optional[int] = 1000):
        """
        Keyword Arguments:
            max_logs {Optional[int]} -- How many log entries to keep; None keeps them all.
                                        (default: 1000)
        """

        self.logs: typing.Deque[LogEntry] = collections.deque(maxlen=max_logs)
        self.chatters: dict[str, Chatter] = {}
        self.room_states: dict[str, RoomState] = {}
        self.status = Status.DEFAULT

    def add_log(self, entry: LogEntry):
        self.logs.append(entry)

    def update_room_state(self, state: RoomState):
        self.room_states[state.channel] = state

    def update_status(self, status: Status):
        self.status = status

    def add_chatter_with_message(self, user: User, message_id: str):
        chatter = self.chatters.get(user.id)

        if chatter is None:
            chatter = self.chatters[user.id] = Chatter(user)

        else:
            chatter.user = user

        chatter.message_ids.append(message_id)

    def messages_of(self, user_id: str) -> typing.List[Message]:
        """Returns the logged messages of a chatter that are still in the log."""

        chatter = self.chatters.get(user_id)

        if chatter is None:
            return []

        ids = set(chatter.message_ids)

        return [
            entry
            for entry in self.logs
            if isinstance(entry, Message) and entry.id in ids
        ]

    def __repr__(self):
        return "{}({} logs, {} chatters, {})".format(
            type(self).__name__, len(self.logs), len(self.chatters), self.status.name
        )
