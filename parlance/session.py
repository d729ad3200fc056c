"""
Sessions: the lifetime of one logical connection to one channel.
"""

import typing
from typing import Optional

import attr
import trio

from .colors import ColorAssigner
from .errors import StateTransitionError
from .models import Identity, Status, new_id
from .roomstate import RoomStateTracker

if typing.TYPE_CHECKING:
    from .transport import IRCTransport

LIVE_STATES = frozenset(
    {Status.CONNECTING, Status.CONNECTED, Status.LOGON, Status.JOINED}
)

TRANSITIONS = {
    Status.DISCONNECTED: {Status.CONNECTING},
    Status.CONNECTING: {Status.CONNECTED},
    Status.CONNECTED: {Status.LOGON},
    Status.LOGON: {Status.JOINED},
    Status.JOINED: set(),
    Status.RECONNECTING: {Status.CONNECTING},
}

for _state in LIVE_STATES:
    TRANSITIONS[_state].add(Status.RECONNECTING)

for _targets in TRANSITIONS.values():
    _targets.add(Status.DISCONNECTED)

del _state, _targets


def normalize_channel(channel: str) -> str:
    """
        >>> normalize_channel(' SomeStreamer ')
        '#somestreamer'
        >>> normalize_channel('#chan')
        '#chan'
    """

    channel = channel.strip().lower()

    if not channel.startswith("#"):
        channel = "#" + channel

    return channel


@attr.s(auto_attribs=True, repr=False)
class Session:
    """
    One connection to one channel.

    The Session owns everything that must not outlive it: the color
    cache, the room states and the cancel scope its tasks run in.
    Its status only moves along TRANSITIONS, and only from within
    the dispatch task (or the manager, when tearing it down).
    """

    identity: Identity
    channel: str
    colors: ColorAssigner = attr.Factory(ColorAssigner)
    rooms: RoomStateTracker = attr.Factory(RoomStateTracker)
    id: str = attr.Factory(new_id)
    status: Status = Status.DISCONNECTED
    closed: bool = False

    transport: Optional["IRCTransport"] = None
    cancel_scope: trio.CancelScope = attr.Factory(trio.CancelScope)
    finished: trio.Event = attr.Factory(trio.Event)

    def can_transition(self, status: Status) -> bool:
        return status in TRANSITIONS[self.status]

    def transition(self, status: Status) -> bool:
        """Moves this session to a new status.

            >>> session = Session(Identity('bob', 'token'), '#chan')
            >>> session.transition(Status.CONNECTING), session.transition(Status.CONNECTING)
            (True, False)

        Arguments:
            status {Status} -- The status to move to.

        Raises:
            StateTransitionError: The status isn't reachable from the current one,
                                  or the session was torn down.

        Returns:
            bool -- Whether the status changed; re-entering the current status does nothing.
        """

        if self.closed:
            raise StateTransitionError(
                "Session {} was torn down; can't move it to {}".format(self.id, status.name)
            )

        if status is self.status:
            return False

        if not self.can_transition(status):
            raise StateTransitionError(
                "Can't go from {} to {}".format(self.status.name, status.name)
            )

        self.status = status
        return True

    def is_live(self) -> bool:
        return not self.closed and self.status in LIVE_STATES

    def teardown(self):
        """
        Ends this session for good: forgets assigned colors and
        room states and moves to Disconnected. Calling it again does
        nothing.
        """

        if self.closed:
            return

        self.colors.clear()
        self.rooms.clear()
        self.status = Status.DISCONNECTED
        self.closed = True

    def __repr__(self):
        return "Session({} in {}: {})".format(
            self.identity.username, self.channel, self.status.name
        )
