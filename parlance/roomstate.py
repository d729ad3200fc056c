"""
Room state tracking.

The service reports channel modes piecemeal: the full set on join,
then one flag at a time as moderators toggle them. Keeping the merged
picture is a client responsibility.
"""

import logging
import typing
from typing import Optional

import attr

from .models import ROOM_STATE_FIELDS, RoomState


class RoomStateTracker:
    """Merges partial room state updates, one RoomState per channel."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.rooms: dict[str, RoomState] = {}
        self.logger = logger or logging.getLogger(__name__)

    def update(self, channel: str, partial: typing.Mapping[str, typing.Any]) -> RoomState:
        """Merges the fields present in an update into a channel's state.
        Fields absent from the update keep their previous value.

            >>> tracker = RoomStateTracker()
            >>> _ = tracker.update('#chan', {'slow_mode': 5})
            >>> state = tracker.update('#chan', {'followers_only': True})
            >>> state.slow_mode, state.followers_only
            (5, True)

        Arguments:
            channel {str} -- The channel the update is about.
            partial {Mapping[str, Any]} -- The reported fields, by RoomState field name.

        Returns:
            RoomState -- The merged snapshot.
        """

        changes = {}

        for name, value in partial.items():
            if name in ROOM_STATE_FIELDS:
                changes[name] = value

            else:
                self.logger.debug("Ignoring unknown room state field %r for %s", name, channel)

        current = self.rooms.get(channel) or RoomState(channel)
        self.rooms[channel] = attr.evolve(current, **changes)

        return self.rooms[channel]

    def serialize(self, channel: str) -> RoomState:
        """Returns the current snapshot of a channel, which may be empty."""
        return self.rooms.get(channel) or RoomState(channel)

    def clear(self):
        self.rooms.clear()

    def __contains__(self, channel: str) -> bool:
        return channel in self.rooms
