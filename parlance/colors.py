"""
Per-session display colors for chatters who never picked one.
"""

import itertools as itt
from typing import Iterable, Optional

import attr

from .models import User

# The default name colors of the Twitch web chat.
DEFAULT_PALETTE = (
    "#FF0000",
    "#0000FF",
    "#008000",
    "#B22222",
    "#FF7F50",
    "#9ACD32",
    "#FF4500",
    "#2E8B57",
    "#DAA520",
    "#D2691E",
    "#5F9EA0",
    "#1E90FF",
    "#FF69B4",
    "#8A2BE2",
    "#00FF7F",
)


@attr.s(auto_attribs=True)
class ColorCache:
    """Colors assigned so far, keyed by user id."""

    colors: dict[str, str] = attr.Factory(dict)

    def get(self, user_id: str) -> Optional[str]:
        return self.colors.get(user_id)

    def store(self, user_id: str, color: str) -> str:
        """Stores a color, unless one was already assigned to this user id.

        Returns:
            str -- The color the user id ends up with.
        """
        return self.colors.setdefault(user_id, color)

    def clear(self):
        self.colors.clear()

    def __contains__(self, user_id: str) -> bool:
        return user_id in self.colors

    def __len__(self) -> int:
        return len(self.colors)


class ColorAssigner:
    """
    Hands out palette colors round-robin, remembering each pick
    in a ColorCache so a user keeps the same color for the whole
    session.
    """

    def __init__(
        self,
        palette: Iterable[str] = DEFAULT_PALETTE,
        cache: Optional[ColorCache] = None,
    ):
        """
            >>> assigner = ColorAssigner(['red', 'blue'])
            >>> assigner.assign('1'), assigner.assign('2'), assigner.assign('1')
            ('red', 'blue', 'red')

        Keyword Arguments:
            palette {Iterable[str]} -- The colors to pick from. (default: DEFAULT_PALETTE)
            cache {ColorCache} -- The cache to remember picks in. (default: a new one)
        """

        self.palette = tuple(palette)

        if not self.palette:
            raise ValueError("A ColorAssigner needs at least one color!")

        self.cache = cache if cache is not None else ColorCache()
        self._next = itt.cycle(self.palette)

    def assign(self, user_id: str) -> str:
        """Returns the color of a user id, picking a new one if needed."""

        color = self.cache.get(user_id)

        if color is None:
            color = self.cache.store(user_id, next(self._next))

        return color

    def colorize(self, user: User) -> str:
        """
        Resolves the color a user is displayed with. A color the user
        chose wins; otherwise one is assigned. Either way it's written
        back onto the user record.
        """

        if not user.color:
            user.color = self.assign(user.id)

        return user.color

    def clear(self):
        """Forgets every assignment. Called when the owning Session ends."""
        self.cache.clear()
        self._next = itt.cycle(self.palette)

    def __repr__(self) -> str:
        return "{}({} colors, {} assigned)".format(
            type(self).__name__, len(self.palette), len(self.cache)
        )
