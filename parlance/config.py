"""
Connection settings.
"""

import ssl
import typing
from typing import Optional

import attr

from .colors import DEFAULT_PALETTE


@attr.s(auto_attribs=True)
class ConnectionConfig:
    """Settings of a ConnectionManager, shared by every Session it creates.

    Attributes:
        host {str} -- The chat server's host. (default: 'irc.chat.twitch.tv')
        port {int} -- The chat server's port. (default: 6697)
        use_ssl {bool} -- Whether to wrap the connection in TLS. (default: True)
        ssl_context {ssl.SSLContext} -- The TLS context; a default one is made if None.

        reconnect {bool} -- Whether to reconnect after losing the connection. (default: True)
        reconnect_interval {float} -- Seconds before the first reconnect attempt. (default: 1.0)
        reconnect_decay {float} -- Factor the interval grows by on each failed attempt. (default: 1.5)
        max_reconnect_interval {float} -- Upper bound of the interval, in seconds. (default: 30.0)

        throttle {bool} -- Whether to throttle outbound lines. (default: True)
        max_heat {int} -- Lines that can be sent in a burst before throttling kicks in. (default: 20)
        cooldown_hertz {float} -- How many times per second the heat cools by one. (default: 0.66)

        palette {tuple} -- The colors handed out to chatters without one.
        frame_buffer {int} -- How many frames may wait for the dispatcher. (default: 64)
        capabilities {tuple} -- The IRCv3 capabilities requested on logon.
    """

    host: str = "irc.chat.twitch.tv"
    port: int = 6697
    use_ssl: bool = True
    ssl_context: Optional[ssl.SSLContext] = None

    reconnect: bool = True
    reconnect_interval: float = 1.0
    reconnect_decay: float = 1.5
    max_reconnect_interval: float = 30.0

    throttle: bool = True
    max_heat: int = 20
    cooldown_hertz: float = 0.66

    palette: typing.Tuple[str, ...] = DEFAULT_PALETTE
    frame_buffer: int = 64
    capabilities: typing.Tuple[str, ...] = (
        "twitch.tv/tags",
        "twitch.tv/commands",
        "twitch.tv/membership",
    )

    def make_ssl_context(self) -> Optional[ssl.SSLContext]:
        """The TLS context to connect with, or None for plaintext."""

        if not self.use_ssl:
            return None

        if self.ssl_context is None:
            self.ssl_context = ssl.create_default_context()

        return self.ssl_context

    def reconnect_delay(self, attempt: int) -> float:
        """How long to wait before a given reconnect attempt (counted from 0).

            >>> config = ConnectionConfig()
            >>> [config.reconnect_delay(n) for n in (0, 1, 2)]
            [1.0, 1.5, 2.25]
            >>> config.reconnect_delay(50)
            30.0
        """

        return min(
            self.reconnect_interval * self.reconnect_decay ** attempt,
            self.max_reconnect_interval,
        )
