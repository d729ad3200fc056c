"""
Parlance: a trio client core for Twitch-style IRC chat.

Connects to one channel at a time, and turns what the server says
into typed chat messages, notices, room states and status changes,
which it hands to an EventSink.
"""

from .colors import ColorAssigner, ColorCache
from .config import ConnectionConfig
from .dispatcher import EventDispatcher
from .errors import (AuthenticationError, ConfigurationError, DownstreamError, ParlanceError,
                     ParseError, StateTransitionError, TransportError)
from .frames import FrameTag, RawFrame
from .manager import ConnectionManager
from .models import Identity, Message, MessageKind, Notice, RoomState, Status, User
from .notices import NoticeFactory
from .parser import MessageParser
from .roomstate import RoomStateTracker
from .session import Session
from .sink import ChatStore, EventSink

__version__ = "0.1.0"
