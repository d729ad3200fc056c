class ParlanceError(Exception):
    """
    A common superclass for all
    exceptions regarding Parlance.
    """
    pass

# == Session errors ==

class ConfigurationError(ParlanceError):
    """
    Raised when a session is requested without
    the identity or channel it needs. No Session
    is created when this is raised.
    """
    pass

class StateTransitionError(ParlanceError):
    """
    Raised when something asks a Session to move
    to a status that is not reachable from its
    current one.
    """
    pass

# == Transport errors ==

class TransportError(ParlanceError):
    """
    A network-level failure. Never escapes the
    transport; it drives the session into
    Reconnecting, or Disconnected if reconnecting
    is off.
    """
    pass

class AuthenticationError(TransportError):
    """
    Raised when the server refuses the credentials
    a session logs on with. The session goes to
    Disconnected instead of reconnecting.
    """
    pass

# == Dispatch errors ==

class ParseError(ParlanceError):
    """
    Raised when a line or frame is malformed, or
    carries a payload its handler can't make sense of.
    The offending frame is dropped.
    """
    pass

class DownstreamError(ParlanceError):
    """
    Raised when the event sink rejects an emitted
    event. Logged and swallowed at the core boundary.
    """
    pass
