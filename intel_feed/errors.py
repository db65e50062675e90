"""Exception types for Intel Feed."""


class IntelFeedError(Exception):
    """Base class for all Intel Feed errors."""


class NetworkError(IntelFeedError):
    """Connection failure or non-success HTTP status from the story API."""


class DecodeError(IntelFeedError):
    """Story API returned a body that could not be decoded."""


class ClassifierError(IntelFeedError):
    """The external classifier could not be spawned, failed or timed out."""


class TerminalError(IntelFeedError):
    """The terminal could not be initialised for the full-screen feed."""
