"""
Error types for the Framemoji daily server.

Each error carries the HTTP status the server answers with when it
escapes a request handler.
"""


class FramemojiError(Exception):
    """Base class for all errors raised by the daily game."""

    status_code = 500

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class EmptyCatalog(FramemojiError):
    """The puzzle catalog is empty"""

    status_code = 500


class CatalogError(FramemojiError):
    """The puzzle catalog file is malformed"""

    status_code = 500


class BackendUnavailable(FramemojiError):
    """The storage backend could not be reached"""

    status_code = 503


class Forbidden(FramemojiError):
    """Forbidden"""

    status_code = 403


class InvalidInput(FramemojiError):
    """Invalid request"""

    status_code = 400


class UnknownPuzzleId(FramemojiError):
    """Unknown puzzle id"""

    status_code = 400
