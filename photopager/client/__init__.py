"""Client side of photopager — a bounded, bidirectional window over the photo API."""


class WindowError(Exception):
    """Base client exception."""


class CursorRejectedError(WindowError):
    """The server could not decode a cursor; the window must be re-seeded."""


class ScopeMismatchError(WindowError):
    """A load was asked for under filters other than the ones the window holds."""
