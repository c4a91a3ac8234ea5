"""
Bookmark codec exception classes
"""


class BookmarkCodecError(Exception):
    """Base exception for bookmark import/export"""


class MalformedInput(BookmarkCodecError):
    """Raised when a document is not the expected container format at all.

    A single bad bookmark never raises this; it is skipped instead.
    """


class InvalidBookmark(BookmarkCodecError, ValueError):
    """Raised when a bookmark node would violate its invariants"""
