"""Errors raised by the persistence layer.

Driver failures (``pymongo.errors.PyMongoError``) and record decode failures
(``pydantic.ValidationError``) are not wrapped; they reach the caller as-is.
"""


class PersistenceError(Exception):
    """Base class for every error raised by doc_persistence itself."""


class ContextTypeError(PersistenceError, TypeError):
    """Raised when a connection context is unwrapped into the wrong session type."""


class SessionUnavailableError(PersistenceError):
    """Raised when the underlying session cannot be reached."""


class MalformedInputError(PersistenceError, TypeError):
    """Raised when a query, output or record does not have the expected shape."""


class InvalidIdentifierError(MalformedInputError, ValueError):
    """Raised when an identifier is not a valid ObjectId hex string."""


class UnsupportedFetchTypeError(PersistenceError, ValueError):
    """Raised when a fetch is requested in a mode other than find or aggregate."""


class RecordNotFoundError(PersistenceError, LookupError):
    """Raised when a fetch matches no documents."""
