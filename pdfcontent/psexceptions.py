__all__ = [
    "PSException",
    "PSEOF",
    "PSSyntaxError",
    "PSTypeError",
    "PSValueError",
]


class PSException(Exception):
    """Base class for content stream related exceptions."""


class PSEOF(PSException):
    """Raised when the token source runs out of data."""


class PSSyntaxError(PSException):
    """Raised when a content stream is structurally malformed."""


class PSTypeError(PSException):
    """Raised when a token of an unexpected type is encountered."""


class PSValueError(PSException):
    """Raised when a token or parser state is invalid."""
