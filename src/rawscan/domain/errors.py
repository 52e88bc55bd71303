"""Error taxonomy shared by providers and the resolver."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Classification of a failed lookup step."""

    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    MALFORMED = "malformed"
    UNREACHABLE = "unreachable"
    INTERNAL = "internal"


class MalformedPayloadError(ValueError):
    """Raised when a provider payload cannot be mapped to a product."""
