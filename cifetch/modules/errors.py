"""
Error taxonomy for registry operations.

Every failure raised by cifetch derives from CifetchError so callers (the CLI
and the API server) can catch one type. All of them are terminal for the
operation in progress: the only retry anywhere is the single https -> http
fallback performed while pinging a registry.
"""

from typing import Optional


class CifetchError(Exception):
    """Base class for all cifetch failures."""


class ReferenceParseError(CifetchError, ValueError):
    """Raised for a malformed or unsupported image reference."""


class UnsupportedManifestVersionError(CifetchError, ValueError):
    """Raised when a manifest schema version other than 2-1 is requested."""


class TransportError(CifetchError):
    """Raised when the registry could not be reached at all."""


class DeadlineExceededError(TransportError):
    """Raised when an operation runs past its overall deadline."""


class UnexpectedStatusError(CifetchError):
    """Raised when the registry answers with a status we do not accept."""

    def __init__(self, message: str, status_code: int, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class DecodeError(CifetchError, ValueError):
    """Raised when a response body or config file cannot be decoded."""


class InvalidLayerIDError(CifetchError, ValueError):
    """Raised for a layer ID that is not 64 lowercase hex characters."""


class ChainIntegrityError(CifetchError):
    """Raised when the schema-1 parent chain is broken or tampered with."""
