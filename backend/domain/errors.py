"""
Exception hierarchy for the songs catalog.

Every failure raised by the song store or the metadata client is one of these
classes, so callers can tell "nothing matched" apart from "the backend broke"
without inspecting messages.

    CatalogError
        StoreError
            NoMatchError          - get/update/delete target absent
            MalformedFilterError  - listing filter rejected before querying
            SongConflictError     - (group, name) already in the catalog
            BackendError          - any other database failure
                BackendTimeoutError
        MetadataError
            TransportError        - connection refused, reset, DNS...
                RemoteTimeoutError
            RemoteBadRequestError - remote answered 400
            RemoteInternalError   - remote answered 500
            MalformedResponseError
            UnexpectedStatusError - any other status code
"""
from typing import Any, Dict, Optional


class CatalogError(Exception):
    """
    Base exception for all catalog errors.

    Attributes:
        message: Human-readable error description.
        details: Additional context (song key, status code, original error...).
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class StoreError(CatalogError):
    pass


class NoMatchError(StoreError):
    """No catalog entry matched the (group, name) key."""


class MalformedFilterError(StoreError):
    """A listing filter used an unknown field or an unsafe value."""


class SongConflictError(StoreError):
    """A song with the same (group, name) is already stored."""


class BackendError(StoreError):
    """Wrapped low-level database failure, including failed rollbacks."""


class BackendTimeoutError(BackendError):
    pass


class MetadataError(CatalogError):
    pass


class TransportError(MetadataError):
    """The metadata service could not be reached."""


class RemoteTimeoutError(TransportError):
    pass


class RemoteBadRequestError(MetadataError):
    """The metadata service rejected the lookup as invalid input."""


class RemoteInternalError(MetadataError):
    pass


class MalformedResponseError(MetadataError):
    """The metadata service answered 200 with a body we cannot decode."""


class UnexpectedStatusError(MetadataError):
    def __init__(self, status: int, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(f"metadata service answered with unexpected status {status}", details)
        self.status = status
