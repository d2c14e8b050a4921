from typing import Optional

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class LedgerValidationError(ServiceError):
    """Rejected input: never written locally, never enqueued."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class NotFoundError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ConflictError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class LocalStorageError(ServiceError):
    """Local store failure. Fatal for the attempted operation; not retried."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class RemoteSyncError(ServiceError):
    """Remote system answered with an error payload."""

    def __init__(self, message: str, remote_status: Optional[int] = None) -> None:
        super().__init__(message, status.HTTP_502_BAD_GATEWAY)
        self.remote_status = remote_status


class RemoteUnavailableError(ServiceError):
    """Remote system could not be reached at the network level."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)


class ContextStateError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)
