"""
Glossary Exceptions
"""
from enum import Enum
from typing import List, Optional


class RemoteErrorKind(str, Enum):
    """Failure categories reported by the remote glossary provider."""
    AUTH = "auth"
    QUOTA = "quota"
    RATE_LIMIT = "rate_limit"
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    SERVER = "server"
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    NETWORK = "network"


class GlossaryError(Exception):
    """Base exception for glossary operations"""
    pass


class GlossaryNotFoundError(GlossaryError):
    """Glossary or glossary entry does not exist"""
    def __init__(self, resource_id: str, resource: str = "Glossary"):
        self.resource_id = resource_id
        self.resource = resource
        super().__init__(f"{resource} not found: {resource_id}")


class InvalidGlossaryDataError(GlossaryError):
    """Glossary data cannot be used for the requested operation"""
    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Invalid glossary data: {'; '.join(errors)}")


class GlossaryRepositoryError(GlossaryError):
    """Database access failed"""
    pass


class RemoteGlossaryError(GlossaryError):
    """Remote glossary provider rejected or failed a request"""
    def __init__(
        self,
        message: str,
        kind: RemoteErrorKind = RemoteErrorKind.NETWORK,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.kind = kind
        self.status_code = status_code
        super().__init__(message)

    @property
    def requires_user_action(self) -> bool:
        """Credentials or plan must be changed before retrying."""
        return self.kind in (RemoteErrorKind.AUTH, RemoteErrorKind.QUOTA)

    @property
    def is_retryable(self) -> bool:
        return self.kind in (
            RemoteErrorKind.RATE_LIMIT,
            RemoteErrorKind.SERVER,
            RemoteErrorKind.TIMEOUT,
            RemoteErrorKind.CONNECTION,
        )


class GlossarySyncError(GlossaryError):
    """Unexpected local failure while synchronizing a remote glossary"""
    pass
