"""
Error normalization for platform failures.

Every failure that leaves a platform client is a PlatformError carrying an
explicit ErrorKind. normalize_error() applies the classification precedence:

  1. a PlatformError keeps its own declared kind
  2. a message that reads as "resource not found" becomes NOT_FOUND
  3. everything else (transport errors, undecodable bodies, ...) is BAD_GATEWAY
"""
import re
from typing import Optional

from delivery_control.models.schemas import ErrorKind, Platform

_NOT_FOUND_PATTERN = re.compile(
    r"(n[ãa]o\s+encontrad[oa]|not\s+found|inexistente)",
    re.IGNORECASE,
)

_HTTP_STATUS_BY_KIND = {
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.BAD_GATEWAY: 502,
    ErrorKind.INTERNAL: 500,
}


class PlatformError(Exception):
    """Base failure of the integration layer, tagged with an ErrorKind."""

    default_kind = ErrorKind.BAD_GATEWAY

    def __init__(
        self,
        message: str,
        kind: Optional[ErrorKind] = None,
        platform: Optional[Platform] = None,
        http_status: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind or self.default_kind
        self.platform = platform
        self.http_status = http_status
        self.body = body

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(kind={self.kind.value!r}, "
            f"message={self.message!r}, http_status={self.http_status!r})"
        )


class AnotaAIError(PlatformError):
    def __init__(self, message: str, kind: Optional[ErrorKind] = None, **kwargs):
        super().__init__(message, kind=kind, platform=Platform.ANOTAAI, **kwargs)


class DeliveryVipError(PlatformError):
    def __init__(self, message: str, kind: Optional[ErrorKind] = None, **kwargs):
        super().__init__(message, kind=kind, platform=Platform.DELIVERYVIP, **kwargs)


class AccessTokenUnavailableError(PlatformError):
    """No token is cached yet; raised before any network call."""

    default_kind = ErrorKind.UNAUTHORIZED

    def __init__(self, platform: Optional[Platform] = None):
        name = platform.value if platform else "platform"
        super().__init__(f"Access token unavailable for {name}", platform=platform)


class InvalidRequestError(PlatformError):
    default_kind = ErrorKind.INVALID_REQUEST


class UnsupportedPlatformError(PlatformError):
    default_kind = ErrorKind.NOT_FOUND

    def __init__(self, platform: str):
        super().__init__(f"Unsupported platform: {platform}")
        self.requested_platform = platform


class AuthenticationError(PlatformError):
    """A login/token handshake failed. Only ever logged by the renewer."""

    default_kind = ErrorKind.UNAUTHORIZED


# --- Classification helpers ---

def looks_not_found(message: Optional[str]) -> bool:
    """True when a platform message reads as 'resource not found'."""
    if not message:
        return False
    return bool(_NOT_FOUND_PATTERN.search(message))


def kind_for_http_status(status_code: int) -> ErrorKind:
    """Map a platform HTTP status to an ErrorKind."""
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code == 401:
        return ErrorKind.UNAUTHORIZED
    if status_code == 422:
        return ErrorKind.INVALID_REQUEST
    return ErrorKind.BAD_GATEWAY


def http_status_for_kind(kind: ErrorKind) -> int:
    return _HTTP_STATUS_BY_KIND.get(kind, 500)


def normalize_error(exc: BaseException, platform: Optional[Platform] = None) -> PlatformError:
    """Translate any failure raised by a platform client into a PlatformError."""
    if isinstance(exc, PlatformError):
        if exc.platform is None and platform is not None:
            exc.platform = platform
        return exc

    message = str(exc) or exc.__class__.__name__
    if looks_not_found(message):
        return PlatformError(message, kind=ErrorKind.NOT_FOUND, platform=platform)

    return PlatformError(
        f"Error communicating with the platform: {message}",
        kind=ErrorKind.BAD_GATEWAY,
        platform=platform,
    )
