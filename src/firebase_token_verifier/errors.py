from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ErrorInfo:
    """Describes one kind of auth error: a stable code plus a default message."""

    code: str
    message: str


class AuthClientErrorCode:
    CONFIGURATION_ERROR = ErrorInfo(
        code="configuration-error",
        message="The token verifier is misconfigured.",
    )
    INVALID_ARGUMENT = ErrorInfo(
        code="argument-error",
        message="Invalid argument provided.",
    )
    INVALID_CREDENTIAL = ErrorInfo(
        code="invalid-credential",
        message="Invalid credential object provided.",
    )
    INTERNAL_ERROR = ErrorInfo(
        code="internal-error",
        message="An internal error has occurred.",
    )
    ID_TOKEN_EXPIRED = ErrorInfo(
        code="id-token-expired",
        message="The provided Firebase ID token is expired.",
    )
    SESSION_COOKIE_EXPIRED = ErrorInfo(
        code="session-cookie-expired",
        message="The Firebase session cookie is expired.",
    )


class FirebaseAuthError(Exception):
    def __init__(self, error_info: ErrorInfo, message: str | None = None) -> None:
        self.error_info = error_info
        self.message = message or error_info.message
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return f"auth/{self.error_info.code}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ConfigurationError(FirebaseAuthError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(AuthClientErrorCode.CONFIGURATION_ERROR, message)


class InvalidArgumentError(FirebaseAuthError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(AuthClientErrorCode.INVALID_ARGUMENT, message)


class InvalidCredentialError(FirebaseAuthError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(AuthClientErrorCode.INVALID_CREDENTIAL, message)


class InternalError(FirebaseAuthError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(AuthClientErrorCode.INTERNAL_ERROR, message)


class ExpiredTokenError(FirebaseAuthError):
    """Base class for the per-token-kind "expired" failures."""


class IdTokenExpiredError(ExpiredTokenError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(AuthClientErrorCode.ID_TOKEN_EXPIRED, message)


class SessionCookieExpiredError(ExpiredTokenError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__(AuthClientErrorCode.SESSION_COOKIE_EXPIRED, message)


_ERROR_CLASSES: dict[ErrorInfo, type[FirebaseAuthError]] = {
    AuthClientErrorCode.CONFIGURATION_ERROR: ConfigurationError,
    AuthClientErrorCode.INVALID_ARGUMENT: InvalidArgumentError,
    AuthClientErrorCode.INVALID_CREDENTIAL: InvalidCredentialError,
    AuthClientErrorCode.INTERNAL_ERROR: InternalError,
    AuthClientErrorCode.ID_TOKEN_EXPIRED: IdTokenExpiredError,
    AuthClientErrorCode.SESSION_COOKIE_EXPIRED: SessionCookieExpiredError,
}


def auth_error(
    error_info: ErrorInfo,
    message: str | None = None,
    *,
    default: type[FirebaseAuthError] = FirebaseAuthError,
) -> FirebaseAuthError:
    """Builds the exception class registered for ``error_info``.

    Descriptors that are not one of ``AuthClientErrorCode`` are wrapped in
    ``default`` so the caller still observes the descriptor's own code.
    """
    cls = _ERROR_CLASSES.get(error_info)
    if cls is None:
        return default(error_info, message)
    return cls(message)  # type: ignore[call-arg]
