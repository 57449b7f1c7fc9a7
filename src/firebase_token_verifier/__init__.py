from .errors import (
    AuthClientErrorCode,
    ConfigurationError,
    ErrorInfo,
    ExpiredTokenError,
    FirebaseAuthError,
    IdTokenExpiredError,
    InternalError,
    InvalidArgumentError,
    InvalidCredentialError,
    SessionCookieExpiredError,
)
from .keys import PublicKeyCache
from .project import env_project_id_resolver, find_project_id, static_project_id
from .tokens import (
    ID_TOKEN_INFO,
    ID_TOKEN_PROFILE,
    SESSION_COOKIE_INFO,
    SESSION_COOKIE_PROFILE,
    TokenInfo,
    TokenKind,
    VerifierProfile,
)
from .transport import HttpClient
from .verifier import (
    DecodedToken,
    FirebaseTokenVerifier,
    create_id_token_verifier,
    create_session_cookie_verifier,
)
from .version import __version__

__all__ = [
    "AuthClientErrorCode",
    "ConfigurationError",
    "DecodedToken",
    "ErrorInfo",
    "ExpiredTokenError",
    "FirebaseAuthError",
    "FirebaseTokenVerifier",
    "HttpClient",
    "ID_TOKEN_INFO",
    "ID_TOKEN_PROFILE",
    "IdTokenExpiredError",
    "InternalError",
    "InvalidArgumentError",
    "InvalidCredentialError",
    "PublicKeyCache",
    "SESSION_COOKIE_INFO",
    "SESSION_COOKIE_PROFILE",
    "SessionCookieExpiredError",
    "TokenInfo",
    "TokenKind",
    "VerifierProfile",
    "__version__",
    "create_id_token_verifier",
    "create_session_cookie_verifier",
    "env_project_id_resolver",
    "find_project_id",
    "static_project_id",
]
