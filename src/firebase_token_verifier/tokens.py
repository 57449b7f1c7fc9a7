from __future__ import annotations

import enum
from dataclasses import dataclass

from .errors import AuthClientErrorCode, ErrorInfo

ALGORITHM_RS256 = "RS256"

# Audience carried by custom tokens minted for the Identity Toolkit sign-in flow.
FIREBASE_AUDIENCE = (
    "https://identitytoolkit.googleapis.com/google.identity.identitytoolkit.v1.IdentityToolkit"
)

# X.509 certificates for the keys that sign Firebase ID tokens.
CLIENT_CERT_URL = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)
SESSION_COOKIE_CERT_URL = "https://www.googleapis.com/identitytoolkit/v3/relyingparty/publicKeys"

ID_TOKEN_ISSUER_PREFIX = "https://securetoken.google.com/"
SESSION_COOKIE_ISSUER_PREFIX = "https://session.firebase.google.com/"


class TokenKind(enum.Enum):
    ID_TOKEN = "id-token"
    SESSION_COOKIE = "session-cookie"


@dataclass(frozen=True)
class TokenInfo:
    """User-facing names and docs for one kind of verifiable token."""

    url: str
    verify_api_name: str
    jwt_name: str
    short_name: str
    expired_error: ErrorInfo

    @property
    def article(self) -> str:
        return "an" if self.short_name[:1].lower() in "aeiou" else "a"

    @property
    def docs_message(self) -> str:
        return (
            f" See {self.url} for details on how to retrieve "
            f"{self.article} {self.short_name}."
        )


@dataclass(frozen=True)
class VerifierProfile:
    certificate_url: str
    algorithm: str
    issuer_prefix: str
    token_info: TokenInfo


ID_TOKEN_INFO = TokenInfo(
    url="https://firebase.google.com/docs/auth/admin/verify-id-tokens",
    verify_api_name="verify_id_token()",
    jwt_name="Firebase ID token",
    short_name="ID token",
    expired_error=AuthClientErrorCode.ID_TOKEN_EXPIRED,
)

SESSION_COOKIE_INFO = TokenInfo(
    url="https://firebase.google.com/docs/auth/admin/manage-cookies",
    verify_api_name="verify_session_cookie()",
    jwt_name="Firebase session cookie",
    short_name="session cookie",
    expired_error=AuthClientErrorCode.SESSION_COOKIE_EXPIRED,
)

ID_TOKEN_PROFILE = VerifierProfile(
    certificate_url=CLIENT_CERT_URL,
    algorithm=ALGORITHM_RS256,
    issuer_prefix=ID_TOKEN_ISSUER_PREFIX,
    token_info=ID_TOKEN_INFO,
)

SESSION_COOKIE_PROFILE = VerifierProfile(
    certificate_url=SESSION_COOKIE_CERT_URL,
    algorithm=ALGORITHM_RS256,
    issuer_prefix=SESSION_COOKIE_ISSUER_PREFIX,
    token_info=SESSION_COOKIE_INFO,
)

_PROFILES = {
    TokenKind.ID_TOKEN: ID_TOKEN_PROFILE,
    TokenKind.SESSION_COOKIE: SESSION_COOKIE_PROFILE,
}


def profile_for(kind: TokenKind | str) -> VerifierProfile:
    try:
        return _PROFILES[TokenKind(kind)]
    except ValueError:
        raise ValueError(f"unknown token kind: {kind}") from None
