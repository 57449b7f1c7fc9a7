from __future__ import annotations

import logging
import time
import urllib.parse
from typing import Any, Awaitable, Callable, cast

from jwt import exceptions as jwt_exceptions

from .claims import validate_claims
from .core import decode_token, load_public_key, verify_signature
from .errors import (
    ConfigurationError,
    ErrorInfo,
    ExpiredTokenError,
    FirebaseAuthError,
    InternalError,
    InvalidArgumentError,
    InvalidCredentialError,
    auth_error,
)
from .keys import PublicKeyCache
from .project import PROJECT_ID_ENV_VARS, ProjectIdResolver
from .tokens import (
    ID_TOKEN_PROFILE,
    SESSION_COOKIE_PROFILE,
    TokenInfo,
    VerifierProfile,
)
from .transport import HttpClient

logger = logging.getLogger(__name__)


class DecodedToken(dict):  # type: ignore[type-arg]
    """Verified token claims plus ``uid``, a copy of the ``sub`` claim."""

    def __init__(self, claims: dict[str, Any]) -> None:
        super().__init__(claims)
        self["uid"] = claims["sub"]

    @property
    def subject_id(self) -> str:
        return self["uid"]


def _is_url(value: Any) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    parsed = urllib.parse.urlparse(value)
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def _is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def _validate_settings(
    certificate_url: Any, algorithm: Any, issuer: Any, token_info: Any
) -> None:
    if not _is_url(certificate_url):
        raise ConfigurationError("The provided public client certificate URL is an invalid URL.")
    if not _is_non_empty_string(algorithm):
        raise ConfigurationError("The provided JWT algorithm is an empty string.")
    if not _is_url(issuer):
        raise ConfigurationError("The provided JWT issuer is an invalid URL.")
    if not isinstance(token_info, TokenInfo):
        raise ConfigurationError("The provided JWT information is not a TokenInfo object.")
    if not _is_url(token_info.url):
        raise ConfigurationError("The provided JWT verification documentation URL is invalid.")
    if not _is_non_empty_string(token_info.verify_api_name):
        raise ConfigurationError("The JWT verify API name must be a non-empty string.")
    if not _is_non_empty_string(token_info.jwt_name):
        raise ConfigurationError("The JWT public full name must be a non-empty string.")
    if not _is_non_empty_string(token_info.short_name):
        raise ConfigurationError("The JWT public short name must be a non-empty string.")
    expired_error = token_info.expired_error
    if not isinstance(expired_error, ErrorInfo) or not _is_non_empty_string(expired_error.code):
        raise ConfigurationError(
            "The JWT expiration error code must be an ErrorInfo with a non-empty code."
        )


class FirebaseTokenVerifier:
    """Verifies Firebase ID tokens or session cookies, depending on its profile.

    Local checks (decode, header and claim validation) run before any network
    access. The only state is the public key cache, shared by every call on
    this instance.
    """

    def __init__(
        self,
        certificate_url: str,
        algorithm: str,
        issuer: str,
        token_info: TokenInfo,
        *,
        http_client: HttpClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        _validate_settings(certificate_url, algorithm, issuer, token_info)
        self.profile = VerifierProfile(
            certificate_url=certificate_url,
            algorithm=algorithm,
            issuer_prefix=issuer,
            token_info=token_info,
        )
        self.public_keys = PublicKeyCache(certificate_url, http_client, clock=clock)

    @classmethod
    def from_profile(
        cls,
        profile: VerifierProfile,
        *,
        http_client: HttpClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> FirebaseTokenVerifier:
        return cls(
            profile.certificate_url,
            profile.algorithm,
            profile.issuer_prefix,
            profile.token_info,
            http_client=http_client,
            clock=clock,
        )

    @property
    def token_info(self) -> TokenInfo:
        return self.profile.token_info

    def verify(
        self, token: str, project_id_resolver: ProjectIdResolver
    ) -> Awaitable[DecodedToken]:
        """Checks ``token`` now and returns an awaitable doing the rest of the work.

        A missing or non-string token raises ``InvalidArgumentError`` at call
        time, before anything is awaited.
        """
        if not _is_non_empty_string(token):
            info = self.token_info
            raise InvalidArgumentError(
                f"First argument to {info.verify_api_name} must be a non-empty "
                f"{info.jwt_name} string."
            )
        return self._resolve_and_verify(token, project_id_resolver)

    async def _resolve_and_verify(
        self, token: str, project_id_resolver: ProjectIdResolver
    ) -> DecodedToken:
        project_id = await project_id_resolver()
        return await self.verify_with_project_id(token, project_id)

    async def verify_with_project_id(self, token: str, project_id: str | None) -> DecodedToken:
        info = self.token_info
        if not isinstance(project_id, str) or not project_id:
            raise InvalidCredentialError(
                "Must initialize app with a cert credential or set your Firebase project ID "
                f"as the {PROJECT_ID_ENV_VARS[0]} environment variable to call "
                f"{info.verify_api_name}."
            )

        decoded = decode_token(token)
        error = validate_claims(decoded, project_id, self.profile)
        if error is not None:
            logger.debug("%s rejected before signature check: %s", info.jwt_name, error.code)
            raise error
        header, _ = cast(tuple[dict[str, Any], dict[str, Any]], decoded)

        public_keys = await self.public_keys.get_keys()
        kid = header["kid"]
        if not isinstance(kid, str) or kid not in public_keys:
            raise InvalidArgumentError(
                f'{info.jwt_name} has "kid" claim which does not correspond to a known '
                f"public key. Most likely the {info.short_name} is expired, so get a fresh "
                "token from your client app and try again."
            )
        return self._verify_signature_with_key(token, kid, public_keys[kid])

    def _verify_signature_with_key(self, token: str, kid: str, public_key: Any) -> DecodedToken:
        info = self.token_info
        if not isinstance(public_key, str):
            raise InternalError(f'Public key for kid "{kid}" is not a PEM string.')
        try:
            key = load_public_key(public_key)
        except ValueError as exc:
            raise InternalError(f'Public key for kid "{kid}" could not be loaded: {exc}') from exc

        try:
            claims = verify_signature(token, key, self.profile.algorithm)
        except jwt_exceptions.ExpiredSignatureError as exc:
            raise self._expired_error() from exc
        except (jwt_exceptions.DecodeError, jwt_exceptions.InvalidAlgorithmError) as exc:
            raise InvalidArgumentError(
                f"{info.jwt_name} has invalid signature.{info.docs_message}"
            ) from exc
        except jwt_exceptions.PyJWTError as exc:
            raise InvalidArgumentError(str(exc)) from exc

        if not isinstance(claims, dict):
            raise InternalError(
                f"Unexpected decoded token. Expected an object but got: {claims!r}"
            )
        return DecodedToken(claims)

    def _expired_error(self) -> FirebaseAuthError:
        info = self.token_info
        message = (
            f"{info.jwt_name} has expired. Get a fresh {info.short_name} from your client "
            f"app and try again (auth/{info.expired_error.code}).{info.docs_message}"
        )
        return auth_error(info.expired_error, message, default=ExpiredTokenError)


def create_id_token_verifier(http_client: HttpClient | None = None) -> FirebaseTokenVerifier:
    return FirebaseTokenVerifier.from_profile(ID_TOKEN_PROFILE, http_client=http_client)


def create_session_cookie_verifier(
    http_client: HttpClient | None = None,
) -> FirebaseTokenVerifier:
    return FirebaseTokenVerifier.from_profile(SESSION_COOKIE_PROFILE, http_client=http_client)
