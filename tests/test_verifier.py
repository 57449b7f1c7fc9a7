from __future__ import annotations

import dataclasses
import json
import time
from typing import Any

import httpx
import pytest
from jwt.utils import base64url_encode

from firebase_token_verifier.errors import (
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
from firebase_token_verifier.project import static_project_id
from firebase_token_verifier.samples import generate_signing_key, mint_token, sample_claims
from firebase_token_verifier.tokens import (
    CLIENT_CERT_URL,
    FIREBASE_AUDIENCE,
    ID_TOKEN_INFO,
    ID_TOKEN_PROFILE,
    SESSION_COOKIE_CERT_URL,
    SESSION_COOKIE_INFO,
    SESSION_COOKIE_PROFILE,
    TokenKind,
    VerifierProfile,
)
from firebase_token_verifier.transport import HttpClient
from firebase_token_verifier.verifier import (
    DecodedToken,
    FirebaseTokenVerifier,
    create_id_token_verifier,
    create_session_cookie_verifier,
)

PROJECT_ID = "project-one"
HMAC_SECRET = "an-hmac-secret-that-is-at-least-32-bytes-long"


@pytest.fixture(scope="module")
def signing_key() -> tuple[str, str]:
    return generate_signing_key("k1")


@pytest.fixture(scope="module")
def other_signing_key() -> tuple[str, str]:
    return generate_signing_key("k2")


class CertServer:
    def __init__(self, certificates: dict[str, str], cache_control: str = "max-age=3600") -> None:
        self.certificates = certificates
        self.cache_control = cache_control
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(
            200, json=self.certificates, headers={"cache-control": self.cache_control}
        )

    def client(self) -> HttpClient:
        return HttpClient(transport=httpx.MockTransport(self))


def _verifier(
    server: CertServer, profile: VerifierProfile = ID_TOKEN_PROFILE
) -> FirebaseTokenVerifier:
    return FirebaseTokenVerifier.from_profile(profile, http_client=server.client())


def _token(private_pem: str, kind: TokenKind = TokenKind.ID_TOKEN, **overrides: Any) -> str:
    claims = sample_claims(PROJECT_ID, kind, sub="user-1", now=int(time.time()) - 10)
    claims.update(overrides)
    return mint_token(claims, private_pem, kid="k1")


@pytest.mark.asyncio
async def test_verifies_id_token_and_adds_uid(signing_key: tuple[str, str]) -> None:
    private_pem, certificate_pem = signing_key
    server = CertServer({"k1": certificate_pem})
    verifier = _verifier(server)

    claims = await verifier.verify(_token(private_pem), static_project_id(PROJECT_ID))

    assert isinstance(claims, DecodedToken)
    assert claims["sub"] == "user-1"
    assert claims["uid"] == "user-1"
    assert claims.subject_id == "user-1"
    assert claims["aud"] == PROJECT_ID
    assert len(server.requests) == 1


@pytest.mark.asyncio
async def test_verifies_session_cookie(signing_key: tuple[str, str]) -> None:
    private_pem, certificate_pem = signing_key
    server = CertServer({"k1": certificate_pem})
    verifier = _verifier(server, SESSION_COOKIE_PROFILE)

    token = _token(private_pem, TokenKind.SESSION_COOKIE)
    claims = await verifier.verify(token, static_project_id(PROJECT_ID))

    assert claims["iss"] == f"https://session.firebase.google.com/{PROJECT_ID}"
    assert claims.subject_id == "user-1"


@pytest.mark.asyncio
async def test_each_call_returns_a_fresh_result(signing_key: tuple[str, str]) -> None:
    private_pem, certificate_pem = signing_key
    server = CertServer({"k1": certificate_pem})
    verifier = _verifier(server)
    token = _token(private_pem)

    first = await verifier.verify(token, static_project_id(PROJECT_ID))
    first["uid"] = "tampered"
    second = await verifier.verify(token, static_project_id(PROJECT_ID))

    assert second["uid"] == "user-1"
    assert first is not second
    assert len(server.requests) == 1


@pytest.mark.parametrize("token", ["", None, 42, b"header.payload.sig"])
def test_non_string_token_fails_synchronously(token: Any) -> None:
    verifier = _verifier(CertServer({}))
    with pytest.raises(InvalidArgumentError) as exc_info:
        verifier.verify(token, static_project_id(PROJECT_ID))
    assert "Firebase ID token string" in exc_info.value.message
    assert "verify_id_token()" in exc_info.value.message


@pytest.mark.asyncio
@pytest.mark.parametrize("project_id", [None, ""])
async def test_missing_project_id_is_invalid_credential(
    project_id: str | None, signing_key: tuple[str, str]
) -> None:
    server = CertServer({})
    verifier = _verifier(server)

    with pytest.raises(InvalidCredentialError) as exc_info:
        await verifier.verify(_token(signing_key[0]), static_project_id(project_id))

    assert exc_info.value.code == "auth/invalid-credential"
    assert "GOOGLE_CLOUD_PROJECT" in exc_info.value.message
    assert server.requests == []


@pytest.mark.asyncio
async def test_resolver_failure_propagates() -> None:
    async def failing_resolver() -> str | None:
        raise RuntimeError("metadata server unreachable")

    verifier = _verifier(CertServer({}))
    with pytest.raises(RuntimeError, match="metadata server unreachable"):
        await verifier.verify("a.b.c", failing_resolver)


@pytest.mark.asyncio
@pytest.mark.parametrize("token", ["not-a-jwt", "a.b.c", "abc.def", "...."])
async def test_malformed_tokens_rejected_without_network(token: str) -> None:
    server = CertServer({})
    verifier = _verifier(server)

    with pytest.raises(InvalidArgumentError, match="Decoding Firebase ID token failed"):
        await verifier.verify(token, static_project_id(PROJECT_ID))
    assert server.requests == []


@pytest.mark.asyncio
async def test_wrong_algorithm_message_has_both_algorithms() -> None:
    server = CertServer({})
    verifier = _verifier(server)
    token = mint_token(sample_claims(PROJECT_ID), HMAC_SECRET, kid="k1", alg="HS256")

    with pytest.raises(InvalidArgumentError) as exc_info:
        await verifier.verify(token, static_project_id(PROJECT_ID))

    assert '"RS256"' in exc_info.value.message
    assert '"HS256"' in exc_info.value.message
    assert server.requests == []


@pytest.mark.asyncio
async def test_audience_mismatch_rejected_before_key_fetch(
    signing_key: tuple[str, str],
) -> None:
    server = CertServer({"k1": signing_key[1]})
    verifier = _verifier(server)

    token = _token(signing_key[0], aud="elsewhere")
    with pytest.raises(InvalidArgumentError, match='incorrect "aud"'):
        await verifier.verify(token, static_project_id(PROJECT_ID))
    assert server.requests == []


@pytest.mark.asyncio
async def test_custom_token_without_kid(signing_key: tuple[str, str]) -> None:
    server = CertServer({})
    verifier = _verifier(server)
    claims = {"aud": FIREBASE_AUDIENCE, "uid": "user-1", "iat": int(time.time())}
    token = mint_token(claims, signing_key[0], kid=None)

    with pytest.raises(InvalidArgumentError) as exc_info:
        await verifier.verify(token, static_project_id(PROJECT_ID))

    assert "custom token" in exc_info.value.message
    assert "legacy custom token" not in exc_info.value.message


@pytest.mark.asyncio
async def test_legacy_custom_token_without_kid() -> None:
    verifier = _verifier(CertServer({}))
    legacy_claims = {"v": 0, "d": {"uid": "user-1"}, "iat": 1}
    token = mint_token(legacy_claims, HMAC_SECRET, kid=None, alg="HS256")

    with pytest.raises(InvalidArgumentError, match="legacy custom token"):
        await verifier.verify(token, static_project_id(PROJECT_ID))


@pytest.mark.asyncio
async def test_long_subject_rejected(signing_key: tuple[str, str]) -> None:
    verifier = _verifier(CertServer({"k1": signing_key[1]}))

    token = _token(signing_key[0], sub="x" * 129)
    with pytest.raises(InvalidArgumentError, match="longer than 128 characters"):
        await verifier.verify(token, static_project_id(PROJECT_ID))


@pytest.mark.asyncio
async def test_unknown_kid_rejected(
    signing_key: tuple[str, str], other_signing_key: tuple[str, str]
) -> None:
    server = CertServer({"k2": other_signing_key[1]})
    verifier = _verifier(server)

    with pytest.raises(InvalidArgumentError) as exc_info:
        await verifier.verify(_token(signing_key[0]), static_project_id(PROJECT_ID))

    assert "does not correspond to a known public key" in exc_info.value.message
    assert "Most likely the ID token is expired" in exc_info.value.message
    assert len(server.requests) == 1


@pytest.mark.asyncio
async def test_non_string_kid_reported_as_unknown_key(signing_key: tuple[str, str]) -> None:
    server = CertServer({"k1": signing_key[1]})
    verifier = _verifier(server)
    header = {"alg": "RS256", "kid": 123, "typ": "JWT"}
    payload = sample_claims(PROJECT_ID, sub="user-1")
    segments = [base64url_encode(json.dumps(part).encode()) for part in (header, payload)]
    token = b".".join([*segments, b"c2ln"]).decode()

    with pytest.raises(InvalidArgumentError) as exc_info:
        await verifier.verify(token, static_project_id(PROJECT_ID))

    assert "does not correspond to a known public key" in exc_info.value.message
    assert len(server.requests) == 1


@pytest.mark.asyncio
async def test_signature_from_other_key_is_invalid(
    signing_key: tuple[str, str], other_signing_key: tuple[str, str]
) -> None:
    verifier = _verifier(CertServer({"k1": other_signing_key[1]}))

    with pytest.raises(InvalidArgumentError) as exc_info:
        await verifier.verify(_token(signing_key[0]), static_project_id(PROJECT_ID))

    assert exc_info.value.message.startswith("Firebase ID token has invalid signature.")
    assert ID_TOKEN_INFO.url in exc_info.value.message


@pytest.mark.asyncio
async def test_tampered_payload_is_invalid_signature(signing_key: tuple[str, str]) -> None:
    private_pem, certificate_pem = signing_key
    verifier = _verifier(CertServer({"k1": certificate_pem}))
    header, _, signature = _token(private_pem).split(".")
    _, forged_payload, _ = _token(private_pem, name="mallory").split(".")

    with pytest.raises(InvalidArgumentError, match="has invalid signature"):
        await verifier.verify(
            f"{header}.{forged_payload}.{signature}", static_project_id(PROJECT_ID)
        )


@pytest.mark.asyncio
async def test_expired_id_token(signing_key: tuple[str, str]) -> None:
    private_pem, certificate_pem = signing_key
    verifier = _verifier(CertServer({"k1": certificate_pem}))
    past = int(time.time()) - 7200
    token = _token(private_pem, iat=past, auth_time=past, exp=past + 3600)

    with pytest.raises(IdTokenExpiredError) as exc_info:
        await verifier.verify(token, static_project_id(PROJECT_ID))

    assert exc_info.value.code == "auth/id-token-expired"
    assert "(auth/id-token-expired)" in exc_info.value.message
    assert ID_TOKEN_INFO.url in exc_info.value.message


@pytest.mark.asyncio
async def test_expired_session_cookie(signing_key: tuple[str, str]) -> None:
    private_pem, certificate_pem = signing_key
    verifier = _verifier(CertServer({"k1": certificate_pem}), SESSION_COOKIE_PROFILE)
    past = int(time.time()) - 7200
    token = _token(private_pem, TokenKind.SESSION_COOKIE, iat=past, exp=past + 3600)

    with pytest.raises(SessionCookieExpiredError) as exc_info:
        await verifier.verify(token, static_project_id(PROJECT_ID))

    assert isinstance(exc_info.value, ExpiredTokenError)
    assert "(auth/session-cookie-expired)" in exc_info.value.message
    assert SESSION_COOKIE_INFO.url in exc_info.value.message


@pytest.mark.asyncio
async def test_custom_expired_error_kind_is_preserved(signing_key: tuple[str, str]) -> None:
    private_pem, certificate_pem = signing_key
    expired = ErrorInfo(code="widget-token-expired", message="Widget token expired.")
    token_info = dataclasses.replace(ID_TOKEN_INFO, expired_error=expired)
    verifier = FirebaseTokenVerifier(
        CLIENT_CERT_URL,
        "RS256",
        "https://securetoken.google.com/",
        token_info,
        http_client=CertServer({"k1": certificate_pem}).client(),
    )
    past = int(time.time()) - 7200
    token = _token(private_pem, iat=past, exp=past + 3600)

    with pytest.raises(ExpiredTokenError) as exc_info:
        await verifier.verify(token, static_project_id(PROJECT_ID))

    assert exc_info.value.error_info is expired
    assert exc_info.value.code == "auth/widget-token-expired"
    assert "(auth/widget-token-expired)" in exc_info.value.message


@pytest.mark.asyncio
async def test_token_not_yet_valid_uses_underlying_message(signing_key: tuple[str, str]) -> None:
    private_pem, certificate_pem = signing_key
    verifier = _verifier(CertServer({"k1": certificate_pem}))
    future = int(time.time()) + 3600
    token = _token(private_pem, nbf=future)

    with pytest.raises(InvalidArgumentError) as exc_info:
        await verifier.verify(token, static_project_id(PROJECT_ID))

    assert "not yet valid" in exc_info.value.message


@pytest.mark.asyncio
async def test_issued_at_slightly_ahead_of_local_clock_is_accepted(
    signing_key: tuple[str, str],
) -> None:
    private_pem, certificate_pem = signing_key
    verifier = _verifier(CertServer({"k1": certificate_pem}))
    issued_at = int(time.time()) + 2
    token = _token(private_pem, iat=issued_at, auth_time=issued_at)

    claims = await verifier.verify(token, static_project_id(PROJECT_ID))

    assert claims["iat"] == issued_at
    assert claims.subject_id == "user-1"


@pytest.mark.asyncio
async def test_unparseable_certificate_is_internal_error(signing_key: tuple[str, str]) -> None:
    verifier = _verifier(CertServer({"k1": "-----BEGIN CERTIFICATE-----\nnope\n"}))

    with pytest.raises(InternalError, match='kid "k1" could not be loaded'):
        await verifier.verify(_token(signing_key[0]), static_project_id(PROJECT_ID))


@pytest.mark.asyncio
async def test_key_fetch_failure_is_internal_error(signing_key: tuple[str, str]) -> None:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="not json", headers={"content-type": "text/plain"})

    verifier = FirebaseTokenVerifier.from_profile(
        ID_TOKEN_PROFILE, http_client=HttpClient(transport=httpx.MockTransport(handler))
    )
    with pytest.raises(InternalError) as exc_info:
        await verifier.verify(_token(signing_key[0]), static_project_id(PROJECT_ID))
    assert "not json" in exc_info.value.message


@pytest.mark.asyncio
async def test_keys_fetched_once_across_verifications(signing_key: tuple[str, str]) -> None:
    private_pem, certificate_pem = signing_key
    server = CertServer({"k1": certificate_pem})
    verifier = _verifier(server)

    for _ in range(3):
        await verifier.verify(_token(private_pem), static_project_id(PROJECT_ID))
    assert len(server.requests) == 1


def test_factories_use_expected_profiles() -> None:
    id_verifier = create_id_token_verifier()
    cookie_verifier = create_session_cookie_verifier()

    assert id_verifier.profile == ID_TOKEN_PROFILE
    assert id_verifier.public_keys.certificate_url == CLIENT_CERT_URL
    assert cookie_verifier.profile == SESSION_COOKIE_PROFILE
    assert cookie_verifier.public_keys.certificate_url == SESSION_COOKIE_CERT_URL
    assert id_verifier.profile.algorithm == cookie_verifier.profile.algorithm == "RS256"


@pytest.mark.parametrize(
    "kwargs,message",
    [
        ({"certificate_url": "not a url"}, "certificate URL"),
        ({"certificate_url": "ftp://example.com/keys"}, "certificate URL"),
        ({"algorithm": ""}, "algorithm"),
        ({"algorithm": None}, "algorithm"),
        ({"issuer": ""}, "issuer"),
        ({"token_info": {"url": "https://example.com"}}, "TokenInfo"),
        ({"token_info": dataclasses.replace(ID_TOKEN_INFO, url="docs")}, "documentation URL"),
        ({"token_info": dataclasses.replace(ID_TOKEN_INFO, verify_api_name="")}, "API name"),
        ({"token_info": dataclasses.replace(ID_TOKEN_INFO, jwt_name="")}, "full name"),
        ({"token_info": dataclasses.replace(ID_TOKEN_INFO, short_name="")}, "short name"),
        (
            {"token_info": dataclasses.replace(ID_TOKEN_INFO, expired_error=None)},
            "expiration error",
        ),
        (
            {
                "token_info": dataclasses.replace(
                    ID_TOKEN_INFO, expired_error=ErrorInfo(code="", message="m")
                )
            },
            "expiration error",
        ),
    ],
)
def test_construction_rejects_invalid_settings(kwargs: dict[str, Any], message: str) -> None:
    settings: dict[str, Any] = {
        "certificate_url": CLIENT_CERT_URL,
        "algorithm": "RS256",
        "issuer": "https://securetoken.google.com/",
        "token_info": ID_TOKEN_INFO,
    }
    settings.update(kwargs)
    with pytest.raises(ConfigurationError, match=message) as exc_info:
        FirebaseTokenVerifier(**settings)
    assert isinstance(exc_info.value, FirebaseAuthError)
    assert exc_info.value.code == "auth/configuration-error"
