from __future__ import annotations

import datetime
import time
from typing import Any

import jwt
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from .tokens import ALGORITHM_RS256, TokenKind, profile_for

SUPPORTED_SAMPLE_KINDS = frozenset(kind.value for kind in TokenKind)
DEFAULT_PROJECT_ID = "demo-project"
DEFAULT_KID = "demo-k1"


def _private_key_pem(private_key: rsa.RSAPrivateKey) -> str:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


def _self_signed_certificate_pem(private_key: rsa.RSAPrivateKey, common_name: str) -> str:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=5))
        .not_valid_after(now + datetime.timedelta(days=1))
        .sign(private_key, hashes.SHA256())
    )
    return certificate.public_bytes(serialization.Encoding.PEM).decode("utf-8")


def generate_signing_key(kid: str = DEFAULT_KID) -> tuple[str, str]:
    """Returns ``(private_key_pem, certificate_pem)`` for an RSA key named ``kid``.

    The certificate is self-signed, in the same X.509 PEM form the Google
    certificate endpoints publish.
    """
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return _private_key_pem(private_key), _self_signed_certificate_pem(private_key, kid)


def sample_claims(
    project_id: str = DEFAULT_PROJECT_ID,
    kind: TokenKind | str = TokenKind.ID_TOKEN,
    *,
    sub: str = "demo-user",
    exp_seconds: int = 3600,
    now: int | None = None,
) -> dict[str, Any]:
    issued_at = int(time.time()) if now is None else int(now)
    profile = profile_for(kind)
    return {
        "iss": profile.issuer_prefix + project_id,
        "aud": project_id,
        "auth_time": issued_at,
        "sub": sub,
        "iat": issued_at,
        "exp": issued_at + int(exp_seconds),
    }


def mint_token(
    claims: dict[str, Any],
    private_pem: str,
    kid: str | None = DEFAULT_KID,
    alg: str = ALGORITHM_RS256,
    headers: dict[str, Any] | None = None,
) -> str:
    merged_headers: dict[str, Any] = {}
    if headers:
        merged_headers.update(headers)
    if kid:
        merged_headers["kid"] = kid
    return jwt.encode(claims, key=private_pem, algorithm=alg, headers=merged_headers or None)


def generate_sample(
    kind: str,
    project_id: str = DEFAULT_PROJECT_ID,
    exp_seconds: int = 3600,
) -> dict[str, Any]:
    if kind not in SUPPORTED_SAMPLE_KINDS:
        raise ValueError("unknown sample kind")

    private_pem, certificate_pem = generate_signing_key(DEFAULT_KID)
    claims = sample_claims(project_id, kind, exp_seconds=exp_seconds)
    token = mint_token(claims, private_pem, kid=DEFAULT_KID)
    profile = profile_for(kind)
    return {
        "kind": kind,
        "project_id": project_id,
        "alg": profile.algorithm,
        "iss": claims["iss"],
        "kid": DEFAULT_KID,
        "token": token,
        "payload": claims,
        "certificates": {DEFAULT_KID: certificate_pem},
        "sign_key": private_pem,
    }
