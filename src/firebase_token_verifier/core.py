from __future__ import annotations

from typing import Any

import jwt
from cryptography import x509
from cryptography.hazmat.primitives.serialization import (
    load_pem_private_key,
    load_pem_public_key,
)
from jwt import exceptions as jwt_exceptions


def decode_token(token: str) -> tuple[dict[str, Any], dict[str, Any]] | None:
    """Parses header and payload without checking the signature or any claim.

    Returns ``None`` when the token is not a structurally valid JWS with a JSON
    object payload. Header values are returned as found, so a non-string
    ``kid`` is left for the caller to reject.
    """
    try:
        decoded = jwt.decode_complete(
            token,
            options={
                "verify_signature": False,
                "verify_exp": False,
                "verify_nbf": False,
                "verify_iat": False,
                "verify_aud": False,
                "verify_iss": False,
                "verify_sub": False,
                "verify_jti": False,
            },
        )
    except jwt_exceptions.PyJWTError:
        return None
    header, payload = decoded["header"], decoded["payload"]
    if not isinstance(header, dict) or not isinstance(payload, dict):
        return None
    return header, payload


def redact_token(token: str, replacement: str = "REDACTED") -> str:
    parts = token.strip().split(".")
    if len(parts) != 3:
        return replacement
    return f"{parts[0]}.{parts[1]}.{replacement}"


def _looks_like_certificate(text: str) -> bool:
    return "BEGIN CERTIFICATE" in text


def load_public_key(pem_text: str) -> Any:
    """Loads the verification key from certificate, public key or private key PEM."""
    data = pem_text.encode("utf-8")
    if _looks_like_certificate(pem_text):
        return x509.load_pem_x509_certificate(data).public_key()
    try:
        key_any: Any = load_pem_public_key(data)
    except ValueError:
        key_any = load_pem_private_key(data, password=None)
    return key_any.public_key() if hasattr(key_any, "public_key") else key_any


def verify_signature(token: str, key: Any, algorithm: str) -> dict[str, Any]:
    # aud/iss/sub are checked before the keys are fetched. PyJWT checks the signature,
    # exp and nbf; iat is not compared with the local clock.
    return jwt.decode(
        token,
        key=key,
        algorithms=[algorithm],
        options={
            "verify_signature": True,
            "verify_exp": True,
            "verify_iat": False,
            "verify_aud": False,
            "verify_iss": False,
        },
    )
