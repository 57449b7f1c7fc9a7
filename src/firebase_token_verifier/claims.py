from __future__ import annotations

from typing import Any

from .errors import InvalidArgumentError
from .tokens import FIREBASE_AUDIENCE, VerifierProfile

MAX_SUBJECT_LENGTH = 128


def _is_legacy_custom_token(header: dict[str, Any], payload: dict[str, Any]) -> bool:
    version = payload.get("v")
    if isinstance(version, bool) or not isinstance(version, (int, float)) or version != 0:
        return False
    data = payload.get("d")
    return header.get("alg") == "HS256" and isinstance(data, dict) and "uid" in data


def _missing_kid_message(
    header: dict[str, Any], payload: dict[str, Any], profile: VerifierProfile
) -> str:
    info = profile.token_info
    if payload.get("aud") == FIREBASE_AUDIENCE:
        return (
            f"{info.verify_api_name} expects {info.article} {info.short_name}, "
            "but was given a custom token."
        )
    if _is_legacy_custom_token(header, payload):
        return (
            f"{info.verify_api_name} expects {info.article} {info.short_name}, "
            "but was given a legacy custom token."
        )
    return f'{info.jwt_name} has no "kid" claim.'


def _subject_message(payload: dict[str, Any], jwt_name: str) -> str | None:
    if "sub" not in payload:
        return f'{jwt_name} has no "sub" (subject) claim.'
    sub = payload["sub"]
    if not isinstance(sub, str):
        return f'{jwt_name} has a non-string "sub" (subject) claim.'
    if sub == "":
        return f'{jwt_name} has an empty string "sub" (subject) claim.'
    if len(sub) > MAX_SUBJECT_LENGTH:
        return (
            f'{jwt_name} has "sub" (subject) claim longer than '
            f"{MAX_SUBJECT_LENGTH} characters."
        )
    return None


def validate_claims(
    decoded: tuple[dict[str, Any], dict[str, Any]] | None,
    project_id: str,
    profile: VerifierProfile,
) -> InvalidArgumentError | None:
    """Runs the local structural and claim checks for a decoded token.

    Checks run in a fixed order and the first failure wins: decode result,
    ``kid`` header, ``alg`` header, ``aud``, ``iss``, then ``sub``. Returns the
    failure instead of raising it so callers can test this without any I/O.
    """
    info = profile.token_info
    docs = info.docs_message
    project_hint = (
        f" Make sure the {info.short_name} comes from the same Firebase project "
        "as the service account used to authenticate this SDK."
    )

    if decoded is None:
        return InvalidArgumentError(
            f"Decoding {info.jwt_name} failed. Make sure you passed the entire string JWT "
            f"which represents {info.article} {info.short_name}.{docs}"
        )
    header, payload = decoded

    if "kid" not in header:
        return InvalidArgumentError(_missing_kid_message(header, payload, profile) + docs)

    alg = header.get("alg")
    if alg != profile.algorithm:
        return InvalidArgumentError(
            f'{info.jwt_name} has incorrect algorithm. Expected "{profile.algorithm}" '
            f'but got "{alg}".{docs}'
        )

    aud = payload.get("aud")
    if aud != project_id:
        return InvalidArgumentError(
            f'{info.jwt_name} has incorrect "aud" (audience) claim. Expected '
            f'"{project_id}" but got "{aud}".{project_hint}{docs}'
        )

    expected_issuer = profile.issuer_prefix + project_id
    iss = payload.get("iss")
    if iss != expected_issuer:
        return InvalidArgumentError(
            f'{info.jwt_name} has incorrect "iss" (issuer) claim. Expected '
            f'"{expected_issuer}" but got "{iss}".{project_hint}{docs}'
        )

    subject_error = _subject_message(payload, info.jwt_name)
    if subject_error:
        return InvalidArgumentError(subject_error + docs)
    return None
