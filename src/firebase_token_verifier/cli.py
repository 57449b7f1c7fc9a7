from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

import httpx

from .core import decode_token, redact_token
from .errors import FirebaseAuthError
from .project import env_project_id_resolver
from .samples import SUPPORTED_SAMPLE_KINDS, generate_sample
from .tokens import TokenKind, profile_for
from .transport import DEFAULT_TIMEOUT, HttpClient
from .verifier import FirebaseTokenVerifier
from .version import __version__

logger = logging.getLogger(__name__)

_KIND_CHOICES = sorted(kind.value for kind in TokenKind)


def _print_json(obj: object) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True))


def _load_token(token_arg: str) -> str:
    if token_arg != "-":
        return token_arg
    token = sys.stdin.read().strip()
    if not token:
        raise ValueError("stdin is empty; expected JWT")
    return token


def _http_client(args: argparse.Namespace) -> HttpClient:
    return HttpClient(proxy=args.proxy, timeout=float(args.timeout))


def _build_verifier(args: argparse.Namespace) -> FirebaseTokenVerifier:
    profile = profile_for(args.kind)
    return FirebaseTokenVerifier(
        args.cert_url or profile.certificate_url,
        profile.algorithm,
        profile.issuer_prefix,
        profile.token_info,
        http_client=_http_client(args),
    )


def _cmd_decode(args: argparse.Namespace) -> int:
    decoded = decode_token(_load_token(args.token))
    if decoded is None:
        raise ValueError("token is not a well-formed JWT")
    header, payload = decoded
    _print_json({"header": header, "payload": payload})
    return 0


def _cmd_verify(args: argparse.Namespace) -> int:
    token = _load_token(args.token)
    verifier = _build_verifier(args)
    logger.debug("verifying %s", redact_token(token))
    claims = asyncio.run(verifier.verify(token, env_project_id_resolver(args.project_id)))
    _print_json({"valid": True, "uid": claims.subject_id, "claims": dict(claims)})
    return 0


def _cmd_keys(args: argparse.Namespace) -> int:
    verifier = _build_verifier(args)
    keys = asyncio.run(verifier.public_keys.get_keys())
    output: dict[str, Any] = {
        "certificate_url": verifier.public_keys.certificate_url,
        "kids": sorted(keys),
        "expires_at": verifier.public_keys.expires_at,
    }
    if args.show_pem:
        output["keys"] = keys
    _print_json(output)
    return 0


def _cmd_sample(args: argparse.Namespace) -> int:
    _print_json(generate_sample(str(args.kind), args.project_id, int(args.exp_seconds)))
    return 0


def _add_verifier_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--kind",
        choices=_KIND_CHOICES,
        default=TokenKind.ID_TOKEN.value,
        help="Token kind (default: id-token)",
    )
    parser.add_argument("--cert-url", help="Override the public certificate URL")
    parser.add_argument("--proxy", help="Outbound proxy URL for certificate fetches")
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f"Certificate fetch timeout in seconds (default: {DEFAULT_TIMEOUT:g})",
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="firebase-token-verifier")
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="cmd", required=True)

    p_decode = sub.add_parser("decode", help="Decode a JWT without verifying signature")
    p_decode.add_argument("--token", required=True, help="JWT string (use '-' to read from stdin)")
    p_decode.set_defaults(func=_cmd_decode)

    p_verify = sub.add_parser("verify", help="Verify a Firebase ID token or session cookie")
    p_verify.add_argument("--token", required=True, help="JWT string (use '-' to read from stdin)")
    p_verify.add_argument(
        "--project-id",
        help="Firebase project id (default: GOOGLE_CLOUD_PROJECT, GCLOUD_PROJECT, "
        "or the GOOGLE_APPLICATION_CREDENTIALS service account)",
    )
    _add_verifier_args(p_verify)
    p_verify.set_defaults(func=_cmd_verify)

    p_keys = sub.add_parser("keys", help="Fetch the current public keys for a token kind")
    p_keys.add_argument("--show-pem", action="store_true", help="Include the PEM bodies")
    _add_verifier_args(p_keys)
    p_keys.set_defaults(func=_cmd_keys)

    p_sample = sub.add_parser("sample", help="Generate an offline sample token and certificate")
    p_sample.add_argument(
        "--kind",
        choices=sorted(SUPPORTED_SAMPLE_KINDS),
        default=TokenKind.ID_TOKEN.value,
        help="Token kind (default: id-token)",
    )
    p_sample.add_argument("--project-id", default="demo-project", help="Project id (aud)")
    p_sample.add_argument(
        "--exp-seconds", type=int, default=3600, help="Seconds until exp (default: 3600)"
    )
    p_sample.set_defaults(func=_cmd_sample)

    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    try:
        return int(args.func(args))
    except KeyboardInterrupt:
        return 130
    except FirebaseAuthError as exc:
        print(f"error: {exc.code}: {exc.message}", file=sys.stderr)
        return 1
    except httpx.HTTPError as exc:
        print(f"error: certificate fetch failed: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
