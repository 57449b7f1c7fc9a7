from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Awaitable, Callable, Mapping

from .errors import InvalidCredentialError

ProjectIdResolver = Callable[[], Awaitable[str | None]]

PROJECT_ID_ENV_VARS = ("GOOGLE_CLOUD_PROJECT", "GCLOUD_PROJECT")
CREDENTIALS_ENV_VAR = "GOOGLE_APPLICATION_CREDENTIALS"


def _project_id_from_credentials_file(path: str) -> str | None:
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise InvalidCredentialError(
            f"Failed to read credentials file {path} named by {CREDENTIALS_ENV_VAR}: {exc}"
        ) from exc
    if not isinstance(raw, dict):
        raise InvalidCredentialError(
            f"Credentials file {path} named by {CREDENTIALS_ENV_VAR} must be a JSON object."
        )
    project_id = raw.get("project_id")
    if isinstance(project_id, str) and project_id.strip():
        return project_id.strip()
    return None


def find_project_id(
    explicit: str | None = None,
    env: Mapping[str, str] | None = None,
) -> str | None:
    """Explicit value first, then the project id env vars, then the service account file."""
    if explicit and explicit.strip():
        return explicit.strip()
    env = os.environ if env is None else env
    for name in PROJECT_ID_ENV_VARS:
        value = env.get(name, "").strip()
        if value:
            return value
    credentials_path = env.get(CREDENTIALS_ENV_VAR, "").strip()
    if credentials_path:
        return _project_id_from_credentials_file(credentials_path)
    return None


def static_project_id(project_id: str | None) -> ProjectIdResolver:
    async def resolve() -> str | None:
        return project_id

    return resolve


def env_project_id_resolver(
    explicit: str | None = None,
    env: Mapping[str, str] | None = None,
) -> ProjectIdResolver:
    async def resolve() -> str | None:
        return find_project_id(explicit, env)

    return resolve
