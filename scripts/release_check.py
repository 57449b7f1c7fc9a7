from __future__ import annotations

import re
import tomllib
from pathlib import Path


def _read_pyproject(pyproject_path: Path) -> dict[str, object]:
    data = tomllib.loads(pyproject_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):  # pragma: no cover
        raise SystemExit("pyproject.toml is not a table")
    return data


def _project_version(data: dict[str, object]) -> str:
    project = data.get("project", {})
    version = project.get("version") if isinstance(project, dict) else None
    if not isinstance(version, str) or not version.strip():
        raise SystemExit("pyproject.toml missing [project].version")
    return version.strip()


def _require_pinned(spec: str, *, context: str) -> None:
    if "==" not in spec:
        raise SystemExit(f"unpinned dependency in {context}: {spec!r} (expected '==')")


def main() -> int:
    root = Path(__file__).resolve().parents[1]
    data = _read_pyproject(root / "pyproject.toml")
    version = _project_version(data)

    changelog_text = (root / "CHANGELOG.md").read_text(encoding="utf-8")
    if not re.search(rf"^##\s+v{re.escape(version)}\b", changelog_text, flags=re.MULTILINE):
        raise SystemExit(f"CHANGELOG.md missing section header for v{version}")

    from firebase_token_verifier.version import __version__  # imported late to keep script fast

    if __version__ != version:
        raise SystemExit(f"version mismatch: pyproject={version} package={__version__}")

    project = data.get("project", {})
    assert isinstance(project, dict)
    for dep in project.get("dependencies", []):
        if isinstance(dep, str) and dep.strip():
            _require_pinned(dep.strip(), context="pyproject.toml")
    for extra, deps in project.get("optional-dependencies", {}).items():
        for dep in deps:
            _require_pinned(dep.strip(), context=f"pyproject.toml [{extra}]")

    for raw in (root / "requirements-dev.txt").read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith(("-r", "--requirement")):
            continue
        _require_pinned(line, context="requirements-dev.txt")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
