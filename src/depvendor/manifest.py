"""
Manifest codec -- reads deps.toml and writes the ``init`` skeleton.

    [project]
    name = "my-project"
    lib-dir = "vendor"               # optional, else the global default
    git-server = "git.example.com"   # optional, used with ``repo``

    [dependencies]
    shared = { path = "../shared" }
    client = { repo = "team/client", branch = "main" }
    parser = { git = "https://example.com/parser.git", tag = "v1.2.0", as = "parse" }
"""

from __future__ import annotations

import logging
import re
import tomllib
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from .errors import ConfigError, ManifestError
from .models import Manifest

logger = logging.getLogger("depvendor.manifest")

_TOML_BARE_KEY_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


def load_manifest(path: Path) -> Manifest:
    """Parse and validate a manifest file.

    Raises:
        ManifestError: If the file does not exist.
        ConfigError: If the content is not valid TOML or fails validation.
    """
    if not path.exists():
        raise ManifestError(f"No manifest found at {path}. Run 'depvendor init' first.")
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ManifestError(f"Could not read manifest {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Malformed manifest {path}: {exc}") from exc

    try:
        manifest = Manifest.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid manifest {path}: {exc}") from exc

    logger.debug(
        "Loaded manifest for %s with %d dependencies",
        manifest.project.name, len(manifest.dependencies),
    )
    return manifest


def _toml_quote_string(value: str) -> str:
    escaped = (
        value.replace("\\", "\\\\")
        .replace("\t", "\\t")
        .replace("\r", "\\r")
        .replace("\n", "\\n")
        .replace('"', '\\"')
    )
    return f'"{escaped}"'


def _toml_format_key(key: str) -> str:
    if _TOML_BARE_KEY_RE.match(key):
        return key
    return _toml_quote_string(key)


def _toml_format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (str, Path)):
        return _toml_quote_string(str(value))
    if isinstance(value, list):
        return "[" + ", ".join(_toml_format_value(v) for v in value) + "]"
    if isinstance(value, dict):
        inner = ", ".join(
            f"{_toml_format_key(k)} = {_toml_format_value(v)}" for k, v in value.items()
        )
        return "{ " + inner + " }"
    raise ConfigError(f"Unsupported TOML value type: {type(value).__name__}")


def render_manifest(manifest: Manifest) -> str:
    """Serialize a manifest back to TOML text."""
    data = manifest.model_dump(mode="json", by_alias=True, exclude_none=True)
    lines = ["[project]"]
    for key, value in data["project"].items():
        lines.append(f"{_toml_format_key(key)} = {_toml_format_value(value)}")
    lines.extend(["", "[dependencies]"])
    for name, dep in data.get("dependencies", {}).items():
        lines.append(f"{_toml_format_key(name)} = {_toml_format_value(dep)}")
    return "\n".join(lines) + "\n"


def init_manifest(path: Path, name: str, authors: Optional[list[str]] = None) -> Manifest:
    """Write a manifest skeleton.

    Raises:
        ManifestError: If a manifest already exists at ``path``.
    """
    if path.exists():
        raise ManifestError(f"Already initialized: {path} exists")

    manifest = Manifest.model_validate({"project": {"name": name, "authors": authors}})
    try:
        path.write_text(render_manifest(manifest), encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"Could not write manifest {path}: {exc}") from exc
    logger.info("Wrote manifest skeleton to %s", path)
    return manifest
