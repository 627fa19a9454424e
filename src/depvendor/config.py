"""
Global config store -- the per-user ~/.deprc file.

Created with defaults on first use, loaded unchanged afterwards.
The file is YAML:

    general:
      default-lib-dir: VENDOR
      prune: false
    ssh:
      private: $HOME/.ssh/id_rsa
      public: $HOME/.ssh/id_rsa.pub
      protected: false

Files written by earlier releases are TOML with the same keys
(`[general]`, `[ssh]`). They are still read, and left as they are.
"""

from __future__ import annotations

import logging
import os
import sys
import tomllib
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from . import GLOBAL_CONFIG_ENV, GLOBAL_CONFIG_FILE
from .errors import ConfigError
from .models import GlobalConfig, SshCredentials

logger = logging.getLogger("depvendor.config")


def home_env_var() -> str:
    """Name of the variable holding the user's home directory."""
    return "USERPROFILE" if sys.platform == "win32" else "HOME"


def home_dir() -> Optional[Path]:
    """The user's home directory, or None when the variable is unset."""
    value = os.environ.get(home_env_var())
    return Path(value) if value else None


def global_config_path() -> Path:
    """Resolve the global config location.

    ``DEPVENDOR_RC`` wins when set; otherwise ``<home>/.deprc``.

    Raises:
        ConfigError: If neither is available.
    """
    override = os.environ.get(GLOBAL_CONFIG_ENV)
    if override:
        return Path(override).expanduser()
    home = home_dir()
    if home is None:
        raise ConfigError(
            f"Could not resolve home directory (${home_env_var()} is not set)"
        )
    return home / GLOBAL_CONFIG_FILE


def default_global_config() -> GlobalConfig:
    """The config written on first run."""
    if sys.platform == "win32":
        ssh_dir = f"%{home_env_var()}%\\.ssh"
        private, public = f"{ssh_dir}\\id_rsa", f"{ssh_dir}\\id_rsa.pub"
    else:
        ssh_dir = f"${home_env_var()}/.ssh"
        private, public = f"{ssh_dir}/id_rsa", f"{ssh_dir}/id_rsa.pub"
    return GlobalConfig(
        ssh=SshCredentials(private=Path(private), public=Path(public), protected=False),
    )


def save_global_config(path: Path, config: GlobalConfig) -> None:
    """Persist the global config as YAML."""
    data = config.model_dump(mode="json", by_alias=True, exclude_none=True)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            yaml.dump(data, default_flow_style=False, sort_keys=False),
            encoding="utf-8",
        )
    except OSError as exc:
        raise ConfigError(f"Could not write global config {path}: {exc}") from exc


def load_global_config(path: Path) -> GlobalConfig:
    """Parse an existing global config file.

    Raises:
        ConfigError: On unreadable, malformed, or invalid content.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not read global config {path}: {exc}") from exc

    try:
        data = tomllib.loads(text)
        logger.debug("Read %s as TOML", path)
    except tomllib.TOMLDecodeError:
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(
                f"Malformed global config {path}: not valid YAML or TOML: {exc}"
            ) from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Malformed global config {path}: expected a mapping")
    try:
        return GlobalConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid global config {path}: {exc}") from exc


def load_or_init_global_config(path: Optional[Path] = None) -> tuple[GlobalConfig, Optional[Path]]:
    """Load the global config, writing the defaults first if it is absent.

    When no path is given and the home directory cannot be resolved,
    the defaults are used in memory and nothing is written.

    Returns:
        The config and the path it lives at (None when unresolvable).
    """
    if path is None:
        try:
            path = global_config_path()
        except ConfigError as exc:
            logger.warning("%s; using default global config", exc)
            return default_global_config(), None

    if path.exists():
        return load_global_config(path), path

    config = default_global_config()
    save_global_config(path, config)
    logger.info("Initialized global configuration at %s", path)
    return config, path
