"""Well-known file locations, overridable through the environment."""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_PATH_ENV = "GSD_AUTO_CHAIN_CONFIG"
CACHE_DIR_ENV = "GSD_AUTO_CHAIN_CACHE_DIR"

PROJECT_CONFIG_RELATIVE = Path(".planning") / "config.json"


def _env_path(name: str) -> Path | None:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    return Path(raw).expanduser()


def global_config_path() -> Path:
    return _env_path(CONFIG_PATH_ENV) or Path.home() / ".config" / "opencode" / "gsd-auto-chain.json"


def cache_dir() -> Path:
    return _env_path(CACHE_DIR_ENV) or Path.home() / ".cache" / "opencode"


def pending_command_path() -> Path:
    return cache_dir() / "gsd-pending-command.json"


def auto_input_path() -> Path:
    """File that receives the plain pending command for human pickup."""
    return cache_dir() / "gsd-auto-input.txt"


def debug_log_path() -> Path:
    return cache_dir() / "gsd-auto-chain.log"


def project_config_path(project_dir: str | Path) -> Path:
    return Path(project_dir) / PROJECT_CONFIG_RELATIVE
