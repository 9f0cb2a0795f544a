"""Layered configuration for the auto-chain controller.

Layers, highest precedence first:

1. inline directives in the assistant text (skip-discuss only)
2. the project file ``.planning/config.json`` (skip-discuss only)
3. the global file ``~/.config/opencode/gsd-auto-chain.json``
4. built-in defaults

Missing or broken files never fail the caller; they simply contribute
nothing.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from gsd_chain.directives import inline_skip_discuss
from gsd_chain.paths import global_config_path, project_config_path
from gsd_chain.schemas import ChainSettings, ResolvedConfig, SkipDiscussSource

logger = logging.getLogger(__name__)


def _read_json_object(path: Path) -> dict[str, Any] | None:
    """Return the JSON object stored at *path*, or ``None`` if unusable."""
    if not path.is_file():
        return None
    try:
        raw = path.read_text(encoding="utf-8")
        data = json.loads(raw) if raw.strip() else None
    except (OSError, ValueError) as exc:
        logger.warning("Could not read config file %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: top level is not an object", path)
        return None
    return data


def load_global_settings(path: Path | None = None) -> ChainSettings:
    """Load global settings; each valid key overrides its default.

    An invalid value drops only its own key, so the rest of the file
    still applies.
    """
    config_path = path or global_config_path()
    data = _read_json_object(config_path)
    if data is None:
        return ChainSettings()

    valid: dict[str, Any] = {}
    for name, field in ChainSettings.model_fields.items():
        key = field.alias or name
        if key not in data:
            continue
        try:
            ChainSettings.model_validate({key: data[key]})
        except ValidationError as exc:
            logger.warning("Ignoring invalid %s in %s: %s", key, config_path, exc.errors()[0]["msg"])
            continue
        valid[key] = data[key]
    return ChainSettings.model_validate(valid)


def load_project_skip_discuss(project_dir: str | Path) -> bool | None:
    """Return the project-level skip-discuss flag, or ``None`` when unset.

    Both ``{"autoChain": {"skipDiscuss": ...}}`` and a flat
    ``{"skipDiscuss": ...}`` are accepted; the nested form wins.
    """
    data = _read_json_object(project_config_path(project_dir))
    if data is None:
        return None
    nested = data.get("autoChain")
    if isinstance(nested, dict) and nested.get("skipDiscuss") is not None:
        return _as_bool(nested["skipDiscuss"])
    if data.get("skipDiscuss") is not None:
        return _as_bool(data["skipDiscuss"])
    return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def resolve_skip_discuss(
    *,
    inline: bool | None,
    project: bool | None,
    global_value: bool | None,
    default: bool = False,
) -> tuple[bool, SkipDiscussSource]:
    """Pick the skip-discuss flag from the four layers in precedence order."""
    if inline is not None:
        return inline, SkipDiscussSource.INLINE
    if project is not None:
        return project, SkipDiscussSource.PROJECT
    if global_value is not None:
        return global_value, SkipDiscussSource.GLOBAL
    return default, SkipDiscussSource.DEFAULT


def resolve(
    project_dir: str | Path,
    text: str,
    *,
    global_path: Path | None = None,
) -> ResolvedConfig:
    """Build the settings snapshot for one triggering event."""
    settings = load_global_settings(global_path)

    inline = inline_skip_discuss(text)
    # The project file is only consulted when no directive decides.
    project = None if inline is not None else load_project_skip_discuss(project_dir)
    global_value = settings.skip_discuss if "skip_discuss" in settings.model_fields_set else None

    skip_discuss, source = resolve_skip_discuss(
        inline=inline,
        project=project,
        global_value=global_value,
        default=ChainSettings.model_fields["skip_discuss"].default,
    )
    logger.debug("skipDiscuss: %s (%s)", skip_discuss, source.value)
    return ResolvedConfig(
        settings=settings,
        skip_discuss=skip_discuss,
        skip_discuss_source=source,
    )
