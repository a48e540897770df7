"""Configuration discovery for braid.json.

Convention-based: the CLI walks up from the cwd looking for ``braid.json``,
the same way git finds ``.git/``. A missing file means defaults; a corrupt or
partly invalid file is logged and the defaults fill the gaps.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from braid.guard import DEFAULT_MAX_ATTEMPTS
from braid.types.core import BraidConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "braid.json"


def default_config() -> BraidConfig:
    return BraidConfig(max_attempts=DEFAULT_MAX_ATTEMPTS, max_workers=1, timeout=None, log_dir=None)


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from start (default cwd) looking for braid.json. None if absent."""
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def _positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def read_config(config_path: Path | None) -> BraidConfig:
    """Read braid.json. Returns defaults if missing or corrupt."""
    config = default_config()
    if config_path is None or not config_path.exists():
        return config
    try:
        raw = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return config
    if not isinstance(raw, dict):
        logger.warning("Ignoring %s: top level must be an object", config_path)
        return config

    if "max_attempts" in raw:
        if _positive_int(raw["max_attempts"]):
            config["max_attempts"] = raw["max_attempts"]
        else:
            logger.warning("Invalid max_attempts %r in %s, using %d", raw["max_attempts"], config_path, DEFAULT_MAX_ATTEMPTS)

    if "max_workers" in raw:
        if _positive_int(raw["max_workers"]):
            config["max_workers"] = raw["max_workers"]
        else:
            logger.warning("Invalid max_workers %r in %s, using 1", raw["max_workers"], config_path)

    timeout = raw.get("timeout")
    if timeout is not None:
        if isinstance(timeout, (int, float)) and not isinstance(timeout, bool) and timeout > 0:
            config["timeout"] = float(timeout)
        else:
            logger.warning("Invalid timeout %r in %s, ignoring", timeout, config_path)

    log_dir = raw.get("log_dir")
    if log_dir is not None:
        if isinstance(log_dir, str) and log_dir:
            # Relative paths are relative to the config file, not the cwd
            config["log_dir"] = str((config_path.parent / log_dir).resolve())
        else:
            logger.warning("Invalid log_dir %r in %s, ignoring", log_dir, config_path)

    unknown = sorted(set(raw) - {"max_attempts", "max_workers", "timeout", "log_dir"})
    if unknown:
        logger.warning("Unknown keys in %s: %s", config_path, ", ".join(unknown))
    return config


def write_config(config_path: Path, config: dict[str, Any] | BraidConfig) -> None:
    """Write braid.json."""
    config_path.write_text(json.dumps(config, indent=2) + "\n")
