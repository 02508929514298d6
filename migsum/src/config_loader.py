"""
Configuration loader for migsum.

Provides a single entry point for reading the YAML config, with sensible
defaults for every section.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = "migsum/config/migsum_config.yaml"


def load_config(path: str | None = None) -> dict[str, Any]:
    """Read ``migsum_config.yaml`` and return the parsed dict.

    Parameters
    ----------
    path : str | None
        Explicit path.  Falls back to *_DEFAULT_CONFIG_PATH*; when that
        file is absent too, pure defaults are returned.

    Returns
    -------
    dict[str, Any]
        The full configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If an explicit *path* does not exist.
    yaml.YAMLError
        If the file is not valid YAML.
    """
    config_path = path or _DEFAULT_CONFIG_PATH
    p = Path(config_path)

    if not p.exists():
        if path is not None:
            raise FileNotFoundError(f"Config file not found: {config_path}")
        logger.info("[config] No config at %s, using defaults", config_path)
        return _apply_defaults({})

    with open(p, "r", encoding="utf-8") as fh:
        cfg = yaml.safe_load(fh) or {}

    logger.info("[config] Loaded configuration from %s", config_path)
    return _apply_defaults(cfg)


def _apply_defaults(cfg: dict[str, Any]) -> dict[str, Any]:
    """Merge user config with sensible defaults."""
    mig = cfg.setdefault("migrations", {})
    mig.setdefault("dir", "migrations")
    mig.setdefault("pattern", "*.sql")
    mig.setdefault("sum_file", "migsum.sum")

    ver = cfg.setdefault("verify", {})
    ver.setdefault("allow_unrecorded", True)

    rep = cfg.setdefault("report", {})
    rep.setdefault("enabled", False)
    rep.setdefault("output_dir", "reports")

    return cfg


def sum_file_path(cfg: dict[str, Any]) -> Path:
    """Location of the sum file: inside the migration directory."""
    mig = cfg["migrations"]
    return Path(mig["dir"]) / mig["sum_file"]
