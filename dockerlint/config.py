"""Loading of the `.dockerfilelintrc` rule configuration."""

from __future__ import annotations

import logging
import os
from typing import Any

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".dockerfilelintrc"


def load_config(directory: str = ".") -> dict[str, Any]:
    """Return the `rules` mapping of `<directory>/.dockerfilelintrc`.

    A missing file, an empty file or a file without `rules` all mean
    "every rule enabled" and yield an empty mapping.
    """
    path = os.path.join(directory or ".", CONFIG_FILENAME)
    if not os.path.isfile(path):
        logger.debug("No %s in %s", CONFIG_FILENAME, directory)
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")

    rules = data.get("rules") or {}
    if not isinstance(rules, dict):
        raise ConfigError(f"'rules' in {path} must be a mapping of rule id to on/off")

    logger.debug("Loaded %d rule setting(s) from %s", len(rules), path)
    return {str(rule_id): value for rule_id, value in rules.items()}
