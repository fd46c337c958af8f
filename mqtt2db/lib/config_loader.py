#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..mapping.errors import ConfigError

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")
LOG_LEVELS = ("trace", "debug", "info", "warn", "warning", "error", "critical", "off")


@dataclass(frozen=True)
class LoadedConfig:
    """
    Thin wrapper over loaded YAML/JSON.

    Example (output):
        LoadedConfig(raw={...full config dict...}, path="/etc/mqtt2db.yaml")
    """

    raw: Dict[str, Any]
    path: str = ""

    @property
    def log_level(self) -> Optional[str]:
        level = self.raw.get("logLevel")
        if level is None:
            return None
        level = str(level).lower()
        if level not in LOG_LEVELS:
            raise ConfigError(f"Unknown logLevel {level!r} (expected one of: {', '.join(LOG_LEVELS)})")
        return level

    @property
    def mqtt(self) -> Dict[str, Any]:
        mqtt = self.raw.get("mqtt")
        if not isinstance(mqtt, dict):
            raise ConfigError("'mqtt' section is missing")
        return mqtt

    @property
    def databases(self) -> List[Any]:
        databases = self.raw.get("databases")
        if not isinstance(databases, list):
            raise ConfigError("'databases' must be a list")
        return databases

    @property
    def mappings(self) -> List[Any]:
        mappings = self.raw.get("mappings")
        if not isinstance(mappings, list):
            raise ConfigError("'mappings' must be a list")
        return mappings


def load_config(path: str) -> LoadedConfig:
    """
    Load YAML (.yaml/.yml) or JSON config from disk.

    Input:
      path: path to config file.

    Output:
      LoadedConfig with .raw containing parsed dict.

    Example:
      cfg = load_config("mqtt2db.yaml")
      rules = RuleTable.from_config(cfg.mappings)
    """
    p = Path(path)
    logger.debug("Reading configuration file %s", p)
    text = p.read_text(encoding="utf-8")
    try:
        if p.suffix.lower() in YAML_SUFFIXES:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, ValueError) as e:
        raise ConfigError(f"Unable to parse {p}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{p}: top level must be a mapping")
    return LoadedConfig(raw=data, path=str(p))
