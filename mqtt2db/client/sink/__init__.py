#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Sinks: destinations for mapped data points

Each sink implementation is placed into its own package under:

  mqtt2db.client.sink.<name>/

Example:
  - influxdb  (InfluxDB 1.x HTTP API, line protocol)
"""

from __future__ import annotations

from typing import Any, Iterable, List

from ...mapping.errors import ConfigError
from .base import Sink, SinkWriteError
from .influxdb.adapter import InfluxDbConfig, InfluxDbSink


def build_sinks(databases: Iterable[Any]) -> List[Sink]:
    """Create one sink per config["databases"] item"""
    if databases is None or isinstance(databases, (str, dict)):
        raise ConfigError("'databases' must be a list")
    return [InfluxDbSink(cfg=InfluxDbConfig.from_config(db)) for db in databases]


__all__ = ["Sink", "SinkWriteError", "build_sinks"]
