#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from ..mapping.value import TypedValue


@dataclass(frozen=True)
class InboundMessage:
    """
    Raw message produced by a source adapter

    This object is the adapter output BEFORE any mapping

    Fields:
      - topic: MQTT topic the message was published on
      - payload: raw payload bytes
      - meta: optional metadata (e.g. qos/retain for MQTT)
    """

    topic: str
    payload: bytes
    meta: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class DataPoint:
    """
    Router output, handed to every sink

    Fields:
      - timestamp: milliseconds since the Unix epoch
      - field_name: rendered field name
      - value: typed field value
      - tags: rendered tags in configuration order

    Example:
        DataPoint(
            timestamp=1700000000000,
            field_name="temp_kitchen",
            value=TypedValue(ValueType.FLOAT, 21.5),
            tags=(("room", TypedValue(ValueType.TEXT, "kitchen")),),
        )
    """

    timestamp: int
    field_name: str
    value: TypedValue
    tags: Tuple[Tuple[str, TypedValue], ...] = ()
