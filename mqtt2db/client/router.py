#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from ..mapping.errors import DispatchError, MessageError, UnmatchedTopic
from ..mapping.extract import decode_payload, extract_timestamp, extract_value, parse_document
from ..mapping.rules import JsonPayload, LiteralTag, Rule, RuleTable
from ..mapping.value import TypedValue, ValueType, coerce_node, coerce_text
from .models import DataPoint, InboundMessage
from .sink.base import Sink, SinkWriteError

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass
class Router:
    """
    Maps inbound messages to data points and hands them to sinks

    Responsibilities:
      1) Find the first rule whose topic pattern matches the message topic
      2) Render field name and templated tags from the topic captures
      3) Decode the payload (raw text or JSON + JSONPath) and coerce the value
         to the rule's declared type
      4) Stamp with the payload timestamp or the current time (ms)
      5) Write the data point to every sink

    Notes:
      - Router holds no per-message state; RuleTable is immutable, so
        on_message() may run concurrently from several threads
      - Router does NOT know MQTT or InfluxDB conventions; adapters do
      - A failing message or sink never raises out of on_message()
    """

    rules: RuleTable
    sinks: Sequence[Sink] = field(default_factory=list)
    clock: Callable[[], int] = now_ms

    def build_point(self, msg: InboundMessage) -> DataPoint:
        """Run the mapping pipeline, raise DispatchError on any failure"""
        rule = self.rules.find_rule(msg.topic)
        if rule is None:
            raise DispatchError(msg.topic, None, "match", UnmatchedTopic(msg.topic))

        stage = "match"
        try:
            captures = rule.topic.captures(msg.topic) or []

            stage = "field_name"
            field_name = rule.field_name.render(captures)

            stage = "payload"
            text = decode_payload(msg.payload)

            timestamp: Optional[int] = None
            if isinstance(rule.payload, JsonPayload):
                document = parse_document(text)
                stage = "value"
                value = coerce_node(extract_value(document, rule.payload.value_path), rule.value_type)
                if rule.payload.timestamp_path is not None:
                    stage = "timestamp"
                    timestamp = extract_timestamp(document, rule.payload.timestamp_path)
            else:
                stage = "value"
                value = coerce_text(text, rule.value_type)

            stage = "tags"
            tags = self._render_tags(rule, captures)
        except MessageError as e:
            raise DispatchError(msg.topic, rule.index, stage, e) from e

        if timestamp is None:
            timestamp = self.clock()

        return DataPoint(timestamp=timestamp, field_name=field_name, value=value, tags=tags)

    @staticmethod
    def _render_tags(rule: Rule, captures: List[str]) -> Tuple[Tuple[str, TypedValue], ...]:
        out: List[Tuple[str, TypedValue]] = []
        for name, tag in rule.tags:
            if isinstance(tag, LiteralTag):
                out.append((name, tag.value))
            else:
                out.append((name, TypedValue(ValueType.TEXT, tag.template.render(captures))))
        return tuple(out)

    def on_message(self, msg: InboundMessage) -> Optional[DataPoint]:
        """Message boundary: map, log failures, fan out to sinks"""
        try:
            point = self.build_point(msg)
        except DispatchError as e:
            if isinstance(e.cause, UnmatchedTopic):
                logger.warning("Topic %s not found in mappings", msg.topic)
            else:
                logger.warning("Dropping message: %s", e)
            return None

        logger.debug("Mapped %s -> %r", msg.topic, point)
        for sink in self.sinks:
            try:
                sink.write(point)
            except SinkWriteError as e:
                # other sinks still get the point
                logger.warning("Failed to write to %s: %s", sink.name, e)
        return point
