#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .errors import CoercionError, ConfigError, ReferenceOutOfRange
from .extract import JsonPath
from .template import LiteralPart, Template
from .topic import TopicPattern
from .value import TypedValue, ValueType, coerce_text

PAYLOAD_TYPE_JSON = "json"


@dataclass(frozen=True)
class RawPayload:
    """Whole payload is the value, as UTF-8 text"""


@dataclass(frozen=True)
class JsonPayload:
    value_path: JsonPath
    timestamp_path: Optional[JsonPath] = None


PayloadSpec = Union[RawPayload, JsonPayload]


@dataclass(frozen=True)
class LiteralTag:
    value: TypedValue


@dataclass(frozen=True)
class TemplateTag:
    template: Template


TagValue = Union[LiteralTag, TemplateTag]


@dataclass(frozen=True)
class Rule:
    """
    Compiled mapping: which topics it applies to and how to build a data point

    Input source: config["mappings"] items.

    Example (input YAML):
        - topic: sensors/+/temp
          payload:
            type: json
            valueFieldPath: $.value
          fieldName: temp_$1
          valueType: float
          tags:
            room: {type: text, value: $1}

    Example (output object):
        Rule(
            index=0,
            topic=TopicPattern("sensors/+/temp"),
            payload=JsonPayload(value_path=JsonPath("$.value")),
            field_name=Template("temp_$1"),
            value_type=ValueType.FLOAT,
            tags=(("room", TemplateTag(Template("$1"))),),
        )
    """

    index: int
    topic: TopicPattern
    payload: PayloadSpec
    field_name: Template
    value_type: ValueType
    tags: Tuple[Tuple[str, TagValue], ...] = ()


def _require_str(cfg: Dict[str, Any], key: str, where: str) -> str:
    value = cfg.get(key)
    if not isinstance(value, str):
        raise ConfigError(f"{where}: {key!r} must be a string, got {value!r}")
    return value


def _compile_template(raw: str, topic: TopicPattern) -> Template:
    template = Template.compile(raw)
    if template.max_reference > topic.single_wildcards:
        raise ReferenceOutOfRange(raw, template.max_reference, topic.single_wildcards)
    return template


def _compile_payload(cfg: Any, where: str) -> PayloadSpec:
    if cfg is None:
        return RawPayload()
    if not isinstance(cfg, dict):
        raise ConfigError(f"{where}: 'payload' must be a mapping, got {cfg!r}")

    payload_type = cfg.get("type")
    if payload_type != PAYLOAD_TYPE_JSON:
        raise ConfigError(f"{where}: unsupported payload type {payload_type!r}")

    value_path = JsonPath.compile(_require_str(cfg, "valueFieldPath", where))
    timestamp_path = None
    if cfg.get("timestampFieldPath") is not None:
        timestamp_path = JsonPath.compile(_require_str(cfg, "timestampFieldPath", where))
    return JsonPayload(value_path=value_path, timestamp_path=timestamp_path)


def _compile_tag(name: str, cfg: Any, topic: TopicPattern, where: str) -> TagValue:
    if not isinstance(cfg, dict):
        raise ConfigError(f"{where}: tag {name!r} must be a mapping with 'type' and 'value'")
    value_type = ValueType.parse(_require_str(cfg, "type", f"{where}: tag {name!r}"))
    raw_value = cfg.get("value")
    if isinstance(raw_value, bool):
        raw_value = "true" if raw_value else "false"
    elif isinstance(raw_value, (int, float)):
        # YAML gives numbers for unquoted values like "value: 3"
        raw_value = str(raw_value)
    if not isinstance(raw_value, str):
        raise ConfigError(f"{where}: tag {name!r} value must be a string, got {raw_value!r}")

    if value_type is not ValueType.TEXT:
        try:
            return LiteralTag(coerce_text(raw_value, value_type))
        except CoercionError as e:
            raise ConfigError(f"{where}: tag {name!r}: {e}") from e

    template = _compile_template(raw_value, topic)
    if template.is_literal:
        text = "".join(p.text for p in template.parts if isinstance(p, LiteralPart))
        return LiteralTag(TypedValue(ValueType.TEXT, text))
    return TemplateTag(template)


def compile_rule(cfg: Dict[str, Any], index: int) -> Rule:
    """
    Compile one config["mappings"] item.

    Raises ConfigError (prefixed with the rule number and topic) for anything
    that would make the rule unusable: bad topic, bad templates, references
    beyond the topic's "+" count, bad JSON paths, bad types or tag literals.
    """
    if not isinstance(cfg, dict):
        raise ConfigError(f"Mapping #{index} must be a mapping, got {cfg!r}")
    where = f"Mapping #{index}"
    raw_topic = _require_str(cfg, "topic", where)
    where = f"Mapping #{index} (topic {raw_topic!r})"

    try:
        topic = TopicPattern.compile(raw_topic)
        payload = _compile_payload(cfg.get("payload"), where)
        field_name = _compile_template(_require_str(cfg, "fieldName", where), topic)
        value_type = ValueType.parse(_require_str(cfg, "valueType", where))

        tags_cfg = cfg.get("tags") or {}
        if not isinstance(tags_cfg, dict):
            raise ConfigError(f"{where}: 'tags' must be a mapping")
        tags = tuple((str(name), _compile_tag(str(name), tag, topic, where)) for name, tag in tags_cfg.items())
    except ConfigError as e:
        # keep the specific error type, only add rule context to the message
        if not str(e).startswith(where):
            e.args = (f"{where}: {e}",)
        raise

    return Rule(
        index=index,
        topic=topic,
        payload=payload,
        field_name=field_name,
        value_type=value_type,
        tags=tags,
    )


@dataclass(frozen=True)
class RuleTable:
    """
    Ordered, immutable list of compiled rules

    Lookup is a linear scan: the first rule whose topic pattern matches wins,
    there is no specificity ordering.
    """

    rules: Tuple[Rule, ...]

    @classmethod
    def from_config(cls, mappings: Iterable[Dict[str, Any]]) -> "RuleTable":
        if mappings is None:
            raise ConfigError("'mappings' is missing")
        if isinstance(mappings, (str, bytes, dict)):
            raise ConfigError("'mappings' must be a list")
        return cls(rules=tuple(compile_rule(m, i) for i, m in enumerate(mappings)))

    def find_rule(self, topic: str) -> Optional[Rule]:
        for rule in self.rules:
            if rule.topic.matches(topic):
                return rule
        return None

    @property
    def subscriptions(self) -> List[str]:
        """Unique topic filters in rule order"""
        seen: Dict[str, None] = {}
        for rule in self.rules:
            seen.setdefault(rule.topic.raw, None)
        return list(seen)

    def __len__(self) -> int:
        return len(self.rules)
