#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import pytest

from mqtt2db.mapping.errors import (
    ConfigError,
    InvalidPathExpression,
    InvalidPatternLevel,
    InvalidReferenceIndex,
    ReferenceOutOfRange,
)
from mqtt2db.mapping.rules import JsonPayload, LiteralTag, RawPayload, RuleTable, TemplateTag, compile_rule
from mqtt2db.mapping.value import TypedValue, ValueType


def _mapping(**overrides):
    cfg = {"topic": "sensors/+/temp", "fieldName": "temp_$1", "valueType": "float"}
    cfg.update(overrides)
    return cfg


def test_compile_raw_rule():
    rule = compile_rule(_mapping(), 0)
    assert rule.index == 0
    assert str(rule.topic) == "sensors/+/temp"
    assert isinstance(rule.payload, RawPayload)
    assert str(rule.field_name) == "temp_$1"
    assert rule.value_type is ValueType.FLOAT
    assert rule.tags == ()


def test_compile_json_rule():
    rule = compile_rule(
        _mapping(payload={"type": "json", "valueFieldPath": "$.v", "timestampFieldPath": "$.ts"}),
        3,
    )
    assert isinstance(rule.payload, JsonPayload)
    assert str(rule.payload.value_path) == "$.v"
    assert str(rule.payload.timestamp_path) == "$.ts"


def test_tags_keep_config_order_and_collapse_literals():
    rule = compile_rule(
        _mapping(
            tags={
                "room": {"type": "text", "value": "$1"},
                "source": {"type": "text", "value": "mqtt"},
                "floor": {"type": "signed-integer", "value": "2"},
                "count": {"type": "unsigned-integer", "value": 7},
                "on": {"type": "boolean", "value": True},
                "price": {"type": "text", "value": "\\$1"},
            }
        ),
        0,
    )
    names = [name for name, _ in rule.tags]
    assert names == ["room", "source", "floor", "count", "on", "price"]
    tags = dict(rule.tags)
    assert isinstance(tags["room"], TemplateTag)
    assert tags["source"] == LiteralTag(TypedValue(ValueType.TEXT, "mqtt"))
    assert tags["floor"] == LiteralTag(TypedValue(ValueType.SIGNED_INTEGER, 2))
    assert tags["count"] == LiteralTag(TypedValue(ValueType.UNSIGNED_INTEGER, 7))
    assert tags["on"] == LiteralTag(TypedValue(ValueType.BOOLEAN, True))
    assert tags["price"] == LiteralTag(TypedValue(ValueType.TEXT, "$1"))


@pytest.mark.parametrize(
    "overrides,error",
    [
        ({"fieldName": "temp_$2"}, ReferenceOutOfRange),
        ({"tags": {"room": {"type": "text", "value": "$2"}}}, ReferenceOutOfRange),
        ({"fieldName": "temp_$0"}, InvalidReferenceIndex),
        ({"topic": "sensors/+x/temp"}, InvalidPatternLevel),
        ({"payload": {"type": "json", "valueFieldPath": "value"}}, InvalidPathExpression),
        ({"payload": {"type": "json", "valueFieldPath": "$.v", "timestampFieldPath": "$["}}, InvalidPathExpression),
        ({"payload": {"type": "xml", "valueFieldPath": "$.v"}}, ConfigError),
        ({"valueType": "double"}, ConfigError),
        ({"tags": {"floor": {"type": "signed-integer", "value": "two"}}}, ConfigError),
        ({"tags": {"on": {"type": "boolean", "value": "yes"}}}, ConfigError),
        ({"tags": {"room": "kitchen"}}, ConfigError),
        ({"tags": ["room"]}, ConfigError),
        ({"fieldName": None}, ConfigError),
    ],
)
def test_compile_rule_errors(overrides, error):
    with pytest.raises(error) as exc:
        compile_rule(_mapping(**overrides), 4)
    assert str(exc.value).startswith("Mapping #4")


def test_reference_within_range_is_accepted():
    rule = compile_rule(_mapping(topic="a/+/b/+/#", fieldName="$2_$1"), 0)
    assert rule.field_name.max_reference == 2


def test_missing_topic():
    with pytest.raises(ConfigError, match="'topic' must be a string"):
        compile_rule({"fieldName": "x", "valueType": "text"}, 0)


def test_rule_table_first_match_wins():
    table = RuleTable.from_config(
        [
            _mapping(topic="sensors/kitchen/temp", fieldName="kitchen"),
            _mapping(fieldName="generic_$1"),
            _mapping(topic="sensors/#", fieldName="catch_all"),
        ]
    )
    assert len(table) == 3
    assert table.find_rule("sensors/kitchen/temp").index == 0
    assert table.find_rule("sensors/hall/temp").index == 1
    assert table.find_rule("sensors/hall/humidity").index == 2
    assert table.find_rule("other/topic") is None


def test_rule_table_subscriptions_are_unique_and_ordered():
    table = RuleTable.from_config(
        [
            _mapping(topic="b/+"),
            _mapping(topic="a/+"),
            _mapping(topic="b/+", fieldName="again"),
        ]
    )
    assert table.subscriptions == ["b/+", "a/+"]


def test_rule_table_empty():
    table = RuleTable.from_config([])
    assert len(table) == 0
    assert table.subscriptions == []
    assert table.find_rule("any") is None


@pytest.mark.parametrize("mappings", [None, "topic", {"topic": "a"}])
def test_rule_table_rejects_non_list(mappings):
    with pytest.raises(ConfigError):
        RuleTable.from_config(mappings)


def test_rule_table_reports_failing_rule_index():
    with pytest.raises(ReferenceOutOfRange, match="Mapping #1"):
        RuleTable.from_config([_mapping(), _mapping(fieldName="$3")])
