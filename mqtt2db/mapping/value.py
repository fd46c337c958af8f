#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Typed values and coercion

Raw values come from two kinds of sources:
  - TextSource: the whole MQTT payload as text, or a tag value from config
  - NodeSource: a node found inside a JSON payload

Both share the same declared-type switch (ValueType) and produce a TypedValue.

Examples:
    coerce_text("21.5", ValueType.FLOAT)       -> TypedValue(FLOAT, 21.5)
    coerce_text("yes", ValueType.BOOLEAN)      -> raises InvalidBoolean
    coerce_node(True, ValueType.TEXT)          -> TypedValue(TEXT, "true")
    coerce_node(-1, ValueType.UNSIGNED_INTEGER) -> raises InvalidNumber
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .errors import ConfigError, InvalidBoolean, InvalidNumber, UnsupportedTextSource

I64_MIN = -(2 ** 63)
I64_MAX = 2 ** 63 - 1
U64_MAX = 2 ** 64 - 1

_SIGNED_RE = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_RE = re.compile(r"\+?[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)


class ValueType(Enum):
    BOOLEAN = "boolean"
    FLOAT = "float"
    SIGNED_INTEGER = "signed-integer"
    UNSIGNED_INTEGER = "unsigned-integer"
    TEXT = "text"

    @classmethod
    def parse(cls, name: str) -> "ValueType":
        try:
            return cls(name)
        except ValueError:
            allowed = ", ".join(v.value for v in cls)
            raise ConfigError(f"Unknown value type {name!r} (expected one of: {allowed})") from None

    def __str__(self) -> str:
        return self.value.replace("-", " ")


@dataclass(frozen=True)
class TypedValue:
    value_type: ValueType
    value: Union[bool, float, int, str]


@dataclass(frozen=True)
class TextSource:
    text: str


@dataclass(frozen=True)
class NodeSource:
    node: Any


def coerce_text(text: str, value_type: ValueType) -> TypedValue:
    if value_type is ValueType.BOOLEAN:
        if text == "true":
            return TypedValue(value_type, True)
        if text == "false":
            return TypedValue(value_type, False)
        raise InvalidBoolean(f"Value {text!r} is not a valid boolean")

    if value_type is ValueType.FLOAT:
        if not _FLOAT_RE.fullmatch(text):
            raise InvalidNumber(value_type, text)
        return TypedValue(value_type, float(text))

    if value_type is ValueType.SIGNED_INTEGER:
        if not _SIGNED_RE.fullmatch(text):
            raise InvalidNumber(value_type, text)
        return TypedValue(value_type, _check_range(int(text), I64_MIN, I64_MAX, value_type, text))

    if value_type is ValueType.UNSIGNED_INTEGER:
        if not _UNSIGNED_RE.fullmatch(text):
            raise InvalidNumber(value_type, text)
        return TypedValue(value_type, _check_range(int(text), 0, U64_MAX, value_type, text))

    return TypedValue(ValueType.TEXT, text)


def coerce_node(node: Any, value_type: ValueType) -> TypedValue:
    if value_type is ValueType.BOOLEAN:
        if isinstance(node, bool):
            return TypedValue(value_type, node)
        raise InvalidBoolean(f"JSON value {_dump(node)} is not a boolean")

    if value_type is ValueType.FLOAT:
        if _is_number(node):
            try:
                return TypedValue(value_type, float(node))
            except OverflowError:
                raise InvalidNumber(value_type, node) from None
        raise InvalidNumber(value_type, node)

    if value_type is ValueType.SIGNED_INTEGER:
        if _is_integer(node):
            return TypedValue(value_type, _check_range(node, I64_MIN, I64_MAX, value_type, node))
        raise InvalidNumber(value_type, node)

    if value_type is ValueType.UNSIGNED_INTEGER:
        if _is_integer(node):
            return TypedValue(value_type, _check_range(node, 0, U64_MAX, value_type, node))
        raise InvalidNumber(value_type, node)

    if isinstance(node, str):
        return TypedValue(ValueType.TEXT, node)
    if isinstance(node, bool) or _is_number(node):
        return TypedValue(ValueType.TEXT, _dump(node))
    raise UnsupportedTextSource(f"Unable to use JSON value {_dump(node)} as text")


def coerce(raw: Union[TextSource, NodeSource], value_type: ValueType) -> TypedValue:
    if isinstance(raw, TextSource):
        return coerce_text(raw.text, value_type)
    return coerce_node(raw.node, value_type)


def _is_number(node: Any) -> bool:
    # bool is an int subclass but never a JSON number
    return isinstance(node, (int, float)) and not isinstance(node, bool)


def _is_integer(node: Any) -> bool:
    return isinstance(node, int) and not isinstance(node, bool)


def _check_range(num: int, lo: int, hi: int, value_type: ValueType, raw: Any) -> int:
    if num < lo or num > hi:
        raise InvalidNumber(value_type, raw)
    return num


def _dump(node: Any) -> str:
    return json.dumps(node, ensure_ascii=False)
