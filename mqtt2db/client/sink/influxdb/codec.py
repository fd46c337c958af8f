#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import math
from typing import List

from ....mapping.value import TypedValue, ValueType
from ...models import DataPoint


def _reject_newlines(text: str) -> str:
    # line protocol has no escape for line breaks; one point per line
    if "\n" in text or "\r" in text:
        raise ValueError(f"Line protocol cannot contain line breaks: {text!r}")
    return text


def _escape(text: str, chars: str) -> str:
    _reject_newlines(text)
    for ch in chars:
        text = text.replace(ch, "\\" + ch)
    return text


def escape_measurement(name: str) -> str:
    return _escape(name, ", ")


def escape_key(key: str) -> str:
    """Tag keys, tag values and field keys"""
    return _escape(key, ",= ")


def encode_field_value(value: TypedValue) -> str:
    """
    InfluxDB line protocol field value

    Examples:
        TypedValue(BOOLEAN, True)           -> 'true'
        TypedValue(FLOAT, 21.5)             -> '21.5'
        TypedValue(SIGNED_INTEGER, -3)      -> '-3i'
        TypedValue(UNSIGNED_INTEGER, 3)     -> '3u'
        TypedValue(TEXT, 'say "hi"')        -> '"say \\"hi\\""'
    """
    if value.value_type is ValueType.BOOLEAN:
        return "true" if value.value else "false"
    if value.value_type is ValueType.FLOAT:
        if not math.isfinite(value.value):
            raise ValueError(f"Line protocol cannot represent float {value.value!r}")
        return repr(float(value.value))
    if value.value_type is ValueType.SIGNED_INTEGER:
        return f"{value.value}i"
    if value.value_type is ValueType.UNSIGNED_INTEGER:
        return f"{value.value}u"
    text = _reject_newlines(str(value.value)).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def encode_tag_value(value: TypedValue) -> str:
    """Tags are always strings in line protocol"""
    if value.value_type is ValueType.BOOLEAN:
        text = "true" if value.value else "false"
    elif value.value_type is ValueType.FLOAT:
        text = repr(float(value.value))
    else:
        text = str(value.value)
    return escape_key(text)


class LineProtocolCodec:
    """
    DataPoint -> InfluxDB line protocol

    Example:
        LineProtocolCodec("mqtt").encode(point) ->
            'mqtt,room=kitchen temp_kitchen=21.5 1700000000000'

    Tags with empty values are skipped (InfluxDB rejects them); tags are sorted
    by key as InfluxDB recommends.
    """

    def __init__(self, measurement: str) -> None:
        self.measurement = measurement

    def encode(self, point: DataPoint) -> str:
        head: List[str] = [escape_measurement(self.measurement)]
        for key, value in sorted(point.tags, key=lambda kv: kv[0]):
            tag_value = encode_tag_value(value)
            if tag_value == "":
                continue
            head.append(f"{escape_key(key)}={tag_value}")
        field = f"{escape_key(point.field_name)}={encode_field_value(point.value)}"
        return f"{','.join(head)} {field} {point.timestamp}"
