#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import math

import pytest

from mqtt2db.mapping.errors import ConfigError, InvalidBoolean, InvalidNumber, UnsupportedTextSource
from mqtt2db.mapping.value import (
    NodeSource,
    TextSource,
    TypedValue,
    ValueType,
    coerce,
    coerce_node,
    coerce_text,
)

B = ValueType.BOOLEAN
F = ValueType.FLOAT
I = ValueType.SIGNED_INTEGER  # noqa: E741
U = ValueType.UNSIGNED_INTEGER
T = ValueType.TEXT


@pytest.mark.parametrize(
    "text,value_type,expected",
    [
        ("true", B, True),
        ("false", B, False),
        ("3.14", F, 3.14),
        ("-2", F, -2.0),
        ("1e3", F, 1000.0),
        ("-42", I, -42),
        ("+7", I, 7),
        ("9223372036854775807", I, 2 ** 63 - 1),
        ("18446744073709551615", U, 2 ** 64 - 1),
        ("0", U, 0),
        (" spaced ", T, " spaced "),
    ],
)
def test_coerce_text(text: str, value_type: ValueType, expected):
    assert coerce_text(text, value_type) == TypedValue(value_type, expected)


@pytest.mark.parametrize("text", ["yes", "True", "1", ""])
def test_coerce_text_invalid_boolean(text: str):
    with pytest.raises(InvalidBoolean):
        coerce_text(text, B)


@pytest.mark.parametrize(
    "text,value_type",
    [
        ("-1", U),
        ("abc", F),
        (" 1.5", F),
        ("1_000", I),
        ("1.5", I),
        ("9223372036854775808", I),
        ("18446744073709551616", U),
        ("", I),
    ],
)
def test_coerce_text_invalid_number(text: str, value_type: ValueType):
    with pytest.raises(InvalidNumber) as exc:
        coerce_text(text, value_type)
    assert exc.value.value_type is value_type


def test_coerce_text_float_specials():
    assert math.isinf(coerce_text("inf", F).value)
    assert math.isnan(coerce_text("NaN", F).value)


@pytest.mark.parametrize(
    "node,value_type,expected",
    [
        (True, B, True),
        (21.5, F, 21.5),
        (3, F, 3.0),
        (-1, I, -1),
        (5, U, 5),
        ("hello", T, "hello"),
        (True, T, "true"),
        (12, T, "12"),
        (1.5, T, "1.5"),
    ],
)
def test_coerce_node(node, value_type: ValueType, expected):
    result = coerce_node(node, value_type)
    assert result == TypedValue(value_type, expected)
    assert type(result.value) is type(expected)


@pytest.mark.parametrize(
    "node,value_type,error",
    [
        ("true", B, InvalidBoolean),
        (1, B, InvalidBoolean),
        (-1, U, InvalidNumber),
        (1.5, I, InvalidNumber),
        (True, I, InvalidNumber),
        (True, F, InvalidNumber),
        ("3", F, InvalidNumber),
        (2 ** 64, U, InvalidNumber),
        (None, T, UnsupportedTextSource),
        ([1, 2], T, UnsupportedTextSource),
        ({"a": 1}, T, UnsupportedTextSource),
    ],
)
def test_coerce_node_failures(node, value_type: ValueType, error):
    with pytest.raises(error):
        coerce_node(node, value_type)


def test_coerce_dispatches_on_source_kind():
    # same raw text, different meaning depending on where it came from
    assert coerce(TextSource("true"), B) == TypedValue(B, True)
    with pytest.raises(InvalidBoolean):
        coerce(NodeSource("true"), B)


def test_coerce_does_not_mutate_node():
    node = {"a": [1, 2]}
    with pytest.raises(UnsupportedTextSource):
        coerce_node(node, T)
    assert node == {"a": [1, 2]}


def test_value_type_parse():
    assert ValueType.parse("unsigned-integer") is U
    with pytest.raises(ConfigError, match="Unknown value type"):
        ValueType.parse("double")
