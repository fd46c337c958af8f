#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
JSON payload extraction

Payloads of JSON mappings are decoded, parsed and queried with a JSONPath
subset:

  $               root
  .name           object member
  ['name']        object member (quoted, any characters; "..." also accepted)
  [N]             array element, negative N counts from the end
  .* / [*]        every member / element
  ..name, ..*     recursive descent (the node itself and all its descendants)

Examples:
  doc = {"data": {"temp": 21.5, "ts": 1700000000000}}
  extract_value(doc, JsonPath.compile("$.data.temp"))     -> 21.5
  extract_timestamp(doc, JsonPath.compile("$..ts"))       -> 1700000000000
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterator, List, Tuple, Union

from .errors import (
    InvalidPathExpression,
    InvalidPayloadEncoding,
    MalformedPayload,
    TimestampNotFound,
    TimestampNotNumeric,
    ValueNotFound,
)
from .value import U64_MAX

_NAME_STOP = ".["


@dataclass(frozen=True)
class Member:
    name: str


@dataclass(frozen=True)
class Index:
    index: int


@dataclass(frozen=True)
class Wildcard:
    pass


Selector = Union[Member, Index, Wildcard]


@dataclass(frozen=True)
class Step:
    selector: Selector
    descendant: bool = False


@dataclass(frozen=True)
class JsonPath:
    raw: str
    steps: Tuple[Step, ...]

    @classmethod
    def compile(cls, raw: str) -> "JsonPath":
        return cls(raw=raw, steps=tuple(_PathParser(raw).parse()))

    def find(self, document: Any) -> Iterator[Any]:
        """Yield matching nodes in document order"""
        nodes: Iterator[Any] = iter([document])
        for step in self.steps:
            nodes = _apply(step, nodes)
        return nodes

    def first(self, document: Any) -> Tuple[bool, Any]:
        for node in self.find(document):
            return True, node
        return False, None

    def __str__(self) -> str:
        return self.raw


class _PathParser:
    def __init__(self, raw: str) -> None:
        self.raw = raw
        self.pos = 0

    def fail(self, reason: str) -> InvalidPathExpression:
        return InvalidPathExpression(self.raw, f"{reason} at position {self.pos}")

    def peek(self, ahead: int = 0) -> str:
        i = self.pos + ahead
        return self.raw[i] if i < len(self.raw) else ""

    def parse(self) -> List[Step]:
        if self.peek() != "$":
            raise self.fail("expected '$'")
        self.pos += 1

        steps: List[Step] = []
        while self.pos < len(self.raw):
            ch = self.peek()
            if ch == "." and self.peek(1) == ".":
                self.pos += 2
                if self.peek() == "[":
                    steps.append(Step(self.bracket(), descendant=True))
                else:
                    steps.append(Step(self.dotted(), descendant=True))
            elif ch == ".":
                self.pos += 1
                steps.append(Step(self.dotted()))
            elif ch == "[":
                steps.append(Step(self.bracket()))
            else:
                raise self.fail(f"unexpected character {ch!r}")
        return steps

    def dotted(self) -> Selector:
        if self.peek() == "*":
            self.pos += 1
            return Wildcard()
        start = self.pos
        while self.pos < len(self.raw) and self.raw[self.pos] not in _NAME_STOP:
            self.pos += 1
        name = self.raw[start : self.pos]
        if not name:
            raise self.fail("expected member name")
        return Member(name)

    def bracket(self) -> Selector:
        self.pos += 1  # "["
        ch = self.peek()
        if ch == "*":
            self.pos += 1
            selector: Selector = Wildcard()
        elif ch in ("'", '"'):
            selector = Member(self.quoted(ch))
        else:
            start = self.pos
            if self.peek() == "-":
                self.pos += 1
            while self.peek().isascii() and self.peek().isdigit():
                self.pos += 1
            text = self.raw[start : self.pos]
            if text in ("", "-"):
                raise self.fail("expected index, '*' or quoted name")
            selector = Index(int(text))
        if self.peek() != "]":
            raise self.fail("expected ']'")
        self.pos += 1
        return selector

    def quoted(self, quote: str) -> str:
        self.pos += 1
        out: List[str] = []
        while True:
            ch = self.peek()
            if ch == "":
                raise self.fail("unterminated string")
            self.pos += 1
            if ch == quote:
                return "".join(out)
            if ch == "\\":
                nxt = self.peek()
                if nxt == "":
                    raise self.fail("unterminated string")
                out.append(nxt)
                self.pos += 1
                continue
            out.append(ch)


def _children(node: Any) -> Iterator[Any]:
    if isinstance(node, dict):
        yield from node.values()
    elif isinstance(node, list):
        yield from node


def _descend(node: Any) -> Iterator[Any]:
    yield node
    for child in _children(node):
        yield from _descend(child)


def _select(selector: Selector, node: Any) -> Iterator[Any]:
    if isinstance(selector, Wildcard):
        yield from _children(node)
    elif isinstance(selector, Member):
        if isinstance(node, dict) and selector.name in node:
            yield node[selector.name]
    elif isinstance(node, list) and -len(node) <= selector.index < len(node):
        yield node[selector.index]


def _apply(step: Step, nodes: Iterator[Any]) -> Iterator[Any]:
    for node in nodes:
        if step.descendant:
            for inner in _descend(node):
                yield from _select(step.selector, inner)
        else:
            yield from _select(step.selector, node)


def decode_payload(payload: bytes) -> str:
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidPayloadEncoding(f"Invalid payload value: {e}") from e


def _reject_constant(token: str) -> Any:
    raise ValueError(f"{token} is not valid JSON")


def parse_document(text: str) -> Any:
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        # RecursionError: nesting deeper than the interpreter stack
        raise MalformedPayload(f"Failed to parse payload as JSON: {e}") from e


def extract_value(document: Any, path: JsonPath) -> Any:
    found, node = path.first(document)
    if not found:
        raise ValueNotFound(f"Couldn't find value at {path} in payload")
    return node


def extract_timestamp(document: Any, path: JsonPath) -> int:
    found, node = path.first(document)
    if not found:
        raise TimestampNotFound(f"Couldn't find timestamp at {path} in payload")
    if isinstance(node, bool) or not isinstance(node, int) or not 0 <= node <= U64_MAX:
        raise TimestampNotNumeric(f"{json.dumps(node)} cannot be converted to a timestamp")
    return node
