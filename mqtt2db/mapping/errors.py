#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Errors raised by the mapping engine

Two families:
  - ConfigError: found while compiling rules, fatal to startup
  - MessageError: found while mapping one inbound message, only that message
    is dropped
"""

from __future__ import annotations

from typing import Optional


class ConfigError(ValueError):
    """Invalid configuration (rule, pattern, template, path, settings)"""


class InvalidPatternLevel(ConfigError):
    def __init__(self, level: str) -> None:
        super().__init__(f"Topic level {level!r} cannot contain '+' or '#'")
        self.level = level


class MisplacedMultiWildcard(ConfigError):
    def __init__(self, pattern: str) -> None:
        super().__init__(f"Topic {pattern!r} has '#' wildcard before last topic level")
        self.pattern = pattern


class InvalidReferenceIndex(ConfigError):
    def __init__(self, raw: str) -> None:
        super().__init__(f"Invalid reference number 0 in {raw!r} (references start at $1)")
        self.raw = raw


class ReferenceOutOfRange(ConfigError):
    def __init__(self, raw: str, max_reference: int, available: int) -> None:
        super().__init__(
            f"Template {raw!r} references ${max_reference} but topic has only {available} '+' wildcard(s)"
        )
        self.raw = raw
        self.max_reference = max_reference
        self.available = available


class InvalidPathExpression(ConfigError):
    def __init__(self, expr: str, reason: str) -> None:
        super().__init__(f"Path expression {expr!r} is invalid: {reason}")
        self.expr = expr
        self.reason = reason


class MessageError(Exception):
    """Failure while mapping a single inbound message"""


class UnmatchedTopic(MessageError):
    def __init__(self, topic: str) -> None:
        super().__init__(f"Topic {topic!r} not found in mappings")
        self.topic = topic


class InvalidPayloadEncoding(MessageError):
    pass


class MalformedPayload(MessageError):
    pass


class ValueNotFound(MessageError):
    pass


class TimestampNotFound(MessageError):
    pass


class TimestampNotNumeric(MessageError):
    pass


class UnresolvedReference(MessageError):
    def __init__(self, index: int, available: int) -> None:
        super().__init__(f"Can't find reference number {index} to interpolate ({available} capture(s))")
        self.index = index
        self.available = available


class CoercionError(MessageError):
    """Value cannot be converted to the declared type"""


class InvalidBoolean(CoercionError):
    pass


class InvalidNumber(CoercionError):
    def __init__(self, value_type: object, raw: object) -> None:
        super().__init__(f"Value {raw!r} is not a valid {value_type}")
        self.value_type = value_type
        self.raw = raw


class UnsupportedTextSource(CoercionError):
    pass


class DispatchError(MessageError):
    """
    Per-message failure with enough context for the log line

    Fields:
      - topic: inbound topic
      - rule_index: index of the matched rule, None if no rule matched
      - stage: pipeline step that failed ("match", "field_name", "payload",
        "value", "timestamp", "tags")
      - cause: the underlying MessageError
    """

    def __init__(self, topic: str, rule_index: Optional[int], stage: str, cause: MessageError) -> None:
        if rule_index is None:
            msg = f"{topic}: {stage}: {cause}"
        else:
            msg = f"{topic} (rule #{rule_index}): {stage}: {cause}"
        super().__init__(msg)
        self.topic = topic
        self.rule_index = rule_index
        self.stage = stage
        self.cause = cause
