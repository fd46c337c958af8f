#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
topic.py - MQTT topic filters used by mappings

A pattern is split on "/" into levels:
- "+"  single-level wildcard, matches exactly one level (possibly empty)
- "#"  multi-level wildcard, matches any remaining levels (including none),
       allowed only as the last level
- anything else is a literal level; empty segments are kept, so "/foo"
  starts with an empty literal level

Typical usage:
    from mqtt2db.mapping.topic import TopicPattern

    pattern = TopicPattern.compile("sensors/+/temp/#")
    pattern.matches("sensors/kitchen/temp")         # True
    pattern.captures("sensors/kitchen/temp/a/b")    # ["kitchen"]
    pattern.captures("other/kitchen/temp")          # None
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from .errors import InvalidPatternLevel, MisplacedMultiWildcard

SEPARATOR = "/"
SINGLE_WILDCARD = "+"
MULTI_WILDCARD = "#"


class LevelKind(Enum):
    LITERAL = "literal"
    SINGLE_WILDCARD = "single"
    MULTI_WILDCARD = "multi"


@dataclass(frozen=True)
class TopicLevel:
    kind: LevelKind
    text: str = ""

    @classmethod
    def parse(cls, level: str) -> "TopicLevel":
        if level == SINGLE_WILDCARD:
            return cls(LevelKind.SINGLE_WILDCARD)
        if level == MULTI_WILDCARD:
            return cls(LevelKind.MULTI_WILDCARD)
        if SINGLE_WILDCARD in level or MULTI_WILDCARD in level:
            raise InvalidPatternLevel(level)
        return cls(LevelKind.LITERAL, level)

    def __str__(self) -> str:
        if self.kind is LevelKind.SINGLE_WILDCARD:
            return SINGLE_WILDCARD
        if self.kind is LevelKind.MULTI_WILDCARD:
            return MULTI_WILDCARD
        return self.text


@dataclass(frozen=True)
class TopicPattern:
    """Compiled topic filter

    Attributes:
        raw (str): The pattern as written in the configuration
        levels (tuple): Compiled TopicLevel sequence
    """

    raw: str
    levels: Tuple[TopicLevel, ...]

    @classmethod
    def compile(cls, pattern: str) -> "TopicPattern":
        levels = tuple(TopicLevel.parse(level) for level in pattern.split(SEPARATOR))
        for level in levels[:-1]:
            if level.kind is LevelKind.MULTI_WILDCARD:
                raise MisplacedMultiWildcard(pattern)
        return cls(raw=pattern, levels=levels)

    @property
    def single_wildcards(self) -> int:
        """Number of "+" levels, i.e. how many captures a match produces"""
        return sum(1 for level in self.levels if level.kind is LevelKind.SINGLE_WILDCARD)

    def captures(self, topic: str) -> Optional[List[str]]:
        """Return levels consumed by "+" positions, or None if topic doesn't match"""
        topic_levels = topic.split(SEPARATOR)
        out: List[str] = []
        pos = 0
        for level in self.levels:
            if level.kind is LevelKind.MULTI_WILDCARD:
                # rest of topic, if any, matches no matter what
                return out
            if pos >= len(topic_levels):
                return None
            current = topic_levels[pos]
            if level.kind is LevelKind.SINGLE_WILDCARD:
                out.append(current)
            elif level.text != current:
                return None
            pos += 1
        # only matches if we consumed all topic levels
        if pos != len(topic_levels):
            return None
        return out

    def matches(self, topic: str) -> bool:
        return self.captures(topic) is not None

    def __str__(self) -> str:
        return self.raw


def compile_pattern(pattern: str) -> TopicPattern:
    return TopicPattern.compile(pattern)


def matches(pattern: TopicPattern, topic: str) -> bool:
    return pattern.matches(topic)


def captures(pattern: TopicPattern, topic: str) -> Optional[List[str]]:
    return pattern.captures(topic)
