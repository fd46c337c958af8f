#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

from .errors import InvalidReferenceIndex, UnresolvedReference

REFERENCE_MARK = "$"
ESCAPE = "\\"
DIGITS = "0123456789"


@dataclass(frozen=True)
class LiteralPart:
    text: str


@dataclass(frozen=True)
class ReferencePart:
    index: int  # 1-based


TemplatePart = Union[LiteralPart, ReferencePart]


@dataclass(frozen=True)
class Template:
    """
    Name template with positional references to topic captures

    Syntax:
      - "$N" (N >= 1, one or more digits) is replaced with capture N
      - "\\$" is a literal "$"; digits after it stay literal text
      - "$" not followed by a digit is literal text
      - any other backslash is kept as-is

    Example:
        t = Template.compile("temp_$1")
        t.parts -> (LiteralPart("temp_"), ReferencePart(1))
        t.render(["kitchen"]) -> "temp_kitchen"
    """

    raw: str
    parts: Tuple[TemplatePart, ...]

    @classmethod
    def compile(cls, raw: str) -> "Template":
        parts: List[TemplatePart] = []
        literal: List[str] = []

        def flush() -> None:
            if literal:
                parts.append(LiteralPart("".join(literal)))
                literal.clear()

        i = 0
        n = len(raw)
        while i < n:
            ch = raw[i]
            if ch == ESCAPE and i + 1 < n and raw[i + 1] == REFERENCE_MARK:
                literal.append(REFERENCE_MARK)
                i += 2
                continue
            if ch == REFERENCE_MARK and i + 1 < n and raw[i + 1] in DIGITS:
                j = i + 1
                while j < n and raw[j] in DIGITS:
                    j += 1
                index = int(raw[i + 1 : j])
                if index == 0:
                    raise InvalidReferenceIndex(raw)
                flush()
                parts.append(ReferencePart(index))
                i = j
                continue
            literal.append(ch)
            i += 1
        flush()

        return cls(raw=raw, parts=tuple(parts))

    @property
    def max_reference(self) -> int:
        return max((p.index for p in self.parts if isinstance(p, ReferencePart)), default=0)

    @property
    def is_literal(self) -> bool:
        return self.max_reference == 0

    def render(self, captures: Sequence[str]) -> str:
        out: List[str] = []
        for part in self.parts:
            if isinstance(part, LiteralPart):
                out.append(part.text)
                continue
            if part.index > len(captures):
                raise UnresolvedReference(part.index, len(captures))
            out.append(captures[part.index - 1])
        return "".join(out)

    def __str__(self) -> str:
        return self.raw
