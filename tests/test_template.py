#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import pytest

from mqtt2db.mapping.errors import InvalidReferenceIndex, UnresolvedReference
from mqtt2db.mapping.template import LiteralPart, ReferencePart, Template


def test_parse_literal_only():
    assert Template.compile("foo").parts == (LiteralPart("foo"),)
    assert Template.compile("").parts == ()


def test_parse_reference_only():
    assert Template.compile("$1").parts == (ReferencePart(1),)
    assert Template.compile("$23").parts == (ReferencePart(23),)


def test_parse_mixed():
    assert Template.compile("foo$1bar$2 baz").parts == (
        LiteralPart("foo"),
        ReferencePart(1),
        LiteralPart("bar"),
        ReferencePart(2),
        LiteralPart(" baz"),
    )


def test_parse_escaped_references():
    assert Template.compile("\\$1foo$1\\$2").parts == (
        LiteralPart("$1foo"),
        ReferencePart(1),
        LiteralPart("$2"),
    )


def test_backslash_not_before_dollar_is_kept():
    assert Template.compile("a\\b$1").parts == (LiteralPart("a\\b"), ReferencePart(1))


def test_dollar_without_digits_is_literal():
    assert Template.compile("cost$ $x $").parts == (LiteralPart("cost$ $x $"),)


@pytest.mark.parametrize("raw", ["$0", "foo$0", "$00"])
def test_reference_zero_is_invalid(raw: str):
    with pytest.raises(InvalidReferenceIndex):
        Template.compile(raw)


def test_max_reference():
    assert Template.compile("$2-$1-$2").max_reference == 2
    assert Template.compile("\\$9 plain").max_reference == 0
    assert Template.compile("plain").is_literal


def test_render():
    t = Template.compile("foo$1bar$2 baz")
    assert t.render(["first", "second"]) == "foofirstbarsecond baz"

    t = Template.compile("foo$1bar$2 baz $1")
    assert t.render(["first", "second"]) == "foofirstbarsecond baz first"


def test_render_unresolved_reference_fails():
    t = Template.compile("foo$1bar$2 baz $1")
    with pytest.raises(UnresolvedReference):
        t.render([])
    with pytest.raises(UnresolvedReference):
        t.render(["only-one"])


def test_render_with_exactly_enough_captures():
    assert Template.compile("$2/$1").render(["a", "b"]) == "b/a"


def test_render_is_repeatable():
    t = Template.compile("temp_$1")
    assert [t.render(["kitchen"]) for _ in range(3)] == ["temp_kitchen"] * 3
