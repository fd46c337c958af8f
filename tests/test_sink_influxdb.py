#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import base64
from typing import List

import httpx
import pytest

from mqtt2db.client.models import DataPoint
from mqtt2db.client.sink.base import SinkWriteError
from mqtt2db.client.sink.influxdb.adapter import InfluxDbConfig, InfluxDbSink
from mqtt2db.client.sink.influxdb.codec import LineProtocolCodec, encode_field_value
from mqtt2db.mapping.value import TypedValue, ValueType

TEXT = ValueType.TEXT


def _point(**overrides) -> DataPoint:
    kwargs = dict(
        timestamp=1700000000000,
        field_name="temp_kitchen",
        value=TypedValue(ValueType.FLOAT, 21.5),
        tags=(("room", TypedValue(TEXT, "kitchen")),),
    )
    kwargs.update(overrides)
    return DataPoint(**kwargs)


@pytest.mark.parametrize(
    "value,expected",
    [
        (TypedValue(ValueType.BOOLEAN, True), "true"),
        (TypedValue(ValueType.BOOLEAN, False), "false"),
        (TypedValue(ValueType.FLOAT, 21.5), "21.5"),
        (TypedValue(ValueType.FLOAT, 3.0), "3.0"),
        (TypedValue(ValueType.SIGNED_INTEGER, -3), "-3i"),
        (TypedValue(ValueType.UNSIGNED_INTEGER, 3), "3u"),
        (TypedValue(TEXT, 'say "hi" \\o/'), '"say \\"hi\\" \\\\o/"'),
    ],
)
def test_encode_field_value(value: TypedValue, expected: str):
    assert encode_field_value(value) == expected


def test_encode_non_finite_float_fails():
    with pytest.raises(ValueError):
        encode_field_value(TypedValue(ValueType.FLOAT, float("nan")))


def test_line_protocol():
    point = _point(
        tags=(
            ("room", TypedValue(TEXT, "living room")),
            ("floor", TypedValue(ValueType.SIGNED_INTEGER, 2)),
            ("empty", TypedValue(TEXT, "")),
        )
    )
    assert (
        LineProtocolCodec("my meas,x").encode(point)
        == "my\\ meas\\,x,floor=2,room=living\\ room temp_kitchen=21.5 1700000000000"
    )


def test_line_protocol_without_tags():
    assert LineProtocolCodec("mqtt").encode(_point(tags=())) == "mqtt temp_kitchen=21.5 1700000000000"


@pytest.mark.parametrize(
    "point",
    [
        _point(field_name="temp_a\nb"),
        _point(tags=(("room", TypedValue(TEXT, "kitchen\nbogus value=1")),)),
        _point(tags=(("ro\rom", TypedValue(TEXT, "kitchen")),)),
        _point(value=TypedValue(TEXT, "two\nlines")),
    ],
)
def test_line_breaks_are_rejected(point: DataPoint):
    with pytest.raises(ValueError, match="line breaks"):
        LineProtocolCodec("mqtt").encode(point)


def test_line_break_in_point_raises_sink_write_error():
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("must not be called")

    with pytest.raises(SinkWriteError, match="line breaks"):
        _sink(handler).write(_point(tags=(("room", TypedValue(TEXT, "a\nb")),)))


def _sink(handler, **cfg) -> InfluxDbSink:
    base = {"type": "influxdb", "url": "http://influx:8086/", "dbName": "sensors", "measurement": "mqtt"}
    base.update(cfg)
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return InfluxDbSink(cfg=InfluxDbConfig.from_config(base), client=client)


def test_write_posts_line_protocol():
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(204)

    sink = _sink(handler)
    sink.write(_point())

    assert len(requests) == 1
    req = requests[0]
    assert req.method == "POST"
    assert req.url.path == "/write"
    assert req.url.params["db"] == "sensors"
    assert req.url.params["precision"] == "ms"
    assert req.content == b"mqtt,room=kitchen temp_kitchen=21.5 1700000000000"
    assert "authorization" not in req.headers
    assert sink.name == "influxdb:sensors"
    sink.close()


def test_write_sends_basic_auth():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(204)

    _sink(handler, auth={"username": "writer", "password": "secret"}).write(_point())

    assert seen["auth"] == "Basic " + base64.b64encode(b"writer:secret").decode("ascii")


def test_error_status_raises_sink_write_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text='{"error":"database not found: \\"sensors\\""}')

    with pytest.raises(SinkWriteError, match="HTTP 404"):
        _sink(handler).write(_point())


def test_transport_error_raises_sink_write_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(SinkWriteError, match="connection refused"):
        _sink(handler).write(_point())


def test_unencodable_point_raises_sink_write_error():
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("must not be called")

    with pytest.raises(SinkWriteError):
        _sink(handler).write(_point(value=TypedValue(ValueType.FLOAT, float("inf"))))


def test_config_strips_trailing_slash():
    cfg = InfluxDbConfig.from_config(
        {"type": "influxdb", "url": "http://influx:8086/", "dbName": "d", "measurement": "m"}
    )
    assert cfg.url == "http://influx:8086"
    assert cfg.username is None
