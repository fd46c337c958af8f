#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
mqtt2db service

Subscribes to every mapping topic, maps each message to a data point and
writes it to the configured databases.

Usage:
    python3 -m mqtt2db.client.main /etc/mqtt2db.yaml
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys
from typing import Optional, Sequence

from ..lib.config_loader import LoadedConfig, load_config
from ..lib.constants import (
    CONFIG_PATH_ENV,
    DEFAULT_CONFIG_PATH,
    DEFAULT_LOG_LEVEL,
    LOG_DATE_FORMAT,
    LOG_FORMAT,
    LOG_LEVEL_ENV,
)
from ..mapping.errors import ConfigError
from ..mapping.rules import RuleTable
from .models import InboundMessage
from .router import Router
from .sink import Sink, build_sinks
from .source.mqtt import MqttConnectionConfig, MqttSourceAdapter

logger = logging.getLogger(__name__)

_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "off": logging.CRITICAL + 1,
}


def resolve_config_path(argv_path: Optional[str]) -> str:
    return argv_path or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH


def configure_logging(config_level: Optional[str]) -> None:
    """MQTT2DB_LOG wins over the config file logLevel"""
    name = (os.environ.get(LOG_LEVEL_ENV) or config_level or DEFAULT_LOG_LEVEL).lower()
    level = _LEVELS.get(name)
    if level is None:
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT, force=True)
    logging.captureWarnings(True)


def build_router(cfg: LoadedConfig) -> Router:
    """Compile rules and create sinks, ConfigError aborts startup"""
    rules = RuleTable.from_config(cfg.mappings)
    sinks = build_sinks(cfg.databases)
    logger.info("Loaded %d mapping(s), %d database(s)", len(rules), len(sinks))
    return Router(rules=rules, sinks=sinks)


class Service:
    """
    Wires MQTT source -> Router -> sinks

    paho calls on_message from its network thread; each message is handed to
    the asyncio loop and processed on the default thread pool, so messages
    are mapped and written concurrently
    """

    def __init__(self, router: Router, source: MqttSourceAdapter) -> None:
        self.router = router
        self.source = source
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.stop_event: Optional[asyncio.Event] = None

    def _dispatch(self, msg: InboundMessage) -> None:
        fut = self.loop.run_in_executor(None, self.router.on_message, msg)
        fut.add_done_callback(self._log_failure)

    @staticmethod
    def _log_failure(fut: "asyncio.Future") -> None:
        if fut.cancelled():
            return
        exc = fut.exception()
        if exc is not None:
            logger.error("Unexpected error while handling message: %r", exc, exc_info=exc)

    def on_message(self, msg: InboundMessage) -> None:
        # called from paho thread
        self.loop.call_soon_threadsafe(self._dispatch, msg)

    def request_stop(self, sig: signal.Signals) -> None:
        logger.warning("Signal %r received - shutting down...", sig.name)
        if self.stop_event is not None and not self.stop_event.is_set():
            self.stop_event.set()

    async def run(self) -> None:
        self.loop = asyncio.get_running_loop()
        self.stop_event = asyncio.Event()
        self.loop.add_signal_handler(signal.SIGINT, self.request_stop, signal.SIGINT)
        self.loop.add_signal_handler(signal.SIGTERM, self.request_stop, signal.SIGTERM)

        try:
            self.source.start(self.on_message)
            await self.stop_event.wait()
        finally:
            self.source.stop()
            close_sinks(self.router.sinks)
        logger.info("Shutdown complete")


def close_sinks(sinks: Sequence[Sink]) -> None:
    for sink in sinks:
        sink.close()


def run(config_path: Optional[str] = None) -> int:
    path = resolve_config_path(config_path)
    try:
        cfg = load_config(path)
        configure_logging(cfg.log_level)
        router = build_router(cfg)
    except (OSError, ConfigError) as e:
        configure_logging(None)
        logger.error("Invalid configuration %s: %s", path, e)
        return 2

    try:
        mqtt_cfg = MqttConnectionConfig.from_config(cfg.mqtt)
        source = MqttSourceAdapter(cfg=mqtt_cfg, subscriptions=router.rules.subscriptions)
    except ConfigError as e:
        logger.error("Invalid configuration %s: %s", path, e)
        close_sinks(router.sinks)
        return 2

    try:
        asyncio.run(Service(router, source).run())
    except OSError as e:
        logger.error("MQTT connect failed: %r", e)
        return 1
    return 0


def main() -> int:
    return run(sys.argv[1] if len(sys.argv) > 1 else None)


if __name__ == "__main__":
    sys.exit(main())
