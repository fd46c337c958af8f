#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import argparse
import logging
import sys
from enum import IntEnum

from mqtt2db.client.main import configure_logging, resolve_config_path, run
from mqtt2db.client.models import InboundMessage
from mqtt2db.client.router import Router
from mqtt2db.client.sink.influxdb.codec import LineProtocolCodec
from mqtt2db.lib.config_loader import load_config
from mqtt2db.lib.constants import MQTT2DB_CLI_LOGGER_NAME
from mqtt2db.mapping.errors import ConfigError, DispatchError
from mqtt2db.mapping.rules import JsonPayload, RuleTable


# Exit codes for CLI
class ExitCode(IntEnum):
    GEN_SUCCESS = 0  # Generic success for any command
    GEN_ERROR = 1  # Unexpected errors (broker not reachable, etc)
    INIT_ERROR = 2  # Initialization errors (bad config, bad arguments)

    # Map command (10-19)
    MAP_UNMATCHED = 10
    MAP_FAILED = 11


CHECK_PREF = "Config check result:"
MAP_PREF = "Map result:"

logger = logging.getLogger(MQTT2DB_CLI_LOGGER_NAME)


def _load_rules(config_path):
    cfg = load_config(resolve_config_path(config_path))
    return cfg, RuleTable.from_config(cfg.mappings)


def _default_measurement(cfg):
    databases = cfg.raw.get("databases")
    if isinstance(databases, list) and databases and isinstance(databases[0], dict):
        return databases[0].get("measurement") or "mqtt"
    return "mqtt"


def check_config(config_path):
    """Load and compile the configuration, print one line per rule."""
    try:
        _, rules = _load_rules(config_path)
    except (OSError, ConfigError) as e:
        logger.error("%s failed %r", CHECK_PREF, e)
        print("%s failed: %s" % (CHECK_PREF, e))
        return ExitCode.INIT_ERROR

    for rule in rules.rules:
        payload = "raw"
        if isinstance(rule.payload, JsonPayload):
            payload = "json %s" % rule.payload.value_path
            if rule.payload.timestamp_path is not None:
                payload += " (timestamp %s)" % rule.payload.timestamp_path
        print(
            "#%d %s -> %s [%s] payload=%s tags=%d"
            % (rule.index, rule.topic, rule.field_name, rule.value_type.value, payload, len(rule.tags))
        )
    print("%s ok (%d mapping(s))" % (CHECK_PREF, len(rules)))
    return ExitCode.GEN_SUCCESS


def map_message(config_path, topic, payload, measurement=None):
    """Dry-run one message through the mappings and print line protocol."""
    try:
        cfg, rules = _load_rules(config_path)
    except (OSError, ConfigError) as e:
        logger.error("%s failed %r", MAP_PREF, e)
        print("%s failed: %s" % (MAP_PREF, e))
        return ExitCode.INIT_ERROR

    if measurement is None:
        measurement = _default_measurement(cfg)

    router = Router(rules=rules)
    try:
        point = router.build_point(InboundMessage(topic=topic, payload=payload.encode("utf-8")))
    except DispatchError as e:
        print("%s %s" % (MAP_PREF, e))
        if e.rule_index is None:
            return ExitCode.MAP_UNMATCHED
        return ExitCode.MAP_FAILED

    try:
        line = LineProtocolCodec(measurement).encode(point)
    except ValueError as e:
        print("%s %s" % (MAP_PREF, e))
        return ExitCode.MAP_FAILED
    print(line)
    return ExitCode.GEN_SUCCESS


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="mqtt2db",
        description="Map MQTT messages to InfluxDB data points",
        usage="mqtt2db [-h] <command> ...",
        epilog="""
Example:
  mqtt2db check /etc/mqtt2db.yaml
  mqtt2db map /etc/mqtt2db.yaml sensors/kitchen/temp 21.5
""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="Available commands",
        metavar="<command>",
    )

    run_parser = subparsers.add_parser("run", help="Run the MQTT to database bridge")
    run_parser.add_argument("config", nargs="?", help="Config file (default: $MQTT2DB_CONFIG)")

    check_parser = subparsers.add_parser("check", help="Validate the configuration")
    check_parser.add_argument("config", nargs="?", help="Config file (default: $MQTT2DB_CONFIG)")

    map_parser = subparsers.add_parser("map", help="Map one message without connecting anywhere")
    map_parser.add_argument("config", help="Config file")
    map_parser.add_argument("topic", help="MQTT topic")
    map_parser.add_argument("payload", help="Message payload (text)")
    map_parser.add_argument("--measurement", help="Measurement name for the printed line")

    args = parser.parse_args(argv)
    if args.command == "run":
        return int(run(args.config))
    if args.command == "check":
        configure_logging("warning")
        return int(check_config(args.config))
    if args.command == "map":
        configure_logging("warning")
        return int(map_message(args.config, args.topic, args.payload, args.measurement))
    parser.print_help()
    return int(ExitCode.INIT_ERROR)


if __name__ == "__main__":
    sys.exit(main())
