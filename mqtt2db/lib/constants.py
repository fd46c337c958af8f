"""
  File with all constants in project
"""

# Environment variables
CONFIG_PATH_ENV = "MQTT2DB_CONFIG"
LOG_LEVEL_ENV = "MQTT2DB_LOG"

# Configuration file path used when neither argument nor env var is given
DEFAULT_CONFIG_PATH = "/etc/mqtt2db.yaml"

DEFAULT_LOG_LEVEL = "info"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# For logging with name "mqtt2db-cli"
MQTT2DB_CLI_LOGGER_NAME = "mqtt2db-cli"
