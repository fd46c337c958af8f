"""mqtt2db - subscribes to MQTT topics and writes to a database"""

__version__ = "0.4.0"
