#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Mapping engine: MQTT topic + payload -> typed, tagged data point

Pure code, no I/O:

  topic     topic filters ("+", "#") and captures
  template  names with $N references to captures
  value     declared types and coercion
  extract   JSON payload decoding and JSONPath lookup
  rules     compiled mappings and first-match rule table
"""
