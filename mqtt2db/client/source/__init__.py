#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Sources: where inbound messages come from

  mqtt  paho-mqtt subscription to every mapping topic
"""
