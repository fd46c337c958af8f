#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models import DataPoint


class SinkWriteError(Exception):
    """A data point could not be delivered to a sink"""


class Sink(ABC):
    """
    Base interface for a data point destination

    Sink responsibilities:
      - write(point): deliver one data point, raise SinkWriteError on failure
      - close(): release connections

    Notes:
      - write() may be called concurrently from several dispatch threads
      - no retries and no batching: one write per data point
    """

    @property
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def write(self, point: "DataPoint") -> None:
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError
