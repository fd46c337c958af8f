#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from ..models import InboundMessage

MessageHandler = Callable[[InboundMessage], None]


class SourceAdapter(ABC):
    """
    Base interface for a message source

    Adapter responsibilities:
      - start(handler): begin receiving messages from a transport and pass
        each one to handler as an InboundMessage
      - stop(): disconnect and release resources

    handler may be called from the adapter's own network thread.
    """

    @abstractmethod
    def start(self, handler: MessageHandler) -> None:
        raise NotImplementedError

    @abstractmethod
    def stop(self) -> None:
        raise NotImplementedError
