"""Synchronous publish/subscribe channel for mood changes."""

from __future__ import annotations

import threading
from typing import Callable, TypeAlias

from loguru import logger

from anima.mood.models import MoodChangeEvent

MoodListener: TypeAlias = Callable[[MoodChangeEvent], None]


class MoodEventChannel:
    """
    Fan-out of mood change events to subscribed listeners.

    Listeners run on the publishing thread; a failing listener is logged and
    never affects the publisher or other listeners.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: list[MoodListener] = []

    def subscribe(self, listener: MoodListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: MoodListener) -> None:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    def publish(self, event: MoodChangeEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    "[{}] mood listener failed ({} -> {}): {}",
                    event.persona_id,
                    event.previous,
                    event.current,
                    e,
                )

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)
