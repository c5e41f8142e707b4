"""A small multicast event with listeners that can be removed by owner."""

from __future__ import annotations

import threading
from typing import Any, Callable

Listener = Callable[..., Any]


class Event:
    """Holds listeners and calls each of them, in order, when notified."""

    def __init__(self) -> None:
        self._listeners: list[tuple[object | None, Listener]] = []
        self._lock = threading.RLock()

    def add_listener(self, listener: Listener, owner: object | None = None) -> None:
        """Add a listener, optionally tagged with an owner for later removal."""
        with self._lock:
            self._listeners.append((owner, listener))

    def remove_listeners(self, owner: object) -> None:
        """Remove every listener that was added with this owner."""
        with self._lock:
            self._listeners = [
                (listener_owner, listener)
                for listener_owner, listener in self._listeners
                if listener_owner is not owner
            ]

    def __iadd__(self, listener: Listener) -> Event:
        self.add_listener(listener)
        return self

    def __call__(self, *args: Any) -> None:
        with self._lock:
            listeners = [listener for _, listener in self._listeners]
        for listener in listeners:
            listener(*args)