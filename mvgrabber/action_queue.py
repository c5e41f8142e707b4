"""A worker thread that runs queued actions and an idle function."""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable

from .constants import MachineVisionError

Action = Callable[[], object]

_log = logging.getLogger(__name__)


class ActionQueueThread:
    """Runs actions one at a time on its own thread.

    Between batches of queued actions the idle function, if any, is called;
    otherwise the thread sleeps briefly.
    """

    def __init__(self) -> None:
        self._actions: queue.Queue[Action] = queue.Queue()
        self._idle: Action | None = None
        self._closing = threading.Event()
        self._thread = threading.Thread(target=self._run, name="action-queue", daemon=True)
        self._thread.start()

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive()

    @staticmethod
    def _call(action: Action) -> bool:
        try:
            action()
        except Exception:
            _log.exception("action failed")
            return False
        return True

    def _run(self) -> None:
        while not self._closing.is_set():
            while True:
                try:
                    action = self._actions.get_nowait()
                except queue.Empty:
                    break
                self._call(action)
            idle = self._idle
            if idle is not None:
                self._call(idle)
            else:
                time.sleep(0.001)

    def set_idle_function(self, function: Action | None) -> None:
        self._idle = function

    def perform_in_thread(self, action: Action, blocking: bool = False) -> bool:
        """Queue an action; when blocking, wait for it and return whether it succeeded."""
        if self._closing.is_set():
            raise MachineVisionError("action queue thread is closed")
        if not blocking:
            self._actions.put(action)
            return True
        if threading.current_thread() is self._thread:
            return self._call(action)

        done = threading.Event()
        outcome: list[bool] = []

        def wrapped() -> None:
            outcome.append(self._call(action))
            done.set()

        self._actions.put(wrapped)
        while not done.wait(0.01):
            if not self._thread.is_alive():
                raise MachineVisionError("action queue thread stopped before the action ran")
        return outcome[0]

    def block_until_queue_empty(self) -> None:
        while not self._actions.empty():
            time.sleep(0.001)

    def close(self) -> None:
        """Stop the thread and wait for it to finish."""
        self._closing.set()
        if threading.current_thread() is not self._thread:
            self._thread.join()

    def __enter__(self) -> ActionQueueThread:
        return self

    def __exit__(self, *args) -> None:
        self.close()