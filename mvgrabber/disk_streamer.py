"""Writes each frame a grabber delivers to disk as a raw pixel file."""

from __future__ import annotations

import enum
import os
from pathlib import Path

from .constants import MachineVisionError
from .frame import Frame
from .grabber_base import GrabberBase


class StreamerState(enum.Enum):
    NO_GRABBER = enum.auto()
    WAITING = enum.auto()
    STREAMING = enum.auto()


class DiskStreamer:
    """While streaming, saves every new frame as ``<timestamp>.raw`` in the output folder."""

    def __init__(self) -> None:
        self._state = StreamerState.NO_GRABBER
        self._grabber: GrabberBase | None = None
        self.output_folder = Path.cwd()

    @property
    def state(self) -> StreamerState:
        return self._state

    @property
    def grabber(self) -> GrabberBase | None:
        return self._grabber

    @property
    def has_grabber(self) -> bool:
        return self._grabber is not None

    @property
    def is_streaming(self) -> bool:
        return self._state is StreamerState.STREAMING

    def set_grabber(self, grabber: GrabberBase | None) -> None:
        """Attach a grabber (or None); not allowed while streaming."""
        if self._state is StreamerState.STREAMING:
            raise MachineVisionError(
                "We can't change the grabber whilst we're in Streaming state"
            )
        self.clear_grabber()
        self._grabber = grabber
        if grabber is not None:
            self._state = StreamerState.WAITING
            grabber.on_new_frame_received.add_listener(self._on_frame, self)
        else:
            self._state = StreamerState.NO_GRABBER

    def clear_grabber(self) -> None:
        if self._grabber is not None:
            self._grabber.on_new_frame_received.remove_listeners(self)
            self._grabber = None

    def set_output_folder(self, path: str | os.PathLike) -> None:
        """Stream into this folder, creating it if it does not exist."""
        if not str(path):
            raise ValueError("an output folder must be given")
        folder = Path(path).absolute()
        folder.mkdir(parents=True, exist_ok=True)
        self.output_folder = folder

    def start(self) -> None:
        if self._state is StreamerState.NO_GRABBER:
            raise MachineVisionError("Cannot start DiskStreamer, no grabber attached")
        self._state = StreamerState.STREAMING

    def stop(self) -> None:
        if self._state is StreamerState.NO_GRABBER:
            raise MachineVisionError("Cannot stop DiskStreamer, no grabber attached")
        self._state = StreamerState.WAITING

    def _on_frame(self, frame: Frame | None) -> None:
        if self._state is not StreamerState.STREAMING or frame is None:
            return
        data = frame.pixels.data
        payload = data.tobytes() if data is not None else b""
        (self.output_folder / f"{frame.timestamp}.raw").write_bytes(payload)