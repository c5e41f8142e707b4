"""Records the frames a grabber delivers, keyed and ordered by timestamp."""

from __future__ import annotations

import enum
from collections.abc import MutableMapping
from typing import Iterator

from sortedcontainers import SortedDict

from .constants import MachineVisionError
from .frame import Frame
from .grabber_base import GrabberBase


class RecorderState(enum.Enum):
    """What a recorder is doing; the value is its human readable name."""

    NO_GRABBER = "No grabber"
    GRABBER_NOT_READY = "Grabber not ready"
    READY = "Ready"
    RECORDING = "Recording"
    SAVING = "Saving"
    LOADING = "Loading"

    def __str__(self) -> str:
        return self.value


class Recorder(MutableMapping):
    """A sorted mapping of timestamp (nanoseconds) to frame, filled while recording.

    A frame whose timestamp is already recorded is ignored.
    """

    def __init__(self) -> None:
        self._frames: SortedDict = SortedDict()
        self._state = RecorderState.NO_GRABBER
        self._grabber: GrabberBase | None = None

    # ----- mapping -------------------------------------------------------

    def __getitem__(self, timestamp: int) -> Frame:
        return self._frames[timestamp]

    def __setitem__(self, timestamp: int, frame: Frame) -> None:
        self._frames[timestamp] = frame

    def __delitem__(self, timestamp: int) -> None:
        if timestamp not in self._frames:
            raise KeyError(timestamp)
        self._frames.pop(timestamp)

    def __iter__(self) -> Iterator[int]:
        return iter(self._frames)

    def __len__(self) -> int:
        return len(self._frames)

    def clear(self) -> None:
        self._frames.clear()

    def first_at_or_after(self, timestamp: int) -> int | None:
        """The earliest recorded timestamp not before the given one."""
        index = self._frames.bisect_left(timestamp)
        return self._frames.keys()[index] if index < len(self._frames) else None

    def first_after(self, timestamp: int) -> int | None:
        """The earliest recorded timestamp strictly after the given one."""
        index = self._frames.bisect_right(timestamp)
        return self._frames.keys()[index] if index < len(self._frames) else None

    # ----- recording -----------------------------------------------------

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state is RecorderState.RECORDING

    @property
    def grabber(self) -> GrabberBase | None:
        return self._grabber

    def set_grabber(self, grabber: GrabberBase) -> None:
        """Attach the grabber to record from; not allowed while in use."""
        if self._state not in (RecorderState.NO_GRABBER, RecorderState.READY):
            raise MachineVisionError("Cannot set grabber, recorder currently in use.")
        self._grabber = grabber
        self._state = RecorderState.READY

    def start(self) -> None:
        """Start recording the grabber's new frames."""
        self.stop()
        if self._state is not RecorderState.READY or self._grabber is None:
            raise MachineVisionError("Cannot start recorder, recorder is not ready to start.")
        if not self._grabber.is_device_open:
            self._state = RecorderState.GRABBER_NOT_READY
            raise MachineVisionError("Cannot start recorder, grabber is not open.")
        self._grabber.on_new_frame_received.add_listener(self._on_new_frame, self)
        self._state = RecorderState.RECORDING

    def stop(self) -> None:
        """Stop recording; recorded frames are kept."""
        if self.is_recording and self._grabber is not None:
            self._grabber.on_new_frame_received.remove_listeners(self)
            self._state = RecorderState.READY

    def has_grabber(self) -> bool:
        return self._grabber is not None

    def first_timestamp(self) -> int:
        """Earliest recorded timestamp, or 0 when empty."""
        if not self._frames:
            return 0
        return self._frames.keys()[0]

    def last_timestamp(self) -> int:
        """Latest recorded timestamp, or 1 when empty so durations are never zero."""
        if not self._frames:
            return 1
        return self._frames.keys()[-1]

    def duration(self) -> int:
        return self.last_timestamp() - self.first_timestamp()

    def _on_new_frame(self, frame: Frame | None) -> None:
        if frame is not None:
            self._frames.setdefault(frame.timestamp, frame)