"""A device that produces black frames at a chosen frame rate."""

from __future__ import annotations

import dataclasses
import time
from dataclasses import dataclass

from .constants import CaptureSequenceType, PixelMode
from .device import BlockingDevice, InitialisationSettings, typed_settings
from .frame import Frame, FramePool, PixelFormat, default_pool
from .specification import Specification


@dataclass
class NullDeviceSettings(InitialisationSettings):
    width: int = 1024
    height: int = 768
    frame_rate: float = 30.0


class NullDevice(BlockingDevice):
    """Feeds black monochrome frames at the configured frame rate."""

    type_name = "NullDevice"

    def __init__(self, pool: FramePool | None = None) -> None:
        super().__init__()
        self.settings = NullDeviceSettings()
        self.is_open = False
        self._pool = default_pool() if pool is None else pool
        self._frame_index = 0
        self._start_time = time.perf_counter_ns()

    def default_settings(self) -> NullDeviceSettings:
        return NullDeviceSettings()

    def open(self, settings: InitialisationSettings | None = None) -> Specification:
        self.settings = dataclasses.replace(typed_settings(NullDeviceSettings, settings))
        specification = Specification(
            CaptureSequenceType.CONTINUOUS,
            self.settings.width,
            self.settings.height,
            "NullDevice",
            "NullDevice",
        )
        specification.add_pixel_mode(PixelMode.L8)
        self.is_open = True
        return specification

    def close(self) -> None:
        self.capturing = False
        self.is_open = False

    def start_capture(self) -> bool:
        self._start_time = time.perf_counter_ns()
        self.capturing = True
        return True

    def stop_capture(self) -> None:
        super().stop_capture()

    def get_frame(self) -> Frame:
        time.sleep(1.0 / self.settings.frame_rate)
        frame = self._pool.available_allocated_frame(
            self.settings.width, self.settings.height, PixelFormat.GRAY
        )
        frame.pixels.fill(0)
        frame.frame_index = self._frame_index
        self._frame_index += 1
        frame.timestamp = time.perf_counter_ns() - self._start_time
        return frame