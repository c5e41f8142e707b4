"""Frames of pixels and a pool that recycles their pixel storage."""

from __future__ import annotations

import enum
import threading
import weakref
from dataclasses import dataclass

import numpy as np


class PixelFormat(enum.Enum):
    """Layout of one pixel: number of channels and element type."""

    GRAY = (1, "uint8")
    GRAY16 = (1, "uint16")
    RGB = (3, "uint8")
    RGBA = (4, "uint8")

    @property
    def channels(self) -> int:
        return self.value[0]

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self.value[1])


class Pixels:
    """An image buffer of height x width x channels elements."""

    def __init__(self) -> None:
        self._data: np.ndarray | None = None
        self._format: PixelFormat | None = None

    @classmethod
    def from_array(cls, array, pixel_format: PixelFormat | None = None) -> Pixels:
        """Wrap an array of shape (height, width) or (height, width, channels)."""
        data = np.asarray(array)
        if data.ndim == 2:
            data = data[:, :, np.newaxis]
        if data.ndim != 3:
            raise ValueError(f"expected a 2 or 3 dimensional array, got {data.ndim}")
        if pixel_format is None:
            pixel_format = next(
                (
                    candidate
                    for candidate in PixelFormat
                    if candidate.channels == data.shape[2] and candidate.dtype == data.dtype
                ),
                None,
            )
            if pixel_format is None:
                raise ValueError(
                    f"no pixel format for {data.shape[2]} channels of {data.dtype}"
                )
        elif pixel_format.channels != data.shape[2]:
            raise ValueError(
                f"{pixel_format.name} needs {pixel_format.channels} channels, got {data.shape[2]}"
            )
        pixels = cls()
        pixels._data = np.ascontiguousarray(data, dtype=pixel_format.dtype)
        pixels._format = pixel_format
        return pixels

    @property
    def data(self) -> np.ndarray | None:
        return self._data

    @property
    def pixel_format(self) -> PixelFormat | None:
        return self._format

    @property
    def is_allocated(self) -> bool:
        return self._data is not None

    @property
    def width(self) -> int:
        return 0 if self._data is None else self._data.shape[1]

    @property
    def height(self) -> int:
        return 0 if self._data is None else self._data.shape[0]

    @property
    def channels(self) -> int:
        return 0 if self._data is None else self._data.shape[2]

    @property
    def size(self) -> int:
        """Number of elements in the buffer."""
        return 0 if self._data is None else self._data.size

    @property
    def total_bytes(self) -> int:
        return 0 if self._data is None else self._data.nbytes

    def matches(self, width: int, height: int, pixel_format: PixelFormat) -> bool:
        """Whether the buffer already has this size and format."""
        return (
            self.is_allocated
            and self.width == width
            and self.height == height
            and self._format is pixel_format
        )

    def allocate(self, width: int, height: int, pixel_format: PixelFormat) -> None:
        """Give the buffer this size and format, reusing it when it already fits."""
        if width < 0 or height < 0:
            raise ValueError("width and height must not be negative")
        if self.matches(width, height, pixel_format):
            return
        self._data = np.zeros((height, width, pixel_format.channels), dtype=pixel_format.dtype)
        self._format = pixel_format

    def fill(self, value) -> None:
        """Set every element to value; does nothing when unallocated."""
        if self._data is not None:
            self._data.fill(value)

    def copy_from(self, other: Pixels) -> None:
        """Make this buffer a copy of another one."""
        if not other.is_allocated:
            self.clear()
            return
        self.allocate(other.width, other.height, other.pixel_format)
        np.copyto(self._data, other.data)

    def clear(self) -> None:
        """Release the buffer."""
        self._data = None
        self._format = None


class Frame:
    """A shipment of pixels with the time and index at which it was captured.

    The timestamp is in nanoseconds.
    """

    def __init__(self, pixels: Pixels | None = None) -> None:
        self._pixels = pixels if pixels is not None else Pixels()
        self.timestamp: int = 0
        self.frame_index: int = 0

    @property
    def pixels(self) -> Pixels:
        return self._pixels

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Frame):
            return NotImplemented
        return self.timestamp < other.timestamp

    def __repr__(self) -> str:
        return (
            f"Frame(index={self.frame_index}, timestamp={self.timestamp}, "
            f"size={self._pixels.width}x{self._pixels.height})"
        )


@dataclass
class _Slot:
    pixels: Pixels
    owner: weakref.ref | None = None

    @property
    def free(self) -> bool:
        return self.owner is None or self.owner() is None

    def bind(self) -> Frame:
        frame = Frame(self.pixels)
        self.owner = weakref.ref(frame)
        return frame


class FramePool:
    """Hands out frames whose pixel storage is reused once no frame holds it."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._slots: list[_Slot] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)

    def available_frame_filled_with(self, pixels: Pixels) -> Frame:
        """An allocated frame holding a copy of the given pixels."""
        if not pixels.is_allocated:
            return self.available_frame()
        frame = self.available_allocated_frame(pixels.width, pixels.height, pixels.pixel_format)
        np.copyto(frame.pixels.data, pixels.data)
        return frame

    def available_allocated_frame(
        self, width: int, height: int, pixel_format: PixelFormat
    ) -> Frame:
        """A frame allocated to this size and format."""
        with self._lock:
            for slot in self._slots:
                if slot.free and slot.pixels.matches(width, height, pixel_format):
                    return slot.bind()
        frame = self.available_frame()
        frame.pixels.allocate(width, height, pixel_format)
        return frame

    def available_frame(self) -> Frame:
        """A frame whose storage is free, of unknown allocation."""
        with self._lock:
            for slot in self._slots:
                if slot.free:
                    return slot.bind()
        return self.clean_frame()

    def clean_frame(self) -> Frame:
        """A frame with new, unallocated storage and zero timestamp and index."""
        slot = _Slot(Pixels())
        frame = slot.bind()
        with self._lock:
            self._slots.append(slot)
        return frame


_DEFAULT_POOL = FramePool()


def default_pool() -> FramePool:
    """The pool shared by the whole process."""
    return _DEFAULT_POOL