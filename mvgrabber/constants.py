"""Enumerations, error type and string helpers shared across the package."""

from __future__ import annotations

import enum

Binning = tuple[int, int]


class CaptureSequenceType(enum.Enum):
    """How a device delivers its frames."""

    CONTINUOUS = enum.auto()
    ONE_SHOT = enum.auto()


class PixelMode(enum.Enum):
    """Data mode of camera pixels."""

    UNALLOCATED = enum.auto()
    L8 = enum.auto()
    L12 = enum.auto()
    L16 = enum.auto()
    RGB8 = enum.auto()
    BAYER8 = enum.auto()


class TriggerMode(enum.Enum):
    """Trigger mode of a device; DEVICE means as fast as possible."""

    DEVICE = enum.auto()
    SOFTWARE = enum.auto()
    GPIO1 = enum.auto()
    GPIO2 = enum.auto()


class TriggerSignalType(enum.Enum):
    """Signal edge or level treated as a trigger for hardware triggering."""

    DEFAULT = enum.auto()
    RISING_EDGE = enum.auto()
    FALLING_EDGE = enum.auto()
    WHILST_HIGH = enum.auto()
    WHILST_LOW = enum.auto()


class GPOMode(enum.Enum):
    """General purpose output mode of a device."""

    ON = enum.auto()
    OFF = enum.auto()
    HIGH_WHILST_EXPOSURE = enum.auto()
    HIGH_WHILST_FRAME_ACTIVE = enum.auto()
    LOW_WHILST_EXPOSURE = enum.auto()
    LOW_WHILST_FRAME_ACTIVE = enum.auto()


TriggerSettings = tuple[TriggerMode, TriggerSignalType]


class DeviceState(enum.IntFlag):
    """State of a capture device as a bit pattern: [running] [open] [exists]."""

    EMPTY = 0
    CLOSED = 1
    WAITING = 3
    RUNNING = 7
    DELETING = 1 << 5

    EXISTS_BIT = 1 << 0
    OPEN_BIT = 1 << 1
    RUNNING_BIT = 1 << 2


class MachineVisionError(Exception):
    """Raised when a device or grabber operation fails."""


_NAMES: dict[type, dict[enum.Enum, str]] = {
    CaptureSequenceType: {
        CaptureSequenceType.CONTINUOUS: "Continuous",
        CaptureSequenceType.ONE_SHOT: "OneShot",
    },
    PixelMode: {
        PixelMode.UNALLOCATED: "Unallocated",
        PixelMode.L8: "L8",
        PixelMode.L12: "L12",
        PixelMode.L16: "L16",
        PixelMode.RGB8: "RGB8",
        PixelMode.BAYER8: "BAYER8",
    },
    TriggerMode: {
        TriggerMode.DEVICE: "Device",
        TriggerMode.GPIO1: "GPIO1",
        TriggerMode.GPIO2: "GPIO2",
        TriggerMode.SOFTWARE: "Software",
    },
    TriggerSignalType: {
        TriggerSignalType.DEFAULT: "Default",
        TriggerSignalType.FALLING_EDGE: "Falling edge",
        TriggerSignalType.RISING_EDGE: "Rising edge",
        TriggerSignalType.WHILST_HIGH: "Whilst high",
        TriggerSignalType.WHILST_LOW: "Whilst low",
    },
    GPOMode: {
        GPOMode.ON: "On",
        GPOMode.OFF: "Off",
        GPOMode.HIGH_WHILST_EXPOSURE: "High whilst exposure",
        GPOMode.HIGH_WHILST_FRAME_ACTIVE: "High whilst frame active",
        GPOMode.LOW_WHILST_EXPOSURE: "Low whilst exposure",
        GPOMode.LOW_WHILST_FRAME_ACTIVE: "Low whilst frame active",
    },
    DeviceState: {
        DeviceState.CLOSED: "Closed",
        DeviceState.DELETING: "Deleting",
        DeviceState.RUNNING: "Running",
        DeviceState.WAITING: "Waiting",
    },
}

UNSUPPORTED = "Unsupported"


def to_string(value: enum.Enum) -> str:
    """Return the human readable name of one of the package's enum values."""
    names = _NAMES.get(type(value))
    if names is None:
        raise TypeError(f"no string form for {type(value).__name__}")
    return names.get(value, UNSUPPORTED)


def is_color(pixel_mode: PixelMode) -> bool:
    """Whether pixels in this mode carry colour."""
    return pixel_mode is PixelMode.RGB8