"""Description of what a capture device is and what it supports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .constants import (
    UNSUPPORTED,
    CaptureSequenceType,
    GPOMode,
    PixelMode,
    TriggerMode,
    TriggerSignalType,
    to_string,
)


def _joined(modes: Iterable) -> str:
    return ", ".join(to_string(mode) for mode in sorted(modes, key=lambda mode: mode.value))


@dataclass
class Specification:
    """Capabilities and identity of an opened device.

    A specification is valid when it names a capture sequence type, unless
    ``valid`` is given explicitly.
    """

    capture_sequence_type: CaptureSequenceType | None = None
    capture_width: int = 0
    capture_height: int = 0
    manufacturer: str = ""
    model_name: str = ""
    serial_number: str = ""
    device_id: int = 0
    valid: bool | None = None
    pixel_modes: set[PixelMode] = field(default_factory=set)
    trigger_modes: set[TriggerMode] = field(default_factory=set)
    trigger_signal_types: set[TriggerSignalType] = field(default_factory=set)
    gpo_modes: set[GPOMode] = field(default_factory=set)

    def __post_init__(self) -> None:
        if self.valid is None:
            self.valid = self.capture_sequence_type is not None

    def supports(self, value) -> bool:
        """Whether the device supports a capture sequence type or a mode."""
        if isinstance(value, CaptureSequenceType):
            return self.capture_sequence_type is value
        if isinstance(value, PixelMode):
            return value in self.pixel_modes
        if isinstance(value, TriggerMode):
            return value in self.trigger_modes
        if isinstance(value, TriggerSignalType):
            return value in self.trigger_signal_types
        if isinstance(value, GPOMode):
            return value in self.gpo_modes
        raise TypeError(f"cannot check support for {type(value).__name__}")

    def add_pixel_mode(self, pixel_mode: PixelMode) -> None:
        self.pixel_modes.add(pixel_mode)

    def add_trigger_mode(self, trigger_mode: TriggerMode) -> None:
        self.trigger_modes.add(trigger_mode)

    def add_trigger_signal_type(self, trigger_signal_type: TriggerSignalType) -> None:
        self.trigger_signal_types.add(trigger_signal_type)

    def add_gpo_mode(self, gpo_mode: GPOMode) -> None:
        self.gpo_modes.add(gpo_mode)

    def to_string(self) -> str:
        """Multi-line human readable report of the specification."""
        sequence = (
            to_string(self.capture_sequence_type)
            if self.capture_sequence_type is not None
            else UNSUPPORTED
        )
        lines = [
            "//--",
            f"[Manufacturer]\t\t{self.manufacturer}",
            f"[Model]\t\t\t{self.model_name}",
            f"[Serial]\t\t\t{self.serial_number}",
            f"[Capture width]\t\t{self.capture_width}",
            f"[Capture height]\t\t{self.capture_height}",
            f"[Capture sequence type]\t\t{sequence}",
            "",
            f"[Pixel modes]\t\t{_joined(self.pixel_modes)}",
            f"[Trigger modes]\t\t{_joined(self.trigger_modes)}",
            f"[Trigger signal types]\t{_joined(self.trigger_signal_types)}",
            f"[GPO modes]\t\t{_joined(self.gpo_modes)}",
            "//--",
        ]
        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        return self.to_string()