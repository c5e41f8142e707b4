"""Interfaces that capture devices implement."""

from __future__ import annotations

import dataclasses
import enum
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, TypeVar

from .events import Event
from .frame import Frame
from .parameter import AbstractParameter
from .specification import Specification


@dataclass
class InitialisationSettings:
    """Settings a device is opened with."""

    device_id: int = 0


@dataclass
class ListedDevice:
    """A device found by listing, with the settings that open it."""

    initialisation_settings: InitialisationSettings
    manufacturer: str = ""
    model: str = ""


class DeviceType(enum.Enum):
    """How a device delivers frames."""

    BLOCKING = "Blocking device"
    UPDATING = "Updating device"
    CALLBACK = "Callback device"
    NOT_IMPLEMENTED = "Device not implemented"

    @property
    def description(self) -> str:
        return self.value


S = TypeVar("S", bound=InitialisationSettings)


def typed_settings(settings_class: type[S], settings: InitialisationSettings | None) -> S:
    """Convert settings to a device's own settings type.

    None gives defaults; settings of another type have their shared fields copied.
    """
    if settings is None:
        return settings_class()
    if isinstance(settings, settings_class):
        return settings
    converted = settings_class()
    for settings_field in dataclasses.fields(settings):
        if hasattr(converted, settings_field.name):
            setattr(converted, settings_field.name, getattr(settings, settings_field.name))
    return converted


class Device(ABC):
    """Root interface for capture devices."""

    type_name: ClassVar[str] = "Device"

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        if "type_name" not in cls.__dict__:
            cls.type_name = cls.__name__

    def __init__(self) -> None:
        self.parameters: list[AbstractParameter] = []
        self.main_thread: threading.Thread | None = None
        self.capturing = False
        self.single_shot_requested = False

    @abstractmethod
    def default_settings(self) -> InitialisationSettings:
        """Settings used when none are given to open."""

    def init_on_main_thread(self) -> None:
        """Hook called on the caller's thread before opening; remembers that thread."""
        self.main_thread = threading.current_thread()

    def list_devices(self) -> list[ListedDevice]:
        return []

    @abstractmethod
    def open(self, settings: InitialisationSettings | None = None) -> Specification:
        """Open the device and describe it; raise MachineVisionError on failure."""

    @abstractmethod
    def close(self) -> None:
        """Close the device."""

    def start_capture(self) -> bool:
        """Start capturing; return whether capture is running."""
        return False

    def stop_capture(self) -> None:
        """Stop capturing."""
        self.capturing = False

    def single_shot(self) -> None:
        """Request a single capture."""
        self.single_shot_requested = True


class BlockingDevice(Device):
    """A device whose API waits until a frame arrives."""

    @abstractmethod
    def get_frame(self) -> Frame | None:
        """Wait for and return the next frame; may raise MachineVisionError."""


class UpdatingDevice(Device):
    """A device polled with update / is-frame-new calls."""

    @abstractmethod
    def update_is_frame_new(self) -> None:
        """Poll the device for a new frame."""

    @abstractmethod
    def is_frame_new(self) -> bool:
        """Whether the last poll brought a new frame."""

    @abstractmethod
    def get_frame(self) -> Frame | None:
        """The most recent frame."""


class CallbackDevice(Device):
    """A device that announces each new frame through on_new_frame."""

    def __init__(self) -> None:
        super().__init__()
        self.on_new_frame = Event()


def device_type_of(device: Device | None) -> DeviceType:
    """Which delivery interface a device implements."""
    if isinstance(device, BlockingDevice):
        return DeviceType.BLOCKING
    if isinstance(device, UpdatingDevice):
        return DeviceType.UPDATING
    if isinstance(device, CallbackDevice):
        return DeviceType.CALLBACK
    return DeviceType.NOT_IMPLEMENTED