"""Shared state and device handling for grabbers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .action_queue import ActionQueueThread
from .constants import DeviceState
from .device import Device, DeviceType, InitialisationSettings, device_type_of
from .events import Event
from .parameter import AbstractParameter
from .specification import Specification


class GrabberBase(ABC):
    """Operates an abstract device; concrete grabbers decide how frames flow."""

    def __init__(self) -> None:
        self.specification = Specification()
        self.device_state = DeviceState.EMPTY
        self.thread: ActionQueueThread | None = None
        self.on_new_frame_received = Event()
        self._device: Device | None = None
        self._device_type = DeviceType.NOT_IMPLEMENTED

    def _release_thread(self) -> None:
        if self.thread is not None:
            thread, self.thread = self.thread, None
            thread.close()

    def set_device(self, device: Device | None) -> None:
        """Close any current device and take this one; blocking devices get a worker thread."""
        self.close()
        self._release_thread()
        self._device = device
        self._device_type = device_type_of(device)
        if device is None:
            self.device_state = DeviceState.EMPTY
            return
        if self._device_type is DeviceType.BLOCKING:
            self.thread = ActionQueueThread()
        self.device_state = DeviceState.CLOSED

    def clear_device(self) -> None:
        self.set_device(None)

    @property
    def device(self) -> Device | None:
        return self._device

    @property
    def device_type(self) -> DeviceType:
        return self._device_type

    @property
    def device_type_name(self) -> str:
        return self._device.type_name if self._device is not None else "uninitialised"

    @property
    def is_device_exists(self) -> bool:
        return bool(self.device_state & DeviceState.EXISTS_BIT)

    @property
    def is_device_open(self) -> bool:
        return bool(self.device_state & DeviceState.OPEN_BIT)

    @property
    def is_device_running(self) -> bool:
        return bool(self.device_state & DeviceState.RUNNING_BIT)

    @property
    def device_id(self) -> int:
        return self.specification.device_id

    @property
    def capture_width(self) -> int:
        return self.specification.capture_width

    @property
    def capture_height(self) -> int:
        return self.specification.capture_height

    @property
    def manufacturer(self) -> str:
        return self.specification.manufacturer

    @property
    def model_name(self) -> str:
        return self.specification.model_name

    @abstractmethod
    def open(self, settings: InitialisationSettings | None = None) -> bool:
        """Open the device; return whether it is open."""

    @abstractmethod
    def close(self) -> None:
        """Close the device if it is open."""

    @abstractmethod
    def start_capture(self) -> None:
        """Start continuous capture."""

    @abstractmethod
    def stop_capture(self) -> None:
        """Stop continuous capture."""

    @abstractmethod
    def sync_to_device(self, parameter: AbstractParameter) -> None:
        """Push a parameter's value to the device."""

    @abstractmethod
    def sync_from_device(self, parameter: AbstractParameter) -> None:
        """Pull a parameter's value from the device."""