"""A grabber that drives any device with a video-grabber style interface."""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Any, Callable

from .constants import (
    CaptureSequenceType,
    DeviceState,
    MachineVisionError,
    to_string,
)
from .device import (
    BlockingDevice,
    CallbackDevice,
    Device,
    DeviceType,
    InitialisationSettings,
    UpdatingDevice,
)
from .frame import Frame, FramePool, Pixels, default_pool
from .grabber_base import GrabberBase
from .parameter import AbstractParameter
from .specification import Specification

_log = logging.getLogger(__name__)

_IDLE_SLEEP_S = 0.002
_POLL_SLEEP_S = 0.001
DEFAULT_FRESH_FRAME_TIMEOUT_S = 20.0


def _safe_log(value: float) -> float:
    if value > 0:
        return math.log(value)
    if value == 0:
        return -math.inf
    return math.nan


class Grabber(GrabberBase):
    """Opens a device, keeps its latest frame and caches its pixels once per update.

    Each captured frame is a separate object, so older frames can be kept
    elsewhere. Before the first frame arrives the current frame is a clean,
    unallocated one.
    """

    def __init__(self, device: Device | None = None, pool: FramePool | None = None) -> None:
        super().__init__()
        self._pool = default_pool() if pool is None else pool
        self._frame_lock = threading.Lock()
        self._frame: Frame | None = None
        self._pixels = Pixels()
        self._new_frame_waiting = False
        self._current_frame_new = False
        self._fps = 0.0
        self._last_timestamp = 0
        self._last_frame_index = 0
        self._last_settings: InitialisationSettings | None = None
        self._clear_cached_frame()
        if device is not None:
            self.set_device(device)

    # ----- state -------------------------------------------------------

    @property
    def is_frame_new(self) -> bool:
        """Whether the last update brought a new frame."""
        return self._current_frame_new

    @property
    def fps(self) -> float:
        """Damped frame rate computed from frame timestamps."""
        return self._fps

    @property
    def last_timestamp(self) -> int:
        """Timestamp in nanoseconds of the last frame received."""
        return self._last_timestamp

    @property
    def last_frame_index(self) -> int:
        return self._last_frame_index

    @property
    def pixels(self) -> Pixels:
        """Pixels of the current frame, cached by the last update."""
        return self._pixels

    @property
    def width(self) -> int:
        frame = self.get_frame()
        return frame.pixels.width if frame is not None else 0

    @property
    def height(self) -> int:
        frame = self.get_frame()
        return frame.pixels.height if frame is not None else 0

    def default_initialisation_settings(self) -> InitialisationSettings:
        """The device's default settings, or base settings when there is no device."""
        if not self.is_device_exists or self.device is None:
            return InitialisationSettings()
        return self.device.default_settings()

    # ----- opening and closing -------------------------------------------

    def _mark_opened(self) -> None:
        self.device_state = DeviceState.WAITING if self.specification.valid else DeviceState.CLOSED

    def _open_blocking(self, device: BlockingDevice, settings: InitialisationSettings) -> None:
        self._release_thread()
        self.thread = ActionQueueThreadFactory()
        failures: list[BaseException] = []

        def open_in_thread() -> None:
            try:
                self.specification = device.open(settings)
            except Exception as error:
                failures.append(error)

        self.thread.perform_in_thread(open_in_thread, blocking=True)
        if failures:
            _log.error("Couldn't open device : %s", failures[0])
            self.clear_device()
            raise MachineVisionError("Failed to open device")

        self._mark_opened()
        if not self.is_device_open:
            raise MachineVisionError("Failed to open device")

        self.thread.set_idle_function(lambda: self._capture_continuously(device))

    def _capture_continuously(self, device: BlockingDevice) -> None:
        if self.is_device_running:
            frame = device.get_frame()
            if frame is not None:
                self._set_frame(frame)
                self._notify_new_frame(frame)
        else:
            time.sleep(_IDLE_SLEEP_S)

    def _receive_frame(self, frame: Frame) -> None:
        self._set_frame(frame)
        self._notify_new_frame(frame)

    def open(self, settings: InitialisationSettings | None = None) -> bool:
        """Open the device with the given (or default) settings; return whether it opened."""
        self.close()

        device = self.device
        if not self.is_device_exists or device is None:
            _log.error("Cannot open device. Grabber has no Device")
            return False

        if settings is None:
            settings = device.default_settings()

        device.init_on_main_thread()
        self._clear_cached_frame()
        self.specification = Specification()

        try:
            device_type = self.device_type
            if device_type is DeviceType.BLOCKING:
                if not isinstance(device, BlockingDevice):
                    raise MachineVisionError("Type mismatch with Device::Blocking")
                self._open_blocking(device, settings)
            elif device_type is DeviceType.UPDATING:
                if not isinstance(device, UpdatingDevice):
                    raise MachineVisionError("Type mismatch with Device::Updating")
                self.specification = device.open(settings)
                self._mark_opened()
            elif device_type is DeviceType.CALLBACK:
                if not isinstance(device, CallbackDevice):
                    raise MachineVisionError("Type mismatch with Device::Callback")
                self.specification = device.open(settings)
                self._mark_opened()
                device.on_new_frame.remove_listeners(self)
                device.on_new_frame.add_listener(self._receive_frame, self)
            else:
                raise MachineVisionError("Device not implemented")
            self._last_settings = settings
        except Exception as error:
            _log.error("%s", error)
            self.device_state = (
                DeviceState.EMPTY if self.device is None else DeviceState.CLOSED
            )

        return self.is_device_open

    def close(self) -> None:
        """Stop capture and close the device if it is open."""
        if self.is_device_running:
            self.stop_capture()

        if self.is_device_open and self.device is not None:
            self._call_in_right_thread(self.device.close, blocking=True)
            if self.device_type is DeviceType.BLOCKING:
                self._release_thread()
            self.device_state = DeviceState.CLOSED

    def reopen(self) -> None:
        """Close and open again with the settings last used."""
        self.close()
        self.open(self._last_settings)

    # ----- capture -------------------------------------------------------

    def _check_open(self) -> bool:
        if not self.is_device_open:
            _log.error("Method cannot be called whilst device is not open")
            return False
        return True

    def _requires(self, feature) -> bool:
        if not self.specification.supports(feature):
            _log.warning("Device requires %s to use this function.", to_string(feature))
            return False
        return True

    def start_capture(self) -> None:
        if not self._check_open() or not self._requires(CaptureSequenceType.CONTINUOUS):
            return
        device = self.device

        def start() -> None:
            if device.start_capture():
                self.device_state = DeviceState.RUNNING

        self._call_in_right_thread(start, blocking=True)

    def stop_capture(self) -> None:
        if not self._check_open() or not self._requires(CaptureSequenceType.CONTINUOUS):
            return
        if not self.is_device_running:
            return
        device = self.device

        def stop() -> None:
            device.stop_capture()
            self.device_state = DeviceState.WAITING

        self._call_in_right_thread(stop, blocking=True)

    def single_shot(self) -> None:
        """Trigger one capture on a one-shot device."""
        if not self._check_open() or not self._requires(CaptureSequenceType.ONE_SHOT):
            return
        device = self.device
        device_type = self.device_type
        if device_type is DeviceType.BLOCKING:
            captured: list[Frame | None] = []
            self.thread.perform_in_thread(lambda: captured.append(device.get_frame()), True)
            frame = captured[0] if captured else None
            if frame is not None:
                self._set_frame(frame)
                self._notify_new_frame(frame)
        elif device_type in (DeviceType.UPDATING, DeviceType.CALLBACK):
            device.single_shot()

    def is_single_shot(self) -> bool:
        return self.specification.capture_sequence_type is CaptureSequenceType.ONE_SHOT

    def get_fresh_frame(self, timeout: float = DEFAULT_FRESH_FRAME_TIMEOUT_S) -> Frame | None:
        """Get a frame captured after this call, waiting at most timeout seconds.

        Call update() afterwards to make it available through pixels.
        """
        if not self.is_device_open:
            raise MachineVisionError("Camera is not open")

        start = time.monotonic()

        def check_timeout() -> None:
            if time.monotonic() - start > timeout:
                raise MachineVisionError("Timeout on getFreshFrame")

        frame: Frame | None = None
        sequence = self.specification.capture_sequence_type
        device = self.device

        if sequence is CaptureSequenceType.ONE_SHOT:
            self.single_shot()
            self.update()
            while not self.is_frame_new:
                check_timeout()
                self.update()
                time.sleep(_POLL_SLEEP_S)
            frame = self.get_frame()
        elif sequence is CaptureSequenceType.CONTINUOUS:
            device_type = self.device_type
            if device_type is DeviceType.BLOCKING:
                captured: list[Frame | None] = []
                self.thread.perform_in_thread(lambda: captured.append(device.get_frame()), True)
                frame = captured[0] if captured else None
            elif device_type is DeviceType.UPDATING:
                device.update_is_frame_new()
                while True:
                    device.update_is_frame_new()
                    if device.is_frame_new():
                        frame = device.get_frame()
                        break
                    check_timeout()
                    time.sleep(_POLL_SLEEP_S)
            elif device_type is DeviceType.CALLBACK:
                self._new_frame_waiting = False
                while True:
                    if self._new_frame_waiting:
                        frame = self.get_frame()
                        break
                    check_timeout()
                    time.sleep(_POLL_SLEEP_S)
            else:
                raise MachineVisionError("getFreshFrame not implemented for this device type")
        else:
            raise MachineVisionError(
                "Your camera Device does not support capture (FreeRun or OneShot)"
            )

        if frame is not None:
            self._notify_new_frame(frame)
        return frame

    def update(self) -> None:
        """Collect any new frame and refresh the cached pixels."""
        if not self.is_device_open:
            return

        device_type = self.device_type
        if device_type in (DeviceType.BLOCKING, DeviceType.CALLBACK):
            self._current_frame_new = self._new_frame_waiting
            self._new_frame_waiting = False
        elif device_type is DeviceType.UPDATING:
            device = self.device
            if isinstance(device, UpdatingDevice):
                device.update_is_frame_new()
                self._current_frame_new = device.is_frame_new()
                if self._current_frame_new:
                    frame = device.get_frame()
                    if frame is not None:
                        self._set_frame(frame)
                        self._notify_new_frame(frame)
        else:
            raise MachineVisionError("update is not implemented for your camera type")

        if self._current_frame_new:
            frame = self.get_frame()
            if frame is not None:
                self._pixels.copy_from(frame.pixels)

    def get_frame(self) -> Frame | None:
        """The most recent frame."""
        with self._frame_lock:
            return self._frame

    # ----- parameters ----------------------------------------------------

    def device_parameters(self) -> list[AbstractParameter]:
        device = self.device
        return list(device.parameters) if device is not None else []

    def _matching_parameters(self, name: str):
        device = self.device
        if device is None:
            raise MachineVisionError("Grabber has no device")
        wanted = name.lower()
        return (
            parameter
            for parameter in device.parameters
            if wanted in parameter.parameter.name.lower()
        )

    def set_parameter(self, name: str, value: Any) -> bool:
        """Set the first parameter whose name contains name and whose type fits value."""
        for parameter in self._matching_parameters(name):
            if isinstance(value, type(parameter.parameter.value)):
                parameter.parameter.value = value
                self.sync_to_device(parameter)
                return True
        return False

    def set_parameter_by_ratio(self, name: str, ratio: float) -> bool:
        """Set a float parameter to a point in its range; ratio is clamped to 0..1."""
        for parameter in self._matching_parameters(name):
            value = parameter.parameter
            if (
                isinstance(value.value, float)
                and value.minimum is not None
                and value.maximum is not None
            ):
                clamped = min(max(float(ratio), 0.0), 1.0)
                value.value = value.minimum + clamped * (value.maximum - value.minimum)
                self.sync_to_device(parameter)
                return True
        return False

    def set_exposure(self, ratio: float) -> bool:
        return self.set_parameter_by_ratio("Exposure", ratio)

    def set_gain(self, ratio: float) -> bool:
        return self.set_parameter_by_ratio("Gain", ratio)

    def set_focus(self, ratio: float) -> bool:
        return self.set_parameter_by_ratio("Focus", ratio)

    def set_sharpness(self, ratio: float) -> bool:
        return self.set_parameter_by_ratio("Sharpness", ratio)

    def set_binning(self, binning) -> bool:
        return self.set_parameter("Binning", binning)

    def set_roi(self, roi) -> bool:
        return self.set_parameter("ROI", roi)

    def sync_to_device(self, parameter: AbstractParameter) -> None:
        def sync() -> None:
            parameter.sync_to_device()
            parameter.sync_from_device()

        self._call_in_right_thread(sync, blocking=True)

    def sync_from_device(self, parameter: AbstractParameter) -> None:
        self._call_in_right_thread(parameter.sync_from_device, blocking=True)

    # ----- internals -----------------------------------------------------

    def _call_in_right_thread(self, function: Callable[[], Any], blocking: bool) -> None:
        device_type = self.device_type
        if device_type is DeviceType.BLOCKING and self.thread is not None:
            self.thread.perform_in_thread(function, blocking)
        elif device_type in (DeviceType.UPDATING, DeviceType.CALLBACK):
            try:
                function()
            except Exception:
                _log.exception("device call failed")

    def _notify_new_frame(self, frame: Frame) -> None:
        if self.device_state == DeviceState.DELETING:
            return

        interval = (frame.timestamp - self._last_timestamp) / 1e9
        new_fps = math.inf if interval == 0 else 1.0 / interval

        difference = abs(_safe_log(self._fps) - _safe_log(new_fps))
        if not math.isnan(self._fps) and difference < 10:
            self._fps = 0.9 * self._fps + 0.1 * new_fps
        else:
            self._fps = new_fps

        self._new_frame_waiting = True
        self._last_timestamp = frame.timestamp
        self._last_frame_index = frame.frame_index

        self.on_new_frame_received(self.get_frame())

    def _set_frame(self, frame: Frame | None) -> None:
        with self._frame_lock:
            self._frame = frame

    def _clear_cached_frame(self) -> None:
        self._set_frame(self._pool.clean_frame())

    def __enter__(self) -> Grabber:
        return self

    def __exit__(self, *args) -> None:
        self.clear_device()


def ActionQueueThreadFactory():
    """Make the worker thread used by blocking devices."""
    from .action_queue import ActionQueueThread

    return ActionQueueThread()


def make_grabber(device_class: type[Device]) -> Grabber:
    """A grabber holding a new device of the given class."""
    return Grabber(device_class())