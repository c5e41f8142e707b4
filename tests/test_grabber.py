import time

import numpy as np
import pytest

from mvgrabber.constants import CaptureSequenceType, DeviceState, MachineVisionError
from mvgrabber.device import (
    BlockingDevice,
    CallbackDevice,
    Device,
    InitialisationSettings,
    UpdatingDevice,
)
from mvgrabber.frame import Frame, FramePool, Pixels
from mvgrabber.grabber import Grabber, make_grabber
from mvgrabber.null_device import NullDevice, NullDeviceSettings
from mvgrabber.parameter import FloatParameter, Parameter, ParameterValue
from mvgrabber.specification import Specification


def make_frame(value=0, timestamp=0, index=0):
    frame = Frame(Pixels.from_array(np.full((2, 4), value, dtype=np.uint8)))
    frame.timestamp = timestamp
    frame.frame_index = index
    return frame


class FakeUpdating(UpdatingDevice):
    type_name = "FakeUpdating"

    def __init__(self, fail=False):
        super().__init__()
        self.pending = []
        self.current = None
        self.new = False
        self.opened = []
        self.closed = 0
        self.fail = fail

    def default_settings(self):
        return InitialisationSettings()

    def open(self, settings=None):
        if self.fail:
            raise MachineVisionError("cannot open")
        self.opened.append(settings)
        return Specification(CaptureSequenceType.CONTINUOUS, 4, 2, "Test", "Fake")

    def close(self):
        self.closed += 1

    def start_capture(self):
        return True

    def update_is_frame_new(self):
        if self.pending:
            self.current = self.pending.pop(0)
            self.new = True
        else:
            self.new = False

    def is_frame_new(self):
        return self.new

    def get_frame(self):
        return self.current


class FakeCallback(CallbackDevice):
    def default_settings(self):
        return InitialisationSettings()

    def open(self, settings=None):
        return Specification(CaptureSequenceType.CONTINUOUS, 4, 2, "Test", "Callback")

    def close(self):
        pass

    def start_capture(self):
        return True


class FakeOneShot(BlockingDevice):
    def __init__(self):
        super().__init__()
        self.shots = 0

    def default_settings(self):
        return InitialisationSettings()

    def open(self, settings=None):
        return Specification(CaptureSequenceType.ONE_SHOT, 4, 2, "Test", "OneShot")

    def close(self):
        pass

    def get_frame(self):
        self.shots += 1
        return make_frame(timestamp=self.shots * 1000, index=self.shots)


class FailingBlocking(BlockingDevice):
    def default_settings(self):
        return InitialisationSettings()

    def open(self, settings=None):
        raise MachineVisionError("no camera")

    def close(self):
        pass

    def get_frame(self):
        return None


class PlainDevice(Device):
    def default_settings(self):
        return InitialisationSettings()

    def open(self, settings=None):
        return Specification(CaptureSequenceType.CONTINUOUS)

    def close(self):
        pass


def null_settings():
    return NullDeviceSettings(width=8, height=4, frame_rate=1000.0)


def test_grabber_without_device():
    grabber = Grabber()
    assert grabber.device_type_name == "uninitialised"
    assert grabber.open() is False
    assert grabber.device_state == DeviceState.EMPTY
    assert grabber.default_initialisation_settings() == InitialisationSettings()
    assert grabber.device_parameters() == []
    assert grabber.width == 0


def test_make_grabber_holds_device():
    grabber = make_grabber(NullDevice)
    try:
        assert isinstance(grabber.device, NullDevice)
        assert grabber.device_state == DeviceState.CLOSED
        assert isinstance(grabber.default_initialisation_settings(), NullDeviceSettings)
    finally:
        grabber.clear_device()


def test_null_device_capture_runs():
    grabber = Grabber(NullDevice(pool=FramePool()), pool=FramePool())
    received = []
    grabber.on_new_frame_received.add_listener(received.append)
    try:
        assert grabber.open(null_settings()) is True
        assert grabber.device_state == DeviceState.WAITING
        assert grabber.capture_width == 8
        assert grabber.manufacturer == "NullDevice"
        grabber.start_capture()
        assert grabber.is_device_running
        deadline = time.monotonic() + 5
        while time.monotonic() < deadline:
            grabber.update()
            if grabber.is_frame_new:
                break
            time.sleep(0.005)
        assert grabber.is_frame_new
        assert grabber.pixels.width == 8
        assert grabber.pixels.height == 4
        assert not grabber.pixels.data.any()
        assert received
        grabber.close()
        assert grabber.device_state == DeviceState.CLOSED
    finally:
        grabber.clear_device()


def test_fresh_frame_from_blocking_device():
    grabber = Grabber(NullDevice(pool=FramePool()), pool=FramePool())
    try:
        assert grabber.open(null_settings())
        first = grabber.get_fresh_frame(timeout=5)
        second = grabber.get_fresh_frame(timeout=5)
        assert first.pixels.width == 8
        assert second.frame_index > first.frame_index
        assert grabber.last_frame_index == second.frame_index
    finally:
        grabber.clear_device()


def test_fresh_frame_requires_open_device():
    grabber = Grabber(FakeUpdating())
    with pytest.raises(MachineVisionError):
        grabber.get_fresh_frame(timeout=0.01)


def test_updating_device_frames_and_fps():
    device = FakeUpdating()
    grabber = Grabber(device, pool=FramePool())
    received = []
    grabber.on_new_frame_received.add_listener(received.append)
    assert grabber.open()
    first = make_frame(value=5, timestamp=1_000_000_000, index=1)
    device.pending.append(first)
    grabber.update()
    assert grabber.is_frame_new
    assert grabber.get_frame() is first
    assert received == [first]
    assert grabber.last_timestamp == first.timestamp
    assert int(grabber.pixels.data[0, 0, 0]) == 5
    first_fps = grabber.fps
    assert first_fps > 0

    device.pending.append(make_frame(value=6, timestamp=1_100_000_000, index=2))
    grabber.update()
    assert first_fps < grabber.fps < 10.0
    grabber.update()
    assert grabber.is_frame_new is False


def test_cached_pixels_are_a_copy():
    device = FakeUpdating()
    grabber = Grabber(device, pool=FramePool())
    assert grabber.open()
    frame = make_frame(value=9, timestamp=1_000, index=1)
    device.pending.append(frame)
    grabber.update()
    frame.pixels.fill(1)
    assert int(grabber.pixels.data[0, 0, 0]) == 9


def test_fresh_frame_from_updating_device_skips_existing():
    device = FakeUpdating()
    grabber = Grabber(device, pool=FramePool())
    assert grabber.open()
    old = make_frame(timestamp=10, index=1)
    fresh = make_frame(timestamp=20, index=2)
    device.pending.extend([old, fresh])
    assert grabber.get_fresh_frame(timeout=1) is fresh


def test_fresh_frame_times_out():
    grabber = Grabber(FakeUpdating(), pool=FramePool())
    assert grabber.open()
    with pytest.raises(MachineVisionError):
        grabber.get_fresh_frame(timeout=0.02)


def test_callback_device_frames():
    device = FakeCallback()
    grabber = Grabber(device, pool=FramePool())
    assert grabber.open()
    frame = make_frame(timestamp=500, index=3)
    device.on_new_frame(frame)
    assert grabber.get_frame() is frame
    grabber.update()
    assert grabber.is_frame_new
    assert grabber.last_frame_index == 3
    grabber.update()
    assert grabber.is_frame_new is False


def test_callback_listener_not_duplicated_on_reopen():
    device = FakeCallback()
    grabber = Grabber(device, pool=FramePool())
    received = []
    grabber.on_new_frame_received.add_listener(received.append)
    assert grabber.open()
    grabber.reopen()
    device.on_new_frame(make_frame(timestamp=100, index=1))
    assert len(received) == 1


def test_one_shot_blocking_device():
    device = FakeOneShot()
    grabber = Grabber(device, pool=FramePool())
    try:
        assert grabber.open()
        assert grabber.is_single_shot()
        grabber.start_capture()
        assert grabber.device_state == DeviceState.WAITING
        frame = grabber.get_fresh_frame(timeout=5)
        assert frame is not None
        assert device.shots == 1
        assert frame.frame_index == device.shots
    finally:
        grabber.clear_device()


def test_failed_blocking_open_clears_device():
    grabber = Grabber(FailingBlocking())
    assert grabber.open() is False
    assert grabber.device is None
    assert grabber.is_device_open is False


def test_failed_updating_open_keeps_device():
    device = FakeUpdating(fail=True)
    grabber = Grabber(device)
    assert grabber.open() is False
    assert grabber.device is device
    assert grabber.device_state == DeviceState.CLOSED


def test_not_implemented_device_does_not_open():
    grabber = Grabber(PlainDevice())
    assert grabber.open() is False
    assert grabber.device_state == DeviceState.CLOSED


def test_start_capture_needs_open_device():
    grabber = Grabber(FakeUpdating())
    grabber.start_capture()
    assert grabber.device_state == DeviceState.CLOSED


def test_reopen_uses_last_settings():
    device = FakeUpdating()
    grabber = Grabber(device)
    settings = InitialisationSettings(device_id=2)
    assert grabber.open(settings)
    grabber.reopen()
    assert device.opened == [settings, settings]
    assert device.closed == 1
    assert grabber.is_device_open


def _exposure_device(received):
    device = FakeUpdating()
    device.parameters.append(
        FloatParameter(
            ParameterValue("Exposure", 0.0, 0.0, 100.0),
            "us",
            set_device_value=received.append,
        )
    )
    return device


def test_set_exposure_maps_ratio_to_range():
    received = []
    device = _exposure_device(received)
    grabber = Grabber(device)
    assert grabber.open()
    assert grabber.set_exposure(1.0) is True
    assert received[-1] == pytest.approx(100.0)
    grabber.set_exposure(3.0)
    assert received[-1] == pytest.approx(100.0)
    grabber.set_exposure(-1.0)
    assert received[-1] == pytest.approx(0.0)
    assert grabber.set_gain(0.5) is False


def test_set_roi_matches_type_and_name():
    received = []
    device = FakeUpdating()
    roi = Parameter(ParameterValue("ROI", (0, 0, 4, 2)), set_device_value=received.append)
    device.parameters.append(roi)
    grabber = Grabber(device)
    assert grabber.open()
    assert grabber.set_roi((1, 1, 2, 1)) is True
    assert roi.parameter.value == (1, 1, 2, 1)
    assert received == [(1, 1, 2, 1)]
    assert grabber.set_roi(5) is False
    assert roi.parameter.value == (1, 1, 2, 1)
    assert grabber.device_parameters() == [roi]


def test_sync_from_device_reads_value():
    device = FakeUpdating()
    parameter = Parameter(ParameterValue("Gain", 0.0), get_device_value=lambda: 7.0)
    device.parameters.append(parameter)
    grabber = Grabber(device)
    assert grabber.open()
    grabber.sync_from_device(parameter)
    assert parameter.parameter.value == 7.0


def test_set_parameter_without_device_raises():
    grabber = Grabber()
    with pytest.raises(MachineVisionError):
        grabber.set_parameter("ROI", (0, 0, 1, 1))


def test_context_manager_releases_device():
    with Grabber(NullDevice(pool=FramePool()), pool=FramePool()) as grabber:
        assert grabber.open(null_settings())
    assert grabber.device is None
    assert grabber.device_state == DeviceState.EMPTY