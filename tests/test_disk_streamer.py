import numpy as np
import pytest

from mvgrabber.constants import MachineVisionError
from mvgrabber.disk_streamer import DiskStreamer, StreamerState
from mvgrabber.events import Event
from mvgrabber.frame import Frame, Pixels


class _StubGrabber:
    def __init__(self):
        self.on_new_frame_received = Event()
        self.is_device_open = True


def _frame(timestamp, values):
    frame = Frame(Pixels.from_array(np.array(values, dtype=np.uint8)))
    frame.timestamp = timestamp
    return frame


def test_initial_state():
    streamer = DiskStreamer()
    assert streamer.state is StreamerState.NO_GRABBER
    assert not streamer.has_grabber
    assert not streamer.is_streaming


def test_start_and_stop_without_grabber_raise():
    streamer = DiskStreamer()
    with pytest.raises(MachineVisionError):
        streamer.start()
    with pytest.raises(MachineVisionError):
        streamer.stop()


def test_set_output_folder_creates_it(tmp_path):
    target = tmp_path / "a" / "b"
    streamer = DiskStreamer()
    streamer.set_output_folder(target)
    assert target.is_dir()
    assert streamer.output_folder == target


def test_empty_output_folder_rejected():
    with pytest.raises(ValueError):
        DiskStreamer().set_output_folder("")


def test_streaming_writes_raw_pixels(tmp_path):
    grabber = _StubGrabber()
    streamer = DiskStreamer()
    streamer.set_output_folder(tmp_path)
    streamer.set_grabber(grabber)
    assert streamer.state is StreamerState.WAITING
    streamer.start()
    assert streamer.is_streaming
    values = [[1, 2, 3], [4, 5, 6]]
    grabber.on_new_frame_received(_frame(1234, values))
    written = tmp_path / "1234.raw"
    assert written.read_bytes() == np.array(values, dtype=np.uint8).tobytes()


def test_waiting_writes_nothing(tmp_path):
    grabber = _StubGrabber()
    streamer = DiskStreamer()
    streamer.set_output_folder(tmp_path)
    streamer.set_grabber(grabber)
    streamer.start()
    streamer.stop()
    grabber.on_new_frame_received(_frame(7, [[0]]))
    assert streamer.state is StreamerState.WAITING
    assert list(tmp_path.iterdir()) == []


def test_cannot_change_grabber_while_streaming():
    streamer = DiskStreamer()
    streamer.set_grabber(_StubGrabber())
    streamer.start()
    with pytest.raises(MachineVisionError):
        streamer.set_grabber(_StubGrabber())


def test_clear_grabber_detaches(tmp_path):
    grabber = _StubGrabber()
    streamer = DiskStreamer()
    streamer.set_output_folder(tmp_path)
    streamer.set_grabber(grabber)
    streamer.start()
    streamer.clear_grabber()
    grabber.on_new_frame_received(_frame(9, [[1]]))
    assert streamer.grabber is None
    assert list(tmp_path.iterdir()) == []


def test_set_grabber_none_returns_to_no_grabber():
    streamer = DiskStreamer()
    streamer.set_grabber(_StubGrabber())
    streamer.set_grabber(None)
    assert streamer.state is StreamerState.NO_GRABBER
    assert not streamer.has_grabber