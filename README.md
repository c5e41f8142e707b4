# mvgrabber

`mvgrabber` gives you one way to capture frames from many kinds of camera device.

- A **device** wraps a particular camera API. It can be blocking, updating or callback-driven.
- A **grabber** runs the device for you. It keeps the latest frame, computes a damped frame rate from frame timestamps and tells listeners when a frame arrives.
- A **recorder** keeps the frames that arrive in memory. A **disk streamer** writes them to files.

## Installation

```
pip install mvgrabber
```

To run the test suite, install the `test` extra:

```
pip install "mvgrabber[test]"
```

## Quick start

The built-in `NullDevice` produces black monochrome frames at a chosen frame rate, so you can use it to try things out:

```python
from mvgrabber.grabber import make_grabber
from mvgrabber.null_device import NullDevice

grabber = make_grabber(NullDevice)

settings = grabber.default_initialisation_settings()
settings.width = 640
settings.height = 480
settings.frame_rate = 60.0

if grabber.open(settings):
    grabber.start_capture()
    frame = grabber.get_fresh_frame(timeout=2.0)
    print(frame.frame_index, frame.timestamp)
    grabber.close()
```

A `Grabber` is also a context manager. On exit it closes its device and lets go of it.

## Devices

Every device derives from one of three interfaces in `mvgrabber.device`:

- `BlockingDevice` implements `get_frame()`, which waits until a frame arrives. The grabber calls it on its own `ActionQueueThread` (from `mvgrabber.action_queue`).
- `UpdatingDevice` implements `update_is_frame_new()`, `is_frame_new()` and `get_frame()`. The grabber polls it from `update()`.
- `CallbackDevice` fires its `on_new_frame` event (an `mvgrabber.events.Event`) each time the driver delivers a frame.

Each device also provides:

- `default_settings()`, which returns a dataclass derived from `InitialisationSettings`;
- `open(settings)`, which returns a `Specification` (from `mvgrabber.specification`);
- `close()`.

The function `device_type_of(device)` returns the `DeviceType` a device implements. The function `typed_settings(settings_class, settings)` converts settings of another type by copying the fields the two types share.

The package has two built-in devices:

- `mvgrabber.null_device.NullDevice` is a blocking, continuous device. Its settings, `NullDeviceSettings`, have these defaults: width 1024, height 768, frame rate 30.
- `mvgrabber.folder_watcher.FolderWatcher` is an updating, one-shot device. It watches `FolderWatcherSettings.folder` and checks it at most once every `period_s` seconds. Each new image file it finds becomes a frame, read with Pillow. With `max_one_file_per_frame`, at most one file is delivered per check. The folder must already hold at least one image when the device is opened. Frame timestamps are file modification times relative to the first file delivered.

## The device register

`mvgrabber.registry.default_register()` returns the shared `FactoryRegister`. It already holds `NullDevice` and `FolderWatcher`. You can use it like this:

- iterate over it to get `(type_name, device_class)` pairs, ordered by name;
- test whether it holds a name with `in`;
- create an unopened device with `make(name)`;
- register your own device class with `add(device_class)`.

## Grabbers

`mvgrabber.grabber.Grabber` can:

- `open()`, `close()` and `reopen()` its device, where `reopen()` uses the settings last used;
- `start_capture()` and `stop_capture()` on continuous devices;
- take a `single_shot()` on one-shot devices;
- return a frame captured after the call with `get_fresh_frame(timeout)`, which raises `MachineVisionError` on timeout;
- poll the device and refresh its cached `pixels` with `update()`.

The grabber keeps the current frame, which `get_frame()` returns. It exposes `is_frame_new`, `fps`, `last_timestamp`, `last_frame_index`, `width` and `height`, and the state flags `is_device_exists`, `is_device_open` and `is_device_running`. Listeners on `on_new_frame_received` are told of every new frame.

You can set device parameters (`mvgrabber.parameter`) in two ways:

- by name, with `set_parameter(name, value)`;
- by a ratio of their range, with `set_parameter_by_ratio(name, ratio)`. The ratio is clamped to 0–1.

The name matches any parameter whose name contains it, ignoring case. Both methods return whether a parameter was set. There are shortcuts for common parameters:

- `set_exposure`
- `set_gain`
- `set_focus`
- `set_sharpness`
- `set_binning`
- `set_roi`

## Recording and streaming

- `mvgrabber.recorder.Recorder` is a mutable mapping from timestamp (nanoseconds) to frame, kept in sorted order. It fills while it records from a grabber, between `start()` and `stop()`. It reports `first_timestamp()`, `last_timestamp()` and `duration()`. To navigate, use `first_at_or_after(timestamp)` and `first_after(timestamp)`.
- `mvgrabber.disk_streamer.DiskStreamer` writes the raw pixel bytes of every frame it receives while streaming. Each frame goes to `<timestamp>.raw` in the output folder. The folder is created by `set_output_folder(path)`; until you call it, the streamer writes to the current directory.

## Frames and the frame pool

A `Frame` carries its `Pixels` (a NumPy buffer with a `PixelFormat`), a timestamp in nanoseconds and a frame index. The `FramePool` returned by `mvgrabber.frame.default_pool()` reuses pixel storage that no live frame holds any more. This keeps high-rate capture from allocating new memory for every frame.

`mvgrabber.constants` holds:

- the shared enumerations (`PixelMode`, `TriggerMode`, `TriggerSignalType`, `GPOMode`, `CaptureSequenceType` and `DeviceState`);
- `MachineVisionError`;
- `to_string(value)`, which gives human readable names;
- `is_color(pixel_mode)`.

## What the package does not do

- It has no devices for real cameras, webcams or video files. Use `NullDevice`, `FolderWatcher`, or your own subclass of one of the device interfaces.
- It does not draw frames or upload them to textures. You get pixels as NumPy arrays and display them yourself.
- `Recorder` keeps frames only in memory and has no way to save or load a recording. `DiskStreamer` writes raw bytes only, with no header describing size or format.
- There is no command-line tool.