"""A device that delivers each new image file that appears in a folder."""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from .constants import CaptureSequenceType, MachineVisionError
from .device import InitialisationSettings, UpdatingDevice
from .frame import Frame, FramePool, PixelFormat, Pixels, default_pool
from .specification import Specification

_LOAD_TRIES = 5
_RETRY_SLEEP_S = 0.002

_DIRECT_MODES = {
    "L": PixelFormat.GRAY,
    "I;16": PixelFormat.GRAY16,
    "RGB": PixelFormat.RGB,
    "RGBA": PixelFormat.RGBA,
}


@dataclass
class FolderWatcherSettings(InitialisationSettings):
    folder: str | os.PathLike = ""
    period_s: float = 1.0
    max_one_file_per_frame: bool = True


def _list_files(folder: str | os.PathLike) -> set[str]:
    """Absolute paths of the visible files in a folder; empty if there is no folder."""
    if not str(folder):
        return set()
    path = Path(folder)
    if not path.is_dir():
        return set()
    return {
        str(entry.absolute())
        for entry in path.iterdir()
        if entry.is_file() and not entry.name.startswith(".")
    }


def _load_pixels(path: str) -> Pixels | None:
    """Load an image file; None when the file is not an image.

    Other read failures (e.g. a file still being written) raise OSError.
    """
    try:
        image = Image.open(path)
    except UnidentifiedImageError:
        return None
    with image:
        image.load()
        pixel_format = _DIRECT_MODES.get(image.mode)
        if pixel_format is not None:
            return Pixels.from_array(np.array(image), pixel_format)
        has_alpha = "A" in image.getbands()
        converted = image.convert("RGBA" if has_alpha else "RGB")
        return Pixels.from_array(
            np.array(converted), PixelFormat.RGBA if has_alpha else PixelFormat.RGB
        )


class FolderWatcher(UpdatingDevice):
    """Watches a folder and turns each image file added to it into a frame.

    Frame timestamps are file modification times, in nanoseconds, relative to
    the first file delivered.
    """

    type_name = "FolderWatcher"

    def __init__(self, pool: FramePool | None = None) -> None:
        super().__init__()
        self.settings: FolderWatcherSettings | None = None
        self._pool = default_pool() if pool is None else pool
        self._frame_index = 0
        self._first_timestamp: int | None = None
        self._last_dir_check = 0.0
        self._previous_files: set[str] = set()
        self._frame: Frame | None = None
        self._frame_new = False

    def default_settings(self) -> FolderWatcherSettings:
        return FolderWatcherSettings()

    def open(self, settings: InitialisationSettings | None = None) -> Specification:
        if not isinstance(settings, FolderWatcherSettings):
            raise MachineVisionError("Invalid initialisation settings")

        files = _list_files(settings.folder)
        size: tuple[int, int] | None = None
        for path in sorted(files):
            try:
                pixels = _load_pixels(path)
            except OSError:
                continue
            if pixels is not None:
                size = (pixels.width, pixels.height)
                break

        self._previous_files = files
        self._last_dir_check = time.monotonic()

        if size is None:
            raise MachineVisionError("Ensure the folder contains a sample image at startup")

        self.settings = settings
        width, height = size
        return Specification(
            CaptureSequenceType.ONE_SHOT,
            width,
            height,
            "mvgrabber",
            "FolderWatcher",
            "Pillow",
        )

    def close(self) -> None:
        """Stop watching; the last delivered frame stays available."""
        self.settings = None
        self._frame_new = False

    def _try_load_frame(self, path: str) -> bool:
        pixels = _load_pixels(path)
        if pixels is None:
            return False
        frame = self._pool.available_frame_filled_with(pixels)
        frame.frame_index = self._frame_index
        self._frame_index += 1

        modified = os.stat(path).st_mtime_ns
        if self._first_timestamp is None:
            self._first_timestamp = modified
        frame.timestamp = modified - self._first_timestamp

        self._frame = frame
        self._frame_new = True
        return True

    def update_is_frame_new(self) -> None:
        if self.settings is None:
            raise MachineVisionError("FolderWatcher is not open")
        self._frame_new = False

        now = time.monotonic()
        if now - self._last_dir_check < self.settings.period_s:
            return
        self._last_dir_check = now

        current = _list_files(self.settings.folder)
        updated = set(self._previous_files)
        for path in sorted(current - self._previous_files):
            loaded = False
            # The file may still be being written, so give it a few tries.
            for _ in range(_LOAD_TRIES):
                try:
                    loaded = self._try_load_frame(path)
                except OSError:
                    time.sleep(_RETRY_SLEEP_S)
                    continue
                updated.add(path)
                break
            if loaded and self.settings.max_one_file_per_frame:
                break
        self._previous_files = updated

    def is_frame_new(self) -> bool:
        return self._frame_new

    def get_frame(self) -> Frame | None:
        return self._frame