"""A register of the device types that can be made by name."""

from __future__ import annotations

from typing import Iterable, Iterator

from .device import Device
from .folder_watcher import FolderWatcher
from .null_device import NullDevice


class FactoryRegister:
    """Maps device type names to device classes."""

    def __init__(self, device_classes: Iterable[type[Device]] = ()) -> None:
        self._classes: dict[str, type[Device]] = {}
        for device_class in device_classes:
            self.add(device_class)

    def add(self, device_class: type[Device]) -> None:
        """Register a device class under its type name, replacing any earlier one."""
        if not (isinstance(device_class, type) and issubclass(device_class, Device)):
            raise TypeError(f"{device_class!r} is not a device class")
        self._classes[device_class.type_name] = device_class

    def make(self, name: str) -> Device:
        """Make a new, unopened device of the named type."""
        try:
            device_class = self._classes[name]
        except KeyError:
            raise KeyError(f"no device type named {name!r}") from None
        return device_class()

    def __iter__(self) -> Iterator[tuple[str, type[Device]]]:
        """Pairs of type name and device class, ordered by name."""
        return iter(sorted(self._classes.items()))

    def __contains__(self, name: object) -> bool:
        return name in self._classes

    def __len__(self) -> int:
        return len(self._classes)


_DEFAULT_REGISTER: FactoryRegister | None = None


def default_register() -> FactoryRegister:
    """The process-wide register holding the built-in device types."""
    global _DEFAULT_REGISTER
    if _DEFAULT_REGISTER is None:
        _DEFAULT_REGISTER = FactoryRegister([NullDevice, FolderWatcher])
    return _DEFAULT_REGISTER