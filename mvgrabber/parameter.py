"""Device parameters that can be synchronised to and from hardware."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass
class ParameterValue(Generic[T]):
    """A named value with an optional range."""

    name: str
    value: T
    minimum: T | None = None
    maximum: T | None = None


class AbstractParameter(ABC):
    """A device parameter with units that knows how to sync with its device."""

    def __init__(self, parameter: ParameterValue, units: str = "") -> None:
        self.parameter = parameter
        self.units = units

    @abstractmethod
    def sync_to_device(self) -> None:
        """Push the local value to the device."""

    @abstractmethod
    def sync_from_device(self) -> None:
        """Pull the device's value into the local parameter."""


class Parameter(AbstractParameter, Generic[T]):
    """A parameter whose value is read and written through device callbacks."""

    def __init__(
        self,
        parameter: ParameterValue[T],
        units: str = "",
        get_device_value: Callable[[], T] | None = None,
        set_device_value: Callable[[T], Any] | None = None,
    ) -> None:
        super().__init__(parameter, units)
        self.get_device_value = get_device_value
        self.set_device_value = set_device_value

    def sync_from_device(self) -> None:
        if self.get_device_value is not None:
            self.parameter.value = self.get_device_value()

    def sync_to_device(self) -> None:
        if self.set_device_value is not None:
            try:
                self.set_device_value(self.parameter.value)
            except Exception:
                # The device refused the value: fall back to what it holds.
                self.sync_from_device()


class FloatParameter(Parameter[float]):
    """A float parameter whose range can also be read from the device."""

    def __init__(
        self,
        parameter: ParameterValue[float],
        units: str = "",
        get_device_value: Callable[[], float] | None = None,
        set_device_value: Callable[[float], Any] | None = None,
        get_device_value_range: Callable[[], tuple[float, float]] | None = None,
    ) -> None:
        super().__init__(parameter, units, get_device_value, set_device_value)
        self.get_device_value_range = get_device_value_range

    def sync_from_device(self) -> None:
        if self.get_device_value_range is not None:
            minimum, maximum = self.get_device_value_range()
            self.parameter.minimum = minimum
            self.parameter.maximum = maximum
        super().sync_from_device()