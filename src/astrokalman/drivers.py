"""Parameter drivers: named scalar quantities that the filter may estimate.

A :class:`ParameterDriver` carries a physical value together with the
reference value and scale used to express it in the normalized units of
the filter state::

    normalized = (value - reference_value) / scale

Setting a value clips it into ``[min_value, max_value]``.  Drivers whose
``selected`` flag is set take part in the estimation; the others stay at
their current value.

Several components may refer to the same physical parameter (one drag
coefficient shared by several force model evaluations, one range bias
shared by many range measurements).  :class:`ParameterDriversList`
merges drivers that share a name into a single :class:`DelegatingDriver`
which reads and writes all of them at once, so the parameter occupies a
single column of the filter state.

Drivers are plain mutable Python objects, not pytrees: their values are
read into arrays before any JAX computation.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator

from astrokalman.epoch import Epoch


class ParameterDriver:
    """A named, bounded, scalar physical parameter.

    Args:
        name: Parameter name. Drivers with equal names are merged by
            :class:`ParameterDriversList`.
        reference_value: Value around which the parameter is normalized;
            also the initial value.
        scale: Normalization scale, must be non-zero and finite.
        min_value: Lower bound applied when setting a value.
        max_value: Upper bound applied when setting a value.
        selected: Whether the parameter is estimated.
        reference_date: Date the parameter refers to, if any.

    Examples:
        ```python
        from astrokalman.drivers import ParameterDriver
        cd = ParameterDriver("drag coefficient", 2.2, 0.125, 0.0, 10.0)
        cd.normalized_value = 2.0
        cd.value  # 2.45
        ```
    """

    def __init__(
        self,
        name: str,
        reference_value: float,
        scale: float,
        min_value: float = -math.inf,
        max_value: float = math.inf,
        selected: bool = False,
        reference_date: Epoch | None = None,
    ) -> None:
        if not name:
            raise ValueError("Parameter driver name must not be empty")
        if scale == 0.0 or not math.isfinite(scale):
            raise ValueError(f"Parameter '{name}' scale must be finite and non-zero, got {scale}")
        if min_value > max_value:
            raise ValueError(
                f"Parameter '{name}' bounds are inverted: min {min_value} > max {max_value}"
            )
        self._name = name
        self._reference_value = float(reference_value)
        self._scale = float(scale)
        self._min_value = float(min_value)
        self._max_value = float(max_value)
        self._value = self._clip(float(reference_value))
        self.selected = selected
        self.reference_date = reference_date

    def _clip(self, value: float) -> float:
        return min(max(value, self._min_value), self._max_value)

    @property
    def name(self) -> str:
        return self._name

    @property
    def reference_value(self) -> float:
        return self._reference_value

    @reference_value.setter
    def reference_value(self, value: float) -> None:
        self._reference_value = float(value)

    @property
    def scale(self) -> float:
        return self._scale

    @property
    def min_value(self) -> float:
        return self._min_value

    @property
    def max_value(self) -> float:
        return self._max_value

    @property
    def value(self) -> float:
        """Current physical value."""
        return self._value

    @value.setter
    def value(self, value: float) -> None:
        self._value = self._clip(float(value))

    @property
    def normalized_value(self) -> float:
        """Current value in normalized units."""
        return (self.value - self.reference_value) / self.scale

    @normalized_value.setter
    def normalized_value(self, normalized: float) -> None:
        self.value = self.reference_value + self.scale * float(normalized)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, value={self.value}, "
            f"scale={self.scale}, selected={self.selected})"
        )


class DelegatingDriver(ParameterDriver):
    """A driver forwarding every read and write to several raw drivers.

    All raw drivers share the first driver's value, selection flag and
    reference date.  The normalization (reference value, scale, bounds)
    is the first driver's.
    """

    def __init__(self, drivers: Iterable[ParameterDriver]) -> None:
        raw = []
        for driver in drivers:
            if isinstance(driver, DelegatingDriver):
                raw.extend(driver.raw_drivers)
            else:
                raw.append(driver)
        if not raw:
            raise ValueError("DelegatingDriver requires at least one driver")
        first = raw[0]
        for driver in raw[1:]:
            if driver.name != first.name:
                raise ValueError(
                    f"Cannot delegate '{first.name}' to differently named '{driver.name}'"
                )
        self._raw = raw
        super().__init__(
            first.name,
            first.reference_value,
            first.scale,
            first.min_value,
            first.max_value,
            first.selected,
            first.reference_date,
        )
        self.value = first.value

    @property
    def raw_drivers(self) -> list[ParameterDriver]:
        return list(self._raw)

    @property
    def value(self) -> float:
        return self._raw[0].value

    @value.setter
    def value(self, value: float) -> None:
        for driver in self._raw:
            driver.value = value

    @property
    def reference_value(self) -> float:
        return self._raw[0].reference_value

    @reference_value.setter
    def reference_value(self, value: float) -> None:
        for driver in self._raw:
            driver.reference_value = value

    @property
    def selected(self) -> bool:
        return self._raw[0].selected

    @selected.setter
    def selected(self, selected: bool) -> None:
        for driver in self._raw:
            driver.selected = selected

    @property
    def reference_date(self) -> Epoch | None:
        return self._raw[0].reference_date

    @reference_date.setter
    def reference_date(self, date: Epoch | None) -> None:
        for driver in self._raw:
            driver.reference_date = date


class ParameterDriversList:
    """Ordered collection of drivers with merge-by-name semantics.

    Adding a driver whose name is already present replaces the existing
    entry by a :class:`DelegatingDriver` over both, keeping the position
    of the first occurrence.
    """

    def __init__(self, drivers: Iterable[ParameterDriver] = ()) -> None:
        self._drivers: list[ParameterDriver] = []
        for driver in drivers:
            self.add(driver)

    def add(self, driver: ParameterDriver) -> None:
        """Add a driver, merging it with an existing one of the same name."""
        for k, existing in enumerate(self._drivers):
            if existing.name == driver.name:
                self._drivers[k] = DelegatingDriver([existing, driver])
                return
        self._drivers.append(driver)

    def find_by_name(self, name: str) -> ParameterDriver | None:
        for driver in self._drivers:
            if driver.name == name:
                return driver
        return None

    def sort(self) -> None:
        """Sort the drivers lexicographically by name."""
        self._drivers.sort(key=lambda d: d.name)

    def selected(self) -> list[ParameterDriver]:
        """Selected drivers, in list order."""
        return [d for d in self._drivers if d.selected]

    @property
    def names(self) -> list[str]:
        return [d.name for d in self._drivers]

    @property
    def drivers(self) -> list[ParameterDriver]:
        return list(self._drivers)

    def __iter__(self) -> Iterator[ParameterDriver]:
        return iter(self._drivers)

    def __len__(self) -> int:
        return len(self._drivers)

    def __getitem__(self, index: int) -> ParameterDriver:
        return self._drivers[index]

    def __repr__(self) -> str:
        return f"ParameterDriversList({self.names})"

    @classmethod
    def from_measurements(cls, measurements: Iterable) -> ParameterDriversList:
        """Collect the drivers of a sequence of measurements.

        Drivers are listed in the order they are first met, so passing
        chronologically sorted measurements yields the first-observed
        order used for measurement columns of the filter state.
        """
        result = cls()
        for measurement in measurements:
            for driver in measurement.parameter_drivers:
                if not result._contains(driver):
                    result.add(driver)
        return result

    def _contains(self, driver: ParameterDriver) -> bool:
        existing = self.find_by_name(driver.name)
        if existing is None:
            return False
        if isinstance(existing, DelegatingDriver):
            return any(raw is driver for raw in existing.raw_drivers)
        return existing is driver
