"""Column registry of the estimated parameters.

The normalized filter state is partitioned into three contiguous blocks:

1. *orbital*: one column per orbital driver, selected or not;
2. *propagation*: one column per selected propagation parameter, drivers
   sharing a name collapsed, sorted by name;
3. *measurement*: one column per selected measurement parameter, in the
   order the parameters are first observed.

The registry is built once at the start of a run and never changes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

import jax.numpy as jnp
from jax import Array

from astrokalman.config import get_dtype
from astrokalman.drivers import ParameterDriver, ParameterDriversList
from astrokalman.epoch import Epoch
from astrokalman.errors import DimensionMismatchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ParameterRegistry:
    """Immutable column assignment of the filter state.

    Use :meth:`build` rather than the constructor.

    Attributes:
        orbital: Orbital drivers, one column each.
        orbital_selected: Selection flag of each orbital driver.
        propagation: Selected propagation drivers in column order.
        measurement: Selected measurement drivers in column order.
        scale: Normalization scale of every column.
        propagation_columns: Column index of each propagation parameter.
        measurement_columns: Column index of each measurement parameter.
    """

    orbital: tuple[ParameterDriver, ...]
    orbital_selected: tuple[bool, ...]
    propagation: tuple[ParameterDriver, ...]
    measurement: tuple[ParameterDriver, ...]
    scale: Array
    propagation_columns: Mapping[str, int]
    measurement_columns: Mapping[str, int]

    @classmethod
    def build(
        cls,
        orbital: Iterable[ParameterDriver],
        propagation: Iterable[ParameterDriver],
        measurement: Iterable[ParameterDriver],
        initial_epoch: Epoch,
    ) -> ParameterRegistry:
        """Assign columns to the drivers of one estimation run.

        Orbital and measurement drivers without a reference date get
        ``initial_epoch``.

        Args:
            orbital: Orbital drivers.
            propagation: Propagation drivers.
            measurement: Measurement drivers, in first-observed order.
            initial_epoch: Initial epoch of the run.

        Returns:
            The frozen registry.
        """
        orbital = tuple(orbital)
        for driver in orbital:
            if driver.reference_date is None:
                driver.reference_date = initial_epoch

        propagation_list = ParameterDriversList(d for d in propagation if d.selected)
        propagation_list.sort()
        propagation = tuple(propagation_list)

        measurement = tuple(ParameterDriversList(d for d in measurement if d.selected))
        for driver in measurement:
            if driver.reference_date is None:
                driver.reference_date = initial_epoch

        n_orb = len(orbital)
        propagation_columns = {d.name: n_orb + k for k, d in enumerate(propagation)}
        n_dyn = n_orb + len(propagation)
        measurement_columns = {d.name: n_dyn + k for k, d in enumerate(measurement)}

        scale = jnp.array(
            [d.scale for d in orbital + propagation + measurement], dtype=get_dtype()
        )
        logger.debug(
            "Registered %d orbital, %d propagation and %d measurement columns",
            n_orb, len(propagation), len(measurement),
        )
        return cls(
            orbital=orbital,
            orbital_selected=tuple(d.selected for d in orbital),
            propagation=propagation,
            measurement=measurement,
            scale=scale,
            propagation_columns=MappingProxyType(propagation_columns),
            measurement_columns=MappingProxyType(measurement_columns),
        )

    @property
    def n_orbital(self) -> int:
        return len(self.orbital)

    @property
    def n_propagation(self) -> int:
        return len(self.propagation)

    @property
    def n_measurement(self) -> int:
        return len(self.measurement)

    @property
    def n_dynamic(self) -> int:
        """Number of orbital and propagation columns."""
        return self.n_orbital + self.n_propagation

    @property
    def n_columns(self) -> int:
        return self.n_orbital + self.n_propagation + self.n_measurement

    @property
    def names(self) -> list[str]:
        """Parameter names in column order."""
        return [d.name for d in self.orbital + self.propagation + self.measurement]

    @property
    def drivers(self) -> tuple[ParameterDriver, ...]:
        """All registered drivers in column order."""
        return self.orbital + self.propagation + self.measurement

    def orbital_mask(self) -> Array:
        """Boolean selection mask of the orbital columns."""
        return jnp.array(self.orbital_selected, dtype=bool)

    def check_dimension(self, dimension: int) -> None:
        """Verify that a matrix dimension matches the registered columns.

        Raises:
            DimensionMismatchError: If ``dimension`` differs from
                :attr:`n_columns`; the message lists the parameter names.
        """
        if dimension != self.n_columns:
            raise DimensionMismatchError(self.n_columns, dimension, self.names)
