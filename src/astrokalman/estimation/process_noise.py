"""Process noise and initial covariance of the filter.

Covariance providers implement the :class:`CovarianceMatrixProvider`
protocol.  The engine calls one provider for the dynamic block (orbital
and propagation parameters) and an optional second one for the
measurement parameter block; the two blocks are never correlated.
"""

from __future__ import annotations

from typing import Protocol

import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from astrokalman.config import get_dtype
from astrokalman.estimation.normalization import normalize_covariance
from astrokalman.estimation.registry import ParameterRegistry
from astrokalman.propagation import MeanState


class CovarianceMatrixProvider(Protocol):
    """Source of physical covariance blocks."""

    def initial_covariance(self, state: MeanState) -> Array:
        """Physical covariance at the start of the run."""
        ...

    def process_noise(self, previous: MeanState, current: MeanState) -> Array:
        """Physical process noise accumulated from ``previous`` to ``current``."""
        ...


def _square(matrix: ArrayLike, name: str) -> Array:
    matrix = jnp.asarray(matrix, dtype=get_dtype())
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"{name} must be a square matrix, got shape {matrix.shape}")
    return matrix


class ConstantProcessNoise:
    """Constant initial covariance and process noise.

    Args:
        initial: Initial covariance.
        noise: Process noise added at every step; defaults to zero.
    """

    def __init__(self, initial: ArrayLike, noise: ArrayLike | None = None) -> None:
        self._initial = _square(initial, "initial")
        if noise is None:
            self._noise = jnp.zeros_like(self._initial)
        else:
            self._noise = _square(noise, "noise")
            if self._noise.shape != self._initial.shape:
                raise ValueError(
                    f"noise shape {self._noise.shape} differs from initial "
                    f"shape {self._initial.shape}"
                )

    def initial_covariance(self, state: MeanState) -> Array:
        return self._initial

    def process_noise(self, previous: MeanState, current: MeanState) -> Array:
        return self._noise


class RandomWalkProcessNoise:
    """Process noise growing with the elapsed time, ``rate * |dt| ** power``.

    With ``power=1`` this is a random walk; ``power=3`` matches the
    position growth of an unmodeled constant acceleration.

    Args:
        initial: Initial covariance.
        rate: Noise per unit of ``|dt| ** power``.
        power: Exponent applied to the elapsed time.
    """

    def __init__(self, initial: ArrayLike, rate: ArrayLike, power: float = 1.0) -> None:
        self._initial = _square(initial, "initial")
        self._rate = _square(rate, "rate")
        if self._rate.shape != self._initial.shape:
            raise ValueError(
                f"rate shape {self._rate.shape} differs from initial shape {self._initial.shape}"
            )
        if power <= 0.0:
            raise ValueError(f"power must be positive, got {power}")
        self._power = power

    def initial_covariance(self, state: MeanState) -> Array:
        return self._initial

    def process_noise(self, previous: MeanState, current: MeanState) -> Array:
        dt = abs(current.epoch - previous.epoch)
        return self._rate * dt**self._power


def _block_diagonal(dynamic: Array, measurement: Array | None, n_measurement: int) -> Array:
    n_dyn = dynamic.shape[0]
    n_meas = measurement.shape[0] if measurement is not None else n_measurement
    full = jnp.zeros((n_dyn + n_meas, n_dyn + n_meas), dtype=dynamic.dtype)
    full = full.at[:n_dyn, :n_dyn].set(dynamic)
    if measurement is not None:
        full = full.at[n_dyn:, n_dyn:].set(measurement)
    return full


def assemble_initial_covariance(
    registry: ParameterRegistry,
    provider: CovarianceMatrixProvider,
    measurement_provider: CovarianceMatrixProvider | None,
    state: MeanState,
) -> Array:
    """Normalized initial covariance of the whole filter state.

    Raises:
        DimensionMismatchError: If the assembled dimension differs from
            the registered column count.
    """
    dynamic = _square(provider.initial_covariance(state), "initial covariance")
    measurement = None
    if measurement_provider is not None:
        measurement = _square(
            measurement_provider.initial_covariance(state), "measurement initial covariance"
        )
    full = _block_diagonal(dynamic, measurement, registry.n_measurement)
    registry.check_dimension(full.shape[0])
    return normalize_covariance(full, registry.scale)


def assemble_process_noise(
    registry: ParameterRegistry,
    provider: CovarianceMatrixProvider,
    measurement_provider: CovarianceMatrixProvider | None,
    previous: MeanState,
    current: MeanState,
) -> Array:
    """Normalized process noise between two nominal mean states.

    Raises:
        DimensionMismatchError: If the assembled dimension differs from
            the registered column count.
    """
    dynamic = _square(provider.process_noise(previous, current), "process noise")
    measurement = None
    if measurement_provider is not None:
        measurement = _square(
            measurement_provider.process_noise(previous, current), "measurement process noise"
        )
    full = _block_diagonal(dynamic, measurement, registry.n_measurement)
    registry.check_dimension(full.shape[0])
    return normalize_covariance(full, registry.scale)
