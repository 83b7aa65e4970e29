"""Observation models.

Each observed measurement holds its date, observed value, theoretical
standard deviation, optional correlation matrix and modifiers.
:meth:`ObservedMeasurement.estimate` evaluates the theoretical value at
a Cartesian state and differentiates it with ``jax.jacfwd`` with respect
to the state and to the bias parameters of the measurement.

Available models:

- :class:`Position` -- inertial position ``[x, y, z]``
- :class:`PV` -- inertial position and velocity
- :class:`Range` -- distance from a fixed inertial observer
"""

from __future__ import annotations

import functools
from collections.abc import Mapping, Sequence

import jax
import jax.numpy as jnp
from jax import Array
from jax.typing import ArrayLike

from astrokalman.config import get_dtype
from astrokalman.drivers import ParameterDriver
from astrokalman.epoch import Epoch
from astrokalman.measurements._types import EstimatedMeasurement
from astrokalman.measurements.modifiers import Modifier, ModifierKind


class ObservedMeasurement:
    """Base class of observed measurements.

    Subclasses set ``dimension`` and implement :meth:`theoretical_value`.

    Args:
        date: Observation date.
        observed: Observed value, shape ``(dimension,)``.
        sigma: Theoretical standard deviation of each component.
        correlation: Correlation matrix of the components; identity when
            omitted.
        modifiers: Biases and outlier filters applied on estimation.
    """

    dimension: int = 0

    def __init__(
        self,
        date: Epoch,
        observed: ArrayLike,
        sigma: ArrayLike,
        correlation: ArrayLike | None = None,
        modifiers: Sequence[Modifier] = (),
    ) -> None:
        dtype = get_dtype()
        n = self.dimension
        self.date = date
        self.observed = jnp.atleast_1d(jnp.asarray(observed, dtype=dtype))
        self.sigma = jnp.broadcast_to(jnp.asarray(sigma, dtype=dtype), (n,))
        if self.observed.shape != (n,):
            raise ValueError(
                f"{type(self).__name__} expects {n} observed components, "
                f"got shape {self.observed.shape}"
            )
        if not bool(jnp.all(self.sigma > 0.0)):
            raise ValueError(f"sigma must be positive, got {self.sigma}")
        if correlation is None:
            self.correlation = jnp.eye(n, dtype=dtype)
        else:
            self.correlation = jnp.asarray(correlation, dtype=dtype)
            if self.correlation.shape != (n, n):
                raise ValueError(
                    f"correlation must have shape ({n}, {n}), got {self.correlation.shape}"
                )
        self.modifiers = list(modifiers)

    @property
    def parameter_drivers(self) -> list[ParameterDriver]:
        """Drivers of the bias modifiers, in modifier order."""
        return [
            driver
            for modifier in self.modifiers
            if modifier.kind is ModifierKind.BIAS
            for driver in modifier.parameter_drivers
        ]

    def add_modifier(self, modifier: Modifier) -> None:
        self.modifiers.append(modifier)

    def theoretical_value(self, cartesian_state: Array) -> Array:
        """Unbiased measurement value at an inertial state."""
        raise NotImplementedError

    def _modeled_value(self, cartesian_state: Array, values: Array, names: tuple[str, ...]) -> Array:
        value = self.theoretical_value(cartesian_state)
        params = {name: values[k] for k, name in enumerate(names)}
        for modifier in self.modifiers:
            if modifier.kind is ModifierKind.BIAS:
                value = modifier.apply(value, params)
        return value

    def estimate(
        self,
        iteration: int,
        cartesian_state: ArrayLike,
        parameters: Mapping[str, float] | None = None,
    ) -> EstimatedMeasurement:
        """Evaluate the measurement at ``cartesian_state``.

        Args:
            iteration: Number of the measurement in the processing pass,
                used by the outlier filters.
            cartesian_state: Inertial ``[x, y, z, vx, vy, vz]``.
            parameters: Bias values keyed by driver name; drivers missing
                from the mapping use their current value.

        Returns:
            The estimated measurement after every modifier was applied.
        """
        dtype = get_dtype()
        cart = jnp.asarray(cartesian_state, dtype=dtype)
        parameters = parameters or {}
        drivers = self.parameter_drivers
        names = tuple(d.name for d in drivers)
        values = jnp.array([parameters.get(d.name, d.value) for d in drivers], dtype=dtype)

        model = functools.partial(self._modeled_value, names=names)
        value = model(cart, values)
        state_derivatives = jax.jacfwd(model, argnums=0)(cart, values)
        if names:
            jac_p = jax.jacfwd(model, argnums=1)(cart, values)
            parameter_derivatives = {name: jac_p[:, k] for k, name in enumerate(names)}
        else:
            parameter_derivatives = {}

        estimated = EstimatedMeasurement(
            observed=self,
            iteration=iteration,
            value=value,
            cartesian_state=cart,
            state_derivatives=state_derivatives,
            parameter_derivatives=parameter_derivatives,
        )
        for modifier in self.modifiers:
            if modifier.kind is not ModifierKind.BIAS:
                estimated = modifier.apply(estimated)
        return estimated

    def __repr__(self) -> str:
        return f"{type(self).__name__}(date={self.date}, observed={self.observed})"


class Position(ObservedMeasurement):
    """Inertial position measurement ``[x, y, z]`` in *m*."""

    dimension = 3

    def theoretical_value(self, cartesian_state: Array) -> Array:
        return cartesian_state[:3]


class PV(ObservedMeasurement):
    """Inertial position and velocity measurement in *m* and *m/s*."""

    dimension = 6

    def theoretical_value(self, cartesian_state: Array) -> Array:
        return cartesian_state[:6]


class Range(ObservedMeasurement):
    """Instantaneous distance between the spacecraft and a fixed observer.

    Light time and the observer's motion are ignored.

    Args:
        date: Observation date.
        observed: Observed range. Units: *m*
        sigma: Theoretical standard deviation. Units: *m*
        observer: Inertial observer position. Units: *m*
        modifiers: Biases and outlier filters.
    """

    dimension = 1

    def __init__(
        self,
        date: Epoch,
        observed: ArrayLike,
        sigma: ArrayLike,
        observer: ArrayLike,
        modifiers: Sequence[Modifier] = (),
    ) -> None:
        super().__init__(date, observed, sigma, None, modifiers)
        self.observer = jnp.asarray(observer, dtype=get_dtype())
        if self.observer.shape != (3,):
            raise ValueError(f"observer must have shape (3,), got {self.observer.shape}")

    def theoretical_value(self, cartesian_state: Array) -> Array:
        return jnp.atleast_1d(jnp.linalg.norm(cartesian_state[:3] - self.observer))
