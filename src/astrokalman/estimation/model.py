"""Semi-analytical process model of the Kalman filter.

The filter estimates a *correction* to a nominal mean trajectory rather
than the state itself.  The nominal mean elements are propagated
without feedback from the filter; at each measurement the model

1. propagates the nominal mean state to the measurement date, keeping
   the cumulative Jacobians of the propagator;
2. composes the error-state transition matrix and predicts the
   correction ``dX = Phi . dX_prev``;
3. reconstructs the predicted osculating elements
   ``Y = mean + dY + eta + B1 . dY + B4 . dP``;
4. estimates the measurement at that orbit and builds the normalized
   measurement matrix and process noise.

All bookkeeping lives in an immutable :class:`ModelSnapshot` threaded
through the filter.

References:
    1. B. Cazabonne, J. Bayard, M. Journot and P. J. Cefola, "A
       semi-analytical approach for orbit determination based on extended
       Kalman filter", AAS 21-614, 2021.
    2. Z. J. Folcik, "Orbit determination using modern filters/smoothers
       and continuous thrust modeling", MIT, 2008.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

import jax
import jax.numpy as jnp
from jax import Array

from astrokalman.config import get_dtype
from astrokalman.drivers import ParameterDriversList
from astrokalman.epoch import Epoch
from astrokalman.estimation._types import (
    MeasurementDecorator,
    NonLinearEvolution,
    ProcessEstimate,
)
from astrokalman.estimation.linearization import measurement_matrix
from astrokalman.estimation.normalization import (
    unnormalize_covariance,
    unnormalize_innovation_covariance,
    unnormalize_kalman_gain,
    unnormalize_measurement_jacobian,
    unnormalize_state,
    unnormalize_stm,
)
from astrokalman.estimation.outliers import apply_dynamic_outlier_filter
from astrokalman.estimation.process_noise import (
    CovarianceMatrixProvider,
    assemble_initial_covariance,
    assemble_process_noise,
)
from astrokalman.estimation.registry import ParameterRegistry
from astrokalman.estimation.stm import compose_transition_matrix
from astrokalman.measurements import (
    EstimatedMeasurement,
    MeasurementStatus,
    ObservedMeasurement,
)
from astrokalman.orbits.elements import state_eqn_to_eci
from astrokalman.propagation import (
    MeanState,
    SemiAnalyticalPropagator,
    SemiAnalyticalPropagatorBuilder,
)

logger = logging.getLogger(__name__)


class ModelSnapshot(NamedTuple):
    """State of the process model between two measurements.

    Attributes:
        measurement_number: Number of measurements processed so far.
        current_date: Date of the last processed measurement.
        nominal: Nominal mean state at ``current_date``.
        previous_nominal: Nominal mean state at the previous measurement.
        phi_s_inverse: Inverse of ``dY/dY0`` at ``current_date``.
        psi_s: ``dY/dP`` of the estimated propagation parameters at
            ``current_date``; ``None`` if there are none.
        predicted_correction: Last predicted normalized correction.
        corrected_estimate: Last corrected normalized estimate.
        predicted_measurement: Last predicted measurement.
        sigma: Theoretical sigma of the last measurement, used to
            un-normalize the measurement-sized matrices.
    """

    measurement_number: int
    current_date: Epoch
    nominal: MeanState
    previous_nominal: MeanState
    phi_s_inverse: Array
    psi_s: Array | None
    predicted_correction: Array
    corrected_estimate: ProcessEstimate
    predicted_measurement: EstimatedMeasurement | None = None
    sigma: Array | None = None


class SemiAnalyticalKalmanModel:
    """Process model of the semi-analytical extended Kalman filter.

    Args:
        builder: Propagator builder holding the orbital and propagation
            drivers.
        process_noise: Provider of the orbital and propagation block.
        measurement_parameters: Measurement parameter drivers in
            first-observed order.
        measurement_process_noise: Optional provider of the measurement
            parameter block.

    Raises:
        DimensionMismatchError: If the initial covariance does not match
            the registered columns.
    """

    def __init__(
        self,
        builder: SemiAnalyticalPropagatorBuilder,
        process_noise: CovarianceMatrixProvider,
        measurement_parameters: ParameterDriversList | None = None,
        measurement_process_noise: CovarianceMatrixProvider | None = None,
    ) -> None:
        measurement_parameters = (
            measurement_parameters if measurement_parameters is not None else ParameterDriversList()
        )
        self._builder = builder
        self._process_noise = process_noise
        self._measurement_process_noise = measurement_process_noise
        self._initial_epoch = builder.initial_epoch
        self._registry = ParameterRegistry.build(
            builder.orbital_drivers,
            builder.propagation_drivers,
            measurement_parameters,
            self._initial_epoch,
        )
        self._propagator = builder.build_propagator()
        self._parameter_values = jnp.array(
            [d.value for d in self._registry.propagation + self._registry.measurement],
            dtype=get_dtype(),
        )
        names = self._propagator.parameter_names
        self._propagation_indices = jnp.array(
            [names.index(d.name) for d in self._registry.propagation], dtype=int
        )

        dtype = get_dtype()
        m = self._registry.n_columns
        nominal = self._propagator.initial_state
        covariance = assemble_initial_covariance(
            self._registry, process_noise, measurement_process_noise, nominal
        )
        n_orb = self._registry.n_orbital
        n_prop = self._registry.n_propagation
        self._initial_snapshot = ModelSnapshot(
            measurement_number=0,
            current_date=self._initial_epoch,
            nominal=nominal,
            previous_nominal=nominal,
            phi_s_inverse=jnp.eye(n_orb, dtype=dtype),
            psi_s=jnp.zeros((n_orb, n_prop), dtype=dtype) if n_prop > 0 else None,
            predicted_correction=jnp.zeros(m, dtype=dtype),
            corrected_estimate=ProcessEstimate(
                time=0.0,
                state=jnp.zeros(m, dtype=dtype),
                covariance=covariance,
            ),
        )
        logger.debug("Semi-analytical model initialized with %d state columns", m)

    @property
    def registry(self) -> ParameterRegistry:
        return self._registry

    @property
    def builder(self) -> SemiAnalyticalPropagatorBuilder:
        return self._builder

    @property
    def reference_propagator(self) -> SemiAnalyticalPropagator:
        """Propagator of the nominal mean trajectory."""
        return self._propagator

    @property
    def initial_snapshot(self) -> ModelSnapshot:
        return self._initial_snapshot

    @property
    def initial_epoch(self) -> Epoch:
        return self._initial_epoch

    def decorate(self, measurement: ObservedMeasurement) -> MeasurementDecorator:
        """Wrap a measurement for the filter core."""
        return MeasurementDecorator(
            measurement=measurement,
            time=measurement.date - self._initial_epoch,
            noise=measurement.correlation,
        )

    # Helpers

    def _physical_correction(self, correction: Array) -> Array:
        return unnormalize_state(correction, self._registry.scale)

    def _osculating_elements(self, nominal: MeanState, correction: Array) -> tuple[Array, Array, Array]:
        """Predicted osculating elements with the short-period Jacobians.

        Returns:
            The osculating elements, ``b1``, and ``b4`` restricted to the
            estimated propagation parameters.
        """
        reg = self._registry
        terms = self._propagator.short_period_terms(nominal.elements)
        b4 = terms.b4[:, self._propagation_indices]

        physical = self._physical_correction(correction)
        d_orb = physical[:reg.n_orbital]
        d_prop = physical[reg.n_orbital:reg.n_dynamic]

        osculating = nominal.elements + d_orb + terms.values + terms.b1 @ d_orb + b4 @ d_prop
        return osculating, terms.b1, b4

    def _measurement_parameters(self, correction: Array) -> dict[str, float]:
        """Measurement parameter values including the predicted correction."""
        reg = self._registry
        physical = self._physical_correction(correction)
        values = {}
        for k, driver in enumerate(reg.measurement):
            column = reg.measurement_columns[driver.name]
            base = self._parameter_values[reg.n_propagation + k]
            values[driver.name] = float(base + physical[column])
        return values

    # NonLinearProcess

    def get_evolution(
        self,
        snapshot: ModelSnapshot,
        previous_time: float,
        previous_state: Array,
        measurement: MeasurementDecorator,
    ) -> tuple[NonLinearEvolution, ModelSnapshot]:
        """Predict the correction and linearize the measurement."""
        observed = measurement.measurement
        for driver in observed.parameter_drivers:
            if driver.reference_date is None:
                driver.reference_date = self._initial_epoch

        number = snapshot.measurement_number + 1
        nominal = self._propagator.propagate_from(snapshot.nominal, observed.date)
        dydp = nominal.parameter_jacobian[:, self._propagation_indices]

        transition = compose_transition_matrix(
            self._registry,
            nominal.state_jacobian,
            dydp,
            snapshot.phi_s_inverse,
            snapshot.psi_s,
        )
        correction = transition.stm @ previous_state

        osculating, b1, b4 = self._osculating_elements(nominal, correction)
        mu = self._propagator.config.mu
        cartesian = state_eqn_to_eci(osculating, mu)
        dcdy = jax.jacfwd(state_eqn_to_eci)(osculating, mu)

        estimated = observed.estimate(number, cartesian, self._measurement_parameters(correction))
        H = measurement_matrix(self._registry, estimated, dcdy, b1, b4)
        Q = assemble_process_noise(
            self._registry,
            self._process_noise,
            self._measurement_process_noise,
            snapshot.previous_nominal,
            nominal,
        )

        logger.debug("Measurement %d at %s predicted", number, observed.date)
        evolution = NonLinearEvolution(
            time=measurement.time,
            current_state=correction,
            state_transition_matrix=transition.stm,
            process_noise=Q,
            measurement_jacobian=H,
        )
        return evolution, snapshot._replace(
            measurement_number=number,
            current_date=observed.date,
            nominal=nominal,
            phi_s_inverse=transition.phi_s_inverse,
            psi_s=transition.psi_s,
            predicted_correction=correction,
            predicted_measurement=estimated,
            sigma=observed.sigma,
        )

    def get_innovation(
        self,
        snapshot: ModelSnapshot,
        measurement: MeasurementDecorator,
        evolution: NonLinearEvolution,
        innovation_covariance: Array,
    ) -> tuple[Array | None, ModelSnapshot]:
        """Normalized residual, or ``None`` if the measurement is rejected."""
        estimated = apply_dynamic_outlier_filter(
            snapshot.predicted_measurement, innovation_covariance
        )
        snapshot = snapshot._replace(predicted_measurement=estimated)
        if estimated.status is MeasurementStatus.REJECTED:
            return None, snapshot
        return estimated.residual / estimated.observed.sigma, snapshot

    def finalize_estimation(
        self,
        snapshot: ModelSnapshot,
        measurement: MeasurementDecorator,
        estimate: ProcessEstimate,
    ) -> ModelSnapshot:
        """Commit the corrected estimate and roll the previous nominal state."""
        return snapshot._replace(
            corrected_estimate=estimate,
            previous_nominal=snapshot.nominal,
        )

    def finalize_operations(self, snapshot: ModelSnapshot) -> None:
        """Apply the final correction to the drivers.

        The builder orbit moves to the nominal mean state at the last
        measurement date, then every selected driver receives its
        correction (clipped by the driver bounds).
        """
        self._builder.reset_orbit(snapshot.nominal)
        correction = snapshot.corrected_estimate.state
        for k, driver in enumerate(self._registry.drivers):
            if k < self._registry.n_orbital and not self._registry.orbital_selected[k]:
                continue
            driver.normalized_value = driver.normalized_value + float(correction[k])
        logger.info("Parameters updated at %s", snapshot.current_date)

    def estimated_propagator(self) -> SemiAnalyticalPropagator:
        """Propagator built from the current driver values."""
        return self._builder.build_propagator()

    # Physical quantities

    def physical_estimated_state(self, snapshot: ModelSnapshot) -> Array:
        """Estimated parameters in physical units.

        Orbital entries are the nominal mean elements plus the correction
        of the selected elements; parameter entries are the driver values
        at the start of the pass plus the correction. After
        :meth:`finalize_operations` this matches the driver values.
        """
        reg = self._registry
        correction = self._physical_correction(snapshot.corrected_estimate.state)
        orbital = snapshot.nominal.elements + jnp.where(
            reg.orbital_mask(), correction[:reg.n_orbital], 0.0
        )
        parameters = self._parameter_values + correction[reg.n_orbital:]
        return jnp.concatenate([orbital, parameters])

    def physical_estimated_covariance(self, snapshot: ModelSnapshot) -> Array:
        return unnormalize_covariance(snapshot.corrected_estimate.covariance, self._registry.scale)

    def physical_state_transition_matrix(self, snapshot: ModelSnapshot) -> Array | None:
        stm = snapshot.corrected_estimate.state_transition_matrix
        return None if stm is None else unnormalize_stm(stm, self._registry.scale)

    def physical_measurement_jacobian(self, snapshot: ModelSnapshot) -> Array | None:
        H = snapshot.corrected_estimate.measurement_jacobian
        if H is None:
            return None
        return unnormalize_measurement_jacobian(H, self._registry.scale, snapshot.sigma)

    def physical_innovation_covariance(self, snapshot: ModelSnapshot) -> Array | None:
        S = snapshot.corrected_estimate.innovation_covariance
        return None if S is None else unnormalize_innovation_covariance(S, snapshot.sigma)

    def physical_kalman_gain(self, snapshot: ModelSnapshot) -> Array | None:
        K = snapshot.corrected_estimate.kalman_gain
        if K is None:
            return None
        return unnormalize_kalman_gain(K, self._registry.scale, snapshot.sigma)
