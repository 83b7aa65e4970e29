# /// script
# requires-python = ">=3.11"
# dependencies = ["typer>=0.9.0", "astrokalman"]
#
# [tool.uv.sources]
# astrokalman = { path = ".." }
# ///
"""Estimate a LEO orbit from simulated position measurements.

Simulates a truth orbit with the semi-analytical propagator, samples noisy
inertial position measurements, perturbs the initial guess and runs the
semi-analytical extended Kalman filter over the measurements.

Requires astrokalman to be installed (``uv pip install -e .`` from the repo root).

Usage:
    uv run examples/estimate_orbit.py [OPTIONS]

Examples:
    # 100 measurements, one per minute, 1 m noise
    uv run examples/estimate_orbit.py

    # Longer arc with drag coefficient estimation
    uv run examples/estimate_orbit.py --count 300 --estimate-drag
"""

import logging
from typing import Annotated

import jax.numpy as jnp
import numpy as np
import typer

from astrokalman import set_dtype
from astrokalman.constants import DEG2RAD, R_EARTH
from astrokalman.epoch import Epoch
from astrokalman.estimation import (
    EstimationHistory,
    RandomWalkProcessNoise,
    SemiAnalyticalKalmanEstimator,
)
from astrokalman.measurements import DynamicOutlierFilter, Position
from astrokalman.orbits import state_koe_to_eqn
from astrokalman.propagation import (
    AtmosphericDrag,
    J2Gravity,
    SemiAnalyticalPropagatorBuilder,
)

set_dtype(jnp.float64)  # Must be before any JIT compilation

app = typer.Typer(add_completion=False)


@app.command()
def main(
    count: Annotated[int, typer.Option(help="Number of measurements")] = 100,
    step: Annotated[float, typer.Option(help="Measurement spacing [s]")] = 60.0,
    noise: Annotated[float, typer.Option(help="Position noise sigma [m]")] = 1.0,
    offset: Annotated[float, typer.Option(help="Initial semi-major axis error [m]")] = 100.0,
    estimate_drag: Annotated[bool, typer.Option(help="Estimate the drag coefficient")] = False,
    seed: Annotated[int, typer.Option(help="Random seed")] = 42,
):
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    rng = np.random.default_rng(seed)

    t0 = Epoch(2024, 3, 1, 12, 0, 0.0)
    koe = jnp.array([R_EARTH + 450e3, 0.001, 51.6 * DEG2RAD, 0.3, 0.5, 0.1])
    truth_elements = state_koe_to_eqn(koe)

    truth = SemiAnalyticalPropagatorBuilder(
        t0, truth_elements, [J2Gravity(), AtmosphericDrag()]
    ).build_propagator()

    measurements = []
    for k in range(1, count + 1):
        date = t0 + k * step
        position = truth.cartesian_state(truth.propagate(date).elements)[:3]
        observed = np.asarray(position) + rng.normal(0.0, noise, 3)
        measurements.append(Position(date, observed, noise, modifiers=[DynamicOutlierFilter(10, 5.0)]))

    guess = truth_elements.at[0].add(offset)
    builder = SemiAnalyticalPropagatorBuilder(t0, guess, [J2Gravity(), AtmosphericDrag()])
    n_dyn = 6
    if estimate_drag:
        builder.propagation_drivers.find_by_name("drag coefficient").selected = True
        n_dyn = 7

    initial = jnp.diag(jnp.array([offset**2, 1e-8, 1e-8, 1e-8, 1e-8, 1e-6] + [0.25] * (n_dyn - 6)))
    process_noise = RandomWalkProcessNoise(initial, jnp.eye(n_dyn) * 1e-14)

    history = EstimationHistory()
    estimator = SemiAnalyticalKalmanEstimator(builder, process_noise, observer=history)
    estimated = estimator.process_measurements(measurements)

    final = measurements[-1].date
    truth_position = truth.cartesian_state(truth.propagate(final).elements)[:3]
    estimated_position = estimated.cartesian_state(estimated.initial_state.elements)[:3]
    error = float(jnp.linalg.norm(estimated_position - truth_position))

    typer.echo(history.to_dataframe().select(["measurement_number", "status", "residual_rms", "a"]).tail(5))
    typer.echo(f"Final position error: {error:.3f} m")
    if estimate_drag:
        typer.echo(f"Estimated drag coefficient: {estimator.propagation_parameters[0].value:.4f}")


if __name__ == "__main__":
    app()
