"""Configuration dataclasses for the semi-analytical propagator.

Configuration is static: it is read when the propagator builds its
jitted kernels, so changing it requires building a new propagator.
"""

from __future__ import annotations

from dataclasses import dataclass

from astrokalman.constants import GM_EARTH, RHO_400KM, SCALE_HEIGHT_400KM


@dataclass(frozen=True)
class PropagatorConfig:
    """Numerical settings of :class:`~astrokalman.propagation.SemiAnalyticalPropagator`.

    Args:
        mu: Gravitational parameter of the central body [m^3/s^2].
        max_step: Largest RK4 substep used on the mean-element rates [s].
        mean_state_tolerance: Convergence threshold of the osculating to
            mean fixed point, relative to the semi-major axis for ``a``
            and absolute for the other elements.
        mean_state_max_iterations: Iteration limit of that fixed point.
    """

    mu: float = GM_EARTH
    max_step: float = 300.0
    mean_state_tolerance: float = 1e-12
    mean_state_max_iterations: int = 50

    def __post_init__(self) -> None:
        if self.mu <= 0.0:
            raise ValueError(f"mu must be positive, got {self.mu}")
        if self.max_step <= 0.0:
            raise ValueError(f"max_step must be positive, got {self.max_step}")
        if self.mean_state_tolerance <= 0.0:
            raise ValueError(
                f"mean_state_tolerance must be positive, got {self.mean_state_tolerance}"
            )
        if self.mean_state_max_iterations < 1:
            raise ValueError(
                f"mean_state_max_iterations must be at least 1, "
                f"got {self.mean_state_max_iterations}"
            )


@dataclass(frozen=True)
class SpacecraftParams:
    """Physical properties of the spacecraft.

    All values are SI.  Defaults represent a generic small satellite.

    Args:
        mass: Spacecraft mass [kg].
        drag_area: Wind-facing cross-sectional area [m^2].
        cd: Coefficient of drag [dimensionless].
    """

    mass: float = 1000.0
    drag_area: float = 10.0
    cd: float = 2.2

    def __post_init__(self) -> None:
        if self.mass <= 0.0:
            raise ValueError(f"mass must be positive, got {self.mass}")
        if self.drag_area < 0.0:
            raise ValueError(f"drag_area must be non-negative, got {self.drag_area}")


@dataclass(frozen=True)
class ExponentialAtmosphere:
    """Exponential atmospheric density ``rho0 * exp(-(h - h0) / scale_height)``.

    Args:
        rho0: Density at the reference altitude [kg/m^3].
        h0: Reference altitude above the equatorial radius [m].
        scale_height: Density scale height [m].
    """

    rho0: float = RHO_400KM
    h0: float = 400e3
    scale_height: float = SCALE_HEIGHT_400KM

    def __post_init__(self) -> None:
        if self.rho0 < 0.0:
            raise ValueError(f"rho0 must be non-negative, got {self.rho0}")
        if self.scale_height <= 0.0:
            raise ValueError(f"scale_height must be positive, got {self.scale_height}")
