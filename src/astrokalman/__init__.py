"""
astrokalman is a semi-analytical extended Kalman filter for orbit determination implemented in JAX.
"""

from .constants import (
    DEG2RAD,
    RAD2DEG,
    JD_MJD_OFFSET,
    SECONDS_PER_DAY,
    R_EARTH,
    GM_EARTH,
    J2_EARTH,
    RHO_400KM,
    SCALE_HEIGHT_400KM,
)

from .config import set_dtype, get_dtype
from .epoch import Epoch
from .errors import DimensionMismatchError, EstimationError, NumericalError
from .drivers import DelegatingDriver, ParameterDriver, ParameterDriversList

from .orbits import (
    state_koe_to_eqn,
    state_eqn_to_koe,
    state_koe_to_eci,
    state_eci_to_koe,
    state_eqn_to_eci,
    state_eci_to_eqn,
    state_koe_mean_to_osc,
    state_koe_osc_to_mean,
)

from .propagation import (
    PropagatorConfig,
    SpacecraftParams,
    ExponentialAtmosphere,
    J2Gravity,
    AtmosphericDrag,
    MeanState,
    SemiAnalyticalPropagator,
    SemiAnalyticalPropagatorBuilder,
)

from .measurements import (
    Position,
    PV,
    Range,
    Bias,
    OutlierFilter,
    DynamicOutlierFilter,
)

from .estimation import (
    ConstantProcessNoise,
    RandomWalkProcessNoise,
    SemiAnalyticalKalmanEstimator,
    EstimationHistory,
)
