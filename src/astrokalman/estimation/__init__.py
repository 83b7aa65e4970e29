"""Semi-analytical extended Kalman filter for orbit determination.

Available components:

- :class:`SemiAnalyticalKalmanEstimator` -- single-pass estimator facade
- :class:`SemiAnalyticalKalmanModel` -- process model (nominal mean
  trajectory, short-period reconstruction, linearization)
- :class:`ExtendedKalmanFilter`, :func:`ekf_predict`, :func:`ekf_correct`
  -- generic EKF recursion (Joseph form)
- :class:`ParameterRegistry` -- column assignment of the estimated state
- :func:`compose_transition_matrix` -- error-state transition matrix
- :func:`measurement_matrix` -- normalized measurement Jacobian
- :class:`ConstantProcessNoise`, :class:`RandomWalkProcessNoise` --
  covariance providers
- :func:`apply_dynamic_outlier_filter` -- innovation-based rejection
- ``normalize_*`` / ``unnormalize_*`` -- unit scaling of filter matrices
- :class:`EstimationHistory` -- observer exporting a Polars DataFrame
"""

from astrokalman.estimation._types import (
    MeasurementDecorator,
    NonLinearEvolution,
    ProcessEstimate,
)
from astrokalman.estimation.ekf import (
    ExtendedKalmanFilter,
    NonLinearProcess,
    ekf_correct,
    ekf_predict,
)
from astrokalman.estimation.estimator import KalmanObserver, SemiAnalyticalKalmanEstimator
from astrokalman.estimation.history import EstimationHistory
from astrokalman.estimation.linearization import measurement_matrix
from astrokalman.estimation.model import ModelSnapshot, SemiAnalyticalKalmanModel
from astrokalman.estimation.normalization import (
    normalize_covariance,
    normalize_innovation_covariance,
    normalize_kalman_gain,
    normalize_measurement_jacobian,
    normalize_state,
    normalize_stm,
    unnormalize_covariance,
    unnormalize_innovation_covariance,
    unnormalize_kalman_gain,
    unnormalize_measurement_jacobian,
    unnormalize_state,
    unnormalize_stm,
)
from astrokalman.estimation.outliers import apply_dynamic_outlier_filter
from astrokalman.estimation.process_noise import (
    ConstantProcessNoise,
    CovarianceMatrixProvider,
    RandomWalkProcessNoise,
    assemble_initial_covariance,
    assemble_process_noise,
)
from astrokalman.estimation.registry import ParameterRegistry
from astrokalman.estimation.stm import TransitionResult, compose_transition_matrix, qr_inverse

__all__ = [
    "ProcessEstimate",
    "NonLinearEvolution",
    "MeasurementDecorator",
    "NonLinearProcess",
    "ExtendedKalmanFilter",
    "ekf_predict",
    "ekf_correct",
    "ParameterRegistry",
    "TransitionResult",
    "compose_transition_matrix",
    "qr_inverse",
    "measurement_matrix",
    "CovarianceMatrixProvider",
    "ConstantProcessNoise",
    "RandomWalkProcessNoise",
    "assemble_initial_covariance",
    "assemble_process_noise",
    "apply_dynamic_outlier_filter",
    "normalize_state",
    "unnormalize_state",
    "normalize_covariance",
    "unnormalize_covariance",
    "normalize_stm",
    "unnormalize_stm",
    "normalize_measurement_jacobian",
    "unnormalize_measurement_jacobian",
    "normalize_innovation_covariance",
    "unnormalize_innovation_covariance",
    "normalize_kalman_gain",
    "unnormalize_kalman_gain",
    "ModelSnapshot",
    "SemiAnalyticalKalmanModel",
    "KalmanObserver",
    "SemiAnalyticalKalmanEstimator",
    "EstimationHistory",
]
