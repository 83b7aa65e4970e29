"""Per-measurement record of a filtering pass.

:class:`EstimationHistory` is a :class:`~astrokalman.estimation.estimator.KalmanObserver`
that stores one row per processed measurement and exports them as a
Polars DataFrame.
"""

from __future__ import annotations

import logging

import numpy as np
import polars as pl

from astrokalman.orbits.elements import EQUINOCTIAL_ELEMENT_NAMES

logger = logging.getLogger(__name__)


class EstimationHistory:
    """Observer recording the estimate after every measurement.

    Examples:
        ```python
        history = EstimationHistory()
        estimator = SemiAnalyticalKalmanEstimator(builder, noise, observer=history)
        estimator.process_measurements(measurements)
        df = history.to_dataframe()
        ```
    """

    def __init__(self) -> None:
        self._rows: list[dict] = []

    def __len__(self) -> int:
        return len(self._rows)

    def clear(self) -> None:
        self._rows.clear()

    def evaluation_performed(self, estimation) -> None:
        estimated = estimation.predicted_measurement
        state = np.asarray(estimation.physical_estimated_state)
        covariance = np.asarray(estimation.physical_estimated_covariance)
        residual = np.asarray(estimated.residual)
        row = {
            "measurement_number": estimation.current_measurement_number,
            "date": str(estimation.current_date),
            "mjd": estimation.current_date.mjd(),
            "measurement_type": type(estimated.observed).__name__,
            "status": estimated.status.value,
            "residual_rms": float(np.sqrt(np.mean(residual**2))),
            "sigma_a": float(np.sqrt(covariance[0, 0])),
        }
        for k, name in enumerate(EQUINOCTIAL_ELEMENT_NAMES):
            row[name] = float(state[k])
        self._rows.append(row)

    def to_dataframe(self) -> pl.DataFrame:
        """Recorded rows as a DataFrame, one row per measurement."""
        columns = {
            "measurement_number": pl.Series([r["measurement_number"] for r in self._rows], dtype=pl.Int64),
            "date": pl.Series([r["date"] for r in self._rows], dtype=pl.Utf8),
            "mjd": pl.Series([r["mjd"] for r in self._rows], dtype=pl.Float64),
            "measurement_type": pl.Series([r["measurement_type"] for r in self._rows], dtype=pl.Utf8),
            "status": pl.Series([r["status"] for r in self._rows], dtype=pl.Utf8),
            "residual_rms": pl.Series([r["residual_rms"] for r in self._rows], dtype=pl.Float64),
            "sigma_a": pl.Series([r["sigma_a"] for r in self._rows], dtype=pl.Float64),
        }
        for name in EQUINOCTIAL_ELEMENT_NAMES:
            columns[name] = pl.Series([r[name] for r in self._rows], dtype=pl.Float64)
        df = pl.DataFrame(columns)
        logger.info("Exported %d estimation records", len(df))
        return df
