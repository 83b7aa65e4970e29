"""Observation models and modifiers consumed by the estimation engine.

- **Models**: :class:`Position`, :class:`PV` and :class:`Range`, all
  :class:`ObservedMeasurement` subclasses producing
  :class:`EstimatedMeasurement` records with JAX-computed derivatives.
- **Modifiers**: :class:`Bias`, :class:`OutlierFilter` and
  :class:`DynamicOutlierFilter`, tagged by :class:`ModifierKind`.
"""

from ._types import EstimatedMeasurement, MeasurementStatus
from .models import PV, ObservedMeasurement, Position, Range
from .modifiers import Bias, DynamicOutlierFilter, Modifier, ModifierKind, OutlierFilter

__all__ = [
    "EstimatedMeasurement",
    "MeasurementStatus",
    "ObservedMeasurement",
    "Position",
    "PV",
    "Range",
    "Modifier",
    "ModifierKind",
    "Bias",
    "OutlierFilter",
    "DynamicOutlierFilter",
]
