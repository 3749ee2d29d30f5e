"""Bayesian Knowledge Tracing mastery estimation."""

from mastery.bkt import (
    BKTParameters,
    MasteryEstimator,
    InvalidSignalError,
    clamp_probability,
    coerce_unit_interval,
)

__all__ = [
    'BKTParameters',
    'MasteryEstimator',
    'InvalidSignalError',
    'clamp_probability',
    'coerce_unit_interval',
]
