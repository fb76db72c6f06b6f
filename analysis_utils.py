"""
Utility functions shared by the projection calculators.
This module centralizes the numeric coercion every calculator applies to
user-entered values before doing arithmetic.
"""

import logging
import math
import numbers
from decimal import Decimal

import numpy as np

logger = logging.getLogger(__name__)


def to_finite_number(raw, fallback=0):
    """
    Return raw as a finite number, or fallback when it cannot be one.

    Finite ints and floats pass through untouched so repeated coercion never
    changes a stored value. Strings are parsed after stripping whitespace.
    None, blank strings, booleans, NaN and +/-Infinity all give fallback.
    """
    if isinstance(raw, bool) or raw is None:
        return fallback
    if isinstance(raw, numbers.Real):
        try:
            return raw if math.isfinite(raw) else fallback
        except (TypeError, ValueError, OverflowError):
            return fallback
    if isinstance(raw, Decimal):
        return float(raw) if raw.is_finite() else fallback
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return fallback
        try:
            return int(text)
        except ValueError:
            pass
        try:
            value = float(text)
        except ValueError:
            logger.debug("Could not parse %r as a number, using %r", raw, fallback)
            return fallback
        return value if math.isfinite(value) else fallback
    return fallback


def clamp_number(value, min_value=-math.inf, max_value=math.inf, fallback=0):
    """Coerce value with to_finite_number and clamp it into [min_value, max_value]."""
    n = to_finite_number(value, fallback)
    return min(max_value, max(min_value, n))


def percentile(sorted_values, p):
    """Linear-interpolated percentile of an ascending sequence, p in [0, 1]."""
    if len(sorted_values) == 0:
        return None
    p = min(1.0, max(0.0, p))
    return float(np.percentile(np.asarray(sorted_values, dtype=float), p * 100))


def summarize_percentiles(values):
    """p10/p50/p90 of the finite entries in values, or None when there are none."""
    nums = sorted(n for n in (to_finite_number(v, None) for v in values) if n is not None)
    if not nums:
        return None
    return {
        "p10": percentile(nums, 0.1),
        "p50": percentile(nums, 0.5),
        "p90": percentile(nums, 0.9),
    }
