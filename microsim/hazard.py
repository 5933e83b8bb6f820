"""
Event probabilities over differing time periods.

If an event occurs with probability ``p`` over a reference period ``t_ref``,
then under a constant hazard the probability it occurs over ``t_actual`` is:

    P = 1 - (1 - p) ** (t_actual / t_ref)
"""

import math


def prob_event(p: float, t_ref: float, t_actual: float) -> float:
    """Rescale a per-``t_ref`` probability to a per-``t_actual`` probability.

    Uses the log1p/expm1 form so that probabilities close to 0 or 1 keep
    their precision:

        P = -expm1(log1p(-p) * t_actual / t_ref)
    """
    if t_ref <= 0:
        raise ValueError(f"t_ref must be positive, got {t_ref}")
    if t_actual < 0:
        raise ValueError(f"t_actual must be non-negative, got {t_actual}")

    p = min(max(p, 0.0), 1.0)
    if p <= 0.0 or t_actual == 0:
        return 0.0
    if p >= 1.0:
        return 1.0

    return -math.expm1(math.log1p(-p) * (t_actual / t_ref))


def is_event(draw: float, p: float, t_ref: float, t_actual: float) -> bool:
    """Bernoulli outcome of a uniform [0, 1) ``draw`` against ``prob_event``."""
    return draw < prob_event(p, t_ref, t_actual)
