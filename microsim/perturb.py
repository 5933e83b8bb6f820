"""
Monte Carlo parameter perturbation.

A perturber pairs a parameter id with a function that draws a random offset
from the simulation's generator. Before each draw every component of the
parameter is set to its saved baseline plus a fresh offset; once the draw
loop finishes the baselines are copied back.

Usage:
    from microsim.perturb import Perturber, normal, max_draws

    sim.montecarlo(
        num_steps=100,
        interim_reports=False,
        perturbers=[Perturber(POSITION_INIT_PARM, normal(-2.0, 5.0))],
        carryon=max_draws(8),
    )
"""

import time
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, NamedTuple

import numpy as np

from .store import NumericStore

Draw = Callable[[np.random.Generator], float]


class Perturber(NamedTuple):
    parameter: int
    draw: Draw


# ============================================================================
# OFFSET DISTRIBUTIONS
# ============================================================================

def normal(mean: float, sd: float) -> Draw:
    """Offsets from N(mean, sd)."""
    def draw(rng: np.random.Generator) -> float:
        return float(rng.normal(mean, sd))
    return draw


def uniform(low: float, high: float) -> Draw:
    """Offsets from U[low, high)."""
    def draw(rng: np.random.Generator) -> float:
        return float(rng.uniform(low, high))
    return draw


def weibull(shape: float, scale: float = 1.0) -> Draw:
    """Offsets from a Weibull(shape) distribution stretched by ``scale``."""
    def draw(rng: np.random.Generator) -> float:
        return float(scale * rng.weibull(shape))
    return draw


# ============================================================================
# SAVE / PERTURB / RESTORE
# ============================================================================

def save_parameters(parameters: NumericStore, perturbers: Iterable[Perturber],
                    snapshot: NumericStore) -> None:
    """Copy the current value of every perturbed parameter into ``snapshot``."""
    for perturber in perturbers:
        snapshot[perturber.parameter] = parameters[perturber.parameter].copy()


def perturb_parameters(parameters: NumericStore, perturbers: Iterable[Perturber],
                       snapshot: NumericStore, rng: np.random.Generator) -> None:
    """Rebuild each parameter as baseline + one offset drawn per baseline component.

    A parameter listed twice ends up with the offsets of the last perturber.
    """
    for perturber in perturbers:
        baseline = snapshot[perturber.parameter]
        offsets = [perturber.draw(rng) for _ in range(len(baseline))]
        parameters[perturber.parameter] = baseline + np.array(offsets, dtype=np.float64)


def restore_parameters(parameters: NumericStore, snapshot: NumericStore) -> None:
    """Copy every saved baseline back over the live parameter."""
    for identifier in snapshot:
        parameters[identifier] = snapshot[identifier]


@contextmanager
def preserve_parameters(parameters: NumericStore, identifiers: Iterable[int]) -> Iterator[None]:
    """Restore the given parameters on exit, including when the block raises.

    ``Simulation.montecarlo`` only restores after a clean draw loop; wrap the
    call in this when a failed run must not leave perturbed values behind.
    """
    saved = {i: parameters[i].copy() for i in identifiers}
    try:
        yield
    finally:
        for identifier, values in saved.items():
            parameters[identifier] = values


# ============================================================================
# STOPPING RULES
# ============================================================================

def max_draws(n: int) -> Callable[..., bool]:
    """Carry on for exactly ``n`` draws."""
    def carryon(simulation, draw: int) -> bool:
        return draw < n
    return carryon


def time_budget(seconds: float, clock: Callable[[], float] = time.monotonic) -> Callable[..., bool]:
    """Carry on until ``seconds`` of wall-clock time have passed since draw 0."""
    started = []

    def carryon(simulation, draw: int) -> bool:
        if draw == 0 or not started:
            started[:] = [clock()]
            return True
        return clock() - started[0] < seconds
    return carryon
