"""Reports: observation callbacks bound to a firing schedule."""

from dataclasses import dataclass
from typing import Callable, Tuple, Union

from .errors import ConfigurationError


@dataclass(frozen=True)
class Report:
    """A callback run before the loop, after it, and/or every ``frequency`` iterations.

    frequency 0 means the report never fires inside the stepping loop.
    """
    callback: Callable[..., None]
    frequency: int = 1
    before: bool = True
    after: bool = True

    def __post_init__(self):
        if not callable(self.callback):
            raise ConfigurationError(f"report callback is not callable: {self.callback!r}")
        if self.frequency < 0:
            raise ConfigurationError(f"report frequency must be non-negative: {self.frequency}")

    def fires_at(self, iteration: int) -> bool:
        """True if this report runs at the end of 0-based ``iteration``."""
        return self.frequency > 0 and (iteration + 1) % self.frequency == 0

    def __call__(self, simulation) -> None:
        self.callback(simulation)


ReportLike = Union[Report, Callable[..., None], Tuple]


def as_report(entry: ReportLike) -> Report:
    """Accept a Report, a bare callable, or a (callback, frequency, before, after) tuple."""
    if isinstance(entry, Report):
        return entry
    if isinstance(entry, tuple):
        return Report(*entry)
    return Report(entry)
