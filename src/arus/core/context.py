"""
Simulation context threaded through Kernel and Solver.

Holds the run-wide parameters that the integration core needs (time
horizon, working precision, coordinate system, bounds policy, random seed,
diffusion mixing length, batch workers) and the optional logger. One
context is scoped to one simulation run.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from .constants import PRECISIONS
from .errors import ConfigurationError


@dataclass
class SimulationContext:
    """
    Run-wide configuration for the tracer integration core.

    Attributes:
        max_time: Simulation horizon [s]; steps ending past it are skipped
        precision: Working precision, "single" or "double"
        geographic: Positions stored as (lon deg, lat deg, z m)
        strict_bounds: Raise OutOfDomain for uncovered active tracers
        seed: Seed of the random generator used for diffusion
        mixing_length: Distance after which a new diffusion velocity is drawn [m]
        workers: Number of threads used to advance tracer batches
        logger: Optional SimulationLogger receiving descriptive text

    Example:
        >>> ctx = SimulationContext(max_time=86400.0, precision="double")
        >>> ctx.dtype
        dtype('float64')
    """
    max_time: float = np.inf
    precision: str = "double"
    geographic: bool = False
    strict_bounds: bool = False
    seed: Optional[int] = None
    mixing_length: float = 0.0
    workers: int = 1
    logger: Optional[Any] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if self.precision not in PRECISIONS:
            raise ConfigurationError(
                f"Unknown precision '{self.precision}', "
                f"expected one of {sorted(PRECISIONS)}"
            )
        if self.mixing_length < 0:
            raise ConfigurationError(
                f"mixing_length must be non-negative, got {self.mixing_length}"
            )
        if self.workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {self.workers}")

    @property
    def dtype(self) -> np.dtype:
        """Numpy dtype of the working precision."""
        return np.dtype(PRECISIONS[self.precision])

    def rng(self) -> np.random.Generator:
        """Create the run's random generator from the configured seed."""
        return np.random.default_rng(self.seed)

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        logger: Optional[Any] = None
    ) -> 'SimulationContext':
        """
        Build a context from a configuration dictionary.

        Unknown keys are ignored so the same dictionary can carry
        driver-level settings (dt, output interval, ...).
        """
        max_time = config.get('max_time', np.inf)
        seed = config.get('seed', None)
        return cls(
            max_time=float(max_time),
            precision=config.get('precision', 'double'),
            geographic=bool(config.get('geographic', False)),
            strict_bounds=bool(config.get('strict_bounds', False)),
            seed=None if seed is None else int(seed),
            mixing_length=float(config.get('mixing_length', 0.0)),
            workers=int(config.get('workers', 1)),
            logger=logger,
        )

    def describe(self) -> str:
        """Return a human-readable summary."""
        coords = "geographic (deg, deg, m)" if self.geographic else "cartesian (m)"
        return f"""
Simulation Context
==================
  Max time:      {self.max_time} s
  Precision:     {self.precision}
  Coordinates:   {coords}
  Strict bounds: {self.strict_bounds}
  Mixing length: {self.mixing_length} m
  Seed:          {self.seed}
  Workers:       {self.workers}
"""
