"""
Tracer materials and state construction.

A batch of tracers is a StateVector whose column layout depends on its
material tag. Material-specific behaviour is carried by composition: the
base columns are always present and a material appends its own columns and
parameters.

    BASE   x y z u v w dVelX dVelY dVelZ mLen age
    PAPER  BASE + radius condition concentration
"""

import numpy as np
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple

from .constants import BASE_VARS, PAPER_VARS, PRECISIONS, POSITION_VARS
from .errors import ConfigurationError, ShapeMismatch
from .state import StateVector


class TracerType(IntEnum):
    """Material tag of a tracer batch."""
    BASE = 0
    PAPER = 1


@dataclass(frozen=True)
class MaterialParameters:
    """
    Material parameters of a tracer batch.

    Attributes:
        density: Material density [kg/m³]
        degradation_rate: Exponential decay rate of the material condition [1/s]
        particulate: True if the tracer represents a collection of particles
        size: Particle radius [m] (the tracer radius when not particulate)
    """
    density: float = 1000.0
    degradation_rate: float = 0.0
    particulate: bool = False
    size: float = 0.0

    def __post_init__(self):
        if self.density <= 0:
            raise ConfigurationError(f"density must be positive, got {self.density}")
        if self.degradation_rate < 0:
            raise ConfigurationError(
                f"degradation_rate must be non-negative, got {self.degradation_rate}"
            )
        if self.size < 0:
            raise ConfigurationError(f"size must be non-negative, got {self.size}")


def state_layout(material: TracerType) -> Tuple[str, ...]:
    """Return the column names used by a material."""
    material = TracerType(material)
    if material == TracerType.PAPER:
        return BASE_VARS + PAPER_VARS
    return BASE_VARS


def create_tracers(
    positions: np.ndarray,
    material: TracerType = TracerType.BASE,
    params: Optional[MaterialParameters] = None,
    source_id: int = 0,
    first_id: int = 0,
    precision: str = "double"
) -> StateVector:
    """
    Create a batch of freshly released tracers.

    Tracers start at rest (zero velocity and diffusion velocity), with
    zero age and mixing length, active and in water. Paper tracers start
    with condition and concentration 1 and radius equal to the material
    size.

    Args:
        positions: (N, 3) release positions, or (N, 2) with z = 0
        material: Material tag
        params: Material parameters (defaults used when None)
        source_id: Identifier of the emitting source
        first_id: Identifier of the first tracer; ids are consecutive
        precision: "single" or "double"

    Returns:
        StateVector with the material's column layout
    """
    if precision not in PRECISIONS:
        raise ConfigurationError(f"Unknown precision '{precision}'")
    material = TracerType(material)
    params = params or MaterialParameters()

    positions = np.atleast_2d(np.asarray(positions, dtype=np.float64))
    if positions.ndim != 2 or positions.shape[1] not in (2, 3):
        raise ShapeMismatch(
            f"positions must have shape (N, 2) or (N, 3), got {positions.shape}"
        )
    n = positions.shape[0]

    names = state_layout(material)
    state = np.zeros((n, len(names)), dtype=PRECISIONS[precision])
    state[:, :positions.shape[1]] = positions

    if material == TracerType.PAPER:
        state[:, names.index("radius")] = params.size
        state[:, names.index("condition")] = 1.0
        state[:, names.index("concentration")] = 1.0

    return StateVector(
        state=state,
        var_names=names,
        ids=np.arange(first_id, first_id + n, dtype=np.int64),
        source_ids=np.full(n, source_id, dtype=np.int64),
        material=int(material),
    )


def release_box(
    x_range: Tuple[float, float],
    y_range: Tuple[float, float],
    nx: int,
    ny: int,
    z: float = 0.0
) -> np.ndarray:
    """
    Uniform release positions at cell centres of a rectangle.

    Args:
        x_range: (x_min, x_max)
        y_range: (y_min, y_max)
        nx: Number of tracers along x
        ny: Number of tracers along y
        z: Release depth

    Returns:
        (nx*ny, 3) array of positions
    """
    dx = (x_range[1] - x_range[0]) / nx
    dy = (y_range[1] - y_range[0]) / ny
    x_temp = x_range[0] + (np.arange(nx) + 0.5) * dx
    y_temp = y_range[0] + (np.arange(ny) + 0.5) * dy

    xp, yp = np.meshgrid(x_temp, y_temp, indexing='ij')
    positions = np.empty((nx * ny, len(POSITION_VARS)), dtype=np.float64)
    positions[:, 0] = xp.reshape(-1)
    positions[:, 1] = yp.reshape(-1)
    positions[:, 2] = z
    return positions
