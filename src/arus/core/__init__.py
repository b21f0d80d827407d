"""Core tracer integration components."""

from .errors import ArusError, ConfigurationError, ShapeMismatch, OutOfDomain
from .context import SimulationContext
from .state import StateVector
from .tracers import TracerType, MaterialParameters, create_tracers, release_box
from .background import Background, BoundingBox
from .fields import uniform_flow, solid_body_rotation, bell_flow, with_land_box
from .interpolator import Interpolator
from .kernel import Kernel
from .solver import Solver, SimulationResult, SCHEMES
from .diagnostics import (
    compute_center_of_mass,
    compute_dispersion,
    compute_active_fraction,
    compute_trajectory_error,
    compute_all_diagnostics,
)

__all__ = [
    "ArusError",
    "ConfigurationError",
    "ShapeMismatch",
    "OutOfDomain",
    "SimulationContext",
    "StateVector",
    "TracerType",
    "MaterialParameters",
    "create_tracers",
    "release_box",
    "Background",
    "BoundingBox",
    "uniform_flow",
    "solid_body_rotation",
    "bell_flow",
    "with_land_box",
    "Interpolator",
    "Kernel",
    "Solver",
    "SimulationResult",
    "SCHEMES",
    "compute_center_of_mass",
    "compute_dispersion",
    "compute_active_fraction",
    "compute_trajectory_error",
    "compute_all_diagnostics",
]
