"""
arus: Lagrangian Tracer Integration Core

Advects and diffuses large populations of point tracers (floating debris,
dissolved material) through time-varying environmental flow fields.

Components:
    - StateVector: dense per-batch tracer state with named columns
    - Background: read-only field tiles over a spatial extent and time window
    - Interpolator: Numba-accelerated quadrilinear sampling across tiles
    - Kernel: advection, random-walk diffusion, land masks, aging
    - Solver: Euler, Multi-Step Euler (predictor-corrector) and RK4 steps

Example:
    >>> from arus import Solver, SimulationContext, create_tracers, uniform_flow
    >>> ctx = SimulationContext(max_time=10.0)
    >>> state = create_tracers([[0.0, 0.0, 0.0]])
    >>> solver = Solver(scheme=2, context=ctx)
    >>> solver.run_step([state], [uniform_flow(u=1.0)], time=0.0, dt=1.0)

License: MIT
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .core.errors import ArusError, ConfigurationError, ShapeMismatch, OutOfDomain
from .core.context import SimulationContext
from .core.state import StateVector
from .core.tracers import TracerType, MaterialParameters, create_tracers, release_box
from .core.background import Background, BoundingBox
from .core.fields import uniform_flow, solid_body_rotation, bell_flow, with_land_box
from .core.interpolator import Interpolator
from .core.kernel import Kernel
from .core.solver import Solver, SimulationResult, SCHEMES
from .core.diagnostics import (
    compute_center_of_mass,
    compute_dispersion,
    compute_active_fraction,
    compute_trajectory_error,
    compute_all_diagnostics,
)
from .io.config_manager import ConfigManager
from .utils.logger import SimulationLogger
from .scenario import run_scenario, build_scenario

__all__ = [
    # Errors
    "ArusError",
    "ConfigurationError",
    "ShapeMismatch",
    "OutOfDomain",
    # Core classes
    "SimulationContext",
    "StateVector",
    "TracerType",
    "MaterialParameters",
    "Background",
    "BoundingBox",
    "Interpolator",
    "Kernel",
    "Solver",
    "SimulationResult",
    "SCHEMES",
    # Tracer and field construction
    "create_tracers",
    "release_box",
    "uniform_flow",
    "solid_body_rotation",
    "bell_flow",
    "with_land_box",
    # Diagnostics
    "compute_center_of_mass",
    "compute_dispersion",
    "compute_active_fraction",
    "compute_trajectory_error",
    "compute_all_diagnostics",
    # IO and runs
    "ConfigManager",
    "SimulationLogger",
    "run_scenario",
    "build_scenario",
]
