"""
Scenario runner: builds backgrounds, tracers and a solver from a run
configuration (see ConfigManager) and integrates them.
"""

from typing import Dict, Any, List, Tuple

from .core.background import Background
from .core.context import SimulationContext
from .core.fields import bell_flow, solid_body_rotation, uniform_flow
from .core.kernel import Kernel
from .core.solver import SimulationResult, Solver
from .core.state import StateVector
from .core.tracers import create_tracers, release_box
from .core.errors import ConfigurationError
from .io.config_manager import ConfigManager
from .utils.logger import SimulationLogger


def normalize_scenario_name(scenario_name: str) -> str:
    """Convert scenario name to clean filename format."""
    clean = scenario_name.lower()
    clean = clean.replace(' - ', '_')
    clean = clean.replace('-', '_')
    clean = clean.replace(' ', '_')

    while '__' in clean:
        clean = clean.replace('__', '_')

    clean = clean.rstrip('_')
    return clean


def build_background(config: Dict[str, Any]) -> Background:
    """Create the analytic Background named by ``config['field']``."""
    kind = config.get('field', 'uniform')
    diffusivity = config.get('diffusivity', 0.0)

    if kind == 'uniform':
        half = config.get('extent', 1e4)
        return uniform_flow(
            u=config.get('u', 0.0),
            v=config.get('v', 0.0),
            w=config.get('w', 0.0),
            x_range=(-half, half),
            y_range=(-half, half),
            nx=config.get('nx', 3),
            ny=config.get('ny', 3),
            diffusivity=diffusivity,
        )
    if kind == 'rotation':
        half = config.get('extent', 1e4)
        return solid_body_rotation(
            omega=config.get('omega', 1e-4),
            x_range=(-half, half),
            y_range=(-half, half),
            nx=config.get('nx', 41),
            ny=config.get('ny', 41),
            diffusivity=diffusivity,
        )
    if kind == 'bell':
        return bell_flow(
            Lx=config.get('Lx', 50000.0),
            Ly=config.get('Ly', 50000.0),
            U0=config.get('U0', 0.3),
            nx=config.get('nx', 101),
            ny=config.get('ny', 101),
            diffusivity=diffusivity,
        )
    raise ConfigurationError(f"Unknown field type '{kind}'")


def build_tracers(config: Dict[str, Any], background: Background) -> List[StateVector]:
    """Release a regular patch of tracers in the central half of the tile."""
    box = background.extent
    x_range = (box.x_min + 0.25 * box.width, box.x_max - 0.25 * box.width)
    y_range = (box.y_min + 0.25 * box.height, box.y_max - 0.25 * box.height)
    positions = release_box(
        x_range,
        y_range,
        config.get('n_tracers_x', 10),
        config.get('n_tracers_y', 10),
    )
    return [create_tracers(positions, precision=config.get('precision', 'double'))]


def build_scenario(
    config: Dict[str, Any],
    logger: SimulationLogger = None
) -> Tuple[Solver, List[StateVector], List[Background]]:
    """
    Create the solver, tracer batches and backgrounds for a configuration.

    Raises:
        ConfigurationError: On an invalid configuration or scheme code
    """
    ConfigManager.validate(config)
    context = SimulationContext.from_config(config, logger=logger)
    background = build_background(config)
    states = build_tracers(config, background)
    solver = Solver(
        scheme=config['scheme'],
        name=config.get('scheme_name'),
        kernel=Kernel(context),
        context=context,
    )
    return solver, states, [background]


def run_scenario(
    config: Dict[str, Any],
    log_dir: str = "logs",
    verbose: bool = True
) -> SimulationResult:
    """Run a complete tracer integration scenario."""
    scenario_name = config.get('scenario_name', 'simulation')
    clean_name = normalize_scenario_name(scenario_name)

    if verbose:
        print(f"\n{'=' * 70}")
        print(f"SCENARIO: {scenario_name}")
        print(f"{'=' * 70}")

    logger = SimulationLogger(clean_name, log_dir, verbose)

    try:
        solver, states, backgrounds = build_scenario(config, logger)
        logger.log_context(solver.context)
        logger.log_config(config)

        if verbose:
            print(f"      {solver.describe()}")
            print(f"      Tracers: {sum(s.n_tracers for s in states):,}")

        result = solver.run(
            states,
            backgrounds,
            t_start=config['t_start'],
            t_end=config['t_end'],
            dt=config['dt'],
            output_interval=config.get('output_interval', 1),
            verbose=verbose,
        )
        result.config.update(config)
        return result

    except Exception as e:
        logger.error(f"Simulation failed: {str(e)}")
        raise

    finally:
        logger.finalize()
