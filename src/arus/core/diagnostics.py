"""
Tracer run diagnostics.

Summary statistics of tracer batches, used for run reports and for checking
integration accuracy against reference trajectories.
"""

import numpy as np
from numba import njit, prange
from typing import Dict, Any, Sequence, Tuple

from .state import StateVector


def compute_center_of_mass(
    positions: np.ndarray,
    active: np.ndarray = None
) -> Dict[str, float]:
    """
    Compute the mean position of (active) tracers.

    Args:
        positions: (N, 3) tracer positions
        active: Optional boolean mask of tracers to include

    Returns:
        Dictionary with center of mass coordinates
    """
    if active is not None:
        positions = positions[active]

    if positions.shape[0] == 0:
        return {'x_cm': np.nan, 'y_cm': np.nan, 'z_cm': np.nan, 'n': 0}

    x_cm, y_cm, z_cm = positions.mean(axis=0)
    return {
        'x_cm': float(x_cm),
        'y_cm': float(y_cm),
        'z_cm': float(z_cm),
        'n': int(positions.shape[0]),
    }


@njit(cache=True, parallel=True)
def _displacements(positions: np.ndarray, initial: np.ndarray) -> np.ndarray:
    n = positions.shape[0]
    result = np.zeros(n, dtype=np.float64)

    for i in prange(n):
        dx = positions[i, 0] - initial[i, 0]
        dy = positions[i, 1] - initial[i, 1]
        dz = positions[i, 2] - initial[i, 2]
        result[i] = np.sqrt(dx * dx + dy * dy + dz * dz)

    return result


def compute_dispersion(
    positions: np.ndarray,
    initial: np.ndarray
) -> Dict[str, float]:
    """
    Compute statistics of tracer displacements from their release positions.

    Args:
        positions: (N, 3) current positions
        initial: (N, 3) initial positions

    Returns:
        Dictionary with mean, max and mean squared displacement
    """
    if positions.shape != initial.shape:
        raise ValueError(
            f"Position arrays differ in shape: {positions.shape} vs {initial.shape}"
        )
    if positions.shape[0] == 0:
        return {'mean_displacement': 0.0, 'max_displacement': 0.0, 'msd': 0.0}

    d = _displacements(
        np.ascontiguousarray(positions, dtype=np.float64),
        np.ascontiguousarray(initial, dtype=np.float64)
    )
    return {
        'mean_displacement': float(np.mean(d)),
        'max_displacement': float(np.max(d)),
        'msd': float(np.mean(d ** 2)),
    }


def compute_active_fraction(states: Sequence[StateVector]) -> float:
    """Fraction of tracers still active over a collection of batches."""
    total = sum(s.n_tracers for s in states)
    if total == 0:
        return 0.0
    return sum(s.n_active for s in states) / total


def compute_trajectory_error(
    positions: np.ndarray,
    reference: np.ndarray
) -> Dict[str, float]:
    """
    RMS and maximum distance between positions and a reference solution.

    Args:
        positions: (N, 3) computed positions
        reference: (N, 3) reference (analytic or high-resolution) positions
    """
    stats = compute_dispersion(positions, reference)
    return {
        'rms_error': float(np.sqrt(stats['msd'])),
        'max_error': stats['max_displacement'],
    }


def compute_all_diagnostics(
    states: Sequence[StateVector],
    initial_positions: Sequence[np.ndarray]
) -> Dict[str, Any]:
    """
    Compute the run summary for a collection of batches.

    Args:
        states: Final tracer batches
        initial_positions: Release positions of each batch

    Returns:
        Dictionary of diagnostics
    """
    positions = [s.positions for s in states]
    all_positions = np.concatenate(positions) if positions else np.empty((0, 3))
    all_initial = (
        np.concatenate(initial_positions) if len(initial_positions) else np.empty((0, 3))
    )
    all_active = (
        np.concatenate([s.active for s in states]) if states else np.empty(0, dtype=bool)
    )

    diagnostics: Dict[str, Any] = {
        'n_batches': len(states),
        'n_tracers': int(all_positions.shape[0]),
        'n_active': int(np.count_nonzero(all_active)),
        'active_fraction': compute_active_fraction(states),
    }
    diagnostics.update(compute_center_of_mass(all_positions, all_active))
    diagnostics.update(compute_dispersion(all_positions, all_initial))
    return diagnostics


def max_cfl(speed: float, dt: float, spacing: Tuple[float, ...]) -> float:
    """Courant number of the fastest flow on the finest grid spacing."""
    return speed * dt / min(spacing)
