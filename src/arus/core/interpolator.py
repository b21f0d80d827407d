"""
Field sampling at tracer positions.

Samples named Background fields at every tracer of a StateVector with
quadrilinear (x, y, z, t) interpolation, resolving which Background tiles
cover each tracer.

Tile resolution:
    - a tile covers a tracer when the tracer lies inside its extent and the
      query time lies inside its validity window;
    - overlapping tiles are blended with weights that vanish on each tile's
      edge, so sampled values are continuous across tile boundaries;
    - tracers covered by no tile (or by no tile holding the variable) get
      Interpolator.DEFAULTS: zero velocity and diffusivity, water masks.

Strict bounds:
    With ``strict_bounds=True`` an active tracer outside every tile raises
    OutOfDomain instead of falling back to the defaults.
"""

import numpy as np
from numba import njit
from typing import Dict, List, Optional, Sequence, Tuple

from .background import Background
from .constants import (
    FIELD_VARIABLES,
    MASK_VARIABLES,
    MASK_WATER,
    VAR_DIFFUSIVITY,
    VAR_LAND_INT_MASK,
    VAR_LAND_MASK,
    VAR_U,
    VAR_V,
    VAR_VERTICAL_DIFFUSIVITY,
    VAR_W,
)
from .errors import OutOfDomain
from .state import StateVector

# Smallest blending weight; keeps tracers sitting exactly on a shared tile
# edge covered.
MIN_TILE_WEIGHT = 1e-6


@njit(cache=True)
def _locate(coords: np.ndarray, value: float) -> Tuple[int, float]:
    """
    Find the cell of ``value`` on a strictly increasing axis.

    Returns the lower node index and the fractional position in [0, 1]
    inside the cell. Axes of length 1 return (0, 0.0).
    """
    n = coords.shape[0]
    if n == 1:
        return 0, 0.0

    i = np.searchsorted(coords, value, side='right') - 1
    i = max(0, min(i, n - 2))

    frac = (value - coords[i]) / (coords[i + 1] - coords[i])
    frac = max(0.0, min(1.0, frac))

    return i, frac


@njit(cache=True, nogil=True)
def sample_field(
    field: np.ndarray,
    xs: np.ndarray,
    ys: np.ndarray,
    zs: np.ndarray,
    ts: np.ndarray,
    px: np.ndarray,
    py: np.ndarray,
    pz: np.ndarray,
    t: float
) -> np.ndarray:
    """
    Quadrilinear interpolation of a (nt, nx, ny, nz) field.

    Weights of the 16 surrounding nodes satisfy partition of unity, so a
    constant field is reproduced exactly and a field linear in each
    coordinate is reproduced exactly inside the grid. Queries outside the
    grid are clamped to its boundary.

    Runs without the GIL, so batches advanced on separate worker threads
    sample concurrently.

    Args:
        field: 4D field array
        xs, ys, zs, ts: Grid axes
        px, py, pz: Query positions
        t: Query time

    Returns:
        1D array of sampled values
    """
    n_points = len(px)
    result = np.zeros(n_points, dtype=np.float64)

    nt = ts.shape[0]
    nx = xs.shape[0]
    ny = ys.shape[0]
    nz = zs.shape[0]

    it, ft = _locate(ts, t)

    for p in range(n_points):
        ix, fx = _locate(xs, px[p])
        iy, fy = _locate(ys, py[p])
        iz, fz = _locate(zs, pz[p])

        value = 0.0
        for a in range(2):
            wt = ft if a == 1 else 1.0 - ft
            if wt == 0.0:
                continue
            ti = min(it + a, nt - 1)
            for b in range(2):
                wx = fx if b == 1 else 1.0 - fx
                if wx == 0.0:
                    continue
                xi = min(ix + b, nx - 1)
                for c in range(2):
                    wy = fy if c == 1 else 1.0 - fy
                    if wy == 0.0:
                        continue
                    yi = min(iy + c, ny - 1)
                    for d in range(2):
                        wz = fz if d == 1 else 1.0 - fz
                        if wz == 0.0:
                            continue
                        zi = min(iz + d, nz - 1)
                        value += wt * wx * wy * wz * field[ti, xi, yi, zi]

        result[p] = value

    return result


class Interpolator:
    """
    Samples Background fields at tracer positions.

    Attributes:
        strict_bounds: Raise OutOfDomain for uncovered active tracers

    Example:
        >>> interp = Interpolator()
        >>> values, names = interp.run(state, [background], time=0.0)
        >>> u = values[:, names.index('u')]
    """

    DEFAULTS: Dict[str, float] = {
        VAR_U: 0.0,
        VAR_V: 0.0,
        VAR_W: 0.0,
        VAR_DIFFUSIVITY: 0.0,
        VAR_VERTICAL_DIFFUSIVITY: 0.0,
        VAR_LAND_MASK: float(MASK_WATER),
        VAR_LAND_INT_MASK: float(MASK_WATER),
    }

    def __init__(self, strict_bounds: bool = False):
        self.strict_bounds = strict_bounds

    @classmethod
    def default_value(cls, name: str) -> float:
        """Value returned for a variable where no Background covers a tracer."""
        return cls.DEFAULTS.get(name, 0.0)

    def run(
        self,
        state: StateVector,
        backgrounds: Sequence[Background],
        time: float,
        var_names: Optional[Sequence[str]] = None
    ) -> Tuple[np.ndarray, List[str]]:
        """
        Sample fields for every tracer of a state vector.

        Args:
            state: Tracer batch (positions are read, nothing is written)
            backgrounds: Candidate Background tiles
            time: Query time [s]
            var_names: Variables to sample (default: standard field names)

        Returns:
            Tuple of (values, names): values has shape
            (n_tracers, len(names)) in the state's precision
        """
        names = list(FIELD_VARIABLES if var_names is None else var_names)
        n = state.n_tracers

        positions = state.positions.astype(np.float64)
        px = np.ascontiguousarray(positions[:, 0])
        py = np.ascontiguousarray(positions[:, 1])
        pz = np.ascontiguousarray(positions[:, 2])

        # Per-tile coverage and blending weight
        tiles = []
        covered = np.zeros(n, dtype=bool)
        for bg in backgrounds:
            inside = bg.contains(px, py, pz, time)
            if not inside.any():
                continue
            covered |= inside
            weight = np.where(
                inside,
                np.maximum(bg.edge_weight(px, py), MIN_TILE_WEIGHT),
                0.0
            )
            tiles.append((bg, inside, weight))

        if self.strict_bounds:
            outside = state.active & ~covered
            if outside.any():
                raise OutOfDomain(
                    f"{int(np.count_nonzero(outside))} active tracer(s) outside "
                    f"every background at t={time}"
                )

        values = np.empty((n, len(names)), dtype=state.dtype)
        for k, var in enumerate(names):
            total = np.zeros(n, dtype=np.float64)
            weight_sum = np.zeros(n, dtype=np.float64)

            for bg, inside, weight in tiles:
                if not bg.has_field(var):
                    continue
                idx = np.nonzero(inside)[0]
                sampled = sample_field(
                    np.asarray(bg.get_field(var), dtype=np.float64),
                    bg.x, bg.y, bg.z, bg.times,
                    px[idx], py[idx], pz[idx],
                    float(time)
                )
                total[idx] += weight[idx] * sampled
                weight_sum[idx] += weight[idx]

            column = np.full(n, self.default_value(var), dtype=np.float64)
            hit = weight_sum > 0.0
            column[hit] = total[hit] / weight_sum[hit]

            if var in MASK_VARIABLES:
                column = np.rint(column)

            values[:, k] = column

        return values, names

    @staticmethod
    def find(names: Sequence[str], name: str) -> Optional[int]:
        """Index of ``name`` in a sampled variable list, or None."""
        try:
            return list(names).index(name)
        except ValueError:
            return None
