"""
Analytic Background generators.

Builds Background tiles from closed-form flows, for tests, examples and
idealized runs:

    uniform_flow          u, v, w constant everywhere
    solid_body_rotation   u = -Ω (y - yc),  v = Ω (x - xc)
    bell_flow             Bell's incompressible basin recirculation
                          u = -(U₀/2) sin²(πx/L) sin(2πy/L)
                          v =  (U₀/2) sin²(πy/L) sin(2πx/L)

References:
    Bell, J. B., Colella, P., & Glaz, H. M. (1989). J. Comput. Phys., 85(2), 257-283.
"""

import numpy as np
from numba import njit, prange
from typing import Optional, Tuple

from .background import Background
from .constants import (
    MASK_LAND,
    MASK_WATER,
    VAR_DIFFUSIVITY,
    VAR_LAND_INT_MASK,
    VAR_LAND_MASK,
    VAR_U,
    VAR_V,
    VAR_W,
)


def _grid(
    x_range: Tuple[float, float],
    y_range: Tuple[float, float],
    nx: int,
    ny: int
) -> Tuple[np.ndarray, np.ndarray]:
    return (
        np.linspace(x_range[0], x_range[1], nx),
        np.linspace(y_range[0], y_range[1], ny),
    )


def _base_fields(shape: Tuple[int, int], diffusivity: float) -> dict:
    nx, ny = shape
    return {
        VAR_DIFFUSIVITY: np.full((nx, ny), diffusivity, dtype=np.float64),
        VAR_LAND_MASK: np.full((nx, ny), MASK_WATER, dtype=np.float64),
        VAR_LAND_INT_MASK: np.full((nx, ny), MASK_WATER, dtype=np.float64),
    }


def uniform_flow(
    u: float = 0.0,
    v: float = 0.0,
    w: float = 0.0,
    x_range: Tuple[float, float] = (-1e3, 1e3),
    y_range: Tuple[float, float] = (-1e3, 1e3),
    nx: int = 3,
    ny: int = 3,
    diffusivity: float = 0.0,
    name: str = "uniform",
    **kwargs
) -> Background:
    """
    Background with a spatially and temporally constant velocity.

    Args:
        u, v, w: Velocity components [m/s]
        x_range, y_range: Tile extent
        nx, ny: Grid points
        diffusivity: Constant diffusivity [m²/s]
        name: Tile name
        **kwargs: Passed to Background (valid_from, valid_until, ...)
    """
    x, y = _grid(x_range, y_range, nx, ny)
    fields = _base_fields((nx, ny), diffusivity)
    fields[VAR_U] = np.full((nx, ny), u, dtype=np.float64)
    fields[VAR_V] = np.full((nx, ny), v, dtype=np.float64)
    fields[VAR_W] = np.full((nx, ny), w, dtype=np.float64)
    return Background(fields, x, y, name=name, **kwargs)


def solid_body_rotation(
    omega: float = 1e-4,
    center: Tuple[float, float] = (0.0, 0.0),
    x_range: Tuple[float, float] = (-1e4, 1e4),
    y_range: Tuple[float, float] = (-1e4, 1e4),
    nx: int = 41,
    ny: int = 41,
    diffusivity: float = 0.0,
    name: str = "rotation",
    **kwargs
) -> Background:
    """
    Background rotating rigidly around ``center`` with angular speed ``omega``.

    The field is linear in x and y, so bilinear sampling reproduces it
    exactly and trajectories are exact circles.
    """
    x, y = _grid(x_range, y_range, nx, ny)
    X, Y = np.meshgrid(x, y, indexing='ij')
    fields = _base_fields((nx, ny), diffusivity)
    fields[VAR_U] = -omega * (Y - center[1])
    fields[VAR_V] = omega * (X - center[0])
    fields[VAR_W] = np.zeros((nx, ny), dtype=np.float64)
    return Background(fields, x, y, name=name, **kwargs)


def bell_flow(
    Lx: float = 50000.0,
    Ly: float = 50000.0,
    U0: float = 0.3,
    nx: int = 101,
    ny: int = 101,
    diffusivity: float = 0.0,
    name: str = "bell",
    **kwargs
) -> Background:
    """
    Bell's incompressible recirculation in a closed basin [0, Lx] × [0, Ly].

    Velocity vanishes on the basin walls.
    """
    x, y = _grid((0.0, Lx), (0.0, Ly), nx, ny)
    vx, vy = compute_bell_field(x, y, Lx, Ly, U0)
    fields = _base_fields((nx, ny), diffusivity)
    fields[VAR_U] = vx
    fields[VAR_V] = vy
    fields[VAR_W] = np.zeros((nx, ny), dtype=np.float64)
    return Background(fields, x, y, name=name, **kwargs)


def with_land_box(
    background: Background,
    x_range: Tuple[float, float],
    y_range: Tuple[float, float],
    value: int = MASK_LAND,
    name: Optional[str] = None
) -> Background:
    """
    Copy of ``background`` with the land mask set to ``value`` inside a box.

    Velocities inside the box are set to zero.
    """
    X, Y = np.meshgrid(background.x, background.y, indexing='ij')
    inside = (
        (X >= x_range[0]) & (X <= x_range[1]) &
        (Y >= y_range[0]) & (Y <= y_range[1])
    )
    fields = {}
    for var in background.variables:
        arr = np.array(background.get_field(var), copy=True)
        if var == VAR_LAND_MASK:
            arr[:, inside, :] = value
        elif var in (VAR_U, VAR_V, VAR_W):
            arr[:, inside, :] = 0.0
        fields[var] = arr
    if VAR_LAND_MASK not in fields:
        mask = np.full(background.shape, MASK_WATER, dtype=np.float64)
        mask[:, inside, :] = value
        fields[VAR_LAND_MASK] = mask

    valid = {}
    if background.times.size == 1:
        valid = dict(valid_from=background.valid_from, valid_until=background.valid_until)
    return Background(
        fields,
        background.x,
        background.y,
        z=background.z,
        times=background.times,
        name=name or f"{background.name}+land",
        **valid
    )


@njit(cache=True)
def _bell_velocity(x: float, y: float, Lx: float, Ly: float, U0: float) -> Tuple[float, float]:
    """
    Compute Bell's velocity at point (x, y).

    Args:
        x: x-coordinate [m]
        y: y-coordinate [m]
        Lx: Domain width in x [m]
        Ly: Domain width in y [m]
        U0: Maximum velocity [m/s]

    Returns:
        Tuple (u, v) velocity components [m/s]
    """
    pi = np.pi

    x_norm = pi * x / Lx
    y_norm = pi * y / Ly

    u = -0.5 * U0 * np.sin(x_norm)**2 * np.sin(2 * y_norm)
    v = 0.5 * U0 * np.sin(y_norm)**2 * np.sin(2 * x_norm)

    return u, v


@njit(cache=True, parallel=True)
def compute_bell_field(
    X: np.ndarray,
    Y: np.ndarray,
    Lx: float,
    Ly: float,
    U0: float
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Evaluate Bell's velocity on a grid.

    Args:
        X: 1D array of x-coordinates
        Y: 1D array of y-coordinates
        Lx: Domain width in x
        Ly: Domain width in y
        U0: Maximum velocity

    Returns:
        Tuple of (vx, vy) arrays with shape (len(X), len(Y))
    """
    nx = len(X)
    ny = len(Y)

    vx = np.zeros((nx, ny), dtype=np.float64)
    vy = np.zeros((nx, ny), dtype=np.float64)

    for i in prange(nx):
        for j in range(ny):
            vx[i, j], vy[i, j] = _bell_velocity(X[i], Y[j], Lx, Ly, U0)

    return vx, vy
