"""
Background field tiles.

A Background is an immutable snapshot of environmental fields (velocity,
diffusivity, land masks) on a rectilinear grid, valid over a spatial extent
and a time window. Field arrays have shape (nt, nx, ny, nz); an axis of
length 1 makes the field constant along that dimension.

Several Backgrounds may describe overlapping or adjacent tiles. Which one
is used for a query is decided by the Interpolator.
"""

import numpy as np
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .errors import ShapeMismatch


@dataclass(frozen=True)
class BoundingBox:
    """Spatial extent of a Background. z bounds are None for 2-D tiles."""
    x_min: float
    x_max: float
    y_min: float
    y_max: float
    z_min: Optional[float] = None
    z_max: Optional[float] = None

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min

    def contains(self, px: np.ndarray, py: np.ndarray, pz: np.ndarray) -> np.ndarray:
        """Boolean mask of points inside the box (bounds inclusive)."""
        inside = (
            (px >= self.x_min) & (px <= self.x_max) &
            (py >= self.y_min) & (py <= self.y_max)
        )
        if self.z_min is not None:
            inside &= (pz >= self.z_min) & (pz <= self.z_max)
        return inside


def _axis(values, label: str) -> np.ndarray:
    values = np.atleast_1d(np.asarray(values, dtype=np.float64)).copy()
    if values.ndim != 1 or values.size == 0:
        raise ShapeMismatch(f"Axis '{label}' must be a non-empty 1-D array")
    if values.size > 1 and np.any(np.diff(values) <= 0):
        raise ValueError(f"Axis '{label}' must be strictly increasing")
    values.setflags(write=False)
    return values


class Background:
    """
    Read-only environmental field tile.

    Attributes:
        name: Tile name (for messages)
        x, y, z: Grid axes
        times: Sample times [s]
        extent: Spatial BoundingBox
        valid_from, valid_until: Validity window [s]

    Example:
        >>> u = np.ones((1, 3, 3, 1))
        >>> bg = Background({'u': u}, x=[0, 1, 2], y=[0, 1, 2])
        >>> bg.get_field('u').shape
        (1, 3, 3, 1)
    """

    def __init__(
        self,
        fields: Dict[str, np.ndarray],
        x,
        y,
        z=None,
        times=None,
        valid_from: Optional[float] = None,
        valid_until: Optional[float] = None,
        name: str = "background"
    ):
        """
        Build a Background from field arrays and grid axes.

        Args:
            fields: Mapping of variable name to array of shape (nt, nx, ny, nz).
                2-D arrays (nx, ny) and 3-D arrays (nt, nx, ny) are accepted
                and expanded.
            x, y: Horizontal axes
            z: Vertical axis (default: single level at 0)
            times: Sample times (default: single time slice)
            valid_from: Start of validity (default: first sample time, or -inf)
            valid_until: End of validity (default: last sample time, or +inf)
            name: Tile name
        """
        self.name = name
        self.x = _axis(x, "x")
        self.y = _axis(y, "y")
        self.z = _axis(0.0 if z is None else z, "z")
        self.times = _axis(0.0 if times is None else times, "times")

        if self.x.size < 2 or self.y.size < 2:
            raise ShapeMismatch("A Background needs at least 2 points along x and y")

        shape = (self.times.size, self.x.size, self.y.size, self.z.size)
        self._fields = {}
        for var, data in fields.items():
            arr = np.array(data, copy=True)
            if arr.ndim == 2:
                arr = arr[np.newaxis, :, :, np.newaxis]
            elif arr.ndim == 3:
                arr = arr[:, :, :, np.newaxis]
            if arr.shape != shape:
                raise ShapeMismatch(
                    f"Field '{var}' of {name} has shape {arr.shape}, expected {shape}"
                )
            arr.setflags(write=False)
            self._fields[var] = arr

        if valid_from is None:
            valid_from = self.times[0] if self.times.size > 1 else -np.inf
        if valid_until is None:
            valid_until = self.times[-1] if self.times.size > 1 else np.inf
        if valid_until < valid_from:
            raise ValueError(f"Empty validity window [{valid_from}, {valid_until}]")
        self.valid_from = float(valid_from)
        self.valid_until = float(valid_until)

        if self.z.size > 1:
            z_min, z_max = float(self.z[0]), float(self.z[-1])
        else:
            z_min = z_max = None
        self.extent = BoundingBox(
            float(self.x[0]), float(self.x[-1]),
            float(self.y[0]), float(self.y[-1]),
            z_min, z_max,
        )

    @property
    def variables(self) -> Tuple[str, ...]:
        """Names of the fields held by this tile."""
        return tuple(self._fields)

    @property
    def shape(self) -> Tuple[int, int, int, int]:
        return (self.times.size, self.x.size, self.y.size, self.z.size)

    def has_field(self, name: str) -> bool:
        return name in self._fields

    def get_field(self, name: str) -> np.ndarray:
        """Read-only field array of shape (nt, nx, ny, nz)."""
        try:
            return self._fields[name]
        except KeyError:
            raise KeyError(f"{self.name} has no field '{name}'") from None

    def covers_time(self, time: float) -> bool:
        return self.valid_from <= time <= self.valid_until

    def contains(
        self,
        px: np.ndarray,
        py: np.ndarray,
        pz: np.ndarray,
        time: float
    ) -> np.ndarray:
        """Boolean mask of query points covered in space and time."""
        if not self.covers_time(time):
            return np.zeros(np.shape(px), dtype=bool)
        return self.extent.contains(px, py, pz)

    def edge_weight(self, px: np.ndarray, py: np.ndarray) -> np.ndarray:
        """
        Normalized distance to the nearest horizontal tile edge.

        Zero on the edge and 1 at the tile centre; used to blend
        overlapping tiles continuously.
        """
        box = self.extent
        dx = np.minimum(px - box.x_min, box.x_max - px) / (0.5 * box.width)
        dy = np.minimum(py - box.y_min, box.y_max - py) / (0.5 * box.height)
        return np.clip(np.minimum(dx, dy), 0.0, 1.0)

    def max_speed(self) -> float:
        """Maximum horizontal speed held by the tile [m/s]."""
        if not (self.has_field("u") and self.has_field("v")):
            return 0.0
        speed = np.sqrt(self._fields["u"] ** 2 + self._fields["v"] ** 2)
        return float(np.max(speed))

    def __repr__(self) -> str:
        box = self.extent
        return (
            f"Background('{self.name}', x=[{box.x_min:g}, {box.x_max:g}], "
            f"y=[{box.y_min:g}, {box.y_max:g}], "
            f"t=[{self.valid_from:g}, {self.valid_until:g}], "
            f"vars={list(self.variables)})"
        )
