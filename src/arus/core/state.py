"""
Tracer State Vector.

Dense per-batch container of tracer state: one row per tracer, one named
column per state variable, plus per-tracer active flags and mask status.

The Solver mutates a StateVector only through ``add_scaled``; the Kernel
additionally updates the mask status and active flags of the tracers it
evaluates.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from .constants import MASK_WATER, POSITION_VARS
from .errors import ShapeMismatch


@dataclass(eq=False)
class StateVector:
    """
    Numeric state of one batch of tracers.

    Attributes:
        state: (n_tracers, n_vars) state matrix
        var_names: Column names, in column order
        active: Active flag per tracer
        land_mask: Last sampled land mask per tracer
        land_int_mask: Last sampled land interaction mask per tracer
        ids: Tracer identifiers
        source_ids: Identifier of the emitting source per tracer
        material: Material tag of the batch (TracerType value)
        origin: State matrix a solver stage copy was built from; the Kernel
            takes the rates of velocity-like columns relative to it
    """
    state: np.ndarray
    var_names: Tuple[str, ...]
    active: Optional[np.ndarray] = None
    land_mask: Optional[np.ndarray] = None
    land_int_mask: Optional[np.ndarray] = None
    ids: Optional[np.ndarray] = None
    source_ids: Optional[np.ndarray] = None
    material: int = 0
    origin: Optional[np.ndarray] = field(default=None, repr=False)
    finalized: bool = field(default=False, init=False)

    def __post_init__(self):
        self.state = np.asarray(self.state)
        if self.state.ndim != 2:
            raise ShapeMismatch(
                f"State matrix must be 2-D, got shape {self.state.shape}"
            )
        if not np.issubdtype(self.state.dtype, np.floating):
            self.state = self.state.astype(np.float64)

        self.var_names = tuple(self.var_names)
        if len(self.var_names) != self.state.shape[1]:
            raise ShapeMismatch(
                f"{len(self.var_names)} variable names for "
                f"{self.state.shape[1]} state columns"
            )
        if len(set(self.var_names)) != len(self.var_names):
            raise ShapeMismatch(f"Duplicate variable names in {self.var_names}")

        n = self.state.shape[0]
        self.active = self._per_tracer(self.active, True, bool, "active")
        self.land_mask = self._per_tracer(self.land_mask, MASK_WATER, np.int32, "land_mask")
        self.land_int_mask = self._per_tracer(
            self.land_int_mask, MASK_WATER, np.int32, "land_int_mask"
        )
        if self.ids is None:
            self.ids = np.arange(n, dtype=np.int64)
        self.ids = self._per_tracer(self.ids, 0, np.int64, "ids")
        self.source_ids = self._per_tracer(self.source_ids, 0, np.int64, "source_ids")
        self._columns = {name: i for i, name in enumerate(self.var_names)}

    def _per_tracer(self, values, default, dtype, label: str) -> np.ndarray:
        n = self.state.shape[0]
        if values is None:
            return np.full(n, default, dtype=dtype)
        values = np.asarray(values, dtype=dtype).copy()
        if values.shape != (n,):
            raise ShapeMismatch(
                f"'{label}' has shape {values.shape}, expected ({n},)"
            )
        return values

    @property
    def n_tracers(self) -> int:
        """Number of rows (tracers)."""
        return self.state.shape[0]

    @property
    def n_vars(self) -> int:
        """Number of columns (state variables)."""
        return self.state.shape[1]

    @property
    def n_active(self) -> int:
        """Number of active tracers."""
        return int(np.count_nonzero(self.active))

    @property
    def dtype(self) -> np.dtype:
        return self.state.dtype

    @property
    def shape(self) -> Tuple[int, int]:
        return self.state.shape

    def index(self, name: str) -> int:
        """Column index of a required variable."""
        try:
            return self._columns[name]
        except KeyError:
            raise KeyError(
                f"Variable '{name}' not in state layout {self.var_names}"
            ) from None

    def find(self, name: str) -> Optional[int]:
        """Column index of an optional variable, or None."""
        return self._columns.get(name)

    def column(self, name: str) -> np.ndarray:
        """View of one state column."""
        return self.state[:, self.index(name)]

    def columns(self, names: Sequence[str]) -> np.ndarray:
        """Copy of several state columns, in the order given."""
        return self.state[:, [self.index(n) for n in names]]

    @property
    def positions(self) -> np.ndarray:
        """(n_tracers, 3) copy of the positions."""
        return self.columns(POSITION_VARS)

    @property
    def base(self) -> np.ndarray:
        """State matrix that stage rates refer to (``origin`` or ``state``)."""
        return self.state if self.origin is None else self.origin

    def copy_state(self) -> 'StateVector':
        """Create an independent deep copy with the same layout and values."""
        return StateVector(
            state=self.state.copy(),
            var_names=self.var_names,
            active=self.active.copy(),
            land_mask=self.land_mask.copy(),
            land_int_mask=self.land_int_mask.copy(),
            ids=self.ids.copy(),
            source_ids=self.source_ids.copy(),
            material=self.material,
        )

    def finalize(self) -> None:
        """
        Release the buffers of this state vector.

        Safe to call more than once. A finalized state vector keeps its
        column layout but holds no tracers.
        """
        if self.finalized:
            return
        n_vars = self.state.shape[1]
        self.state = np.empty((0, n_vars), dtype=self.state.dtype)
        self.active = np.empty(0, dtype=bool)
        self.land_mask = np.empty(0, dtype=np.int32)
        self.land_int_mask = np.empty(0, dtype=np.int32)
        self.ids = np.empty(0, dtype=np.int64)
        self.source_ids = np.empty(0, dtype=np.int64)
        self.origin = None
        self.finalized = True

    def check_shape(self, derivative: np.ndarray) -> None:
        """Raise ShapeMismatch if a derivative does not match the state."""
        derivative = np.asarray(derivative)
        if derivative.shape != self.state.shape:
            raise ShapeMismatch(
                f"Derivative shape {derivative.shape} does not match "
                f"state shape {self.state.shape}"
            )

    def add_scaled(self, derivative: np.ndarray, factor: float) -> None:
        """
        In-place update ``state += derivative * factor`` on active rows.

        The shape is checked before anything is written, so a failing call
        leaves the state untouched.

        Args:
            derivative: Matrix with the same shape as ``state``
            factor: Scalar multiplier (usually the time step)
        """
        derivative = np.asarray(derivative)
        self.check_shape(derivative)
        if not self.active.any():
            return
        rows = self.active
        increment = derivative[rows] * self.state.dtype.type(factor)
        self.state[rows] += increment.astype(self.state.dtype, copy=False)

    def deactivate(self, mask: np.ndarray) -> None:
        """Mark the tracers selected by ``mask`` as inactive."""
        self.active[np.asarray(mask, dtype=bool)] = False

    def snapshot_flags(self) -> tuple:
        """
        Copies of the active flags and masks.

        The state matrix itself is only written by ``add_scaled``, which
        either applies fully or not at all, so rolling back a failed step
        only needs the flags the Kernel may have changed.
        """
        return (
            self.active.copy(),
            self.land_mask.copy(),
            self.land_int_mask.copy(),
        )

    def restore_flags(self, snapshot: tuple) -> None:
        """Restore flags saved by ``snapshot_flags``."""
        active, land_mask, land_int_mask = snapshot
        self.active[...] = active
        self.land_mask[...] = land_mask
        self.land_int_mask[...] = land_int_mask

    def __repr__(self) -> str:
        return (
            f"StateVector(n_tracers={self.n_tracers}, n_active={self.n_active}, "
            f"vars={list(self.var_names)}, dtype={self.state.dtype})"
        )
