"""
Right-hand side of the tracer equations.

The Kernel turns sampled Background fields and material parameters into
the time derivative of a StateVector. The derivative matrix has the same
shape and column layout as the state:

    x, y, z        velocity + diffusion velocity (deg/s in geographic mode)
    u, v, w        (sampled - origin) / dt, so one full step stores the
                   sampled velocity (a stage average for multi-stage schemes)
    dVelX..dVelZ   (new - origin) / dt for the diffusion velocity
    mLen           (new - origin) / dt for the used mixing length
    age            1
    condition      -degradation_rate * condition (paper tracers)

"origin" is the state a solver stage copy was built from (StateVector.base);
for a plain state it is the state itself.

Side effect: the land masks of active tracers are updated from the sampled
fields, and tracers on land (mask == MASK_LAND) are deactivated. Rows of
inactive tracers are always zero.
"""

import numpy as np
from typing import Optional, Sequence, Tuple

from .background import Background
from .constants import (
    AGE_VAR,
    DIFFUSION_VARS,
    MASK_LAND,
    MIXING_LENGTH_VAR,
    POSITION_VARS,
    VAR_DIFFUSIVITY,
    VAR_LAND_INT_MASK,
    VAR_LAND_MASK,
    VAR_VERTICAL_DIFFUSIVITY,
    VELOCITY_VARS,
)
from .context import SimulationContext
from .interpolator import Interpolator
from .state import StateVector
from .tracers import MaterialParameters, TracerType
from .units import m2geo


class Kernel:
    """
    Composes the per-tracer time derivative of a state vector.

    Attributes:
        context: Run-wide SimulationContext
        params: Material parameters of the tracers
        mixing_length: Distance travelled before a new diffusion velocity
            is drawn [m]; 0 disables diffusion
        interpolator: Field sampler
        rng: Random generator used when ``run`` gets none

    Example:
        >>> kernel = Kernel(SimulationContext(seed=1))
        >>> k = kernel.run(state, backgrounds, time=0.0, dt=60.0)
        >>> k.shape == state.shape
        True
    """

    def __init__(
        self,
        context: Optional[SimulationContext] = None,
        material_params: Optional[MaterialParameters] = None,
        mixing_length: Optional[float] = None,
        interpolator: Optional[Interpolator] = None
    ):
        self.context = context or SimulationContext()
        self.params = material_params or MaterialParameters()
        if mixing_length is None:
            mixing_length = self.context.mixing_length
        self.mixing_length = float(mixing_length)
        self.interpolator = interpolator or Interpolator(
            strict_bounds=self.context.strict_bounds
        )
        self.rng = self.context.rng()

    def initialize(self) -> None:
        """Reset the random generator to the context seed."""
        self.rng = self.context.rng()

    def run(
        self,
        state: StateVector,
        backgrounds: Sequence[Background],
        time: float,
        dt: float,
        rng: Optional[np.random.Generator] = None
    ) -> np.ndarray:
        """
        Evaluate the derivative of ``state`` at ``time``.

        Args:
            state: Tracer batch; its masks and active flags may be updated
            backgrounds: Background tiles to sample
            time: Evaluation time [s]
            dt: Time step [s], used by the velocity and diffusion terms
            rng: Random generator for diffusion (default: ``self.rng``)

        Returns:
            Derivative matrix with the state's shape and dtype
        """
        if dt <= 0:
            raise ValueError(f"Time step must be positive, got {dt}")
        rng = self.rng if rng is None else rng

        derivative = np.zeros(state.shape, dtype=state.dtype)
        if state.n_tracers == 0:
            return derivative

        values, names = self.interpolator.run(state, backgrounds, time)

        self._update_masks(state, values, names)
        active = state.active
        if not active.any():
            return derivative

        velocity = self._sampled_velocity(values, names)
        diffusion_velocity, mixing_length = self._diffusion(
            state, values, names, dt, rng
        )

        # Velocity-like columns reach their new values over one step, measured
        # from the state the stage was built from
        base = state.base
        for k, var in enumerate(VELOCITY_VARS):
            col = state.index(var)
            derivative[:, col] = (velocity[:, k] - base[:, col]) / dt
        for k, var in enumerate(DIFFUSION_VARS):
            col = state.index(var)
            derivative[:, col] = (diffusion_velocity[:, k] - base[:, col]) / dt

        col = state.index(MIXING_LENGTH_VAR)
        derivative[:, col] = (mixing_length - base[:, col]) / dt

        rates = self._position_rates(state, velocity + diffusion_velocity)
        for k, var in enumerate(POSITION_VARS):
            derivative[:, state.index(var)] = rates[:, k]

        derivative[:, state.index(AGE_VAR)] = 1.0

        if state.material == TracerType.PAPER:
            col = state.find("condition")
            if col is not None:
                derivative[:, col] = -self.params.degradation_rate * state.state[:, col]

        derivative[~active] = 0.0
        return derivative

    def _update_masks(
        self,
        state: StateVector,
        values: np.ndarray,
        names: Sequence[str]
    ) -> None:
        """Store sampled masks on active tracers and deactivate landed ones."""
        active = state.active
        k = Interpolator.find(names, VAR_LAND_MASK)
        if k is not None:
            state.land_mask[active] = values[active, k].astype(np.int32)
        k = Interpolator.find(names, VAR_LAND_INT_MASK)
        if k is not None:
            state.land_int_mask[active] = values[active, k].astype(np.int32)

        state.deactivate(active & (state.land_mask == MASK_LAND))

    @staticmethod
    def _sampled_velocity(values: np.ndarray, names: Sequence[str]) -> np.ndarray:
        velocity = np.zeros((values.shape[0], 3), dtype=np.float64)
        for k, var in enumerate(VELOCITY_VARS):
            idx = Interpolator.find(names, var)
            if idx is not None:
                velocity[:, k] = values[:, idx]
        return velocity

    def _diffusion(
        self,
        state: StateVector,
        values: np.ndarray,
        names: Sequence[str],
        dt: float,
        rng: np.random.Generator
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Random-walk diffusion velocity and used mixing length.

        A new velocity N(0, 1) * sqrt(2 K / dt) per component is drawn for
        tracers whose used mixing length is zero or has reached the mixing
        length; the others keep their current diffusion velocity. K is the
        sampled horizontal diffusivity for x/y and the vertical one for z.

        Returns:
            Tuple of (diffusion_velocity (n, 3), mixing_length (n,))
        """
        n = state.n_tracers
        if self.mixing_length <= 0:
            return np.zeros((n, 3)), np.zeros(n)

        diffusivity = np.zeros((n, 3), dtype=np.float64)
        k = Interpolator.find(names, VAR_DIFFUSIVITY)
        if k is not None:
            diffusivity[:, 0] = values[:, k]
            diffusivity[:, 1] = values[:, k]
        k = Interpolator.find(names, VAR_VERTICAL_DIFFUSIVITY)
        if k is not None:
            diffusivity[:, 2] = values[:, k]
        scale = np.sqrt(2.0 * np.maximum(diffusivity, 0.0) / dt)

        base = state.base
        current = base[:, [state.index(v) for v in DIFFUSION_VARS]].astype(np.float64)
        used = base[:, state.index(MIXING_LENGTH_VAR)].astype(np.float64)

        # Draw for every tracer so the stream does not depend on the masks
        draws = rng.standard_normal((n, 3))
        resample = (used <= 0.0) | (used >= self.mixing_length)

        velocity = np.where(resample[:, np.newaxis], draws * scale, current)
        travelled = np.linalg.norm(velocity, axis=1) * dt
        mixing_length = np.where(resample, travelled, used + travelled)

        return velocity, mixing_length

    def _position_rates(self, state: StateVector, velocity: np.ndarray) -> np.ndarray:
        """Convert velocities [m/s] into position rates in state units."""
        if not self.context.geographic:
            return velocity
        latitude = state.column("y").astype(np.float64)
        rates = velocity.copy()
        rates[:, 0] = m2geo(velocity[:, 0], latitude, is_latitude=False)
        rates[:, 1] = m2geo(velocity[:, 1], latitude, is_latitude=True)
        return rates
