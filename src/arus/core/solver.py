"""
Tracer time integration.

The Solver advances collections of tracer batches (StateVectors) through
one time step with the integration scheme selected at initialization:

    1  Euler              state += K(state, t) dt
    2  Multi-Step Euler   k0 = K(state, t)
                          pred = state + k0 dt
                          k1 = K(pred, t + dt/2)
                          state += (k0 + k1) dt/2
    3  Runge-Kutta 4      four dependent stages at t, t + dt/2, t + dt/2, t + dt

A step is skipped when it would end past the context's max_time. Batches
are independent: each gets its own random stream and may run on its own
worker thread.
"""

import numpy as np
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Sequence
from tqdm import tqdm

from .background import Background
from .context import SimulationContext
from .diagnostics import compute_all_diagnostics, max_cfl
from .errors import ArusError, ConfigurationError
from .kernel import Kernel
from .state import StateVector

EULER = 1
MULTI_STEP_EULER = 2
RUNGE_KUTTA_4 = 3

SCHEMES: Dict[int, str] = {
    EULER: "Euler",
    MULTI_STEP_EULER: "Multi-Step Euler",
    RUNGE_KUTTA_4: "Runge-Kutta 4",
}


@dataclass
class SimulationResult:
    """
    Container for the output of a multi-step run.

    Attributes:
        time: Output times [s]
        positions: Per batch, positions over time (n_outputs, n_tracers, 3)
        active: Per batch, active flags over time (n_outputs, n_tracers)
        initial_positions: Per batch, release positions
        states: Final tracer batches (the objects that were advanced)
        diagnostics: Run summary
        config: Run parameters
    """
    time: np.ndarray
    positions: List[np.ndarray]
    active: List[np.ndarray]
    initial_positions: List[np.ndarray]
    states: List[StateVector]
    diagnostics: Dict[str, Any]
    config: Dict[str, Any]


class Solver:
    """
    Integrates tracer batches in time.

    Attributes:
        solver_type: Integration scheme code (see SCHEMES)
        name: Display name of the algorithm
        kernel: Kernel evaluating the tracer derivatives
        context: Run-wide SimulationContext

    Example:
        >>> solver = Solver(scheme=2, context=SimulationContext(max_time=3600.0))
        >>> solver.run_step([state], [background], time=0.0, dt=60.0)
    """

    def __init__(
        self,
        scheme: int = EULER,
        name: Optional[str] = None,
        kernel: Optional[Kernel] = None,
        context: Optional[SimulationContext] = None
    ):
        """
        Create a solver and select its integration scheme.

        Args:
            scheme: Scheme code, 1 (Euler), 2 (Multi-Step Euler) or 3 (RK4)
            name: Display name (default: the scheme's name)
            kernel: Derivative kernel (default: Kernel(context))
            context: Run context (default: the kernel's, or a new one)

        Raises:
            ConfigurationError: If the scheme code is not supported
        """
        if context is None:
            context = kernel.context if kernel is not None else SimulationContext()
        self.context = context
        self.kernel = kernel if kernel is not None else Kernel(context)
        self.initialize(scheme, name)

    def initialize(self, scheme: int, name: Optional[str] = None) -> None:
        """
        Select the integration scheme.

        Raises:
            ConfigurationError: If the scheme code is not supported
        """
        try:
            supported = not isinstance(scheme, bool) and scheme in SCHEMES
        except TypeError:
            supported = False
        if not supported:
            raise ConfigurationError(
                f"Unsupported integration scheme {scheme!r}; "
                f"choose one of {', '.join(f'{k} ({v})' for k, v in SCHEMES.items())}"
            )
        self.solver_type = int(scheme)
        self.name = name if name is not None else SCHEMES[self.solver_type]
        self._stepper = {
            EULER: self._step_euler,
            MULTI_STEP_EULER: self._step_ms_euler,
            RUNGE_KUTTA_4: self._step_rk4,
        }[self.solver_type]
        self.kernel.initialize()

    def describe(self) -> str:
        """Human-readable description of the algorithm."""
        return f"Solver algorithm is {self.name}"

    def print(self) -> str:
        """Send the description to the context logger and return it."""
        text = self.describe()
        if self.context.logger is not None:
            self.context.logger.info(text)
        return text

    def run_step(
        self,
        states: Sequence[StateVector],
        backgrounds: Sequence[Background],
        time: float,
        dt: float
    ) -> Sequence[StateVector]:
        """
        Advance every batch by one time step, in place.

        Nothing is changed when ``time + dt`` exceeds the context's
        max_time. Batches without active tracers are skipped without
        evaluating the Kernel. If a batch fails, its flags are restored to
        their values before the call and the error is re-raised with the
        batch index.

        Args:
            states: Tracer batches
            backgrounds: Background tiles (read only)
            time: Current time [s]
            dt: Time step [s]

        Returns:
            The same collection of states
        """
        if dt <= 0:
            raise ValueError(f"Time step must be positive, got {dt}")
        if time + dt > self.context.max_time:
            return states

        backgrounds = list(backgrounds)
        rngs = self.kernel.rng.spawn(len(states))

        jobs = [
            (i, state, rng) for i, (state, rng) in enumerate(zip(states, rngs))
            if state.n_active > 0
        ]
        if self.context.workers > 1 and len(jobs) > 1:
            with ThreadPoolExecutor(max_workers=self.context.workers) as pool:
                futures = [
                    pool.submit(self._advance, i, state, backgrounds, time, dt, rng)
                    for i, state, rng in jobs
                ]
                for future in futures:
                    future.result()
        else:
            for i, state, rng in jobs:
                self._advance(i, state, backgrounds, time, dt, rng)

        return states

    def _advance(
        self,
        index: int,
        state: StateVector,
        backgrounds: List[Background],
        time: float,
        dt: float,
        rng: np.random.Generator
    ) -> None:
        flags = state.snapshot_flags()
        try:
            self._stepper(state, backgrounds, time, dt, rng)
        except ArusError as exc:
            state.restore_flags(flags)
            raise type(exc)(f"batch {index}: {exc}") from exc
        except Exception:
            state.restore_flags(flags)
            raise

    def _stage(
        self,
        state: StateVector,
        derivative: np.ndarray,
        factor: float
    ) -> StateVector:
        """Stage copy ``state + derivative * factor`` referring back to ``state``."""
        stage = state.copy_state()
        stage.origin = state.state
        stage.add_scaled(derivative, factor)
        return stage

    @staticmethod
    def _replay(rng: np.random.Generator) -> np.random.Generator:
        """
        Generator starting from the current state of ``rng``.

        Every stage of one step draws the same diffusion velocities, so the
        stage-weighted mean equals a single draw.
        """
        bit_generator = type(rng.bit_generator)()
        bit_generator.state = rng.bit_generator.state
        return np.random.Generator(bit_generator)

    @staticmethod
    def _merge_flags(state: StateVector, stage: StateVector) -> None:
        """Carry deactivations found at a stage position back to the state."""
        landed = state.active & ~stage.active
        if landed.any():
            state.land_mask[landed] = stage.land_mask[landed]
            state.land_int_mask[landed] = stage.land_int_mask[landed]
            state.deactivate(landed)

    def _step_euler(self, state, backgrounds, time, dt, rng) -> None:
        k0 = self.kernel.run(state, backgrounds, time, dt, rng)
        state.add_scaled(k0, dt)

    def _step_ms_euler(self, state, backgrounds, time, dt, rng) -> None:
        predictor = None
        try:
            k0 = self.kernel.run(state, backgrounds, time, dt, self._replay(rng))
            predictor = self._stage(state, k0, dt)
            k1 = self.kernel.run(
                predictor, backgrounds, time + 0.5 * dt, dt, self._replay(rng)
            )
            self._merge_flags(state, predictor)
            state.add_scaled(k0 + k1, 0.5 * dt)
        finally:
            if predictor is not None:
                predictor.finalize()

    def _step_rk4(self, state, backgrounds, time, dt, rng) -> None:
        stages: List[StateVector] = []
        try:
            k1 = self.kernel.run(state, backgrounds, time, dt, self._replay(rng))

            stages.append(self._stage(state, k1, 0.5 * dt))
            k2 = self.kernel.run(
                stages[-1], backgrounds, time + 0.5 * dt, dt, self._replay(rng)
            )
            self._merge_flags(state, stages[-1])

            stages.append(self._stage(state, k2, 0.5 * dt))
            k3 = self.kernel.run(
                stages[-1], backgrounds, time + 0.5 * dt, dt, self._replay(rng)
            )
            self._merge_flags(state, stages[-1])

            stages.append(self._stage(state, k3, dt))
            k4 = self.kernel.run(
                stages[-1], backgrounds, time + dt, dt, self._replay(rng)
            )
            self._merge_flags(state, stages[-1])

            state.add_scaled(k1 + 2.0 * k2 + 2.0 * k3 + k4, dt / 6.0)
        finally:
            for stage in stages:
                stage.finalize()

    def run(
        self,
        states: Sequence[StateVector],
        backgrounds: Sequence[Background],
        t_start: float,
        t_end: float,
        dt: float,
        output_interval: int = 1,
        verbose: bool = True
    ) -> SimulationResult:
        """
        Advance the batches from ``t_start`` to ``t_end``.

        Args:
            states: Tracer batches, advanced in place
            backgrounds: Background tiles
            t_start: Start time [s]
            t_end: End time [s]
            dt: Time step [s]
            output_interval: Store positions every N steps
            verbose: Show a progress bar

        Returns:
            SimulationResult with stored positions and the run summary
        """
        if dt <= 0:
            raise ValueError(f"Time step must be positive, got {dt}")
        if output_interval < 1:
            raise ConfigurationError(
                f"output_interval must be >= 1, got {output_interval}"
            )
        if t_end < t_start:
            raise ConfigurationError(
                f"t_end ({t_end}) is before t_start ({t_start})"
            )

        states = list(states)
        backgrounds = list(backgrounds)
        logger = self.context.logger

        n_steps = int(round((t_end - t_start) / dt))
        n_outputs = n_steps // output_interval + 1

        if logger is not None:
            logger.info(self.describe())
            if not self.context.geographic:
                self._check_cfl(backgrounds, dt)

        initial_positions = [s.positions for s in states]
        time_out = np.zeros(n_outputs, dtype=np.float64)
        pos_out = [np.zeros((n_outputs, s.n_tracers, 3), dtype=s.dtype) for s in states]
        act_out = [np.zeros((n_outputs, s.n_tracers), dtype=bool) for s in states]

        time_out[0] = t_start
        for b, s in enumerate(states):
            pos_out[b][0] = s.positions
            act_out[b][0] = s.active

        output_idx = 1
        iterator = tqdm(
            range(1, n_steps + 1),
            desc="      Integrating",
            disable=not verbose,
            ncols=70,
            unit="step"
        )

        for step in iterator:
            time = t_start + (step - 1) * dt
            self.run_step(states, backgrounds, time, dt)

            if step % output_interval == 0:
                time_out[output_idx] = t_start + step * dt
                for b, s in enumerate(states):
                    pos_out[b][output_idx] = s.positions
                    act_out[b][output_idx] = s.active
                output_idx += 1

        diagnostics = compute_all_diagnostics(states, initial_positions)
        if logger is not None:
            logger.log_diagnostics(diagnostics)

        config = {
            'scheme': self.solver_type,
            'scheme_name': self.name,
            't_start': t_start,
            't_end': t_end,
            'dt': dt,
            'n_steps': n_steps,
            'output_interval': output_interval,
            'n_outputs': output_idx,
            'max_time': self.context.max_time,
            'precision': self.context.precision,
        }

        return SimulationResult(
            time=time_out[:output_idx],
            positions=[p[:output_idx] for p in pos_out],
            active=[a[:output_idx] for a in act_out],
            initial_positions=initial_positions,
            states=states,
            diagnostics=diagnostics,
            config=config
        )

    def _check_cfl(self, backgrounds: Sequence[Background], dt: float) -> None:
        for bg in backgrounds:
            spacing = (float(np.min(np.diff(bg.x))), float(np.min(np.diff(bg.y))))
            cfl = max_cfl(bg.max_speed(), dt, spacing)
            self.context.logger.info(f"  {bg.name}: CFL number = {cfl:.3f}")
            if cfl > 1.0:
                self.context.logger.warning(
                    f"CFL number {cfl:.2f} > 1 on {bg.name}, consider reducing dt"
                )
