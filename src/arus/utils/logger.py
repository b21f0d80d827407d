"""Simulation logger for tracer integration runs."""

import logging
import numpy as np
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, List


class SimulationLogger:
    """Logger for tracer integration runs."""

    def __init__(
        self,
        run_name: str,
        log_dir: str = "logs",
        verbose: bool = True
    ):
        """
        Initialize simulation logger.

        Args:
            run_name: Run name (for log filename)
            log_dir: Directory for log files
            verbose: Print warnings and errors to console
        """
        self.run_name = run_name
        self.log_dir = Path(log_dir)
        self.verbose = verbose

        self.log_dir.mkdir(parents=True, exist_ok=True)

        clean_name = run_name.lower().replace(' ', '_').replace('-', '_')
        self.log_file = self.log_dir / f"{clean_name}.log"

        self.logger = self._setup_logger()
        self.warnings: List[str] = []
        self.errors: List[str] = []

    def _setup_logger(self) -> logging.Logger:
        """Configure Python logging."""
        logger = logging.getLogger(f"arus_{self.run_name}")
        logger.setLevel(logging.DEBUG)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)

        handler = logging.FileHandler(self.log_file, mode='w')
        handler.setLevel(logging.DEBUG)

        formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        handler.setFormatter(formatter)

        logger.addHandler(handler)
        return logger

    def info(self, msg: str):
        """Log informational message."""
        self.logger.info(msg)

    def warning(self, msg: str):
        """Log warning message."""
        self.logger.warning(msg)
        self.warnings.append(msg)

        if self.verbose:
            print(f"  WARNING: {msg}")

    def error(self, msg: str):
        """Log error message."""
        self.logger.error(msg)
        self.errors.append(msg)

        if self.verbose:
            print(f"  ERROR: {msg}")

    def log_context(self, context: 'SimulationContext'):
        """Log the run context."""
        self.info("=" * 70)
        self.info("TRACER INTEGRATION RUN")
        self.info(f"Run: {self.run_name}")
        self.info("=" * 70)
        self.info("")

        self.info("CONTEXT:")
        self.info(f"  Max time = {context.max_time} s")
        self.info(f"  Precision = {context.precision}")
        self.info(f"  Geographic = {context.geographic}")
        self.info(f"  Strict bounds = {context.strict_bounds}")
        self.info(f"  Mixing length = {context.mixing_length} m")
        self.info(f"  Seed = {context.seed}")
        self.info(f"  Workers = {context.workers}")

        self.info("=" * 70)

    def log_config(self, config: Dict[str, Any]):
        """Log run configuration."""
        self.info("")
        self.info("RUN PARAMETERS:")
        for key in sorted(config):
            self.info(f"  {key} = {config[key]}")
        self.info("=" * 70)

    def log_diagnostics(self, diagnostics: Dict[str, Any]):
        """Log diagnostic metrics."""
        self.info("")
        self.info("=" * 70)
        self.info("TRACER DIAGNOSTICS")
        self.info("=" * 70)

        self.info("")
        self.info("POPULATION:")
        self.info(f"  Batches: {diagnostics.get('n_batches', '?')}")
        self.info(f"  Tracers: {diagnostics.get('n_tracers', '?')}")
        self.info(f"  Active fraction: {diagnostics.get('active_fraction', np.nan):.4f}")

        self.info("")
        self.info("TRANSPORT:")
        self.info(
            f"  Center of mass: ({diagnostics.get('x_cm', np.nan):.4g}, "
            f"{diagnostics.get('y_cm', np.nan):.4g}, {diagnostics.get('z_cm', np.nan):.4g})"
        )
        self.info(f"  Mean displacement: {diagnostics.get('mean_displacement', np.nan):.4g}")
        self.info(f"  Max displacement: {diagnostics.get('max_displacement', np.nan):.4g}")
        self.info(f"  Mean squared displacement: {diagnostics.get('msd', np.nan):.4g}")

        self.info("=" * 70)

    def finalize(self):
        """Write final summary and release the log file."""
        self.info("")
        self.info("=" * 70)
        self.info("SUMMARY")
        self.info("=" * 70)

        if self.errors:
            self.info(f"ERRORS: {len(self.errors)}")
            for i, err in enumerate(self.errors, 1):
                self.info(f"  {i}. {err}")
        else:
            self.info("ERRORS: None")

        if self.warnings:
            self.info(f"WARNINGS: {len(self.warnings)}")
            for i, warn in enumerate(self.warnings, 1):
                self.info(f"  {i}. {warn}")
        else:
            self.info("WARNINGS: None")

        self.info("")
        self.info(f"Log file: {self.log_file}")
        self.info(f"Completed: {datetime.now().isoformat()}")
        self.info("=" * 70)

        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)
