"""Utility modules for arus."""

from .logger import SimulationLogger

__all__ = ["SimulationLogger"]
