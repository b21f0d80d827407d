"""Pytest configuration and fixtures for arus tests."""

import pytest
import numpy as np


@pytest.fixture
def context():
    """Short run context with a fixed seed."""
    from arus import SimulationContext
    return SimulationContext(max_time=10.0, seed=1)


@pytest.fixture
def uniform_background():
    """Eastward flow of 1 m/s over a 2 km square."""
    from arus import uniform_flow
    return uniform_flow(u=1.0, x_range=(-1000.0, 1000.0), y_range=(-1000.0, 1000.0))


@pytest.fixture
def rotation_background():
    """Solid body rotation, omega = 1e-3 1/s, over a 20 km square."""
    from arus import solid_body_rotation
    return solid_body_rotation(omega=1e-3, x_range=(-1e4, 1e4), y_range=(-1e4, 1e4))


@pytest.fixture
def single_tracer():
    """One tracer released at the origin."""
    from arus import create_tracers
    return create_tracers([[0.0, 0.0, 0.0]])


@pytest.fixture
def tracer_patch():
    """A 4 x 4 patch of tracers around the origin."""
    from arus import create_tracers, release_box
    return create_tracers(release_box((-400.0, 400.0), (-400.0, 400.0), 4, 4))


@pytest.fixture
def default_run_config():
    """Small rotation run for scenario tests."""
    from arus import ConfigManager
    config = ConfigManager.get_default_config('rotation')
    config.update({
        'n_tracers_x': 3,
        'n_tracers_y': 3,
        'dt': 60.0,
        't_end': 600.0,
        'output_interval': 5,
    })
    return config
