"""Tests for configuration, logging and scenario runs."""

import numpy as np
import pytest

from arus import (
    ConfigManager,
    ConfigurationError,
    SimulationContext,
    SimulationLogger,
    build_scenario,
    run_scenario,
)
from arus.scenario import normalize_scenario_name


class TestConfigManager:
    """Test configuration file handling."""

    def test_load_config(self, tmp_path):
        """Test loading configuration from file."""
        path = tmp_path / "run.txt"
        path.write_text(
            "# Test config\n"
            "scenario_name = Test Run\n"
            "scheme = 2\n"
            "dt = 60.0   # seconds\n"
            "geographic = false\n"
            "strict_bounds = yes\n"
            "seed = none\n"
            "label = 'quoted'\n"
        )

        config = ConfigManager.load(path)

        assert config['scenario_name'] == 'Test Run'
        assert config['scheme'] == 2
        assert config['dt'] == 60.0
        assert config['geographic'] is False
        assert config['strict_bounds'] is True
        assert config['seed'] is None
        assert config['label'] == 'quoted'

    def test_malformed_line(self, tmp_path):
        """Test lines without '=' are rejected with their location."""
        path = tmp_path / "bad.txt"
        path.write_text("scheme = 1\nthis is not valid\n")

        with pytest.raises(ConfigurationError, match=":2:"):
            ConfigManager.load(path)

    def test_save_config(self, tmp_path):
        """Test saving configuration to file."""
        config = ConfigManager.get_default_config('uniform')
        path = tmp_path / "nested" / "uniform.txt"

        ConfigManager.save(config, path)
        loaded = ConfigManager.load(path)

        assert loaded == config

    def test_infinite_max_time(self, tmp_path):
        """Test an unbounded horizon survives a save and load."""
        path = tmp_path / "inf.txt"
        ConfigManager.save({'max_time': np.inf}, path)

        assert ConfigManager.load(path)['max_time'] == np.inf

    def test_all_default_configs(self):
        """Test all bundled presets are valid."""
        for name in ['rotation', 'uniform', 'basin']:
            config = ConfigManager.get_default_config(name)
            assert ConfigManager.validate(config) is config
            assert config['dt'] > 0

    def test_default_config_is_copy(self):
        """Test presets are not modified through returned copies."""
        config = ConfigManager.get_default_config('rotation')
        config['dt'] = -1.0
        assert ConfigManager.get_default_config('rotation')['dt'] == 60.0

    def test_unknown_preset(self):
        """Test unknown preset names."""
        with pytest.raises(ConfigurationError):
            ConfigManager.get_default_config('case9')

    def test_validate_missing_param(self):
        """Test validation fails with missing parameters."""
        with pytest.raises(ConfigurationError):
            ConfigManager.validate({'scheme': 1})

    def test_validate_values(self):
        """Test validation of value ranges."""
        base = {'scheme': 1, 'dt': 1.0, 't_start': 0.0, 't_end': 10.0}

        with pytest.raises(ValueError):
            ConfigManager.validate(dict(base, dt=0.0))
        with pytest.raises(ConfigurationError):
            ConfigManager.validate(dict(base, t_end=-1.0))
        with pytest.raises(ConfigurationError):
            ConfigManager.validate(dict(base, output_interval=0))


class TestSimulationContext:
    """Test the run context."""

    def test_defaults(self):
        """Test default context values."""
        ctx = SimulationContext()

        assert ctx.max_time == np.inf
        assert ctx.dtype == np.float64
        assert not ctx.geographic
        assert ctx.workers == 1

    def test_invalid_values(self):
        """Test invalid settings fail at construction."""
        with pytest.raises(ConfigurationError):
            SimulationContext(precision='quad')
        with pytest.raises(ConfigurationError):
            SimulationContext(mixing_length=-1.0)
        with pytest.raises(ConfigurationError):
            SimulationContext(workers=0)

    def test_seeded_rng(self):
        """Test the generator follows the seed."""
        a = SimulationContext(seed=5).rng().normal(size=3)
        b = SimulationContext(seed=5).rng().normal(size=3)
        assert np.array_equal(a, b)

    def test_from_config(self):
        """Test building a context from a configuration dictionary."""
        config = ConfigManager.get_default_config('basin')
        config['precision'] = 'single'

        ctx = SimulationContext.from_config(config)

        assert ctx.max_time == config['max_time']
        assert ctx.dtype == np.float32
        assert ctx.mixing_length == 500.0
        assert ctx.seed == 42

    def test_describe(self):
        """Test the summary mentions the coordinate system."""
        assert "geographic" in SimulationContext(geographic=True).describe()


class TestSimulationLogger:
    """Test run logging."""

    def test_writes_log_file(self, tmp_path):
        """Test messages and the summary reach the log file."""
        logger = SimulationLogger("Test Run", log_dir=tmp_path, verbose=False)
        logger.log_context(SimulationContext(seed=3))
        logger.info("hello")
        logger.warning("careful")
        logger.finalize()

        text = (tmp_path / "test_run.log").read_text()

        assert "hello" in text
        assert "Seed = 3" in text
        assert "WARNINGS: 1" in text
        assert logger.warnings == ["careful"]

    def test_diagnostics_logged(self, tmp_path):
        """Test diagnostics formatting tolerates missing keys."""
        logger = SimulationLogger("diag", log_dir=tmp_path, verbose=False)
        logger.log_diagnostics({'n_batches': 2, 'n_tracers': 10, 'active_fraction': 0.5})
        logger.finalize()

        text = (tmp_path / "diag.log").read_text()
        assert "Active fraction: 0.5000" in text

    def test_solver_uses_context_logger(self, tmp_path, rotation_background, tracer_patch):
        """Test the solver reports through the context logger."""
        from arus import Solver

        logger = SimulationLogger("solver", log_dir=tmp_path, verbose=False)
        solver = Solver(2, context=SimulationContext(logger=logger))
        solver.run(
            [tracer_patch], [rotation_background],
            t_start=0.0, t_end=100.0, dt=10.0, verbose=False
        )
        logger.finalize()

        text = (tmp_path / "solver.log").read_text()
        assert "Solver algorithm is Multi-Step Euler" in text
        assert "CFL number" in text
        assert "TRACER DIAGNOSTICS" in text


class TestScenario:
    """Test configuration-driven runs."""

    def test_normalize_name(self):
        """Test scenario name normalization."""
        assert normalize_scenario_name("Solid Body Rotation") == "solid_body_rotation"
        assert normalize_scenario_name("Case 1 - Test-Run ") == "case_1_test_run"

    def test_build_scenario(self, default_run_config):
        """Test the pieces built from a preset."""
        solver, states, backgrounds = build_scenario(default_run_config)

        assert solver.solver_type == 2
        assert len(states) == 1
        assert states[0].n_tracers == 9
        assert backgrounds[0].name == 'rotation'
        covered = backgrounds[0].contains(*states[0].positions.T, 0.0)
        assert covered.all()

    def test_unknown_field(self, default_run_config):
        """Test unknown field types are rejected."""
        default_run_config['field'] = 'vortex street'
        with pytest.raises(ConfigurationError):
            build_scenario(default_run_config)

    def test_bad_scheme(self, default_run_config):
        """Test an unsupported scheme code in a configuration."""
        default_run_config['scheme'] = 7
        with pytest.raises(ConfigurationError):
            build_scenario(default_run_config)

    def test_run_scenario(self, tmp_path, default_run_config):
        """Test a complete short run with logging."""
        result = run_scenario(default_run_config, log_dir=tmp_path, verbose=False)

        assert result.positions[0].shape == (3, 9, 3)
        assert result.config['scenario_name'] == 'Solid Body Rotation'
        assert result.diagnostics['active_fraction'] == 1.0
        assert (tmp_path / "solid_body_rotation.log").exists()

    def test_failed_run_logged(self, tmp_path, default_run_config):
        """Test failures are logged before being raised."""
        default_run_config['field'] = 'unknown'

        with pytest.raises(ConfigurationError):
            run_scenario(default_run_config, log_dir=tmp_path, verbose=False)

        text = (tmp_path / "solid_body_rotation.log").read_text()
        assert "Simulation failed" in text
