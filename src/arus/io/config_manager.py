"""
Configuration files for tracer runs.

Plain text ``key = value`` files; ``#`` starts a comment. Values are parsed
as booleans (true/false/yes/no), None, integers, floats or strings.

Example file:

    # Rotating basin, predictor-corrector
    scenario_name = rotation
    scheme = 2
    dt = 60.0
    max_time = 86400.0
    precision = double
"""

from pathlib import Path
from typing import Dict, Any

from ..core.errors import ConfigurationError


class ConfigManager:
    """Load, save and validate run configurations."""

    DEFAULTS: Dict[str, Dict[str, Any]] = {
        'rotation': {
            'scenario_name': 'Solid Body Rotation',
            'field': 'rotation',
            'scheme': 2,
            'omega': 1e-4,
            'extent': 1e4,
            'nx': 41,
            'ny': 41,
            'dt': 60.0,
            't_start': 0.0,
            't_end': 3600.0,
            'max_time': 3600.0,
            'precision': 'double',
            'geographic': False,
            'strict_bounds': False,
            'seed': 42,
            'mixing_length': 0.0,
            'diffusivity': 0.0,
            'n_tracers_x': 10,
            'n_tracers_y': 10,
            'output_interval': 10,
        },
        'uniform': {
            'scenario_name': 'Uniform Drift',
            'field': 'uniform',
            'scheme': 1,
            'u': 0.1,
            'v': 0.0,
            'extent': 1e4,
            'nx': 3,
            'ny': 3,
            'dt': 300.0,
            't_start': 0.0,
            't_end': 86400.0,
            'max_time': 86400.0,
            'precision': 'double',
            'geographic': False,
            'strict_bounds': False,
            'seed': 42,
            'mixing_length': 100.0,
            'diffusivity': 1.0,
            'n_tracers_x': 5,
            'n_tracers_y': 5,
            'output_interval': 12,
        },
        'basin': {
            'scenario_name': 'Bell Basin',
            'field': 'bell',
            'scheme': 2,
            'Lx': 50000.0,
            'Ly': 50000.0,
            'U0': 0.3,
            'nx': 101,
            'ny': 101,
            'dt': 300.0,
            't_start': 0.0,
            't_end': 7 * 86400.0,
            'max_time': 7 * 86400.0,
            'precision': 'double',
            'geographic': False,
            'strict_bounds': False,
            'seed': 42,
            'mixing_length': 500.0,
            'diffusivity': 0.5,
            'n_tracers_x': 20,
            'n_tracers_y': 20,
            'output_interval': 24,
        },
    }

    REQUIRED = ('scheme', 'dt', 't_start', 't_end')

    @staticmethod
    def _parse_value(text: str) -> Any:
        value = text.strip()
        lowered = value.lower()
        if lowered in ('true', 'yes', 'on'):
            return True
        if lowered in ('false', 'no', 'off'):
            return False
        if lowered in ('none', 'null', ''):
            return None
        try:
            return int(value)
        except ValueError:
            pass
        try:
            return float(value)
        except ValueError:
            pass
        if len(value) >= 2 and value[0] == value[-1] and value[0] in '"\'':
            return value[1:-1]
        return value

    @classmethod
    def load(cls, filepath: str) -> Dict[str, Any]:
        """
        Read a configuration file.

        Args:
            filepath: Path to a ``key = value`` text file

        Returns:
            Configuration dictionary

        Raises:
            ConfigurationError: On a malformed line
        """
        path = Path(filepath)
        config: Dict[str, Any] = {}

        with open(path, 'r', encoding='utf-8') as f:
            for line_no, raw in enumerate(f, 1):
                line = raw.split('#', 1)[0].strip()
                if not line:
                    continue
                if '=' not in line:
                    raise ConfigurationError(
                        f"{path}:{line_no}: expected 'key = value', got '{raw.strip()}'"
                    )
                key, value = line.split('=', 1)
                key = key.strip()
                if not key:
                    raise ConfigurationError(f"{path}:{line_no}: empty key")
                config[key] = cls._parse_value(value)

        return config

    @staticmethod
    def save(config: Dict[str, Any], filepath: str) -> None:
        """Write a configuration dictionary as a ``key = value`` file."""
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w', encoding='utf-8') as f:
            f.write("# arus run configuration\n")
            for key, value in config.items():
                f.write(f"{key} = {value}\n")

    @classmethod
    def get_default_config(cls, name: str) -> Dict[str, Any]:
        """
        Return a copy of a bundled preset.

        Raises:
            ConfigurationError: If the preset does not exist
        """
        try:
            return dict(cls.DEFAULTS[name])
        except KeyError:
            raise ConfigurationError(
                f"Unknown preset '{name}'; available: {sorted(cls.DEFAULTS)}"
            ) from None

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Check required keys and value ranges.

        Returns:
            The same dictionary

        Raises:
            ConfigurationError: On a missing key or invalid value
        """
        missing = [key for key in cls.REQUIRED if key not in config]
        if missing:
            raise ConfigurationError(f"Missing configuration keys: {missing}")

        if not isinstance(config['dt'], (int, float)) or config['dt'] <= 0:
            raise ConfigurationError(f"dt must be a positive number, got {config['dt']!r}")
        if config['t_end'] < config['t_start']:
            raise ConfigurationError(
                f"t_end ({config['t_end']}) is before t_start ({config['t_start']})"
            )
        interval = config.get('output_interval', 1)
        if not isinstance(interval, int) or interval < 1:
            raise ConfigurationError(
                f"output_interval must be a positive integer, got {interval!r}"
            )
        return config
