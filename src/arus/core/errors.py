"""Exception hierarchy for the tracer integration core."""


class ArusError(Exception):
    """Base class for all arus errors."""


class ConfigurationError(ArusError, ValueError):
    """Invalid solver or simulation configuration (e.g. unknown scheme code)."""


class ShapeMismatch(ArusError, ValueError):
    """State and derivative (or constructor arrays) disagree in shape."""


class OutOfDomain(ArusError):
    """Active tracers fell outside every Background in strict-bounds mode."""
