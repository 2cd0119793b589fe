class ParticleFilterError(Exception):
    """Base class for all errors raised by landmark_pf."""


class NotInitializedError(ParticleFilterError, RuntimeError):
    """A filter step was requested before the particle set was initialised."""


class AlreadyInitializedError(ParticleFilterError, RuntimeError):
    """init() was called on a filter that already holds a particle set."""


class InvalidConfigurationError(ParticleFilterError, ValueError):
    """A parameter failed validation at the filter boundary."""


class DegenerateWeightsError(ParticleFilterError, ValueError):
    """Weights cannot be turned into a sampling distribution."""
