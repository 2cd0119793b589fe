"""Filter configuration and the boundary checks shared by every component."""

import dataclasses
import logging
import math
from typing import Optional

import numpy
import yaml

from .errors import InvalidConfigurationError

logger = logging.getLogger(__name__)

RESAMPLERS = ("multinomial", "systematic", "stratified", "residual")
GATES = ("particle", "observation")


@dataclasses.dataclass(frozen=True)
class FilterConfig:
    """Tunable parameters of a ParticleFilter.

    Attributes:
    -----------
    num_particles : int
        number of particles N. Fixed for the life of the filter. 100 is enough
        for a few dozen landmarks and a sensor range of ~50 m; raise it when
        the initial pose prior is wide.
    yaw_rate_threshold : float
        below this absolute yaw rate (rad/s) the motion model switches to the
        straight-line approximation
    resampler : str
        one of RESAMPLERS. "multinomial" draws N independent samples.
    gate_on : str
        "particle" keeps landmarks within sensor range of the particle as
        association candidates; "observation" measures the range from the
        transformed observation instead
    seed : int or None
        seed for the filter's numpy Generator. None draws fresh entropy.
    """

    num_particles: int = 100
    yaw_rate_threshold: float = 0.001
    resampler: str = "multinomial"
    gate_on: str = "particle"
    seed: Optional[int] = None

    def __post_init__(self):
        # frozen, so normalised values go in through object.__setattr__
        num_particles = require_integer("num_particles", self.num_particles)
        if num_particles < 1:
            raise InvalidConfigurationError(
                "num_particles must be at least 1, got %d" % num_particles
            )
        object.__setattr__(self, "num_particles", num_particles)
        object.__setattr__(
            self, "yaw_rate_threshold", require_non_negative("yaw_rate_threshold", self.yaw_rate_threshold)
        )
        if self.resampler not in RESAMPLERS:
            raise InvalidConfigurationError(
                "unknown resampler %r, expected one of %s" % (self.resampler, ", ".join(RESAMPLERS))
            )
        if self.gate_on not in GATES:
            raise InvalidConfigurationError(
                "unknown gate_on %r, expected one of %s" % (self.gate_on, ", ".join(GATES))
            )
        if self.seed is not None:
            object.__setattr__(self, "seed", require_integer("seed", self.seed))

    @classmethod
    def from_dict(cls, values):
        if values is None:
            values = {}
        if not isinstance(values, dict):
            raise InvalidConfigurationError(
                "filter configuration must be a mapping, got %s" % type(values).__name__
            )
        known = {field.name for field in dataclasses.fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise InvalidConfigurationError("unknown configuration keys: %s" % ", ".join(unknown))
        return cls(**values)

    def make_rng(self):
        return numpy.random.default_rng(self.seed)


def load_config(path):
    """Read a FilterConfig from a YAML file.

    The file holds a flat mapping of FilterConfig fields, optionally nested
    under a top-level ``filter`` key so it can share a file with other
    settings. Missing fields keep their defaults.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if isinstance(data, dict) and "filter" in data:
        data = data["filter"]
    config = FilterConfig.from_dict(data)
    logger.debug("loaded %s from %s", config, path)
    return config


def require_integer(name, value):
    """Return value as a Python int; numpy integers are accepted, bools are not."""
    if isinstance(value, (bool, numpy.bool_)) or not isinstance(value, (int, numpy.integer)):
        raise InvalidConfigurationError("%s must be an integer, got %r" % (name, value))
    return int(value)


def require_finite(name, value):
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InvalidConfigurationError("%s must be a number, got %r" % (name, value)) from None
    if not math.isfinite(value):
        raise InvalidConfigurationError("%s must be finite, got %r" % (name, value))
    return value


def require_positive(name, value):
    value = require_finite(name, value)
    if value <= 0:
        raise InvalidConfigurationError("%s must be positive, got %r" % (name, value))
    return value


def require_non_negative(name, value):
    value = require_finite(name, value)
    if value < 0:
        raise InvalidConfigurationError("%s must be non-negative, got %r" % (name, value))
    return value


def require_std(name, std, size, strict=False):
    """Return std as a float array of the given size.

    With strict=True every entry must be > 0 (a density needs a non-zero
    spread); otherwise zero is allowed and means "no noise on that axis".
    """
    try:
        std = numpy.asarray(std, dtype=float)
    except (TypeError, ValueError):
        raise InvalidConfigurationError("%s must be %d numbers, got %r" % (name, size, std)) from None
    if std.shape != (size,):
        raise InvalidConfigurationError(
            "%s must have %d entries, got shape %s" % (name, size, std.shape)
        )
    if not numpy.all(numpy.isfinite(std)):
        raise InvalidConfigurationError("%s must be finite, got %s" % (name, std.tolist()))
    if strict and numpy.any(std <= 0):
        raise InvalidConfigurationError("%s must be positive, got %s" % (name, std.tolist()))
    if numpy.any(std < 0):
        raise InvalidConfigurationError("%s must be non-negative, got %s" % (name, std.tolist()))
    return std
