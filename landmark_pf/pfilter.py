import logging

import numpy

from . import motion, resampling, weighting
from .config import FilterConfig
from .errors import AlreadyInitializedError, InvalidConfigurationError, NotInitializedError
from .particles import LandmarkMap

logger = logging.getLogger(__name__)


def _join(values, fmt):
    # space separated, no trailing separator
    return " ".join(fmt % v for v in values)


class ParticleFilter(object):
    """A particle filter localising an agent against a fixed landmark map.

    Each step replaces `particles` with a new ParticleSet, so a reference
    taken before a step keeps describing the belief at that time.

    Attributes:
    -----------

    config : FilterConfig
        tunable parameters (particle count, resampler, association gate)
    landmarks : LandmarkMap
        the known map, shared by every particle and step
    rng : numpy.random.Generator
        the only source of randomness used by the filter
    particles : ParticleSet or None
        the current belief. None until init() is called.
    initialized : bool
        True once init() has run
    """

    def __init__(self, landmarks, config=None, rng=None):
        """

        Parameters:
        -----------

        landmarks : LandmarkMap or iterable
                the known map, or (id, x, y) triples to build one from
        config : FilterConfig, optional
                filter parameters. Defaults to FilterConfig().
        rng : numpy.random.Generator, optional
                random source. When omitted one is created from config.seed.
        """
        self.config = config or FilterConfig()
        if not isinstance(landmarks, LandmarkMap):
            landmarks = LandmarkMap(landmarks)
        self.landmarks = landmarks
        self.rng = rng if rng is not None else self.config.make_rng()
        self.particles = None

    @property
    def initialized(self):
        return self.particles is not None

    @property
    def n_particles(self):
        return self.config.num_particles

    def _require_initialized(self, step):
        if not self.initialized:
            raise NotInitializedError("%s called before init()" % step)

    def init(self, x, y, theta, std):
        """Seed the particle set from a Gaussian around (x, y, theta).

        Parameters:
        -----------
        x, y, theta : float
            initial pose estimate
        std : array
            3-element vector of std. dev. for x, y and theta
        """
        if self.initialized:
            raise AlreadyInitializedError("init() may only be called once")
        self.particles = motion.initialize(x, y, theta, std, self.n_particles, self.rng)

    def prediction(self, delta_t, std_pos, velocity, yaw_rate):
        """Move every particle by the commanded velocity and yaw rate, plus noise."""
        self._require_initialized("prediction")
        self.particles = motion.predict(
            self.particles,
            delta_t,
            std_pos,
            velocity,
            yaw_rate,
            self.rng,
            yaw_rate_threshold=self.config.yaw_rate_threshold,
        )

    def update_weights(self, sensor_range, std_landmark, observations):
        """Weight particles by the likelihood of this step's body-frame observations."""
        self._require_initialized("update_weights")
        self.particles = weighting.update_weights(
            self.particles,
            sensor_range,
            std_landmark,
            observations,
            self.landmarks,
            gate_on=self.config.gate_on,
        )

    def resample(self):
        """Replace the particle set with N draws proportional to weight."""
        self._require_initialized("resample")
        self.particles = resampling.resample(self.particles, self.rng, self.config.resampler)

    def best_particle(self):
        """Index of the highest-weight particle (first one on ties)."""
        self._require_initialized("best_particle")
        return int(numpy.argmax(self.particles.weights))

    def mean_state(self):
        """Weighted mean pose. Heading is averaged on the unit circle."""
        self._require_initialized("mean_state")
        wt = resampling.resampling_probabilities(self.particles.weights)
        x = numpy.sum(self.particles.x * wt)
        y = numpy.sum(self.particles.y * wt)
        theta = numpy.arctan2(
            numpy.sum(numpy.sin(self.particles.theta) * wt),
            numpy.sum(numpy.cos(self.particles.theta) * wt),
        )
        return numpy.array([x, y, theta])

    def n_eff(self):
        """Normalised effective sample size, in range 1/N -> 1.0."""
        self._require_initialized("n_eff")
        wt = resampling.resampling_probabilities(self.particles.weights)
        return (1.0 / numpy.sum(wt ** 2)) / len(wt)

    def weight_entropy(self):
        """Entropy of the weight distribution (in nats)."""
        self._require_initialized("weight_entropy")
        wt = resampling.resampling_probabilities(self.particles.weights)
        wt = wt[wt > 0]
        return float(-numpy.sum(wt * numpy.log(wt)))

    def _association(self, index):
        self._require_initialized("association export")
        associations = self.particles.associations
        if associations is None:
            return None
        return associations[index]

    def get_associations(self, index):
        """Landmark ids matched by particle `index`, e.g. "1 4 7"."""
        association = self._association(index)
        if association is None:
            return ""
        return _join(association.landmark_ids, "%d")

    def get_sense_coord(self, index, coord):
        """World-frame x ("X") or y ("Y") of particle `index`'s matched observations."""
        if coord == "X":
            attr = "sense_x"
        elif coord == "Y":
            attr = "sense_y"
        else:
            raise InvalidConfigurationError('coord must be "X" or "Y", got %r' % (coord,))
        association = self._association(index)
        if association is None:
            return ""
        return _join(getattr(association, attr), "%g")
