"""Observation weighting: frame transforms, data association and likelihood.

Observations arrive in the agent's body frame. For every particle they are
moved into the world frame using that particle's pose, matched against the
nearest landmark in range, and scored with an axis-independent Gaussian.
All particles are handled at once with broadcasting:

    N particles, M observations, L landmarks
    sensed    (N, M, 2)
    distances (N, M, L)
"""

import logging

import numpy
from scipy.stats import norm

from .config import GATES, require_positive, require_std
from .errors import InvalidConfigurationError
from .particles import Association

logger = logging.getLogger(__name__)


def as_observations(observations):
    """Coerce an observation list into an (M,2) float array."""
    obs = numpy.asarray(observations, dtype=float)
    if obs.size == 0:
        return numpy.zeros((0, 2))
    if obs.ndim != 2 or obs.shape[1] != 2:
        raise InvalidConfigurationError(
            "observations must be a sequence of (x, y) points, got shape %s" % (obs.shape,)
        )
    if not numpy.all(numpy.isfinite(obs)):
        raise InvalidConfigurationError("observations must be finite")
    return obs


def to_world(points, pose):
    """Rotate body-frame points by the pose heading, then translate by its position.

    pose is (..., 3) and broadcasts against the leading axes of points (..., 2).
    """
    points = numpy.asarray(points, dtype=float)
    pose = numpy.asarray(pose, dtype=float)
    x, y, theta = pose[..., 0], pose[..., 1], pose[..., 2]
    c, s = numpy.cos(theta), numpy.sin(theta)
    wx = points[..., 0] * c - points[..., 1] * s + x
    wy = points[..., 0] * s + points[..., 1] * c + y
    return numpy.stack([wx, wy], axis=-1)


def to_body(points, pose):
    """Inverse of to_world."""
    points = numpy.asarray(points, dtype=float)
    pose = numpy.asarray(pose, dtype=float)
    x, y, theta = pose[..., 0], pose[..., 1], pose[..., 2]
    c, s = numpy.cos(theta), numpy.sin(theta)
    dx = points[..., 0] - x
    dy = points[..., 1] - y
    return numpy.stack([dx * c + dy * s, -dx * s + dy * c], axis=-1)


def transform_observations(observations, poses):
    """World-frame positions of every observation as seen from every pose.

    Parameters:
    -----------
    observations : array
        (M,2) body-frame points
    poses : array
        (N,3) particle poses

    Returns:
    -------
    (N,M,2) array
    """
    return to_world(observations[numpy.newaxis, :, :], poses[:, numpy.newaxis, :])


def nearest_landmarks(sensed, origins, coords, sensor_range, gate_on="particle"):
    """Nearest in-range landmark for each sensed point.

    Parameters:
    -----------
    sensed : array
        (N,M,2) world-frame observations
    origins : array
        (N,2) particle positions
    coords : array
        (L,2) landmark positions, in map order
    sensor_range : float
        maximum sensing radius
    gate_on : str
        "particle" admits landmarks within sensor_range of the particle,
        "observation" those within sensor_range of the sensed point

    Returns:
    -------
    index : (N,M) int array
        map index of the chosen landmark (meaningless where not matched)
    matched : (N,M) bool array
        False where no candidate was closer than sensor_range
    """
    offsets = sensed[:, :, numpy.newaxis, :] - coords[numpy.newaxis, numpy.newaxis, :, :]
    distances = numpy.hypot(offsets[..., 0], offsets[..., 1])

    if gate_on == "particle":
        reach = origins[:, numpy.newaxis, :] - coords[numpy.newaxis, :, :]
        in_range = numpy.hypot(reach[..., 0], reach[..., 1]) <= sensor_range
        in_range = in_range[:, numpy.newaxis, :]
    elif gate_on == "observation":
        in_range = distances <= sensor_range
    else:
        raise InvalidConfigurationError(
            "unknown gate_on %r, expected one of %s" % (gate_on, ", ".join(GATES))
        )

    candidates = numpy.where(in_range, distances, numpy.inf)
    # argmin returns the first minimum, so ties go to the earliest landmark
    index = numpy.argmin(candidates, axis=-1)
    best = numpy.take_along_axis(candidates, index[..., numpy.newaxis], axis=-1)[..., 0]
    return index, best < sensor_range


def associate(sensed, origin, landmarks, sensor_range, gate_on="particle"):
    """Match one particle's world-frame observations to landmarks.

    Returns an Association holding only the matched observations, in
    observation order.
    """
    sensed = numpy.asarray(sensed, dtype=float).reshape(1, -1, 2)
    origin = numpy.asarray(origin, dtype=float).reshape(1, 2)
    index, matched = nearest_landmarks(sensed, origin, landmarks.coords, sensor_range, gate_on)
    return _association(landmarks, sensed[0], index[0], matched[0])


def _association(landmarks, sensed, index, matched):
    ids = landmarks.ids[index[matched]]
    sense_x = sensed[matched, 0]
    sense_y = sensed[matched, 1]
    for a in (ids, sense_x, sense_y):
        a.setflags(write=False)
    return Association(ids, sense_x, sense_y)


def gaussian_likelihood(dx, dy, std_landmark):
    """Bivariate Gaussian density with diagonal covariance, at offset (dx, dy).

        1/(2 pi sx sy) * exp(-(dx^2/(2 sx^2) + dy^2/(2 sy^2)))
    """
    return norm.pdf(dx, scale=std_landmark[0]) * norm.pdf(dy, scale=std_landmark[1])


def normalize(weights):
    """Scale weights to sum to one.

    When the total is zero or not finite (every likelihood underflowed, or a
    product overflowed) the proportions are lost, so uniform weights are
    returned instead.
    """
    weights = numpy.asarray(weights, dtype=float)
    total = numpy.sum(weights)
    if not numpy.isfinite(total) or total <= 0:
        logger.warning(
            "weight total is %r over %d particles; resetting to uniform weights",
            total,
            len(weights),
        )
        return numpy.full(len(weights), 1.0 / len(weights))
    return weights / total


def particle_weights(particles, sensor_range, std_landmark, observations, landmarks, gate_on="particle"):
    """Unnormalised weights and associations for every particle.

    A particle with no associated observation gets weight 1: it is neither
    confirmed nor contradicted by the measurements.

    Returns:
    -------
    weights : (N,) array
    associations : tuple of N Association
    """
    sensor_range = require_positive("sensor_range", sensor_range)
    std_landmark = require_std("std_landmark", std_landmark, 2, strict=True)
    obs = as_observations(observations)

    sensed = transform_observations(obs, particles.poses)
    index, matched = nearest_landmarks(
        sensed, particles.poses[:, :2], landmarks.coords, sensor_range, gate_on
    )

    expected = landmarks.coords[index]
    likelihood = gaussian_likelihood(
        sensed[..., 0] - expected[..., 0], sensed[..., 1] - expected[..., 1], std_landmark
    )
    weights = numpy.prod(numpy.where(matched, likelihood, 1.0), axis=1)

    associations = tuple(
        _association(landmarks, sensed[i], index[i], matched[i])
        for i in range(particles.n_particles)
    )

    n_matched = numpy.sum(matched, axis=1)
    logger.debug(
        "weighted %d particles against %d observations, mean %.2f associated",
        particles.n_particles,
        len(obs),
        numpy.mean(n_matched) if len(n_matched) else 0.0,
    )
    if len(obs) and not numpy.any(n_matched):
        logger.warning(
            "no observation associated with any landmark within range %g", sensor_range
        )
    return weights, associations


def update_weights(particles, sensor_range, std_landmark, observations, landmarks, gate_on="particle"):
    """Weight every particle by the likelihood of the observations.

    Parameters:
    -----------
    particles : ParticleSet
        current belief
    sensor_range : float
        maximum sensing radius, > 0
    std_landmark : array
        2-element vector of observation std. dev. in x and y, > 0
    observations : array
        (M,2) body-frame points for this step, possibly empty
    landmarks : LandmarkMap
        known map
    gate_on : str
        see nearest_landmarks

    Returns:
    -------
    A new ParticleSet with normalised weights and fresh associations.
    """
    weights, associations = particle_weights(
        particles, sensor_range, std_landmark, observations, landmarks, gate_on
    )
    return particles.with_(weights=normalize(weights), associations=associations)
