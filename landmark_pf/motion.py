"""Particle initialisation and the constant turn rate and velocity motion model."""

import logging

import numpy

from .config import require_finite, require_integer, require_non_negative, require_positive, require_std
from .errors import InvalidConfigurationError
from .particles import ParticleSet
from .sampling import gaussian_noise, independent_sample, normal_sampler

logger = logging.getLogger(__name__)

DEFAULT_YAW_RATE_THRESHOLD = 0.001


def initialize(x, y, theta, std, n_particles, rng):
    """Draw a particle set from a Gaussian prior around an initial pose.

    Parameters:
    -----------
    x, y, theta : float
        initial pose estimate (e.g. from GPS)
    std : array
        3-element vector of std. dev. for x, y and theta
    n_particles : int
        number of particles N
    rng : numpy.random.Generator
        source of randomness

    Returns:
    -------
    ParticleSet with ids 0..N-1 and every weight set to 1.
    """
    n_particles = require_integer("n_particles", n_particles)
    if n_particles < 1:
        raise InvalidConfigurationError("n_particles must be at least 1, got %d" % n_particles)
    x = require_finite("x", x)
    y = require_finite("y", y)
    theta = require_finite("theta", theta)
    std = require_std("std", std, 3)

    prior_fn = independent_sample(
        [
            normal_sampler(x, std[0], rng),
            normal_sampler(y, std[1], rng),
            normal_sampler(theta, std[2], rng),
        ]
    )
    particles = ParticleSet(
        ids=numpy.arange(n_particles),
        poses=prior_fn(n_particles),
        weights=numpy.ones(n_particles),
    )
    logger.info(
        "initialised %d particles around (%.3f, %.3f, %.3f)", n_particles, x, y, theta
    )
    return particles


def move(poses, delta_t, velocity, yaw_rate, yaw_rate_threshold=DEFAULT_YAW_RATE_THRESHOLD):
    """Noise-free bicycle model step for an (N,3) array of poses.

    Uses the curved-path equations when |yaw_rate| exceeds the threshold and
    the straight-line approximation otherwise. The branch depends only on the
    control input, so every pose takes the same one.
    """
    x, y, theta = poses[:, 0], poses[:, 1], poses[:, 2]
    new_theta = theta + yaw_rate * delta_t
    if abs(yaw_rate) > yaw_rate_threshold:
        ratio = velocity / yaw_rate
        new_x = x + ratio * (numpy.sin(new_theta) - numpy.sin(theta))
        new_y = y + ratio * (numpy.cos(theta) - numpy.cos(new_theta))
    else:
        new_x = x + velocity * delta_t * numpy.cos(theta)
        new_y = y + velocity * delta_t * numpy.sin(theta)
    return numpy.stack([new_x, new_y, new_theta], axis=1)


def predict(
    particles,
    delta_t,
    std_pos,
    velocity,
    yaw_rate,
    rng,
    yaw_rate_threshold=DEFAULT_YAW_RATE_THRESHOLD,
):
    """Propagate every particle through the motion model and add process noise.

    Parameters:
    -----------
    particles : ParticleSet
        current belief
    delta_t : float
        elapsed time in seconds, > 0
    std_pos : array
        3-element vector of process noise std. dev. for x, y and theta
    velocity : float
        commanded speed
    yaw_rate : float
        commanded turn rate in rad/s
    rng : numpy.random.Generator
        source of randomness
    yaw_rate_threshold : float
        turn rate below which the straight-line model is used

    Returns:
    -------
    A new ParticleSet; weights and associations are carried over.
    """
    delta_t = require_positive("delta_t", delta_t)
    velocity = require_finite("velocity", velocity)
    yaw_rate = require_finite("yaw_rate", yaw_rate)
    std_pos = require_std("std_pos", std_pos, 3)
    yaw_rate_threshold = require_non_negative("yaw_rate_threshold", yaw_rate_threshold)

    logger.debug(
        "predicting %d particles, dt=%g v=%g yaw_rate=%g (%s)",
        particles.n_particles,
        delta_t,
        velocity,
        yaw_rate,
        "turning" if abs(yaw_rate) > yaw_rate_threshold else "straight",
    )
    poses = move(particles.poses, delta_t, velocity, yaw_rate, yaw_rate_threshold)
    return particles.with_(poses=gaussian_noise(poses, std_pos, rng))
