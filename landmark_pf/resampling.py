import logging

import numpy

from .errors import DegenerateWeightsError, InvalidConfigurationError

logger = logging.getLogger(__name__)


def multinomial_resample(wt, rng):
    """N independent draws with replacement, each index chosen with probability wt[i]."""
    return rng.choice(len(wt), p=wt, size=len(wt))


## Resampling based on the examples at: https://github.com/rlabbe/Kalman-and-Bayesian-Filters-in-Python/blob/master/12-Particle-Filters.ipynb
## originally by Roger Labbe, under an MIT License
def systematic_resample(wt, rng):
    n = len(wt)
    pt = (numpy.arange(n) + rng.uniform(0, 1)) / n
    return create_indices(pt, wt)


def stratified_resample(wt, rng):
    n = len(wt)
    pt = (rng.uniform(0, 1, n) + numpy.arange(n)) / n
    return create_indices(pt, wt)


def residual_resample(wt, rng):
    n = len(wt)
    indices = numpy.zeros(n, numpy.int64)
    # take int(N*w) copies of each weight
    num_copies = numpy.floor(n * wt).astype(numpy.int64)
    k = 0
    for i in range(n):
        for _ in range(num_copies[i]):  # make n copies
            indices[k] = i
            k += 1
    if k == n:
        return indices
    # use multinomial resampling on the residual to fill up the rest.
    residual = n * wt - num_copies  # get fractional part
    residual /= numpy.sum(residual)
    cumsum = _closed_cumsum(residual)
    indices[k:n] = numpy.searchsorted(cumsum, rng.uniform(0, 1, n - k), side="right")
    return indices


def create_indices(pt, wt):
    n = len(wt)
    indices = numpy.zeros(n, numpy.int64)
    cumsum = _closed_cumsum(wt)
    i, j = 0, 0
    while i < n:
        if pt[i] < cumsum[j]:
            indices[i] = j
            i += 1
        else:
            j += 1

    return indices


def _closed_cumsum(wt):
    # ends at exactly 1 from the last positive weight on, so rounding can
    # never hand a draw to a trailing zero-weight particle
    cumsum = numpy.cumsum(wt)
    cumsum[numpy.flatnonzero(wt > 0)[-1]:] = 1.0
    return cumsum


### end rlabbe's resampling functions


RESAMPLERS = {
    "multinomial": multinomial_resample,
    "systematic": systematic_resample,
    "stratified": stratified_resample,
    "residual": residual_resample,
}


def resampling_probabilities(weights):
    """Turn weights into a probability vector, refusing degenerate input."""
    weights = numpy.asarray(weights, dtype=float)
    if weights.ndim != 1 or len(weights) == 0:
        raise DegenerateWeightsError("expected a non-empty weight vector, got shape %s" % (weights.shape,))
    if not numpy.all(numpy.isfinite(weights)):
        raise DegenerateWeightsError("weights must be finite")
    if numpy.any(weights < 0):
        raise DegenerateWeightsError("weights must be non-negative")
    total = numpy.sum(weights)
    if total <= 0:
        raise DegenerateWeightsError("weights sum to zero; nothing to resample from")
    return weights / total


def resample(particles, rng, method="multinomial"):
    """Draw a new particle set with replacement, proportional to weight.

    Parameters:
    -----------
    particles : ParticleSet
        weighted belief; left untouched
    rng : numpy.random.Generator
        source of randomness
    method : str
        key of RESAMPLERS

    Returns:
    -------
    A new ParticleSet of the same size. Poses, ids, weights and associations
    are copied from the drawn entries.
    """
    try:
        resample_fn = RESAMPLERS[method]
    except KeyError:
        raise InvalidConfigurationError(
            "unknown resampler %r, expected one of %s" % (method, ", ".join(RESAMPLERS))
        ) from None

    wt = resampling_probabilities(particles.weights)
    indices = resample_fn(wt, rng)
    logger.debug(
        "%s resampling kept %d of %d particles",
        method,
        len(numpy.unique(indices)),
        particles.n_particles,
    )
    return particles.take(indices)
