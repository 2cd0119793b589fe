import numpy
import pytest

from landmark_pf import LandmarkMap, ParticleSet


@pytest.fixture
def rng():
    return numpy.random.default_rng(2018)


@pytest.fixture
def landmarks():
    return LandmarkMap([(1, 5.0, 3.0), (2, 2.0, 1.0), (3, 6.0, 1.0), (4, 7.0, 4.0), (5, 4.0, 7.0)])


def _make_particles(poses, weights=None):
    poses = numpy.array(poses, dtype=float)
    n = len(poses)
    if weights is None:
        weights = numpy.ones(n)
    return ParticleSet(ids=numpy.arange(n), poses=poses, weights=numpy.array(weights, dtype=float))


@pytest.fixture
def make_particles():
    return _make_particles
