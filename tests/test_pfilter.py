import math

import numpy
import pytest

from landmark_pf import (
    AlreadyInitializedError,
    FilterConfig,
    InvalidConfigurationError,
    LandmarkMap,
    NotInitializedError,
    ParticleFilter,
)

MAP = [(1, 5.0, 3.0), (2, 2.0, 1.0), (3, 6.0, 1.0), (4, 7.0, 4.0), (5, 4.0, 7.0)]
STD_LANDMARK = [0.3, 0.3]


def make_filter(**config):
    config.setdefault("seed", 42)
    return ParticleFilter(MAP, FilterConfig(**config))


def observe(pose, landmark_map=MAP):
    x, y, theta = pose
    c, s = math.cos(theta), math.sin(theta)
    return [
        [(lx - x) * c + (ly - y) * s, -(lx - x) * s + (ly - y) * c] for _, lx, ly in landmark_map
    ]


@pytest.mark.parametrize(
    "step, args",
    [
        ("prediction", (0.1, [0.3, 0.3, 0.01], 1.0, 0.1)),
        ("update_weights", (50.0, STD_LANDMARK, [[1.0, 1.0]])),
        ("resample", ()),
        ("best_particle", ()),
        ("mean_state", ()),
    ],
)
def test_steps_before_init_fail(step, args):
    pf = make_filter()
    assert not pf.initialized
    with pytest.raises(NotInitializedError):
        getattr(pf, step)(*args)


def test_init_only_once():
    pf = make_filter(num_particles=10)
    pf.init(0.0, 0.0, 0.0, [1.0, 1.0, 0.1])
    assert pf.initialized
    assert pf.particles.n_particles == 10
    with pytest.raises(AlreadyInitializedError):
        pf.init(0.0, 0.0, 0.0, [1.0, 1.0, 0.1])


def test_filter_rejects_empty_map():
    with pytest.raises(InvalidConfigurationError):
        ParticleFilter([])


def test_same_seed_gives_same_belief():
    beliefs = []
    for _ in range(2):
        pf = make_filter(num_particles=50)
        pf.init(3.0, 3.0, 0.2, [0.5, 0.5, 0.05])
        pf.prediction(0.1, [0.1, 0.1, 0.01], 2.0, 0.3)
        pf.update_weights(50.0, STD_LANDMARK, observe((3.2, 3.0, 0.25)))
        pf.resample()
        beliefs.append(pf.particles.poses)
    numpy.testing.assert_array_equal(beliefs[0], beliefs[1])


def test_step_replaces_particle_set():
    pf = make_filter(num_particles=20)
    pf.init(3.0, 3.0, 0.0, [0.5, 0.5, 0.05])
    before = pf.particles
    snapshot = before.poses.copy()

    pf.prediction(0.1, [0.1, 0.1, 0.01], 2.0, 0.0)
    pf.update_weights(50.0, STD_LANDMARK, observe((3.2, 3.0, 0.0)))
    pf.resample()

    assert pf.particles is not before
    numpy.testing.assert_array_equal(before.poses, snapshot)
    assert pf.particles.n_particles == 20


def test_filter_tracks_agent():
    truth = numpy.array([3.0, 3.0, 0.0])
    velocity, yaw_rate, dt = 1.0, 0.1, 0.1
    std_pos = [0.05, 0.05, 0.005]

    pf = make_filter(num_particles=200)
    pf.init(truth[0], truth[1], truth[2], [0.3, 0.3, 0.05])
    for _ in range(30):
        theta = truth[2] + yaw_rate * dt
        truth = numpy.array([
            truth[0] + velocity / yaw_rate * (math.sin(theta) - math.sin(truth[2])),
            truth[1] + velocity / yaw_rate * (math.cos(truth[2]) - math.cos(theta)),
            theta,
        ])
        pf.prediction(dt, std_pos, velocity, yaw_rate)
        pf.update_weights(50.0, STD_LANDMARK, observe(truth))
        assert pf.particles.weights.sum() == pytest.approx(1.0)
        pf.resample()

    estimate = pf.mean_state()
    assert numpy.hypot(*(estimate[:2] - truth[:2])) < 0.3
    assert abs(estimate[2] - truth[2]) < 0.1


@pytest.mark.parametrize("resampler", ["systematic", "stratified", "residual"])
def test_alternative_resamplers_keep_particle_count(resampler):
    pf = make_filter(num_particles=30, resampler=resampler)
    pf.init(3.0, 3.0, 0.0, [0.5, 0.5, 0.05])
    pf.update_weights(50.0, STD_LANDMARK, observe((3.0, 3.0, 0.0)))
    pf.resample()
    assert pf.particles.n_particles == 30


def test_best_particle_and_diagnostic_export():
    pf = make_filter(num_particles=5)
    pf.init(2.0, 3.0, 0.0, [0.0, 0.0, 0.0])
    pf.update_weights(50.0, STD_LANDMARK, [[3.0, 0.0], [0.0, -2.0]])

    best = pf.best_particle()
    assert best == 0
    assert pf.get_associations(best) == "1 2"
    assert pf.get_sense_coord(best, "X") == "5 2"
    assert pf.get_sense_coord(best, "Y") == "3 1"


def test_export_is_empty_before_weighting_and_without_matches():
    pf = make_filter(num_particles=3)
    pf.init(2.0, 3.0, 0.0, [0.1, 0.1, 0.01])
    assert pf.get_associations(0) == ""
    pf.update_weights(50.0, STD_LANDMARK, [])
    assert pf.get_associations(0) == ""
    assert pf.get_sense_coord(0, "X") == ""


def test_sense_coord_rejects_unknown_axis():
    pf = make_filter(num_particles=3)
    pf.init(2.0, 3.0, 0.0, [0.1, 0.1, 0.01])
    with pytest.raises(InvalidConfigurationError):
        pf.get_sense_coord(0, "Z")


def test_weight_statistics():
    pf = make_filter(num_particles=4)
    pf.init(2.0, 3.0, 0.0, [0.0, 0.0, 0.0])
    assert pf.n_eff() == pytest.approx(1.0)
    assert pf.weight_entropy() == pytest.approx(math.log(4))

    pf.particles = pf.particles.with_(weights=numpy.array([1.0, 0.0, 0.0, 0.0]))
    assert pf.n_eff() == pytest.approx(0.25)
    assert pf.weight_entropy() == pytest.approx(0.0)


def test_mean_state_averages_heading_on_circle():
    pf = make_filter(num_particles=2)
    pf.init(0.0, 0.0, 0.0, [0.0, 0.0, 0.0])
    poses = numpy.array([[0.0, 0.0, math.pi - 0.1], [2.0, 4.0, -math.pi + 0.1]])
    pf.particles = pf.particles.with_(poses=poses)

    x, y, theta = pf.mean_state()
    assert (x, y) == pytest.approx((1.0, 2.0))
    assert abs(theta) == pytest.approx(math.pi)


def test_filter_accepts_prebuilt_map_and_rng():
    landmarks = LandmarkMap(MAP)
    rng = numpy.random.default_rng(1)
    pf = ParticleFilter(landmarks, rng=rng)
    assert pf.landmarks is landmarks
    assert pf.rng is rng
    assert pf.n_particles == 100
