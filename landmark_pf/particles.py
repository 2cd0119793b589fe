"""Particle set, landmark map and per-step association records."""

import dataclasses
import math

import numpy

from .errors import InvalidConfigurationError


@dataclasses.dataclass(frozen=True)
class Landmark:
    id: int
    x: float
    y: float


class LandmarkMap(object):
    """Immutable, ordered map of known landmarks.

    Parameters:
    -----------
    landmarks : iterable
        Landmark objects or (id, x, y) triples. Ids must be unique and >= 1.
        Map order is kept; it decides ties during association.
    """

    def __init__(self, landmarks):
        items = []
        for entry in landmarks:
            if isinstance(entry, Landmark):
                items.append(entry)
                continue
            try:
                id_, x, y = entry
                items.append(Landmark(int(id_), float(x), float(y)))
            except (TypeError, ValueError):
                raise InvalidConfigurationError(
                    "landmark entries must be (id, x, y), got %r" % (entry,)
                ) from None

        if not items:
            raise InvalidConfigurationError("landmark map is empty")

        seen = set()
        for lm in items:
            if lm.id < 1:
                raise InvalidConfigurationError("landmark ids start at 1, got %d" % lm.id)
            if lm.id in seen:
                raise InvalidConfigurationError("duplicate landmark id %d" % lm.id)
            if not (math.isfinite(lm.x) and math.isfinite(lm.y)):
                raise InvalidConfigurationError("landmark %d has non-finite coordinates" % lm.id)
            seen.add(lm.id)

        self._landmarks = tuple(items)
        self._index = {lm.id: i for i, lm in enumerate(items)}
        self.ids = numpy.array([lm.id for lm in items], dtype=int)
        self.coords = numpy.array([[lm.x, lm.y] for lm in items], dtype=float)
        self.ids.setflags(write=False)
        self.coords.setflags(write=False)

    def __len__(self):
        return len(self._landmarks)

    def __iter__(self):
        return iter(self._landmarks)

    def __getitem__(self, landmark_id):
        return self._landmarks[self._index[landmark_id]]

    def __contains__(self, landmark_id):
        return landmark_id in self._index

    def __repr__(self):
        return "LandmarkMap(%d landmarks)" % len(self)


@dataclasses.dataclass(frozen=True, eq=False)
class Association:
    """Landmarks matched by one particle in the latest weighting step.

    The three arrays are parallel: observation k was matched to
    landmark_ids[k] and sensed at (sense_x[k], sense_y[k]) in the world frame.
    """

    landmark_ids: numpy.ndarray
    sense_x: numpy.ndarray
    sense_y: numpy.ndarray

    def __post_init__(self):
        if not (len(self.landmark_ids) == len(self.sense_x) == len(self.sense_y)):
            raise ValueError(
                "association sequences differ in length: %d ids, %d x, %d y"
                % (len(self.landmark_ids), len(self.sense_x), len(self.sense_y))
            )

    def __len__(self):
        return len(self.landmark_ids)

    @classmethod
    def empty(cls):
        return cls(numpy.zeros(0, dtype=int), numpy.zeros(0), numpy.zeros(0))


@dataclasses.dataclass(frozen=True, eq=False)
class ParticleSet:
    """A belief over the agent's pose, as N weighted hypotheses.

    Steps never modify a ParticleSet; they return a new one built from copies
    of these arrays.

    Attributes:
    -----------
    ids : array
        N-element vector of particle identifiers. After resampling several
        entries may share an id.
    poses : array
        (N,3) array of x, y, theta in world coordinates
    weights : array
        N-element vector of non-negative weights. Normalised after weighting.
    associations : tuple or None
        one Association per particle from the latest weighting step, or None
        before the first one
    """

    ids: numpy.ndarray
    poses: numpy.ndarray
    weights: numpy.ndarray
    associations: tuple = None

    def __post_init__(self):
        n = len(self.ids)
        if self.poses.shape != (n, 3):
            raise ValueError("poses must have shape (%d, 3), got %s" % (n, self.poses.shape))
        if self.weights.shape != (n,):
            raise ValueError("weights must have shape (%d,), got %s" % (n, self.weights.shape))
        if self.associations is not None and len(self.associations) != n:
            raise ValueError(
                "expected %d associations, got %d" % (n, len(self.associations))
            )

    @property
    def n_particles(self):
        return len(self.ids)

    @property
    def x(self):
        return self.poses[:, 0]

    @property
    def y(self):
        return self.poses[:, 1]

    @property
    def theta(self):
        return self.poses[:, 2]

    def __len__(self):
        return self.n_particles

    def with_(self, **changes):
        """Copy of this set with the given fields replaced."""
        values = {
            "ids": numpy.array(self.ids),
            "poses": numpy.array(self.poses),
            "weights": numpy.array(self.weights),
            "associations": self.associations,
        }
        values.update(changes)
        return ParticleSet(**values)

    def take(self, indices):
        """New set made of the particles at indices, in that order."""
        indices = numpy.asarray(indices, dtype=int)
        associations = None
        if self.associations is not None:
            associations = tuple(self.associations[i] for i in indices)
        return ParticleSet(
            ids=self.ids[indices],
            poses=self.poses[indices, :],
            weights=self.weights[indices],
            associations=associations,
        )
