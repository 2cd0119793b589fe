from .config import FilterConfig, load_config
from .errors import (
    AlreadyInitializedError,
    DegenerateWeightsError,
    InvalidConfigurationError,
    NotInitializedError,
    ParticleFilterError,
)
from .motion import initialize, move, predict
from .particles import Association, Landmark, LandmarkMap, ParticleSet
from .pfilter import ParticleFilter
from .resampling import (
    multinomial_resample,
    resample,
    residual_resample,
    stratified_resample,
    systematic_resample,
)
from .weighting import normalize, to_body, to_world, update_weights

__version__ = "0.1.0"
