import numpy


def gaussian_noise(x, sigmas, rng):
    """Apply diagonal covariance normally-distributed noise to the N,D array x.

    Parameters:
    -----------
        x : array
            (N,D) array of values
        sigmas : array
            D-element vector of std. dev. for each column of x. A zero entry
            leaves that column untouched.
        rng : numpy.random.Generator
            source of randomness
    """
    n = rng.normal(numpy.zeros(len(sigmas)), sigmas, size=(x.shape[0], len(sigmas)))
    return x + n


def independent_sample(fn_list):
    """Take a list of functions that each draw n samples from a distribution
    and concatenate the result into an n, d matrix

    Parameters:
    -----------
        fn_list: list of functions
                A list of functions of the form `sample(n)` that will take n samples
                from a distribution.
    Returns:
    -------
        sample_fn: a function that will sample from all of the functions and concatenate
        them
    """

    def sample_fn(n):
        return numpy.stack([fn(n) for fn in fn_list]).T

    return sample_fn


def normal_sampler(loc, scale, rng):
    """Return a `sample(n)` function drawing from Normal(loc, scale)."""

    def sample(n):
        return rng.normal(loc, scale, size=n)

    return sample
