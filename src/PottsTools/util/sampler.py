from math import ceil, isfinite

import numpy as np

from PottsTools.util.errors import SamplingExhaustion


def sample_waiting_time(rng: np.random.Generator, rate: float) -> int:
    """
    Sample the number of steps until the next event of a Poisson process.

    The continuous exponential waiting time is rounded up to whole steps, so
    the shortest possible wait is one step.

    Args:
        rng: The random number generator of the simulation
        rate: The expected number of events per step

    Returns:
        The waiting time in steps

    Raises:
        SamplingExhaustion: if the rate cannot produce a finite waiting time
    """
    if rate is None or not isfinite(rate) or rate <= 0:
        raise SamplingExhaustion(
            f'Cannot sample a finite waiting time from a rate of {rate}')
    wait = rng.exponential(1 / rate)
    if not isfinite(wait):
        raise SamplingExhaustion(
            f'Sampled a non-finite waiting time from a rate of {rate}')
    return max(1, ceil(wait))


def sample_event(rng: np.random.Generator, probability: float) -> bool:
    """
    Bernoulli trial with the given per-step probability. A probability of
    zero never draws from the generator.
    """
    if probability <= 0:
        return False
    return rng.random() < probability
