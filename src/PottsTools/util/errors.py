class ConfigurationError(ValueError):
    """
    Raised when a simulation is constructed from malformed coefficients,
    unknown policies, inconsistent dimensionality or an invalid initial
    population.
    """


class InvariantViolation(RuntimeError):
    """
    Raised when the lattice and the cell geometry no longer agree, for example
    a voxel claimed by two cells or a cell split into two components. The run
    cannot continue once this is raised.
    """


class SamplingExhaustion(ValueError):
    """
    Raised when a waiting time cannot be sampled from the configured
    distribution (e.g. a zero rate for an active phase).
    """
