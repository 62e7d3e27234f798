from math import ceil, pi, sqrt


def convert_surface(volume: float, height: float = 1, ndim: int = 2) -> float:
    """
    Convert a volume to the boundary size of a compact cell with that volume.

    In 2D the cell is approximated by a digital disc, whose boundary under the
    first order neighbor relation is 8 * r. In 3D it is approximated by a
    cylinder of the given height.

    Args:
        volume: The number of voxels
        height: The height of the cell (only used in 3D)
        ndim: Dimensionality of the lattice

    Returns:
        The target surface
    """
    if volume <= 0:
        return 0
    if ndim == 2:
        return ceil(8 * sqrt(volume / pi))
    if height <= 0:
        raise ValueError('Height must be positive to convert a 3D surface')
    return ceil(2 * volume / height + 2 * sqrt(pi) * sqrt(volume * height))


def convert_volume(radius: float, ndim: int = 2) -> float:
    """
    Convert a radius to the volume of a disc (2D) or sphere (3D).

    Args:
        radius: The radius in voxels
        ndim: Dimensionality of the lattice

    Returns:
        The volume in voxels
    """
    if ndim == 2:
        return pi * radius**2
    return 4 / 3 * pi * radius**3
