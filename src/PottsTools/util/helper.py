import heapq
from collections import deque
from itertools import product
from typing import Iterable, List, Sequence, Set, Tuple

import numpy as np
from scipy import ndimage

Coordinate = Tuple[int, ...]


def get_neighbor_offsets(ndim: int, order: str = 'first') -> List[Coordinate]:
    """
    Get the offsets of the neighbor relation of a lattice.

    Args:
        ndim: Dimensionality of the lattice, either 2 or 3
        order: 'first' for the von Neumann relation (4 in 2D, 6 in 3D) or
            'second' for the Moore relation (8 in 2D, 26 in 3D)

    Returns:
        The offsets in a fixed order
    """
    if order == 'first':
        offsets = []
        for axis in range(ndim):
            for step in (-1, 1):
                offset = [0] * ndim
                offset[axis] = step
                offsets.append(tuple(offset))
        return offsets
    elif order == 'second':
        return get_window_offsets(ndim)
    raise ValueError(f'Unknown neighbor order {order}')


def get_window_offsets(ndim: int) -> List[Coordinate]:
    """
    Offsets of the 3^d window around a voxel, excluding the voxel itself
    """
    return [
        offset for offset in product((-1, 0, 1), repeat=ndim)
        if any(offset)
    ]


def get_plane_offsets(ndim: int) -> List[Coordinate]:
    """
    First order offsets that stay in the plane of the first two axes
    """
    return [
        offset for offset in get_neighbor_offsets(ndim, 'first')
        if not any(offset[2:])
    ]


def shift(coord: Sequence[int], offset: Sequence[int]) -> Coordinate:
    return tuple(c + o for c, o in zip(coord, offset))


def find_components(voxels: Iterable[Coordinate],
                    offsets: Sequence[Coordinate]) -> List[Set[Coordinate]]:
    """
    Split a voxel set into its connected components under a neighbor relation.

    Components are ordered by their smallest voxel so that the result does not
    depend on set iteration order.

    Args:
        voxels: The voxels to split
        offsets: Offsets defining the neighbor relation

    Returns:
        List of components
    """
    remaining = set(voxels)
    components = []
    for start in sorted(remaining):
        if start not in remaining:
            continue
        component = {start}
        remaining.discard(start)
        queue = deque([start])
        while queue:
            voxel = queue.popleft()
            for offset in offsets:
                neighbor = shift(voxel, offset)
                if neighbor in remaining:
                    remaining.discard(neighbor)
                    component.add(neighbor)
                    queue.append(neighbor)
        components.append(component)
    return components


def is_connected(voxels: Iterable[Coordinate],
                 offsets: Sequence[Coordinate]) -> bool:
    """
    Check whether a voxel set forms a single connected component. An empty set
    is not connected.
    """
    return len(find_components(voxels, offsets)) == 1


def count_components(mask: np.ndarray, order: str = 'first') -> int:
    """
    Count the connected components of a boolean mask using scipy.

    Args:
        mask: Boolean array marking the voxels of interest
        order: 'first' or 'second' neighbor relation

    Returns:
        The number of connected components
    """
    connectivity = 1 if order == 'first' else mask.ndim
    structure = ndimage.generate_binary_structure(mask.ndim, connectivity)
    _, n_features = ndimage.label(mask, structure=structure)
    return n_features


def grow_compact(center: Sequence[float],
                 n_voxels: int,
                 offsets: Sequence[Coordinate],
                 allowed: Set[Coordinate] | None = None,
                 shape: Sequence[int] | None = None) -> List[Coordinate]:
    """
    Grow a connected, roughly spherical set of voxels around a center.

    Voxels are added best-first in order of their distance to the center,
    ties broken by coordinate, so the result is deterministic.

    Args:
        center: The (possibly fractional) center to grow around
        n_voxels: The number of voxels to select
        offsets: Offsets defining the neighbor relation used for growth
        allowed: If given, only these voxels may be selected
        shape: If given, voxels must lie inside a lattice of this shape

    Returns:
        The selected voxels, in the order they were added. Fewer than
        n_voxels are returned if the allowed space runs out.
    """
    center = np.asarray(center, dtype=float)

    def distance(voxel):
        return float(np.sum((np.asarray(voxel) - center)**2))

    def permitted(voxel):
        if allowed is not None and voxel not in allowed:
            return False
        if shape is not None:
            return all(0 <= c < s for c, s in zip(voxel, shape))
        return True

    if n_voxels <= 0:
        return []
    if allowed is not None:
        if len(allowed) == 0:
            return []
        start = min(allowed, key=lambda voxel: (distance(voxel), voxel))
    else:
        start = tuple(int(round(c)) for c in center)
        if not permitted(start):
            return []

    selected = []
    seen = {start}
    heap = [(distance(start), start)]
    while heap and len(selected) < n_voxels:
        _, voxel = heapq.heappop(heap)
        selected.append(voxel)
        for offset in offsets:
            neighbor = shift(voxel, offset)
            if neighbor in seen or not permitted(neighbor):
                continue
            seen.add(neighbor)
            heapq.heappush(heap, (distance(neighbor), neighbor))
    return selected


def get_grid_centers(shape: Sequence[int], spacing: int,
                     margin: int | None = None) -> List[Coordinate]:
    """
    Get the centers of a regular grid of cells filling the lattice.

    In 3D the cells are placed in a single layer at the bottom of the lattice
    so that they sit on the substrate.

    Args:
        shape: Shape of the lattice
        spacing: Distance between neighboring centers
        margin: Distance between the lattice border and the outermost centers.
            Defaults to half the spacing.

    Returns:
        List of center coordinates
    """
    if spacing < 1:
        raise ValueError('Spacing must be at least 1')
    if margin is None:
        margin = spacing // 2
    axes = [range(margin, size - margin, spacing) for size in shape[:2]]
    centers = []
    for point in product(*axes):
        if len(shape) == 3:
            point = point + (0, )
        centers.append(tuple(int(c) for c in point))
    return centers
