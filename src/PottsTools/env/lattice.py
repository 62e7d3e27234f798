from typing import List, Sequence

import numpy as np

from PottsTools.util.constants import BACKGROUND
from PottsTools.util.enums import Region
from PottsTools.util.helper import (Coordinate, get_neighbor_offsets,
                                    get_plane_offsets, get_window_offsets,
                                    shift)


class Lattice():
    """
    Fixed-size grid of voxels holding the id of the owner of each voxel and,
    for cells with sub-cellular regions, the region code.

    Coordinates outside of the lattice resolve to Background. The lattice does
    not wrap around.

    Args:
        shape: Size of the lattice along each axis (2 or 3 axes)
        neighborhood: 'first' or 'second' order neighbor relation
    """

    def __init__(self, shape: Sequence[int], neighborhood: str = 'first'):
        if len(shape) not in (2, 3):
            raise ValueError('Lattice must be 2D or 3D')
        if any(size < 1 for size in shape):
            raise ValueError('Lattice dimensions must be positive')

        self.shape = tuple(int(size) for size in shape)
        self.neighborhood = neighborhood
        self.ids = np.zeros(self.shape, dtype=np.int64)
        self.regions = np.zeros(self.shape, dtype=np.int8)

        self.offsets = get_neighbor_offsets(self.ndim, neighborhood)
        self.window = get_window_offsets(self.ndim)
        self.plane_offsets = get_plane_offsets(self.ndim)

        # Non-background voxels, kept as a list + index for O(1) sampling
        self._occupied = []
        self._occupied_index = {}

    @property
    def ndim(self) -> int:
        return len(self.shape)

    @property
    def volume(self) -> int:
        return int(np.prod(self.shape))

    @property
    def occupied_volume(self) -> int:
        return len(self._occupied)

    @property
    def occupied(self) -> List[Coordinate]:
        return list(self._occupied)

    def in_bounds(self, coord: Sequence[int]) -> bool:
        return all(0 <= c < size for c, size in zip(coord, self.shape))

    def occupant_at(self, coord: Coordinate) -> int:
        if not self.in_bounds(coord):
            return BACKGROUND
        return int(self.ids[coord])

    def region_at(self, coord: Coordinate) -> Region:
        if not self.in_bounds(coord):
            return Region.UNDEFINED
        return Region(int(self.regions[coord]))

    def neighbors_of(self, coord: Coordinate) -> List[Coordinate]:
        """
        Neighbors of a voxel under the lattice's neighbor relation.

        The list always has the same length for a given relation and may
        contain coordinates outside of the lattice.
        """
        return [shift(coord, offset) for offset in self.offsets]

    def window_of(self, coord: Coordinate) -> List[Coordinate]:
        """
        All voxels of the 3^d window around a voxel, excluding the voxel
        """
        return [shift(coord, offset) for offset in self.window]

    def set_occupant(self,
                     coord: Coordinate,
                     owner: int,
                     region: Region | None = None):
        """
        Assign a voxel to an owner.

        Args:
            coord: The voxel to assign
            owner: Id of the new owner, BACKGROUND to release the voxel
            region: Region of the voxel within the owner. Defaults to
                Region.DEFAULT for cells and Region.UNDEFINED for Background.
        """
        if not self.in_bounds(coord):
            raise IndexError(f'Voxel {coord} is outside of the lattice')

        coord = tuple(int(c) for c in coord)
        previous = int(self.ids[coord])
        if region is None:
            region = Region.UNDEFINED if owner == BACKGROUND else Region.DEFAULT

        self.ids[coord] = owner
        self.regions[coord] = int(region)

        if previous == BACKGROUND and owner != BACKGROUND:
            self._occupied_index[coord] = len(self._occupied)
            self._occupied.append(coord)
        elif previous != BACKGROUND and owner == BACKGROUND:
            index = self._occupied_index.pop(coord)
            last = self._occupied.pop()
            if last != coord:
                self._occupied[index] = last
                self._occupied_index[last] = index

    def set_region(self, coord: Coordinate, region: Region):
        if self.occupant_at(coord) == BACKGROUND:
            raise ValueError(f'Cannot assign a region to background voxel {coord}')
        self.regions[coord] = int(region)

    def random_voxel(self, rng: np.random.Generator) -> Coordinate:
        return tuple(int(c) for c in rng.integers(0, self.shape))

    def random_occupied_voxel(self, rng: np.random.Generator) -> Coordinate:
        if not self._occupied:
            raise ValueError('There are no occupied voxels to sample')
        return self._occupied[int(rng.integers(len(self._occupied)))]

    def __str__(self):
        return (f'Lattice(shape={self.shape}, neighborhood={self.neighborhood},'
                f' occupied={self.occupied_volume})')

    def __repr__(self):
        return self.__str__()
