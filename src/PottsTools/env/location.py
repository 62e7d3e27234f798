from collections import Counter
from math import ceil
from typing import Dict, Iterable, List, Sequence, Set, Tuple

import numpy as np

from PottsTools.util.constants import BALANCE_DIFFERENCE
from PottsTools.util.enums import Region
from PottsTools.util.helper import (Coordinate, find_components, grow_compact,
                                    is_connected, get_window_offsets, shift)

# Cut directions tried when bisecting a location
SPLIT_DIRECTIONS = {
    2: [(1, 0), (0, 1), (1, 1), (1, -1)],
    3: [(1, 0, 0), (0, 1, 0), (0, 0, 1), (1, 1, 0), (1, -1, 0), (0, 1, 1),
        (0, 1, -1), (1, 0, 1), (-1, 0, 1)]
}

# Attempts at making both halves of a split connected before giving up
MAX_CONNECT_ITERATIONS = 100


class Location():
    """
    The set of voxels owned by a single cell (or a single region of a cell).

    Volume, surface, centroid and height are kept up to date incrementally
    on every add and remove, so they can be read in constant time by the
    Hamiltonian terms.

    Args:
        voxels: The initial voxels
        offsets: Offsets of the lattice neighbor relation
        ndim: Dimensionality of the lattice
    """

    def __init__(self,
                 voxels: Iterable[Coordinate] = (),
                 offsets: Sequence[Coordinate] | None = None,
                 ndim: int = 2):
        if offsets is None:
            raise ValueError('The neighbor offsets of the lattice are required')
        self.offsets = [tuple(offset) for offset in offsets]
        self.ndim = ndim
        self._window = get_window_offsets(ndim)

        self.voxels: Set[Coordinate] = set()
        self.surface = 0
        self._sums = np.zeros(ndim)
        self._layers = Counter()

        for voxel in voxels:
            self.add(voxel)

    @property
    def volume(self) -> int:
        return len(self.voxels)

    @property
    def height(self) -> int:
        if self.ndim == 2:
            return 1 if self.voxels else 0
        return len(self._layers)

    @property
    def centroid(self) -> np.ndarray | None:
        if not self.voxels:
            return None
        return self._sums / self.volume

    def _count_owned(self, voxel: Coordinate) -> int:
        return sum(
            1 for offset in self.offsets if shift(voxel, offset) in self.voxels)

    def add(self, voxel: Coordinate):
        voxel = tuple(int(c) for c in voxel)
        if voxel in self.voxels:
            raise ValueError(f'Voxel {voxel} is already in this location')
        self.surface += self.surface_change(voxel, 1)
        self.voxels.add(voxel)
        self._sums += voxel
        self._layers[voxel[-1]] += 1

    def remove(self, voxel: Coordinate):
        voxel = tuple(int(c) for c in voxel)
        if voxel not in self.voxels:
            raise ValueError(f'Voxel {voxel} is not in this location')
        self.surface += self.surface_change(voxel, -1)
        self.voxels.discard(voxel)
        self._sums -= voxel
        self._layers[voxel[-1]] -= 1
        if self._layers[voxel[-1]] == 0:
            del self._layers[voxel[-1]]

    def clear(self) -> List[Coordinate]:
        """
        Remove all voxels from the location.

        Returns:
            The removed voxels, sorted
        """
        voxels = sorted(self.voxels)
        for voxel in voxels:
            self.remove(voxel)
        return voxels

    def surface_change(self, voxel: Coordinate, change: int) -> int:
        """
        Change in surface if the voxel is added (change = 1) to or removed
        (change = -1) from this location.

        Each neighbor of the voxel is either owned, in which case the shared
        face stops (or starts) being a boundary, or not, in which case it
        becomes (or stops being) one.
        """
        owned = self._count_owned(voxel)
        if change > 0:
            return len(self.offsets) - 2 * owned
        return 2 * owned - len(self.offsets)

    def height_change(self, voxel: Coordinate, change: int) -> int:
        """
        Change in height if the voxel is added to or removed from this location
        """
        if self.ndim == 2:
            if change > 0:
                return 1 if not self.voxels else 0
            return -1 if self.volume == 1 else 0
        if change > 0:
            return 0 if self._layers[voxel[-1]] > 0 else 1
        return -1 if self._layers[voxel[-1]] == 1 else 0

    def get_center(self) -> Coordinate | None:
        """
        The voxel of the location closest to its centroid
        """
        centroid = self.centroid
        if centroid is None:
            return None
        return min(self.voxels,
                   key=lambda voxel:
                   (float(np.sum((np.asarray(voxel) - centroid)**2)), voxel))

    def get_bounds(self) -> Tuple[slice, ...]:
        """
        Slices of the smallest box containing all voxels
        """
        coords = np.array(sorted(self.voxels))
        return tuple(
            slice(int(low), int(high) + 1)
            for low, high in zip(coords.min(axis=0), coords.max(axis=0)))

    def is_removable(self,
                     voxel: Coordinate,
                     allow_empty: bool = False,
                     exact: bool = False) -> bool:
        """
        Check whether removing a voxel keeps the location a single connected
        component.

        The check first flood-fills the owned voxels of the 3^d window around
        the voxel: if all owned neighbors of the voxel are reachable from each
        other inside the window, the location stays connected. The local check
        can reject moves that would in fact keep the location connected
        through a path outside the window; `exact` falls back to a full
        flood-fill in that case.

        Args:
            voxel: The voxel that would be removed
            allow_empty: Whether the last voxel of the location may be removed
            exact: Whether to fall back to a full flood-fill

        Returns:
            True if the voxel can be removed
        """
        if self.volume <= 1:
            return allow_empty and voxel in self.voxels
        if self._is_locally_connected(voxel):
            return True
        if exact:
            return is_connected(self.voxels - {voxel}, self.offsets)
        return False

    def _is_locally_connected(self, voxel: Coordinate) -> bool:
        members = {
            offset
            for offset in self._window if shift(voxel, offset) in self.voxels
        }
        links = [offset for offset in self.offsets if offset in members]
        if not links:
            return False

        reached = {links[0]}
        stack = [links[0]]
        while stack:
            current = stack.pop()
            for offset in self.offsets:
                neighbor = shift(current, offset)
                if neighbor in members and neighbor not in reached:
                    reached.add(neighbor)
                    stack.append(neighbor)
        return all(link in reached for link in links)

    def get_diameters(self, center: Coordinate) -> Dict[Coordinate, int]:
        """
        Extent of the location along each split direction through a center
        voxel.

        Args:
            center: The voxel the diameters pass through

        Returns:
            Dictionary of direction to diameter (in voxels along the line)
        """
        diameters = {}
        for direction in SPLIT_DIRECTIONS[self.ndim]:
            axis = next(i for i, d in enumerate(direction) if d != 0)
            steps = []
            for voxel in self.voxels:
                delta = [v - c for v, c in zip(voxel, center)]
                t = delta[axis] * direction[axis]
                if all(d == t * u for d, u in zip(delta, direction)):
                    steps.append(t)
            diameters[direction] = max(steps) - min(steps) + 1 if steps else 0
        return diameters

    def split(self, rng: np.random.Generator) -> 'Location | None':
        """
        Bisect the location.

        The cut passes through the center voxel perpendicular to the longest
        diameter of the location. Voxels on the cut are assigned to either half
        at random. Stray components are then moved to the other half and the
        halves are balanced to within BALANCE_DIFFERENCE. One of the two halves
        is chosen at random to stay in this location, the other is removed and
        returned.

        Args:
            rng: The random number generator of the simulation

        Returns:
            The split-off location, or None if the location could not be
            split into two connected halves (it is then left unchanged).
        """
        if self.volume < 2:
            return None

        first, second = self.split_voxels(rng)
        if first is None:
            return None

        if rng.random() < 0.5:
            keep, other = first, second
        else:
            keep, other = second, first

        for voxel in sorted(other):
            self.remove(voxel)
        return self._create(sorted(other))

    def _create(self, voxels: Iterable[Coordinate]) -> 'Location':
        return Location(voxels, self.offsets, self.ndim)

    def split_voxels(self, rng: np.random.Generator):
        """
        Partition the voxels of the location into two connected halves
        without modifying the location.

        Returns:
            Two sets of voxels, or (None, None) on failure
        """
        center = self.get_center()
        diameters = self.get_diameters(center)
        longest = max(diameters.values())
        candidates = [d for d, size in diameters.items() if size == longest]
        if len(candidates) > 1:
            normal = candidates[int(rng.integers(len(candidates)))]
        else:
            normal = candidates[0]

        first, second = set(), set()
        for voxel in sorted(self.voxels):
            side = sum((v - c) * n for v, c, n in zip(voxel, center, normal))
            if side < 0:
                first.add(voxel)
            elif side > 0:
                second.add(voxel)
            elif rng.random() < 0.5:
                first.add(voxel)
            else:
                second.add(voxel)

        if not self._connect_voxels(first, second):
            return None, None
        self._balance_voxels(first, second, rng)
        if not first or not second:
            return None, None
        return first, second

    def _connect_voxels(self, first: Set[Coordinate],
                        second: Set[Coordinate]) -> bool:
        for _ in range(MAX_CONNECT_ITERATIONS):
            changed = False
            for source, target in ((first, second), (second, first)):
                components = find_components(source, self.offsets)
                if len(components) <= 1:
                    continue
                components.sort(key=lambda c: (-len(c), min(c)))
                for component in components[1:]:
                    source -= component
                    target |= component
                changed = True
            if not changed:
                return True
        return False

    def _balance_voxels(self, first: Set[Coordinate], second: Set[Coordinate],
                        rng: np.random.Generator):
        threshold = ceil((len(first) + len(second)) * BALANCE_DIFFERENCE)
        while abs(len(first) - len(second)) > threshold:
            if len(first) > len(second):
                larger, smaller = first, second
            else:
                larger, smaller = second, first

            candidates = [
                voxel for voxel in sorted(larger) if not smaller or any(
                    shift(voxel, offset) in smaller for offset in self.offsets)
            ]
            moved = False
            for index in rng.permutation(len(candidates)):
                voxel = candidates[int(index)]
                remaining = larger - {voxel}
                if remaining and is_connected(remaining, self.offsets):
                    larger.discard(voxel)
                    smaller.add(voxel)
                    moved = True
                    break
            if not moved:
                break

    def __str__(self):
        return f'Location(volume={self.volume}, surface={self.surface})'

    def __repr__(self):
        return self.__str__()


class RegionLocation(Location):
    """
    A location subdivided into regions (e.g. cytoplasm and nucleus).

    The location itself tracks the geometry of the whole cell. Each region
    keeps its own Location so region-level geometry is also available.

    Args:
        voxels: The initial voxels, all in the default region
        offsets: Offsets of the lattice neighbor relation
        ndim: Dimensionality of the lattice
        regions: Voxels to move into other regions, keyed by region
    """

    def __init__(self,
                 voxels: Iterable[Coordinate] = (),
                 offsets: Sequence[Coordinate] | None = None,
                 ndim: int = 2,
                 regions: Dict[Region, Iterable[Coordinate]] | None = None):
        self.regions: Dict[Region, Location] = {}
        super().__init__((), offsets, ndim)
        self.regions[Region.DEFAULT] = Location((), offsets, ndim)
        for voxel in voxels:
            self.add(voxel)

        for region, region_voxels in (regions or {}).items():
            for voxel in region_voxels:
                self.assign(tuple(voxel), region)

    def add(self, voxel: Coordinate, region: Region = Region.DEFAULT):
        super().add(voxel)
        self._get_region(region).add(voxel)

    def remove(self, voxel: Coordinate):
        region = self.region_of(voxel)
        super().remove(voxel)
        self.regions[region].remove(voxel)

    def _get_region(self, region: Region) -> Location:
        if region not in self.regions:
            self.regions[region] = Location((), self.offsets, self.ndim)
        return self.regions[region]

    def region_of(self, voxel: Coordinate) -> Region:
        voxel = tuple(voxel)
        for region, location in self.regions.items():
            if voxel in location.voxels:
                return region
        raise ValueError(f'Voxel {voxel} is not in this location')

    def region_volume(self, region: Region) -> int:
        if region not in self.regions:
            return 0
        return self.regions[region].volume

    def assign(self, voxel: Coordinate, region: Region):
        """
        Move a voxel of the location into another region
        """
        current = self.region_of(voxel)
        if current == region:
            return
        self.regions[current].remove(voxel)
        self._get_region(region).add(voxel)

    def distribute(self, region: Region, n_voxels: int):
        """
        Rebuild a region as the compact set of n_voxels closest to the centroid.

        All voxels currently in the region are first returned to the default
        region.
        """
        for voxel in sorted(self._get_region(region).voxels):
            self.assign(voxel, Region.DEFAULT)
        if n_voxels <= 0 or not self.voxels:
            return
        selected = grow_compact(self.centroid, n_voxels, self.offsets,
                                allowed=self.voxels)
        for voxel in selected:
            self.assign(voxel, region)

    def split(self, rng: np.random.Generator) -> 'RegionLocation | None':
        volume = self.volume
        fractions = {
            region: location.volume / volume
            for region, location in self.regions.items()
            if region != Region.DEFAULT
        }

        other = super().split(rng)
        if other is None:
            return None

        for location in (self, other):
            for region, fraction in fractions.items():
                location.distribute(region, round(fraction * location.volume))
        return other

    def _create(self, voxels: Iterable[Coordinate]) -> 'RegionLocation':
        return RegionLocation(voxels, self.offsets, self.ndim)

    def __str__(self):
        regions = {
            region.name.lower(): location.volume
            for region, location in self.regions.items()
        }
        return (f'RegionLocation(volume={self.volume}, surface={self.surface},'
                f' regions={regions})')
