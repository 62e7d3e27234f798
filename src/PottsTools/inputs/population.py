from typing import Dict, List, Sequence

from monty.json import MSONable

from PottsTools.inputs.potts_config import PottsConfig
from PottsTools.util.conversions import convert_volume
from PottsTools.util.enums import CellState
from PottsTools.util.errors import ConfigurationError
from PottsTools.util.helper import (get_grid_centers, get_neighbor_offsets,
                                    grow_compact)


class SeedSpecification(MSONable):
    """
    A cell of the initial population.

    Args:
        cell_type: Name of the cell type
        voxels: Voxels initially owned by the cell
        target_volume: Target volume of the cell. Defaults to the critical
            volume of the cell type.
        regions: Voxels of sub-cellular regions, keyed by region name. Voxels
            not listed are placed in the default region.
        state: Initial state, overriding the one of the cell type
    """

    def __init__(self,
                 cell_type: str,
                 voxels: Sequence[Sequence[int]],
                 target_volume: float | None = None,
                 regions: Dict[str, Sequence[Sequence[int]]] | None = None,
                 state: str | None = None):
        self.cell_type = cell_type
        self.voxels = [tuple(int(c) for c in voxel) for voxel in voxels]
        self.target_volume = target_volume
        self.regions = {
            name: [tuple(int(c) for c in voxel) for voxel in region_voxels]
            for name, region_voxels in (regions or {}).items()
        }
        if state is not None:
            try:
                state = CellState(state).value
            except ValueError as e:
                raise ConfigurationError(f'Unknown cell state {state}') from e
        self.state = state

        if target_volume is not None and (target_volume != target_volume
                                          or target_volume < 0):
            raise ConfigurationError(
                f'Target volume must be non-negative, got {target_volume}')

    @classmethod
    def from_tuple(cls, seed: Sequence) -> 'SeedSpecification':
        """
        Build a seed from a (type, voxels, target_volume) tuple
        """
        if isinstance(seed, cls):
            return seed
        if len(seed) == 2:
            return cls(seed[0], seed[1])
        if len(seed) == 3:
            return cls(seed[0], seed[1], seed[2])
        raise ConfigurationError(
            f'A seed must be (type, voxels) or (type, voxels, target_volume),'
            f' got {seed}')

    def __str__(self):
        return (f'SeedSpecification(cell_type={self.cell_type},'
                f' volume={len(self.voxels)}, target_volume={self.target_volume})')

    def __repr__(self):
        return self.__str__()


def make_seed(config: PottsConfig,
              cell_type: str,
              center: Sequence[float],
              volume: int | None = None,
              radius: float | None = None,
              **kwargs) -> SeedSpecification:
    """
    Build a compact seed of a given volume around a center.

    Args:
        config: The simulation configuration
        cell_type: Name of the cell type
        center: Center of the seed
        volume: Number of voxels. Defaults to the critical volume of the type.
        radius: Radius of a disc (2D) or sphere (3D) whose volume is used
            when no volume is given
        kwargs: Passed to SeedSpecification

    Returns:
        The seed
    """
    parameters = config.get_cell_type(cell_type)
    if volume is None and radius is not None:
        volume = int(round(convert_volume(radius, config.ndim)))
    if volume is None:
        volume = int(round(parameters.critical_volume))
    offsets = get_neighbor_offsets(config.ndim, config.neighborhood)
    voxels = grow_compact(center, volume, offsets, shape=config.shape)
    if len(voxels) < volume:
        raise ConfigurationError(
            f'Could not place {volume} voxels around {tuple(center)}')
    return SeedSpecification(cell_type, voxels, **kwargs)


def make_grid_population(config: PottsConfig,
                         cell_type: str,
                         spacing: int,
                         volume: int | None = None,
                         margin: int | None = None,
                         radius: float | None = None) -> List[SeedSpecification]:
    """
    Fill the lattice with a regular grid of compact seeds of one type.

    Args:
        config: The simulation configuration
        cell_type: Name of the cell type
        spacing: Distance between neighboring seed centers
        volume: Number of voxels per seed. Defaults to the critical volume.
        margin: Distance between the lattice border and the outermost seeds
        radius: Radius of every seed, used when no volume is given

    Returns:
        List of seeds
    """
    seeds = []
    for center in get_grid_centers(config.shape, spacing, margin):
        seeds.append(make_seed(config, cell_type, center, volume, radius))

    occupied = [voxel for seed in seeds for voxel in seed.voxels]
    if len(set(occupied)) != len(occupied):
        raise ConfigurationError(
            f'Seeds of volume {volume} overlap at spacing {spacing}')
    return seeds
