import logging
import warnings
from typing import Dict, List

import numpy as np

from PottsTools.agent.module import Module
from PottsTools.env.location import Location, RegionLocation
from PottsTools.inputs.potts_config import CellTypeParameters
from PottsTools.util.conversions import convert_surface
from PottsTools.util.enums import CellState, Phase, Region
from PottsTools.util.errors import SamplingExhaustion


class Cell():
    """
    A biological cell: its identity, its geometric set-points and its state
    machine. The voxels of the cell are held by its location.

    Args:
        cell_id: Unique id of the cell (never 0, which is Background)
        parameters: Parameters of the cell type
        location: The voxels owned by the cell
        rng: The random number generator of the simulation, used to sample
            the initial timers
        parent: Id of the cell this cell divided from, 0 for seeded cells
        state: Initial state. Defaults to the initial state of the cell type.
        age: Initial age in steps
        divisions: Number of divisions in the lineage of the cell
        target_volume: Initial target volume. Defaults to the critical volume.
    """

    def __init__(self,
                 cell_id: int,
                 parameters: CellTypeParameters,
                 location: Location,
                 rng: np.random.Generator,
                 parent: int = 0,
                 state: CellState | None = None,
                 age: int = 0,
                 divisions: int = 0,
                 target_volume: float | None = None):
        if cell_id <= 0:
            raise ValueError('Cell ids must be positive')
        self.id = cell_id
        self.parameters = parameters
        self.location = location
        self.parent = parent
        self.age = age
        self.divisions = divisions

        self.critical_volume = parameters.critical_volume
        self.critical_height = parameters.critical_height
        self.target_volume = 0
        self.target_surface = 0
        self.region_targets: Dict[Region, List[float]] = {}

        self.reset()
        if target_volume is not None:
            self.set_targets(target_volume,
                             convert_surface(target_volume, self.critical_height,
                                             self.ndim))

        self.module = Module(self, parameters.module, state)
        try:
            self.module.start(rng)
        except SamplingExhaustion as e:
            self._freeze(e)

    @property
    def cell_type(self) -> str:
        return self.parameters.name

    @property
    def ndim(self) -> int:
        return self.location.ndim

    @property
    def state(self) -> CellState:
        return self.module.state

    @property
    def phase(self) -> Phase:
        return self.module.phase

    @property
    def frozen(self) -> bool:
        return self.module.frozen

    @property
    def volume(self) -> int:
        return self.location.volume

    @property
    def surface(self) -> int:
        return self.location.surface

    @property
    def height(self) -> int:
        return self.location.height

    @property
    def centroid(self) -> np.ndarray | None:
        return self.location.centroid

    def has_region(self, region: Region) -> bool:
        return region in self.region_targets

    @property
    def has_regions(self) -> bool:
        return len(self.region_targets) > 0

    def get_region_fraction(self, region: Region) -> float:
        parameters = self.parameters.get_region_parameters(region)
        return parameters.critical_volume / self.critical_volume

    def get_region_volume(self, region: Region) -> int:
        return self.location.region_volume(region)

    def get_region_surface(self, region: Region) -> int:
        if region not in self.location.regions:
            return 0
        return self.location.regions[region].surface

    def reset(self):
        """
        Reset the targets to the critical values of the cell type
        """
        self.target_volume = self.critical_volume
        self.target_surface = convert_surface(self.critical_volume,
                                              self.critical_height, self.ndim)
        self.region_targets = {}
        for name, region in self.parameters.regions.items():
            code = self.parameters.get_region_code(name)
            self.region_targets[code] = [
                region.critical_volume,
                convert_surface(region.critical_volume, region.critical_height,
                                self.ndim)
            ]

    def set_targets(self, volume: float, surface: float):
        """
        Set the target volume and surface. Region targets are scaled by the
        same factor as the volume.
        """
        scale = volume / self.target_volume if self.target_volume > 0 else 0
        self.target_volume = volume
        self.target_surface = surface
        for targets in self.region_targets.values():
            targets[0] = targets[0] * scale
            targets[1] = convert_surface(targets[0], self.critical_height,
                                         self.ndim)

    def update_target(self, rate: float, scale: float):
        """
        Move the target volume toward scale times the critical volume by at
        most rate voxels, and the target surface along with it.
        """
        goal = scale * self.critical_volume
        if self.target_volume < goal:
            volume = min(goal, self.target_volume + rate)
        else:
            volume = max(goal, self.target_volume - rate)
        self.target_volume = volume
        self.target_surface = convert_surface(volume, self.critical_height,
                                              self.ndim)

    def update_region_target(self, region: Region, rate: float, scale: float):
        parameters = self.parameters.get_region_parameters(region)
        targets = self.region_targets[region]
        goal = scale * parameters.critical_volume
        if targets[0] < goal:
            targets[0] = min(goal, targets[0] + rate)
        else:
            targets[0] = max(goal, targets[0] - rate)
        targets[1] = convert_surface(targets[0], parameters.critical_height,
                                     self.ndim)

    def get_region_targets(self, region: Region) -> List[float]:
        return self.region_targets.get(region, [0, 0])

    def set_state(self, state: CellState, rng: np.random.Generator):
        """
        Move the cell to the first phase of a state
        """
        try:
            self.module.enter(state, rng)
        except SamplingExhaustion as e:
            self._freeze(e)

    def step(self, rng: np.random.Generator, sim):
        """
        Age the cell by one step and advance its state machine
        """
        self.age += 1
        try:
            self.module.step(rng, sim)
        except SamplingExhaustion as e:
            self._freeze(e)

    def _freeze(self, error: SamplingExhaustion):
        self.module.frozen = True
        logging.warning(f'Cell {self.id} frozen: {error}')

    def make_daughter(self, cell_id: int, location: Location,
                      rng: np.random.Generator) -> 'Cell':
        """
        Create the daughter of a division with fresh timers
        """
        return Cell(cell_id,
                    self.parameters,
                    location,
                    rng,
                    parent=self.id,
                    state=CellState.PROLIFERATIVE,
                    divisions=self.divisions)

    def __str__(self):
        return (f'Cell(id={self.id}, type={self.cell_type},'
                f' state={self.state.value},'
                f' volume={self.volume}, target_volume={self.target_volume})')

    def __repr__(self):
        return self.__str__()


def make_location(voxels, offsets, ndim, parameters: CellTypeParameters,
                  regions=None) -> Location:
    """
    Build the location of a cell, subdivided into regions if the cell type
    has any.

    Args:
        voxels: The voxels of the cell
        offsets: Offsets of the lattice neighbor relation
        ndim: Dimensionality of the lattice
        parameters: Parameters of the cell type
        regions: Voxels of each region keyed by region name. Regions that are
            configured on the cell type but not given here are grown around
            the centroid in proportion to their configured fraction.

    Returns:
        The location
    """
    if not parameters.has_regions:
        return Location(voxels, offsets, ndim)

    regions = regions or {}
    location = RegionLocation(voxels, offsets, ndim, {
        parameters.get_region_code(name): region_voxels
        for name, region_voxels in regions.items()
    })
    for name, region in parameters.regions.items():
        if name in regions:
            continue
        n_voxels = round(region.fraction * location.volume)
        if n_voxels == 0:
            warnings.warn(
                f'location of {location.volume} voxels is too small for region'
                f' {name}, leaving it empty')
        location.distribute(parameters.get_region_code(name), n_voxels)
    return location
