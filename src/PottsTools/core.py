import logging
import threading
from typing import Dict, List, Sequence

import numpy as np

from PottsTools.agent.cell import Cell, make_location
from PottsTools.analysis.snapshot import CellRecord, Snapshot
from PottsTools.env.lattice import Lattice
from PottsTools.env.location import RegionLocation
from PottsTools.hamiltonian.substrate import get_substrate_at
from PottsTools.inputs.population import SeedSpecification
from PottsTools.inputs.potts_config import PottsConfig
from PottsTools.sim.potts import Potts
from PottsTools.util.constants import BACKGROUND
from PottsTools.util.enums import CellState, Region
from PottsTools.util.errors import ConfigurationError, InvariantViolation
from PottsTools.util.helper import count_components, is_connected


class PottsSimulation():
    """
    A Cellular Potts simulation of a population of cells.

    Each step first performs the flip attempts of the Potts engine, then
    steps the state machine of every cell in order of id, and finally applies
    the divisions and removals requested by the cells.

    Args:
        config: The simulation configuration
        seeds: The initial population, as SeedSpecification objects or
            (type, voxels, target_volume) tuples
        seed: Seed of the random number generator
        rng: A random number generator to use instead of seeding a new one

    Raises:
        ConfigurationError: if the population does not fit the lattice, seeds
            overlap or a seed is not connected
    """

    def __init__(self,
                 config: PottsConfig,
                 seeds: Sequence[SeedSpecification | Sequence],
                 seed: int | None = 0,
                 rng: np.random.Generator | None = None):
        self.config = config
        self.seed = seed
        self._rng = rng

        self.lattice = Lattice(config.shape, config.neighborhood)
        self.potts = Potts(self.lattice, config)
        self.substrate = config.get_substrate_field()
        self.step_count = 0

        self._next_id = 1
        self._division_requests: List[Cell] = []
        self._removal_requests: List[Cell] = []
        self._lock = threading.RLock()

        seeds = [SeedSpecification.from_tuple(s) for s in seeds]
        self.validate_seeds(seeds)
        for seed_specification in seeds:
            self._add_cell(seed_specification)

        if config.check_invariants:
            self.check_invariants()
        logging.info(f'Initialized {len(self.cells)} cells on a lattice of'
                    f' shape {self.lattice.shape}')

    @property
    def rng(self) -> np.random.Generator:
        if self._rng is None:
            self._rng = np.random.default_rng(seed=self.seed)
        return self._rng

    @property
    def cells(self) -> Dict[int, Cell]:
        return self.potts.cells

    def validate_seeds(self, seeds: List[SeedSpecification]):
        """
        Check that every seed has a known type, lies inside the lattice, is
        connected and does not overlap any other seed.
        """
        owners = {}
        for index, seed in enumerate(seeds):
            parameters = self.config.get_cell_type(seed.cell_type)
            if len(seed.voxels) == 0:
                raise ConfigurationError(f'Seed {index} has no voxels')

            for voxel in seed.voxels:
                if len(voxel) != self.lattice.ndim:
                    raise ConfigurationError(
                        f'Seed {index} has voxel {voxel} of dimension'
                        f' {len(voxel)} on a {self.lattice.ndim}D lattice')
                if not self.lattice.in_bounds(voxel):
                    raise ConfigurationError(
                        f'Seed {index} has voxel {voxel} outside of the lattice')
                if voxel in owners:
                    raise ConfigurationError(
                        f'Seed {index} overlaps seed {owners[voxel]} at {voxel}')
                owners[voxel] = index

            if not is_connected(seed.voxels, self.lattice.offsets):
                raise ConfigurationError(f'Seed {index} is not connected')

            voxels = set(seed.voxels)
            for name, region_voxels in seed.regions.items():
                if parameters.get_region_parameters(
                        parameters.get_region_code(name)) is None:
                    raise ConfigurationError(
                        f'Seed {index} has region {name} that is not'
                        f' configured for {seed.cell_type}')
                if not set(region_voxels) <= voxels:
                    raise ConfigurationError(
                        f'Region {name} of seed {index} is not inside the seed')

    def _add_cell(self, seed: SeedSpecification) -> Cell:
        parameters = self.config.get_cell_type(seed.cell_type)
        location = make_location(seed.voxels, self.lattice.offsets,
                                 self.lattice.ndim, parameters, seed.regions)
        cell_id = self._get_next_id()
        self._place(cell_id, location)

        state = None if seed.state is None else CellState(seed.state)
        cell = Cell(cell_id,
                    parameters,
                    location,
                    self.rng,
                    state=state,
                    target_volume=seed.target_volume)
        self.potts.register(cell)
        return cell

    def _get_next_id(self) -> int:
        cell_id = self._next_id
        self._next_id += 1
        return cell_id

    def _place(self, cell_id: int, location):
        for voxel in sorted(location.voxels):
            region = Region.DEFAULT
            if isinstance(location, RegionLocation):
                region = location.region_of(voxel)
            self.lattice.set_occupant(voxel, cell_id, region)

    def advance(self, n_steps: int = 1):
        """
        Run the simulation for a number of steps.

        Raises:
            InvariantViolation: if invariant checks are enabled and the
                lattice is found inconsistent after a step
        """
        if n_steps < 0:
            raise ValueError('Number of steps must be non-negative')
        with self._lock:
            for _ in range(n_steps):
                self._step()

    def _step(self):
        self.potts.step(self.rng)

        for cell_id in sorted(self.cells):
            self.cells[cell_id].step(self.rng, self)

        divisions, self._division_requests = self._division_requests, []
        removals, self._removal_requests = self._removal_requests, []
        for cell in divisions:
            self._divide(cell)
        for cell in removals:
            self._remove(cell)

        self.step_count += 1
        if self.config.check_invariants:
            self.check_invariants()

    def request_division(self, cell: Cell):
        self._division_requests.append(cell)

    def request_removal(self, cell: Cell):
        self._removal_requests.append(cell)

    def get_substrate(self, cell: Cell) -> float:
        """
        Substrate available to a cell, read under its centroid
        """
        centroid = cell.centroid
        if centroid is None:
            return 0.0
        return get_substrate_at(self.substrate, centroid)

    def _divide(self, cell: Cell) -> Cell | None:
        """
        Split a cell in two. The parent keeps one half of its voxels, the other
        half goes to a new proliferative daughter with fresh timers. Both
        cells reset their targets to the critical values.

        Returns:
            The daughter cell, or None if the location could not be split
        """
        location = cell.location.split(self.rng)
        if location is None:
            logging.warning(f'Cell {cell.id} could not be divided')
            return None

        daughter_id = self._get_next_id()
        self._place(daughter_id, location)
        if isinstance(cell.location, RegionLocation):
            self._place(cell.id, cell.location)

        self.potts.deregister(cell)
        cell.divisions += 1
        cell.reset()
        daughter = cell.make_daughter(daughter_id, location, self.rng)
        self.potts.register(cell)
        self.potts.register(daughter)

        logging.info(f'Cell {cell.id} divided into cells {cell.id} and'
                    f' {daughter_id} at step {self.step_count}')
        return daughter

    def _remove(self, cell: Cell):
        """
        Release the voxels of a cell back to Background and drop the cell
        """
        for voxel in cell.location.clear():
            self.lattice.set_occupant(voxel, BACKGROUND)
        self.potts.deregister(cell)
        logging.info(f'Cell {cell.id} ({cell.state.value}) removed at step'
                    f' {self.step_count}')

    def snapshot(self) -> Snapshot:
        """
        Copy the current state of the simulation. Never observes a step in
        progress.
        """
        with self._lock:
            records = [
                CellRecord.from_cell(self.cells[cell_id])
                for cell_id in sorted(self.cells)
            ]
            return Snapshot(self.step_count, self.lattice.ids.copy(),
                            self.lattice.regions.copy(), records)

    def check_invariants(self):
        """
        Check that the lattice and the locations of the cells agree.

        Raises:
            InvariantViolation: if a voxel is claimed by a cell but owned by
                another on the lattice, the lattice holds unknown ids, the
                volumes do not add up or a cell is split in pieces
        """
        ids = self.lattice.ids
        total = 0
        for cell_id, cell in self.cells.items():
            location = cell.location
            for voxel in location.voxels:
                if ids[voxel] != cell_id:
                    raise InvariantViolation(
                        f'Voxel {voxel} of cell {cell_id} is owned by'
                        f' {ids[voxel]} on the lattice')
            total += location.volume
            if location.volume == 0:
                continue

            mask = ids[location.get_bounds()] == cell_id
            n_components = count_components(mask, self.lattice.neighborhood)
            if n_components != 1:
                raise InvariantViolation(
                    f'Cell {cell_id} has {n_components} connected components')

        occupied = int(np.count_nonzero(ids))
        if total != occupied or occupied != self.lattice.occupied_volume:
            raise InvariantViolation(
                f'Cells own {total} voxels but {occupied} voxels are occupied')

        unknown = set(np.unique(ids).tolist()) - set(self.cells) - {BACKGROUND}
        if unknown:
            raise InvariantViolation(f'Lattice holds unknown ids {unknown}')

        if np.any(self.lattice.regions[ids == BACKGROUND] != Region.UNDEFINED):
            raise InvariantViolation('Background voxels carry a region')

    def __str__(self):
        return (f'PottsSimulation(step={self.step_count},'
                f' n_cells={len(self.cells)}, lattice={self.lattice})')

    def __repr__(self):
        return self.__str__()
