import logging
from math import exp
from typing import Dict, List

import numpy as np

from PottsTools.env.lattice import Lattice
from PottsTools.hamiltonian import Hamiltonian, get_hamiltonian
from PottsTools.inputs.potts_config import PottsConfig
from PottsTools.util.constants import BACKGROUND
from PottsTools.util.enums import Region
from PottsTools.util.helper import Coordinate


class Potts():
    """
    Monte Carlo driver of the Cellular Potts Model.

    Every step performs a number of flip attempts proportional to the sampled
    volume. An attempt picks a voxel, proposes to hand it to one of the other
    owners among its neighbors, rejects the proposal outright if the current
    owner would be split in two, and otherwise accepts it with the Metropolis
    probability min(1, exp(-dE / T)).

    Args:
        lattice: The lattice to mutate
        config: The simulation configuration
    """

    def __init__(self, lattice: Lattice, config: PottsConfig):
        self.lattice = lattice
        self.config = config
        self.temperature = config.temperature
        self.mcs = config.mcs
        self.exact_connectivity = config.connectivity == 'global'
        self.sample_occupied = config.site_selection == 'occupied'

        self.cells: Dict[int, object] = {}
        self.hamiltonians: List[Hamiltonian] = [
            get_hamiltonian(term, self) for term in config.get_terms()
        ]

    def get_cell(self, cell_id: int):
        return self.cells[cell_id]

    def register(self, cell):
        self.cells[cell.id] = cell
        for hamiltonian in self.hamiltonians:
            hamiltonian.register(cell)

    def deregister(self, cell):
        for hamiltonian in self.hamiltonians:
            hamiltonian.deregister(cell)
        self.cells.pop(cell.id, None)

    def get_n_attempts(self) -> int:
        if self.sample_occupied:
            return int(self.mcs * self.lattice.occupied_volume)
        return int(self.mcs * self.lattice.volume)

    def step(self, rng: np.random.Generator) -> int:
        """
        Perform one step of flip attempts.

        Args:
            rng: The random number generator of the simulation

        Returns:
            The number of accepted flips
        """
        n_attempts = self.get_n_attempts()
        accepted = 0
        for _ in range(n_attempts):
            accepted += self.attempt(rng)

        for hamiltonian in self.hamiltonians:
            hamiltonian.update()

        logging.debug(f'Accepted {accepted} of {n_attempts} flip attempts')
        return accepted

    def attempt(self, rng: np.random.Generator) -> bool:
        """
        Perform a single flip attempt.

        Random numbers are drawn in a fixed order: the voxel, the choice
        between an id and a region flip (only when both are possible), the
        proposed owner or region and the acceptance draw.

        Returns:
            True if the flip was accepted
        """
        lattice = self.lattice
        if self.sample_occupied:
            if lattice.occupied_volume == 0:
                return False
            voxel = lattice.random_occupied_voxel(rng)
        else:
            voxel = lattice.random_voxel(rng)

        source = lattice.occupant_at(voxel)
        neighbors = lattice.neighbors_of(voxel)
        targets = sorted({lattice.occupant_at(n) for n in neighbors} - {source})

        regions = []
        if source != BACKGROUND and self.cells[source].has_regions:
            source_region = lattice.region_at(voxel)
            regions = sorted({
                lattice.region_at(n)
                for n in neighbors if lattice.occupant_at(n) == source
            } - {source_region})

        if targets and regions:
            use_regions = rng.random() < 0.5
        elif targets or regions:
            use_regions = len(regions) > 0
        else:
            return False

        if use_regions:
            target_region = regions[int(rng.integers(len(regions)))]
            return self.flip_region(voxel, source, source_region,
                                    target_region, rng)

        target = targets[int(rng.integers(len(targets)))]
        return self.flip(voxel, source, target, rng)

    def flip(self, voxel: Coordinate, source: int, target: int,
             rng: np.random.Generator) -> bool:
        r = rng.random()
        if source != BACKGROUND and not self.is_removable(voxel, source):
            return False
        delta = self.get_delta(voxel, source, target)
        if not self.accept(delta, r):
            return False
        self.change(voxel, source, target)
        return True

    def flip_region(self, voxel: Coordinate, cell_id: int, source: Region,
                    target: Region, rng: np.random.Generator) -> bool:
        r = rng.random()
        location = self.cells[cell_id].location
        if source != Region.DEFAULT:
            if not location.regions[source].is_removable(
                    voxel, exact=self.exact_connectivity):
                return False
        delta = self.get_delta_region(voxel, cell_id, source, target)
        if not self.accept(delta, r):
            return False
        self.change_region(voxel, cell_id, target)
        return True

    def is_removable(self, voxel: Coordinate, owner: int) -> bool:
        """
        Check that the owner stays connected without the voxel. A cell may
        only lose its last voxel once its target volume is zero.
        """
        cell = self.cells[owner]
        location = cell.location
        if not location.is_removable(voxel,
                                     allow_empty=cell.target_volume <= 0,
                                     exact=self.exact_connectivity):
            return False

        if cell.has_regions:
            region = self.lattice.region_at(voxel)
            if region != Region.DEFAULT and not location.regions[
                    region].is_removable(voxel,
                                         allow_empty=True,
                                         exact=self.exact_connectivity):
                return False
        return True

    def get_delta(self, voxel: Coordinate, source: int, target: int) -> float:
        return sum(
            hamiltonian.get_delta(voxel, source, target)
            for hamiltonian in self.hamiltonians)

    def get_delta_region(self, voxel: Coordinate, cell_id: int,
                         source: Region, target: Region) -> float:
        return sum(
            hamiltonian.get_delta_region(voxel, cell_id, source, target)
            for hamiltonian in self.hamiltonians)

    def accept(self, delta: float, r: float) -> bool:
        """
        Metropolis criterion.

        At zero temperature only moves that lower the energy are accepted.

        Args:
            delta: Energy change of the move
            r: Uniform random number in [0, 1)
        """
        if delta < 0:
            return True
        if self.temperature == 0:
            return False
        if delta == 0:
            return True
        return r < exp(-delta / self.temperature)

    def change(self, voxel: Coordinate, source: int, target: int):
        """
        Commit a flip of the voxel from source to target
        """
        self.lattice.set_occupant(voxel, target)
        if source != BACKGROUND:
            self.cells[source].location.remove(voxel)
        if target != BACKGROUND:
            self.cells[target].location.add(voxel)

    def change_region(self, voxel: Coordinate, cell_id: int, target: Region):
        self.lattice.set_region(voxel, target)
        self.cells[cell_id].location.assign(voxel, target)

    def __str__(self):
        terms = ', '.join(str(hamiltonian) for hamiltonian in self.hamiltonians)
        return f'Potts(temperature={self.temperature}, terms=[{terms}])'

    def __repr__(self):
        return self.__str__()
