from PottsTools.hamiltonian.base import Hamiltonian
from PottsTools.inputs.potts_config import MEDIUM
from PottsTools.util.constants import BACKGROUND
from PottsTools.util.enums import Region
from PottsTools.util.helper import Coordinate


class AdhesionHamiltonian(Hamiltonian):
    """
    Pairwise adhesion between a voxel and every voxel of its 3^d window owned
    by someone else. Coefficients are looked up by the types of the two
    owners, the medium standing in for Background.
    """

    def get_config(self, cell):
        return cell.cell_type

    def get_type(self, owner: int) -> str:
        if owner == BACKGROUND:
            return MEDIUM
        return self.configs[owner]

    def get_energy(self, voxel: Coordinate, owner: int) -> float:
        """
        Adhesion energy of the voxel if it were owned by owner
        """
        lattice = self.potts.lattice
        config = self.potts.config
        owner_type = self.get_type(owner)
        energy = 0.0
        for neighbor in lattice.window_of(voxel):
            other = lattice.occupant_at(neighbor)
            if other != owner:
                energy += config.get_adhesion(owner_type, self.get_type(other))
        return energy

    def get_delta(self, voxel: Coordinate, source: int, target: int) -> float:
        return self.get_energy(voxel, target) - self.get_energy(voxel, source)

    def get_region_energy(self, voxel: Coordinate, cell_id: int,
                          region: Region) -> float:
        lattice = self.potts.lattice
        parameters = self.potts.get_cell(cell_id).parameters
        energy = 0.0
        for neighbor in lattice.window_of(voxel):
            if lattice.occupant_at(neighbor) != cell_id:
                continue
            other = lattice.region_at(neighbor)
            if other != region:
                energy += parameters.get_region_adhesion(region, other)
        return energy

    def get_delta_region(self, voxel: Coordinate, cell_id: int,
                         source: Region, target: Region) -> float:
        return (self.get_region_energy(voxel, cell_id, target) -
                self.get_region_energy(voxel, cell_id, source))
