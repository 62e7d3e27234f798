from PottsTools.hamiltonian.base import Hamiltonian
from PottsTools.util.constants import BACKGROUND
from PottsTools.util.helper import Coordinate, shift


class JunctionHamiltonian(Hamiltonian):
    """
    Penalizes a cell spreading into the medium at voxels that have few
    lateral contacts with the cell, favoring compact junctions in the plane
    of the first two axes.
    """

    def get_config(self, cell):
        return cell.parameters.lambda_junction

    def get_delta(self, voxel: Coordinate, source: int, target: int) -> float:
        if source != BACKGROUND or target == BACKGROUND:
            return 0.0
        lattice = self.potts.lattice
        exposed = sum(1 for offset in lattice.plane_offsets
                      if lattice.occupant_at(shift(voxel, offset)) != target)
        return self.configs[target] * exposed
