from PottsTools.hamiltonian.base import Hamiltonian
from PottsTools.hamiltonian.volume import quadratic_delta
from PottsTools.util.constants import BACKGROUND
from PottsTools.util.helper import Coordinate


class HeightHamiltonian(Hamiltonian):
    """
    Quadratic penalty on the deviation of the height of a cell from the
    critical height of its type.
    """

    def get_config(self, cell):
        return cell.parameters.lambda_height

    def get_cell_delta(self, voxel: Coordinate, owner: int,
                       change: int) -> float:
        if owner == BACKGROUND:
            return 0.0
        cell = self.potts.get_cell(owner)
        return quadratic_delta(self.configs[owner], cell.height,
                               cell.critical_height,
                               cell.location.height_change(voxel, change))

    def get_delta(self, voxel: Coordinate, source: int, target: int) -> float:
        return (self.get_cell_delta(voxel, source, -1) +
                self.get_cell_delta(voxel, target, 1))
