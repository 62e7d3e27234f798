from PottsTools.hamiltonian.base import Hamiltonian
from PottsTools.util.constants import BACKGROUND
from PottsTools.util.enums import Region
from PottsTools.util.helper import Coordinate


def quadratic_delta(weight: float, value: float, target: float,
                    change: float) -> float:
    """
    Change of weight * (value - target)^2 when value changes by change
    """
    return weight * ((value + change - target)**2 - (value - target)**2)


class VolumeHamiltonian(Hamiltonian):
    """
    Quadratic penalty on the deviation of the volume of a cell (and of each
    configured region) from its target.
    """

    def get_config(self, cell):
        return cell.parameters.lambda_volume

    def get_cell_delta(self, owner: int, change: int) -> float:
        if owner == BACKGROUND:
            return 0.0
        cell = self.potts.get_cell(owner)
        return quadratic_delta(self.configs[owner], cell.volume,
                               cell.target_volume, change)

    def get_delta(self, voxel: Coordinate, source: int, target: int) -> float:
        return self.get_cell_delta(source, -1) + self.get_cell_delta(target, 1)

    def get_region_delta(self, cell, region: Region, change: int) -> float:
        parameters = cell.parameters.get_region_parameters(region)
        if parameters is None:
            return 0.0
        target_volume, _ = cell.get_region_targets(region)
        return quadratic_delta(parameters.lambda_volume,
                               cell.get_region_volume(region), target_volume,
                               change)

    def get_delta_region(self, voxel: Coordinate, cell_id: int,
                         source: Region, target: Region) -> float:
        cell = self.potts.get_cell(cell_id)
        return (self.get_region_delta(cell, source, -1) +
                self.get_region_delta(cell, target, 1))
