from PottsTools.hamiltonian.base import Hamiltonian
from PottsTools.hamiltonian.volume import quadratic_delta
from PottsTools.util.constants import BACKGROUND
from PottsTools.util.enums import Region
from PottsTools.util.helper import Coordinate


class SurfaceHamiltonian(Hamiltonian):
    """
    Quadratic penalty on the deviation of the surface of a cell (and of each
    configured region) from its target. The surface change of a flip is
    counted from the neighbors of the voxel.
    """

    def get_config(self, cell):
        return cell.parameters.lambda_surface

    def get_cell_delta(self, voxel: Coordinate, owner: int,
                       change: int) -> float:
        if owner == BACKGROUND:
            return 0.0
        cell = self.potts.get_cell(owner)
        surface_change = cell.location.surface_change(voxel, change)
        return quadratic_delta(self.configs[owner], cell.surface,
                               cell.target_surface, surface_change)

    def get_delta(self, voxel: Coordinate, source: int, target: int) -> float:
        return (self.get_cell_delta(voxel, source, -1) +
                self.get_cell_delta(voxel, target, 1))

    def get_region_delta(self, voxel: Coordinate, cell, region: Region,
                         change: int) -> float:
        parameters = cell.parameters.get_region_parameters(region)
        if parameters is None:
            return 0.0
        location = cell.location.regions.get(region)
        if location is None:
            return 0.0
        _, target_surface = cell.get_region_targets(region)
        return quadratic_delta(parameters.lambda_surface, location.surface,
                               target_surface,
                               location.surface_change(voxel, change))

    def get_delta_region(self, voxel: Coordinate, cell_id: int,
                         source: Region, target: Region) -> float:
        cell = self.potts.get_cell(cell_id)
        return (self.get_region_delta(voxel, cell, source, -1) +
                self.get_region_delta(voxel, cell, target, 1))
