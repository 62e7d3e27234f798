from itertools import product

import numpy as np

from PottsTools.hamiltonian.base import Hamiltonian
from PottsTools.util.constants import BACKGROUND
from PottsTools.util.helper import Coordinate


class SubstrateHamiltonian(Hamiltonian):
    """
    Adhesion of cells to a substrate lying in the plane of the first two
    axes. The substrate seen by a voxel is averaged over its in-plane 3x3
    window and, in 3D, decays with the height above the substrate.
    """

    def __init__(self, potts):
        super().__init__(potts)
        self.field = potts.config.get_substrate_field()
        self.power = potts.config.substrate_power

    def get_config(self, cell):
        return cell.parameters.substrate_adhesion

    def get_substrate(self, voxel: Coordinate) -> float:
        """
        Mean substrate over the in-plane 3x3 window around the voxel.
        Positions outside of the lattice hold no substrate.
        """
        x_size, y_size = self.field.shape
        total = 0.0
        for dx, dy in product((-1, 0, 1), repeat=2):
            x, y = voxel[0] + dx, voxel[1] + dy
            if 0 <= x < x_size and 0 <= y < y_size:
                total += self.field[x, y]
        return total / 9

    def get_energy(self, voxel: Coordinate, owner: int) -> float:
        if owner == BACKGROUND:
            return 0.0
        energy = -self.configs[owner] * self.get_substrate(voxel)
        if len(voxel) == 3:
            energy *= (voxel[2] + 1)**(-self.power)
        return float(energy)

    def get_delta(self, voxel: Coordinate, source: int, target: int) -> float:
        return self.get_energy(voxel, target) - self.get_energy(voxel, source)


def get_substrate_at(field: np.ndarray, position) -> float:
    """
    Substrate under a (possibly fractional) position, clipped to the field.
    """
    x = int(np.clip(round(float(position[0])), 0, field.shape[0] - 1))
    y = int(np.clip(round(float(position[1])), 0, field.shape[1] - 1))
    return float(field[x, y])
