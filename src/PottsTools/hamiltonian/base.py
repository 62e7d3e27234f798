from abc import ABC, abstractmethod
from typing import Dict

from PottsTools.util.enums import Region
from PottsTools.util.helper import Coordinate


class Hamiltonian(ABC):
    """
    Template for an energy term of the Cellular Potts Model.

    A term must implement get_delta, the change in energy if a voxel is
    reassigned from one owner to another. Terms only read the local
    neighborhood of the voxel and the cached geometry of the two owners, so
    evaluating a delta does not depend on the size of the lattice.

    Per cell coefficients are copied from the cell type when the cell is
    registered.

    Args:
        potts: The flip engine, giving access to the lattice and the cells
    """

    def __init__(self, potts):
        self.potts = potts
        self.configs: Dict[int, object] = {}

    def register(self, cell):
        self.configs[cell.id] = self.get_config(cell)

    def deregister(self, cell):
        self.configs.pop(cell.id, None)

    def get_config(self, cell):
        return None

    @abstractmethod
    def get_delta(self, voxel: Coordinate, source: int, target: int) -> float:
        """
        Change in energy if the voxel moves from source to target.

        Args:
            voxel: The voxel to reassign
            source: Id of the current owner (0 for Background)
            target: Id of the proposed owner (0 for Background)

        Returns:
            The energy difference after - before
        """
        raise NotImplementedError

    def get_delta_region(self, voxel: Coordinate, cell_id: int,
                         source: Region, target: Region) -> float:
        """
        Change in energy if the voxel moves between two regions of the same
        cell. Terms without region variants do not change.
        """
        return 0.0

    def update(self):
        """
        Called once after every step of flip attempts
        """

    def __str__(self) -> str:
        return self.__class__.__name__

    def __repr__(self):
        return self.__str__()
