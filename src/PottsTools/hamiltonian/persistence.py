import numpy as np

from PottsTools.hamiltonian.base import Hamiltonian
from PottsTools.util.constants import BACKGROUND, PERSISTENCE_INITIAL
from PottsTools.util.helper import Coordinate


class PersistenceConfig():
    """
    Migration state of a single cell.

    Args:
        weight: Weight of the persistence term for the cell
        decay: Rate at which the migration vector follows the displacement
        vector: Initial migration vector
        centroid: Centroid of the cell at registration
    """

    def __init__(self, weight: float, decay: float, vector: np.ndarray,
                 centroid: np.ndarray | None):
        self.weight = weight
        self.decay = decay
        self.vector = vector
        self.centroid = centroid


class PersistenceHamiltonian(Hamiltonian):
    """
    Rewards flips that move the centroid of a cell along its migration vector.

    The vector of each cell relaxes toward the direction of the latest
    centroid displacement after every step.
    """

    def get_config(self, cell):
        vector = np.zeros(cell.ndim)
        if cell.ndim == 3:
            vector[-1] = PERSISTENCE_INITIAL
        centroid = cell.centroid
        return PersistenceConfig(cell.parameters.lambda_persistence,
                                 cell.parameters.persistence_decay, vector,
                                 None if centroid is None else centroid.copy())

    def get_energy(self, voxel: Coordinate, owner: int, change: int) -> float:
        """
        Energy of the centroid displacement caused by adding (change = 1) or
        removing (change = -1) the voxel.
        """
        if owner == BACKGROUND:
            return 0.0
        config = self.configs[owner]
        cell = self.potts.get_cell(owner)
        volume = cell.volume + change
        if volume == 0 or cell.centroid is None:
            return 0.0

        displacement = change * (np.asarray(voxel) - cell.centroid) / volume
        norm = np.linalg.norm(displacement)
        if norm == 0:
            return 0.0
        return -config.weight * float(np.dot(config.vector, displacement / norm))

    def get_delta(self, voxel: Coordinate, source: int, target: int) -> float:
        return (self.get_energy(voxel, source, -1) +
                self.get_energy(voxel, target, 1))

    def update(self):
        for cell_id, config in self.configs.items():
            centroid = self.potts.get_cell(cell_id).centroid
            if centroid is None:
                continue
            if config.centroid is not None:
                displacement = centroid - config.centroid
                norm = np.linalg.norm(displacement)
                if norm > 0:
                    vector = ((1 - config.decay) * config.vector +
                              config.decay * displacement / norm)
                    length = np.linalg.norm(vector)
                    config.vector = vector / length if length > 0 else vector
            config.centroid = centroid.copy()
