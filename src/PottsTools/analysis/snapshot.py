from typing import Dict, List, Sequence

import numpy as np
from monty.json import MSONable


class CellRecord(MSONable):
    """
    Read-only record of a single cell at a given step.
    """

    def __init__(self,
                 id: int,
                 cell_type: str,
                 state: str,
                 phase: str,
                 volume: int,
                 surface: int,
                 centroid: Sequence[float],
                 age: int,
                 parent: int = 0,
                 divisions: int = 0,
                 target_volume: float = 0,
                 target_surface: float = 0,
                 frozen: bool = False):
        self.id = int(id)
        self.cell_type = cell_type
        self.state = state
        self.phase = phase
        self.volume = int(volume)
        self.surface = int(surface)
        self.centroid = [float(c) for c in centroid]
        self.age = int(age)
        self.parent = int(parent)
        self.divisions = int(divisions)
        self.target_volume = float(target_volume)
        self.target_surface = float(target_surface)
        self.frozen = bool(frozen)

    @classmethod
    def from_cell(cls, cell) -> 'CellRecord':
        centroid = cell.centroid
        if centroid is None:
            centroid = []
        return cls(id=cell.id,
                   cell_type=cell.cell_type,
                   state=cell.state.value,
                   phase=cell.phase.value,
                   volume=cell.volume,
                   surface=cell.surface,
                   centroid=centroid,
                   age=cell.age,
                   parent=cell.parent,
                   divisions=cell.divisions,
                   target_volume=cell.target_volume,
                   target_surface=cell.target_surface,
                   frozen=cell.frozen)

    def __str__(self):
        return (f'CellRecord(id={self.id}, type={self.cell_type},'
                f' state={self.state}, volume={self.volume})')

    def __repr__(self):
        return self.__str__()


class Snapshot(MSONable):
    """
    Point-in-time copy of a simulation: the occupant and region grids and a
    record of every cell. This is what checkpoint and output writers consume,
    e.g. through monty.serialization.dumpfn.

    Args:
        step: Number of completed steps
        ids: Occupant id of every voxel (0 for Background)
        regions: Region code of every voxel
        cells: Records of the cells, ordered by id
    """

    def __init__(self, step: int, ids: np.ndarray | List,
                 regions: np.ndarray | List, cells: List[CellRecord]):
        self.step = int(step)
        self.ids = np.asarray(ids, dtype=np.int64)
        self.regions = np.asarray(regions, dtype=np.int8)
        self.cells = list(cells)

    def as_dict(self) -> dict:
        _d = super().as_dict()
        _d['ids'] = self.ids.tolist()
        _d['regions'] = self.regions.tolist()
        return _d

    @property
    def shape(self):
        return self.ids.shape

    @property
    def n_cells(self) -> int:
        return len(self.cells)

    @property
    def occupied_volume(self) -> int:
        return int(np.count_nonzero(self.ids))

    def get_cell(self, cell_id: int) -> CellRecord:
        for cell in self.cells:
            if cell.id == cell_id:
                return cell
        raise KeyError(f'No cell with id {cell_id} in snapshot')

    def get_cells_by_type(self) -> Dict[str, List[CellRecord]]:
        cells = {}
        for cell in self.cells:
            cells.setdefault(cell.cell_type, []).append(cell)
        return cells

    def __str__(self):
        return (f'Snapshot(step={self.step}, shape={self.shape},'
                f' n_cells={self.n_cells})')

    def __repr__(self):
        return self.__str__()
