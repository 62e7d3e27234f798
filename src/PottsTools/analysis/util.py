from collections import Counter
from typing import Dict, List, Sequence

import numpy as np

from PottsTools.analysis.snapshot import Snapshot


def get_state_counts(snapshot: Snapshot) -> Dict[str, int]:
    """
    Number of cells in each state.

    Args:
        snapshot: The snapshot to summarize

    Returns:
        Dictionary of state to number of cells
    """
    return dict(Counter(cell.state for cell in snapshot.cells))


def get_mean_volumes(snapshot: Snapshot) -> Dict[str, float]:
    """
    Mean volume of the cells of each type
    """
    return {
        cell_type: float(np.mean([cell.volume for cell in cells]))
        for cell_type, cells in snapshot.get_cells_by_type().items()
    }


def get_volume_trajectory(snapshots: Sequence[Snapshot],
                          cell_id: int) -> np.ndarray:
    """
    Volume of one cell over a sequence of snapshots. Steps at which the cell
    does not exist (yet or anymore) have a volume of 0.
    """
    volumes = []
    for snapshot in snapshots:
        try:
            volumes.append(snapshot.get_cell(cell_id).volume)
        except KeyError:
            volumes.append(0)
    return np.array(volumes)


def get_population_sizes(snapshots: Sequence[Snapshot]) -> np.ndarray:
    return np.array([snapshot.n_cells for snapshot in snapshots])


def get_occupied_fraction(snapshot: Snapshot) -> float:
    return snapshot.occupied_volume / snapshot.ids.size


def get_lineage(snapshot: Snapshot, cell_id: int) -> List[int]:
    """
    Ids of the ancestors of a cell that are still present in the snapshot,
    from the cell itself up to the oldest.
    """
    parents = {cell.id: cell.parent for cell in snapshot.cells}
    lineage = [cell_id]
    while parents.get(lineage[-1], 0) in parents:
        lineage.append(parents[lineage[-1]])
    return lineage
