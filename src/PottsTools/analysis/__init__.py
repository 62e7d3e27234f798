from PottsTools.analysis.snapshot import CellRecord, Snapshot
from PottsTools.analysis.util import (get_state_counts, get_mean_volumes,
                                      get_volume_trajectory,
                                      get_population_sizes,
                                      get_occupied_fraction, get_lineage)
