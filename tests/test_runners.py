from PottsTools.analysis.snapshot import Snapshot
from PottsTools.inputs.population import make_seed
from PottsTools.inputs.potts_config import (PottsConfig, CellTypeParameters,
                                            ModuleParameters)
from PottsTools.runners import run_simulation, run_sweep
from monty.serialization import loadfn
import numpy as np
import pytest


@pytest.fixture
def config():
    module = ModuleParameters(initial_state='quiescent', rate_quiescent=0.1)
    return PottsConfig((12, 12), [CellTypeParameters('A', 9, module=module)],
                       {'A': {'A': 0, 'medium': 1}},
                       temperature=10)


@pytest.fixture
def seeds(config):
    return [make_seed(config, 'A', (3, 3)), make_seed(config, 'A', (8, 8))]


def test_run_simulation(config, seeds):
    snapshots = run_simulation(config, seeds, 5)
    assert [s.step for s in snapshots] == [0, 5]

    snapshots = run_simulation(config, seeds, 5, snapshot_interval=2)
    assert [s.step for s in snapshots] == [0, 2, 4, 5]
    assert snapshots[0].n_cells == 2


def test_run_simulation_output(config, seeds, tmp_path):
    output_file = str(tmp_path / 'snapshots.json')
    snapshots = run_simulation(config, seeds, 3, output_file=output_file)
    loaded = loadfn(output_file)
    assert len(loaded) == 2
    assert isinstance(loaded[-1], Snapshot)
    np.testing.assert_array_equal(loaded[-1].ids, snapshots[-1].ids)


def test_run_sweep(config, seeds):
    hot = PottsConfig.from_dict(config.as_dict())
    hot.temperature = 50
    results = run_sweep([config, hot], seeds, 4, random_seeds=(0, 1))
    assert len(results) == 4

    # Runs are independent of each other
    reference = run_simulation(config, seeds, 4, seed=1)
    np.testing.assert_array_equal(results[1][-1].ids, reference[-1].ids)
    assert results[1][-1].as_dict() == reference[-1].as_dict()
