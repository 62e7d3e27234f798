from PottsTools.core import PottsSimulation
from PottsTools.analysis.snapshot import Snapshot
from PottsTools.inputs.population import SeedSpecification
from PottsTools.inputs.potts_config import (PottsConfig, CellTypeParameters,
                                            ModuleParameters, RegionParameters)
from PottsTools.util.enums import CellState, Phase, Region
from PottsTools.util.errors import ConfigurationError, InvariantViolation
from monty.serialization import dumpfn, loadfn
from itertools import product
import numpy as np
import pytest
import logging

FAST = 1e6
SLOW = 1e-9


def block(*ranges):
    return list(product(*ranges))


def make_config(shape=(10, 10),
                critical_volume=9,
                module=None,
                lambda_volume=1.0,
                **kwargs):
    if module is None:
        module = ModuleParameters(initial_state='quiescent',
                                  rate_quiescent=SLOW)
    cell_type = CellTypeParameters('A',
                                   critical_volume,
                                   lambda_volume=lambda_volume,
                                   module=module)
    return PottsConfig(shape, [cell_type], {'A': {'A': 0, 'medium': 0}},
                       **kwargs)


@pytest.fixture
def dividing_config():
    module = ModuleParameters(rate_g1=FAST,
                              rate_s=FAST,
                              rate_g2=FAST,
                              rate_m=FAST,
                              rate_checkpoint=FAST,
                              growth_rate=3)
    return make_config((20, 20), module=module, terms=['volume'])


def test_simulation():
    simulation = PottsSimulation(make_config(),
                                 [('A', block(range(2, 5), range(2, 5))),
                                  ('A', [(7, 7)], 1)])
    assert simulation.step_count == 0
    assert sorted(simulation.cells) == [1, 2]
    assert simulation.lattice.occupied_volume == 10
    assert simulation.lattice.occupant_at((3, 3)) == 1
    assert simulation.lattice.occupant_at((7, 7)) == 2
    assert simulation.lattice.region_at((7, 7)) == Region.DEFAULT
    assert simulation.cells[2].target_volume == 1
    assert simulation.get_substrate(simulation.cells[1]) == 1
    assert 'n_cells=2' in str(simulation)


def test_seed_specifications():
    seeds = [
        SeedSpecification('A', block(range(2, 5), range(2, 5)),
                          state='necrotic'),
        SeedSpecification('A', [(7, 7)])
    ]
    simulation = PottsSimulation(make_config(), seeds)
    assert simulation.cells[1].state == CellState.NECROTIC
    assert simulation.cells[2].state == CellState.QUIESCENT


@pytest.mark.parametrize('seeds', [
    [('B', [(1, 1)])],
    [('A', [])],
    [('A', [(1, 1, 1)])],
    [('A', [(10, 1)])],
    [('A', [(-1, 1)])],
    [('A', [(1, 1), (3, 3)])],
    [('A', [(1, 1), (1, 2)]), ('A', [(1, 2), (1, 3)])],
    [('A', [(1, 1)], 1, 2)],
    [SeedSpecification('A', [(1, 1)], regions={'nucleus': [(1, 1)]})],
])
def test_invalid_seeds(seeds):
    with pytest.raises(ConfigurationError):
        PottsSimulation(make_config(), seeds)


def test_invalid_region_seed():
    cell_type = CellTypeParameters(
        'A', 9, regions={'nucleus': RegionParameters(2)})
    config = PottsConfig((10, 10), [cell_type], {'A': {'A': 0, 'medium': 0}})
    with pytest.raises(ConfigurationError):
        PottsSimulation(config, [
            SeedSpecification('A', [(1, 1), (1, 2)],
                              regions={'nucleus': [(5, 5)]})
        ])

    simulation = PottsSimulation(config, [
        SeedSpecification('A', [(1, 1), (1, 2)], regions={'nucleus': [(1, 2)]})
    ])
    assert simulation.lattice.region_at((1, 2)) == Region.NUCLEUS
    assert simulation.lattice.region_at((1, 1)) == Region.DEFAULT


def test_advance():
    simulation = PottsSimulation(make_config(temperature=10),
                                 [('A', block(range(2, 5), range(2, 5)))])
    simulation.advance(0)
    assert simulation.step_count == 0
    simulation.advance(3)
    assert simulation.step_count == 3
    assert simulation.cells[1].age == 3
    with pytest.raises(ValueError):
        simulation.advance(-1)


def test_neighbors_stay_put():
    # At zero temperature two single voxel cells at their target never move
    config = make_config((5, 5), critical_volume=1, temperature=0)
    simulation = PottsSimulation(config, [('A', [(2, 2)]), ('A', [(2, 3)])])
    ids = simulation.lattice.ids.copy()
    simulation.advance(10)
    np.testing.assert_array_equal(simulation.lattice.ids, ids)
    assert simulation.cells[1].volume == 1
    assert simulation.cells[2].volume == 1


def test_volume_relaxation():
    # A small cell grows to its target volume and fluctuates around it
    config = make_config((15, 15),
                         critical_volume=25,
                         lambda_volume=5,
                         temperature=10)
    simulation = PottsSimulation(config, [('A', block(range(6, 9), range(6,
                                                                         9)))],
                                 seed=1)
    volumes = []
    for _ in range(30):
        simulation.advance(1)
        volumes.append(simulation.cells[1].volume)
    assert np.mean(volumes[-10:]) == pytest.approx(25, abs=5)


def test_apoptosis_to_removal():
    module = ModuleParameters(rate_g1=FAST,
                              rate_apoptotic_early=SLOW,
                              growth_rate=0,
                              max_age=1)
    config = make_config(module=module, temperature=0, terms=['volume'])
    simulation = PottsSimulation(config,
                                 [('A', block(range(2, 5), range(2, 5)))])
    cell = simulation.cells[1]

    volumes = [cell.volume]
    for _ in range(100):
        simulation.advance(1)
        if 1 not in simulation.cells:
            break
        assert cell.state == CellState.APOPTOTIC
        volumes.append(cell.volume)

    assert 1 not in simulation.cells
    assert all(np.diff(volumes) <= 0)
    assert np.all(simulation.lattice.ids == 0)
    assert simulation.lattice.occupied_volume == 0


def test_divide():
    simulation = PottsSimulation(make_config(),
                                 [('A', block(range(2, 6), range(2, 6)))])
    cell = simulation.cells[1]
    cell.set_targets(20, 20)

    daughter = simulation._divide(cell)
    assert daughter is not None
    assert daughter.id == 2
    assert daughter.parent == 1
    assert daughter.state == CellState.PROLIFERATIVE
    assert daughter.phase == Phase.PROLIFERATIVE_G1
    assert cell.divisions == 1
    assert cell.volume + daughter.volume == 16
    assert abs(cell.volume - daughter.volume) <= 2
    assert cell.target_volume == 9
    assert daughter.target_volume == 9
    assert simulation.potts.get_cell(2) is daughter
    for voxel in daughter.location.voxels:
        assert simulation.lattice.occupant_at(voxel) == 2
    simulation.check_invariants()


def test_divide_single_voxel(caplog):
    simulation = PottsSimulation(make_config(), [('A', [(2, 2)])])
    with caplog.at_level(logging.WARNING):
        assert simulation._divide(simulation.cells[1]) is None
    assert 'could not be divided' in caplog.text
    assert sorted(simulation.cells) == [1]


def test_divisions(dividing_config):
    simulation = PottsSimulation(dividing_config,
                                 [('A', block(range(8, 11), range(8, 11)))],
                                 seed=2)
    simulation.advance(40)
    assert len(simulation.cells) > 1
    daughters = [cell for cell in simulation.cells.values() if cell.parent]
    assert len(daughters) > 0
    simulation.check_invariants()


def test_determinism(dividing_config):
    seeds = [('A', block(range(8, 11), range(8, 11)))]
    snapshots = []
    for _ in range(2):
        simulation = PottsSimulation(dividing_config, seeds, seed=5)
        simulation.advance(25)
        snapshots.append(simulation.snapshot())

    np.testing.assert_array_equal(snapshots[0].ids, snapshots[1].ids)
    assert snapshots[0].as_dict() == snapshots[1].as_dict()


def test_frozen_cell(caplog):
    module = ModuleParameters(rate_g1=0)
    with caplog.at_level(logging.WARNING):
        simulation = PottsSimulation(make_config(module=module),
                                     [('A', block(range(2, 5), range(2, 5)))])
    assert simulation.cells[1].frozen
    assert 'Cell 1 frozen' in caplog.text

    simulation.advance(5)
    assert simulation.cells[1].phase == Phase.PROLIFERATIVE_G1
    assert simulation.snapshot().get_cell(1).frozen


def test_check_invariants():
    simulation = PottsSimulation(make_config(),
                                 [('A', block(range(2, 5), range(2, 5)))])
    simulation.check_invariants()

    simulation.lattice.ids[0, 0] = 7
    with pytest.raises(InvariantViolation):
        simulation.check_invariants()

    simulation.lattice.ids[0, 0] = 0
    simulation.lattice.ids[3, 3] = 0
    with pytest.raises(InvariantViolation):
        simulation.check_invariants()


def test_snapshot(tmp_path):
    simulation = PottsSimulation(make_config(temperature=10),
                                 [('A', block(range(2, 5), range(2, 5)))])
    simulation.advance(2)
    snapshot = simulation.snapshot()
    assert snapshot.step == 2
    assert snapshot.shape == (10, 10)
    assert snapshot.n_cells == 1
    assert snapshot.occupied_volume == simulation.lattice.occupied_volume
    record = snapshot.get_cell(1)
    assert record.volume == simulation.cells[1].volume
    assert record.state == 'quiescent'
    with pytest.raises(KeyError):
        snapshot.get_cell(2)

    # Snapshots are copies
    simulation.advance(2)
    assert snapshot.step == 2
    assert simulation.snapshot().step == 4

    restored = Snapshot.from_dict(snapshot.as_dict())
    np.testing.assert_array_equal(restored.ids, snapshot.ids)
    assert restored.get_cell(1).volume == record.volume

    dumpfn(snapshot, str(tmp_path / 'snapshot.json'))
    loaded = loadfn(str(tmp_path / 'snapshot.json'))
    assert isinstance(loaded, Snapshot)
    np.testing.assert_array_equal(loaded.ids, snapshot.ids)
    np.testing.assert_array_equal(loaded.regions, snapshot.regions)
    assert loaded.get_cell(1).centroid == pytest.approx(record.centroid)


def test_frozen_apoptotic_cell_removal(caplog):
    module = ModuleParameters(rate_g1=FAST,
                              rate_apoptotic_early=0,
                              growth_rate=0,
                              max_age=1)
    config = make_config(module=module, temperature=0, terms=['volume'])
    with caplog.at_level(logging.WARNING):
        simulation = PottsSimulation(config,
                                     [('A', block(range(2, 5), range(2, 5)))])
        simulation.advance(1)
    cell = simulation.cells[1]
    assert cell.state == CellState.APOPTOTIC
    assert cell.frozen
    assert 'Cell 1 frozen' in caplog.text

    for _ in range(200):
        simulation.advance(1)
        if 1 not in simulation.cells:
            break
    assert 1 not in simulation.cells
    assert simulation.snapshot().n_cells == 0
    assert np.all(simulation.lattice.ids == 0)
