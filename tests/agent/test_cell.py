from PottsTools.agent.cell import Cell, make_location
from PottsTools.env.location import Location, RegionLocation
from PottsTools.inputs.potts_config import (CellTypeParameters,
                                            ModuleParameters, RegionParameters)
from PottsTools.util.conversions import convert_surface
from PottsTools.util.enums import CellState, Phase, Region
from PottsTools.util.helper import get_neighbor_offsets
from itertools import product
import numpy as np
import pytest
import logging

OFFSETS = get_neighbor_offsets(2, 'first')


def block(*ranges):
    return list(product(*ranges))


def make_cell(parameters, voxels=None, cell_id=1, **kwargs):
    if voxels is None:
        voxels = block(range(3), range(3))
    location = make_location(voxels, OFFSETS, 2, parameters)
    return Cell(cell_id, parameters, location, np.random.default_rng(seed=0),
                **kwargs)


@pytest.fixture
def parameters():
    return CellTypeParameters('A', 9)


@pytest.fixture
def nucleated():
    return CellTypeParameters(
        'A', 25, regions={'nucleus': RegionParameters(5, fraction=0.2)})


def test_cell(parameters):
    cell = make_cell(parameters)
    assert cell.id == 1
    assert cell.cell_type == 'A'
    assert cell.ndim == 2
    assert cell.volume == 9
    assert cell.surface == 12
    assert cell.height == 1
    np.testing.assert_allclose(cell.centroid, [1, 1])
    assert cell.state == CellState.PROLIFERATIVE
    assert cell.phase == Phase.PROLIFERATIVE_G1
    assert cell.module.timer >= 1
    assert not cell.frozen
    assert not cell.has_regions

    assert cell.target_volume == 9
    assert cell.target_surface == convert_surface(9, 1, 2)
    assert 'id=1' in str(cell)


def test_invalid_id(parameters):
    with pytest.raises(ValueError):
        make_cell(parameters, cell_id=0)


def test_initial_state_and_target(parameters):
    cell = make_cell(parameters, state=CellState.QUIESCENT, target_volume=5)
    assert cell.state == CellState.QUIESCENT
    assert cell.target_volume == 5
    assert cell.target_surface == convert_surface(5, 1, 2)

    cell.reset()
    assert cell.target_volume == 9


def test_update_target(parameters):
    cell = make_cell(parameters)
    cell.update_target(1, 2)
    assert cell.target_volume == 10
    for _ in range(20):
        cell.update_target(1, 2)
    assert cell.target_volume == 18
    assert cell.target_surface == convert_surface(18, 1, 2)

    cell.update_target(100, 0.5)
    assert cell.target_volume == 4.5


def test_region_targets(nucleated):
    cell = make_cell(nucleated, block(range(5), range(5)))
    assert cell.has_regions
    assert cell.has_region(Region.NUCLEUS)
    assert not cell.has_region(Region.DEFAULT)
    assert cell.get_region_fraction(Region.NUCLEUS) == pytest.approx(0.2)
    assert cell.get_region_volume(Region.NUCLEUS) == 5
    assert cell.get_region_targets(Region.NUCLEUS) == [
        5, convert_surface(5, 1, 2)
    ]
    assert cell.get_region_targets(Region.DEFAULT) == [0, 0]

    # Region targets follow the cell target
    cell.set_targets(50, convert_surface(50, 1, 2))
    assert cell.get_region_targets(Region.NUCLEUS)[0] == pytest.approx(10)

    cell.update_region_target(Region.NUCLEUS, 1, 2)
    assert cell.get_region_targets(Region.NUCLEUS)[0] == pytest.approx(10)

    cell.reset()
    cell.update_region_target(Region.NUCLEUS, 1, 2)
    assert cell.get_region_targets(Region.NUCLEUS)[0] == pytest.approx(6)


def test_released_targets(nucleated):
    cell = make_cell(nucleated, block(range(5), range(5)))
    cell.set_targets(0, 0)
    assert cell.target_volume == 0
    assert cell.get_region_targets(Region.NUCLEUS)[0] == 0


def test_frozen_cell(caplog):
    parameters = CellTypeParameters('A', 9, module=ModuleParameters(rate_g1=0))
    with caplog.at_level(logging.WARNING):
        cell = make_cell(parameters)
    assert cell.frozen
    assert cell.phase == Phase.PROLIFERATIVE_G1
    assert 'frozen' in caplog.text

    # A frozen cell still ages but never changes phase
    for _ in range(5):
        cell.step(np.random.default_rng(seed=0), None)
    assert cell.age == 5
    assert cell.phase == Phase.PROLIFERATIVE_G1
    assert cell.target_volume == 9


def test_set_state(parameters):
    cell = make_cell(parameters)
    cell.set_state(CellState.NECROTIC, np.random.default_rng(seed=0))
    assert cell.phase == Phase.NECROTIC_EARLY
    assert cell.target_volume == 9


def test_make_daughter(parameters):
    cell = make_cell(parameters, state=CellState.QUIESCENT, divisions=2)
    location = Location([(5, 5)], OFFSETS, 2)
    daughter = cell.make_daughter(2, location, np.random.default_rng(seed=1))
    assert daughter.id == 2
    assert daughter.parent == 1
    assert daughter.age == 0
    assert daughter.divisions == 2
    assert daughter.state == CellState.PROLIFERATIVE
    assert daughter.phase == Phase.PROLIFERATIVE_G1
    assert daughter.target_volume == 9


def test_make_location(parameters, nucleated):
    voxels = block(range(5), range(5))
    location = make_location(voxels, OFFSETS, 2, parameters)
    assert type(location) is Location
    assert location.volume == 25

    location = make_location(voxels, OFFSETS, 2, nucleated)
    assert isinstance(location, RegionLocation)
    assert location.region_volume(Region.NUCLEUS) == 5
    assert location.region_volume(Region.DEFAULT) == 20
    assert location.region_of((2, 2)) == Region.NUCLEUS
    assert location.region_of((0, 0)) == Region.DEFAULT

    location = make_location(voxels, OFFSETS, 2, nucleated,
                             {'nucleus': [(0, 0), (0, 1)]})
    assert location.region_volume(Region.NUCLEUS) == 2
    assert location.region_of((0, 0)) == Region.NUCLEUS


def test_make_location_too_small(nucleated):
    with pytest.warns(UserWarning, match='too small'):
        location = make_location([(0, 0), (0, 1)], OFFSETS, 2, nucleated)
    assert location.region_volume(Region.NUCLEUS) == 0
    assert location.region_volume(Region.DEFAULT) == 2
