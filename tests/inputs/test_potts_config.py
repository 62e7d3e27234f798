from PottsTools.inputs.potts_config import (PottsConfig, CellTypeParameters,
                                            ModuleParameters, RegionParameters)
from PottsTools.util.enums import Region, Term
from PottsTools.util.errors import ConfigurationError
import numpy as np
import pytest


@pytest.fixture
def cell_types():
    return [
        CellTypeParameters('tumor', 25, lambda_surface=0.5),
        CellTypeParameters('stroma', 36)
    ]


@pytest.fixture
def adhesion():
    return {
        'tumor': {'tumor': 2, 'stroma': 4, 'medium': 10},
        'stroma': {'tumor': 6, 'stroma': 1, 'medium': 12},
    }


def test_config(cell_types, adhesion):
    config = PottsConfig((20, 30), cell_types, adhesion)
    assert config.shape == [20, 30]
    assert config.ndim == 2
    assert config.temperature == 10
    assert config.cell_type_names == ['tumor', 'stroma']
    assert config.get_terms() == [Term.ADHESION, Term.VOLUME, Term.SURFACE]
    assert config.get_cell_type('stroma').critical_volume == 36
    assert np.all(config.get_substrate_field() == 1)

    with pytest.raises(ConfigurationError):
        config.get_cell_type('immune')


def test_adhesion_lookup(cell_types, adhesion):
    config = PottsConfig((20, 30), cell_types, adhesion)
    assert config.get_adhesion('tumor', 'stroma') == pytest.approx(5)
    assert config.get_adhesion('stroma', 'tumor') == pytest.approx(5)
    assert config.get_adhesion('tumor', 'medium') == pytest.approx(10)
    assert config.get_adhesion('medium', 'stroma') == pytest.approx(12)
    assert config.get_adhesion('medium', 'medium') == 0


def test_config_as_dict(cell_types, adhesion):
    config = PottsConfig((20, 30, 5),
                         cell_types,
                         adhesion,
                         terms=['volume', 'substrate'],
                         substrate=np.ones((20, 30)) * 0.5)
    config_dict = config.as_dict()
    assert config_dict['shape'] == [20, 30, 5]
    assert config_dict['terms'] == ['volume', 'substrate']

    new_config = PottsConfig.from_dict(config_dict)
    assert new_config.shape == config.shape
    assert new_config.cell_type_names == config.cell_type_names
    assert new_config.get_cell_type('tumor').lambda_surface == pytest.approx(0.5)
    assert isinstance(new_config.get_cell_type('tumor').module,
                      ModuleParameters)
    assert np.allclose(new_config.get_substrate_field(), 0.5)


@pytest.mark.parametrize('kwargs', [
    {'shape': (20, )},
    {'shape': (20, 0)},
    {'temperature': -1},
    {'temperature': float('nan')},
    {'mcs': 0},
    {'terms': ['volume', 'gravity']},
    {'terms': ['volume', 'volume']},
    {'neighborhood': 'third'},
    {'connectivity': 'approximate'},
    {'site_selection': 'random'},
    {'substrate': np.ones((5, 5))},
    {'substrate': -np.ones((20, 30))},
])
def test_invalid_config(cell_types, adhesion, kwargs):
    arguments = {'shape': (20, 30)}
    arguments.update(kwargs)
    with pytest.raises(ConfigurationError):
        PottsConfig(cell_types=cell_types, adhesion=adhesion, **arguments)


def test_invalid_adhesion(cell_types, adhesion):
    del adhesion['tumor']['medium']
    with pytest.raises(ConfigurationError):
        PottsConfig((20, 30), cell_types, adhesion)

    with pytest.raises(ConfigurationError):
        PottsConfig((20, 30), cell_types, {'tumor': {'tumor': 1}})

    # Configuration errors are value errors
    with pytest.raises(ValueError):
        PottsConfig((20, 30), [], {})


def test_duplicate_cell_types(adhesion):
    with pytest.raises(ConfigurationError):
        PottsConfig((20, 30),
                    [CellTypeParameters('tumor', 25),
                     CellTypeParameters('tumor', 30)], adhesion)


def test_cell_type_parameters():
    parameters = CellTypeParameters(
        'tumor',
        50,
        regions={'nucleus': RegionParameters(10, lambda_volume=2)},
        region_adhesion={
            'default': {'nucleus': 3},
            'nucleus': {'default': 5}
        })
    assert parameters.has_regions
    assert parameters.get_region_parameters(Region.NUCLEUS).critical_volume == 10
    assert parameters.get_region_parameters(Region.DEFAULT) is None
    assert parameters.get_region_adhesion(Region.DEFAULT,
                                          Region.NUCLEUS) == pytest.approx(4)
    assert parameters.get_region_adhesion(Region.NUCLEUS,
                                          Region.NUCLEUS) == 0

    assert not CellTypeParameters('tumor', 50).has_regions


@pytest.mark.parametrize('kwargs', [
    {'name': 'medium'},
    {'critical_volume': 0},
    {'critical_volume': -5},
    {'lambda_volume': -1},
    {'persistence_decay': 2},
    {'regions': {'default': RegionParameters(5)}},
    {'regions': {'mitochondria': RegionParameters(5)}},
    {'region_adhesion': {'nucleus': {'golgi': 1}}},
])
def test_invalid_cell_type(kwargs):
    arguments = {'name': 'tumor', 'critical_volume': 25}
    arguments.update(kwargs)
    with pytest.raises(ConfigurationError):
        CellTypeParameters(**arguments)


def test_module_parameters():
    parameters = ModuleParameters()
    assert parameters.initial_state == 'proliferative'
    assert len(parameters.rate_names) == 12

    parameters = ModuleParameters(initial_state='quiescent', rate_g1=0)
    assert parameters.initial_state == 'quiescent'
    assert parameters.rate_g1 == 0

    parameters = ModuleParameters.from_dict(parameters.as_dict())
    assert parameters.initial_state == 'quiescent'


@pytest.mark.parametrize('kwargs', [
    {'initial_state': 'dormant'},
    {'rate_g1': -1},
    {'rate_s': float('nan')},
    {'basal_apoptosis_rate': 2},
    {'quiescence_fraction': -0.1},
    {'max_age': -1},
])
def test_invalid_module_parameters(kwargs):
    with pytest.raises(ConfigurationError):
        ModuleParameters(**kwargs)


def test_region_parameters():
    with pytest.raises(ConfigurationError):
        RegionParameters(10, fraction=1.5)
    with pytest.raises(ConfigurationError):
        RegionParameters(-10)
