from math import isfinite
from typing import Dict, List, Sequence

import numpy as np
from monty.json import MSONable

from PottsTools.util.enums import CellState, Region, Term, get_region
from PottsTools.util.errors import ConfigurationError

MEDIUM = 'medium'
NEIGHBORHOODS = ('first', 'second')
CONNECTIVITY_CHECKS = ('local', 'global')
SITE_SELECTIONS = ('lattice', 'occupied')


def _check_finite(name: str, value: float, allow_negative: bool = False):
    if value is None or not isfinite(value):
        raise ConfigurationError(f'{name} must be a finite number, got {value}')
    if not allow_negative and value < 0:
        raise ConfigurationError(f'{name} must be non-negative, got {value}')


class ModuleParameters(MSONable):

    def __init__(self,
                 initial_state: str = 'proliferative',
                 rate_g1: float = 1 / 20,
                 rate_s: float = 1 / 30,
                 rate_g2: float = 1 / 15,
                 rate_m: float = 1 / 5,
                 rate_checkpoint: float = 1 / 10,
                 rate_quiescent: float = 1 / 50,
                 rate_apoptotic_early: float = 1 / 10,
                 rate_apoptotic_late: float = 1 / 50,
                 rate_necrotic_early: float = 1 / 20,
                 rate_necrotic_late: float = 1 / 100,
                 rate_autotic_early: float = 1 / 20,
                 rate_autotic_late: float = 1 / 50,
                 growth_rate: float = 1.0,
                 nucleus_growth_rate: float | None = None,
                 autosis_rate: float = 1.0,
                 basal_apoptosis_rate: float = 0.0,
                 quiescence_fraction: float = 0.5,
                 necrosis_threshold: float = 0.0,
                 autosis_threshold: float = 0.0,
                 max_age: int | None = None):
        """
        Timing and threshold parameters of the cell state machine. Rates are
        the expected number of events per simulation step, so the mean
        duration of a phase is 1 / rate steps.

        :param initial_state: state of newly seeded cells
        :param rate_g1: rate of leaving the G1 phase
        :param rate_s: rate of leaving the S phase
        :param rate_g2: rate of leaving the G2 phase
        :param rate_m: rate of division once in the M phase
        :param rate_checkpoint: rate of re-evaluating a failed growth
            checkpoint
        :param rate_quiescent: rate of re-evaluating quiescence
        :param rate_apoptotic_early: rate of the early to late apoptosis
            transition
        :param rate_apoptotic_late: rate of re-evaluating removal of a late
            apoptotic cell
        :param rate_necrotic_early: rate of the early to late necrosis
            transition
        :param rate_necrotic_late: rate of re-evaluating removal of a late
            necrotic cell
        :param rate_autotic_early: rate of the early to late autosis
            transition
        :param rate_autotic_late: rate of re-evaluating removal of a late
            autotic cell
        :param growth_rate: increase of the target volume per step (voxels)
            while proliferating
        :param nucleus_growth_rate: increase of the nucleus target volume per
            step. Defaults to growth_rate scaled by the nucleus fraction.
        :param autosis_rate: decrease of the target volume per step (voxels)
            while in early autosis
        :param basal_apoptosis_rate: probability per step of a G1 or G2 cell
            entering apoptosis
        :param quiescence_fraction: a G1 cell whose volume is below this
            fraction of its target becomes quiescent
        :param necrosis_threshold: substrate level below which cells become
            necrotic
        :param autosis_threshold: substrate level below which quiescent cells
            become autotic
        :param max_age: age (steps) at which a G1 cell enters apoptosis
        """
        try:
            self.initial_state = CellState(initial_state).value
        except ValueError as e:
            raise ConfigurationError(
                f'Unknown initial state {initial_state}') from e

        self.rate_g1 = rate_g1
        self.rate_s = rate_s
        self.rate_g2 = rate_g2
        self.rate_m = rate_m
        self.rate_checkpoint = rate_checkpoint
        self.rate_quiescent = rate_quiescent
        self.rate_apoptotic_early = rate_apoptotic_early
        self.rate_apoptotic_late = rate_apoptotic_late
        self.rate_necrotic_early = rate_necrotic_early
        self.rate_necrotic_late = rate_necrotic_late
        self.rate_autotic_early = rate_autotic_early
        self.rate_autotic_late = rate_autotic_late
        self.growth_rate = growth_rate
        self.nucleus_growth_rate = nucleus_growth_rate
        self.autosis_rate = autosis_rate
        self.basal_apoptosis_rate = basal_apoptosis_rate
        self.quiescence_fraction = quiescence_fraction
        self.necrosis_threshold = necrosis_threshold
        self.autosis_threshold = autosis_threshold
        self.max_age = max_age

        # Rates of zero are allowed here, they are reported when sampled
        for name in self.rate_names:
            rate = getattr(self, name)
            if rate is None or rate != rate or rate < 0:
                raise ConfigurationError(f'{name} must be non-negative, got {rate}')

        _check_finite('growth_rate', growth_rate)
        _check_finite('autosis_rate', autosis_rate)
        if nucleus_growth_rate is not None:
            _check_finite('nucleus_growth_rate', nucleus_growth_rate)
        if not 0 <= basal_apoptosis_rate <= 1:
            raise ConfigurationError('basal_apoptosis_rate must be a probability')
        if not 0 <= quiescence_fraction <= 1:
            raise ConfigurationError('quiescence_fraction must be between 0 and 1')
        _check_finite('necrosis_threshold', necrosis_threshold)
        _check_finite('autosis_threshold', autosis_threshold)
        if max_age is not None and max_age < 0:
            raise ConfigurationError('max_age must be non-negative')

    @property
    def rate_names(self) -> List[str]:
        return [
            'rate_g1', 'rate_s', 'rate_g2', 'rate_m', 'rate_checkpoint',
            'rate_quiescent', 'rate_apoptotic_early', 'rate_apoptotic_late',
            'rate_necrotic_early', 'rate_necrotic_late', 'rate_autotic_early',
            'rate_autotic_late'
        ]


class RegionParameters(MSONable):
    """
    Geometry and energy parameters of a sub-cellular region.

    Args:
        critical_volume: Volume of the region in a newly divided cell
        fraction: Fraction of a seed's voxels placed in this region when the
            seed does not list the region's voxels
        critical_height: Height of the region in a newly divided cell
        lambda_volume: Weight of the region volume term
        lambda_surface: Weight of the region surface term
    """

    def __init__(self,
                 critical_volume: float,
                 fraction: float = 0.25,
                 critical_height: float = 1,
                 lambda_volume: float = 0.0,
                 lambda_surface: float = 0.0):
        self.critical_volume = critical_volume
        self.fraction = fraction
        self.critical_height = critical_height
        self.lambda_volume = lambda_volume
        self.lambda_surface = lambda_surface

        _check_finite('critical_volume', critical_volume)
        _check_finite('critical_height', critical_height)
        _check_finite('lambda_volume', lambda_volume)
        _check_finite('lambda_surface', lambda_surface)
        if not 0 <= fraction <= 1:
            raise ConfigurationError('Region fraction must be between 0 and 1')


class CellTypeParameters(MSONable):
    """
    Per cell type coefficients of the Hamiltonian terms and of the cell
    state machine.

    Args:
        name: Name of the cell type, used as key in the adhesion matrix
        critical_volume: Volume of a newly divided cell
        critical_height: Height of a newly divided cell
        lambda_volume: Weight of the volume term
        lambda_surface: Weight of the surface term
        lambda_height: Weight of the height term
        lambda_persistence: Weight of the persistence term
        persistence_decay: Rate at which the migration direction follows the
            displacement of the centroid
        lambda_junction: Weight of the junction term
        substrate_adhesion: Strength of the adhesion to the substrate
        regions: Sub-cellular regions of the cell type, keyed by region name
        region_adhesion: Adhesion between regions of the same cell, keyed by
            region name
        module: Parameters of the cell state machine
    """

    def __init__(self,
                 name: str,
                 critical_volume: float,
                 critical_height: float = 1,
                 lambda_volume: float = 1.0,
                 lambda_surface: float = 0.0,
                 lambda_height: float = 0.0,
                 lambda_persistence: float = 0.0,
                 persistence_decay: float = 0.1,
                 lambda_junction: float = 0.0,
                 substrate_adhesion: float = 0.0,
                 regions: Dict[str, RegionParameters] | None = None,
                 region_adhesion: Dict[str, Dict[str, float]] | None = None,
                 module: ModuleParameters | None = None):
        if not name or name == MEDIUM:
            raise ConfigurationError(f'Invalid cell type name {name!r}')
        self.name = name
        self.critical_volume = critical_volume
        self.critical_height = critical_height
        self.lambda_volume = lambda_volume
        self.lambda_surface = lambda_surface
        self.lambda_height = lambda_height
        self.lambda_persistence = lambda_persistence
        self.persistence_decay = persistence_decay
        self.lambda_junction = lambda_junction
        self.substrate_adhesion = substrate_adhesion
        self.regions = regions if regions is not None else {}
        self.region_adhesion = region_adhesion if region_adhesion is not None else {}
        self.module = module if module is not None else ModuleParameters()

        _check_finite('critical_volume', critical_volume)
        if critical_volume == 0:
            raise ConfigurationError('critical_volume must be positive')
        _check_finite('critical_height', critical_height)
        for attr in ('lambda_volume', 'lambda_surface', 'lambda_height',
                     'lambda_persistence', 'lambda_junction'):
            _check_finite(attr, getattr(self, attr))
        _check_finite('substrate_adhesion', substrate_adhesion,
                      allow_negative=True)
        if not 0 <= persistence_decay <= 1:
            raise ConfigurationError('persistence_decay must be between 0 and 1')

        for region in self.regions:
            if self.get_region_code(region) in (Region.UNDEFINED, Region.DEFAULT):
                raise ConfigurationError(
                    f'Region {region} cannot be configured on cell type {self.name}')

        for region, row in self.region_adhesion.items():
            self.get_region_code(region)
            for other, value in row.items():
                self.get_region_code(other)
                _check_finite(f'region adhesion {region}-{other}', value,
                              allow_negative=True)

    @staticmethod
    def get_region_code(region: str) -> Region:
        try:
            return get_region(region)
        except (KeyError, ValueError) as e:
            raise ConfigurationError(f'Unknown region {region}') from e

    @property
    def has_regions(self) -> bool:
        return len(self.regions) > 0

    def get_region_parameters(self, region: Region) -> RegionParameters | None:
        for name, parameters in self.regions.items():
            if get_region(name) == region:
                return parameters
        return None

    def get_region_adhesion(self, region_a: Region, region_b: Region) -> float:
        """
        Symmetrized adhesion between two regions of the same cell. Pairs that
        are not configured do not contribute.
        """

        def lookup(a, b):
            for name, row in self.region_adhesion.items():
                if get_region(name) != a:
                    continue
                for other, value in row.items():
                    if get_region(other) == b:
                        return value
            return 0.0

        return (lookup(region_a, region_b) + lookup(region_b, region_a)) / 2

    def __str__(self):
        return f'CellTypeParameters(name={self.name}, critical_volume={self.critical_volume})'

    def __repr__(self):
        return self.__str__()


class PottsConfig(MSONable):
    """
    Configuration of a Cellular Potts simulation.

    Args:
        shape: Size of the lattice along each axis (2D or 3D)
        cell_types: Parameters of each cell type
        adhesion: Adhesion matrix, adhesion[a][b] is the energy per boundary
            of a cell of type a facing a cell of type b (or 'medium')
        temperature: Temperature of the Metropolis acceptance
        mcs: Number of flip attempts per step, as a multiple of the sampled
            volume
        terms: Hamiltonian terms to include
        neighborhood: Neighbor relation of the lattice, 'first' or 'second'
        connectivity: 'local' for the windowed connectivity check, 'global' to
            fall back to a full flood-fill when the local check fails
        site_selection: 'lattice' to sample flip sites over the whole
            lattice, 'occupied' to sample only non-background voxels
        substrate: Substrate concentration over the plane of the first two
            axes. Defaults to 1 everywhere.
        substrate_power: Decay exponent of substrate adhesion with height
        check_invariants: Whether to validate the lattice after every step
    """

    def __init__(self,
                 shape: Sequence[int],
                 cell_types: List[CellTypeParameters],
                 adhesion: Dict[str, Dict[str, float]],
                 temperature: float = 10.0,
                 mcs: float = 1.0,
                 terms: Sequence[str] = ('adhesion', 'volume', 'surface'),
                 neighborhood: str = 'first',
                 connectivity: str = 'local',
                 site_selection: str = 'lattice',
                 substrate: Sequence | None = None,
                 substrate_power: float = 1.0,
                 check_invariants: bool = True):
        self.shape = [int(size) for size in shape]
        self.cell_types = list(cell_types)
        self.adhesion = adhesion
        self.temperature = temperature
        self.mcs = mcs
        self.terms = [str(term) for term in terms]
        self.neighborhood = neighborhood
        self.connectivity = connectivity
        self.site_selection = site_selection
        self.substrate = None if substrate is None else np.asarray(
            substrate, dtype=float).tolist()
        self.substrate_power = substrate_power
        self.check_invariants = check_invariants

        self.validate()

    def validate(self):
        if len(self.shape) not in (2, 3):
            raise ConfigurationError(
                f'The lattice must be 2D or 3D, got shape {self.shape}')
        if any(size < 1 for size in self.shape):
            raise ConfigurationError(
                f'Lattice dimensions must be positive, got {self.shape}')
        _check_finite('temperature', self.temperature)
        _check_finite('mcs', self.mcs)
        if self.mcs == 0:
            raise ConfigurationError('mcs must be positive')
        _check_finite('substrate_power', self.substrate_power)

        for term in self.terms:
            if term not in [t.value for t in Term]:
                raise ConfigurationError(f'Unknown Hamiltonian term {term}')
        if len(set(self.terms)) != len(self.terms):
            raise ConfigurationError('Hamiltonian terms must be unique')

        if self.neighborhood not in NEIGHBORHOODS:
            raise ConfigurationError(f'Unknown neighborhood {self.neighborhood}')
        if self.connectivity not in CONNECTIVITY_CHECKS:
            raise ConfigurationError(
                f'Unknown connectivity check {self.connectivity}')
        if self.site_selection not in SITE_SELECTIONS:
            raise ConfigurationError(
                f'Unknown site selection {self.site_selection}')

        if len(self.cell_types) == 0:
            raise ConfigurationError('At least one cell type is required')
        names = [cell_type.name for cell_type in self.cell_types]
        if len(set(names)) != len(names):
            raise ConfigurationError('Cell type names must be unique')

        # Every ordered pair of types, and every type against the medium
        for name in names:
            if name not in self.adhesion:
                raise ConfigurationError(f'Missing adhesion row for {name}')
            for other in names + [MEDIUM]:
                if other not in self.adhesion[name]:
                    raise ConfigurationError(
                        f'Missing adhesion between {name} and {other}')
                _check_finite(f'adhesion {name}-{other}',
                              self.adhesion[name][other],
                              allow_negative=True)

        if self.substrate is not None:
            field = np.asarray(self.substrate)
            if field.shape != tuple(self.shape[:2]):
                raise ConfigurationError(
                    f'Substrate shape {field.shape} does not match the lattice'
                    f' plane {tuple(self.shape[:2])}')
            if not np.all(np.isfinite(field)) or np.any(field < 0):
                raise ConfigurationError(
                    'Substrate must be finite and non-negative')

    @property
    def ndim(self) -> int:
        return len(self.shape)

    @property
    def cell_type_names(self) -> List[str]:
        return [cell_type.name for cell_type in self.cell_types]

    def get_cell_type(self, name: str) -> CellTypeParameters:
        for cell_type in self.cell_types:
            if cell_type.name == name:
                return cell_type
        raise ConfigurationError(f'Unknown cell type {name}')

    def get_adhesion(self, type_a: str, type_b: str) -> float:
        """
        Adhesion of a boundary between two types, one of which may be the
        medium. The value for two cell types is the mean of both directions.
        """
        if type_a == MEDIUM and type_b == MEDIUM:
            return 0.0
        if type_a == MEDIUM:
            return self.adhesion[type_b][MEDIUM]
        if type_b == MEDIUM:
            return self.adhesion[type_a][MEDIUM]
        return (self.adhesion[type_a][type_b] + self.adhesion[type_b][type_a]) / 2

    def get_substrate_field(self) -> np.ndarray:
        if self.substrate is None:
            return np.ones(self.shape[:2])
        return np.asarray(self.substrate, dtype=float)

    def get_terms(self) -> List[Term]:
        return [Term(term) for term in self.terms]
