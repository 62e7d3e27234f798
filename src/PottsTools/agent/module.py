import logging
from typing import Callable, Dict

import numpy as np

from PottsTools.inputs.potts_config import ModuleParameters
from PottsTools.util.constants import (AUTOSIS_SIZE_TARGET,
                                      GROWTH_CHECKPOINT_G1,
                                      GROWTH_CHECKPOINT_G2,
                                      REMOVAL_CHECKPOINT, SIZE_TARGET)
from PottsTools.util.enums import (INITIAL_PHASE, PHASE_STATE, CellState,
                                   Phase, Region)
from PottsTools.util.sampler import sample_event, sample_waiting_time

# Parameter holding the rate of leaving each phase
PHASE_RATES = {
    Phase.PROLIFERATIVE_G1: 'rate_g1',
    Phase.PROLIFERATIVE_S: 'rate_s',
    Phase.PROLIFERATIVE_G2: 'rate_g2',
    Phase.PROLIFERATIVE_M: 'rate_m',
    Phase.QUIESCENT: 'rate_quiescent',
    Phase.APOPTOTIC_EARLY: 'rate_apoptotic_early',
    Phase.APOPTOTIC_LATE: 'rate_apoptotic_late',
    Phase.NECROTIC_EARLY: 'rate_necrotic_early',
    Phase.NECROTIC_LATE: 'rate_necrotic_late',
    Phase.AUTOTIC_EARLY: 'rate_autotic_early',
    Phase.AUTOTIC_LATE: 'rate_autotic_late',
}

TERMINAL_STATES = (CellState.APOPTOTIC, CellState.NECROTIC, CellState.AUTOTIC)


class Module():
    """
    The state machine of a single cell.

    The module holds the current phase of the cell and the number of steps
    left until the phase timer expires. What happens on entering a phase, on
    every step in a phase and when its timer expires is looked up in the
    ENTER_ACTIONS, STEP_ACTIONS and EXPIRE_ACTIONS tables, so the behavior of
    every cell type is defined by its ModuleParameters alone.

    Args:
        cell: The cell the module belongs to
        parameters: Timing and threshold parameters
        state: The initial state. Defaults to the initial state in the
            parameters.
    """

    def __init__(self,
                 cell,
                 parameters: ModuleParameters,
                 state: CellState | None = None):
        self.cell = cell
        self.parameters = parameters
        self.timer = 0
        self.frozen = False
        self.removal_requested = False

        if state is None:
            state = CellState(parameters.initial_state)
        self.phase = INITIAL_PHASE[CellState(state)]

    def start(self, rng: np.random.Generator):
        """
        Enter the initial phase and sample its timer
        """
        self.set_phase(self.phase, rng)

    @property
    def state(self) -> CellState:
        return PHASE_STATE[self.phase]

    def enter(self, state: CellState, rng: np.random.Generator):
        """
        Move the cell to the first phase of a state
        """
        self.set_phase(INITIAL_PHASE[CellState(state)], rng)

    def set_phase(self, phase: Phase, rng: np.random.Generator):
        """
        Move the cell to a phase, apply its entry action and sample its timer.

        Raises:
            SamplingExhaustion: if no timer can be sampled for the phase. The
                phase and its entry action are applied regardless.
        """
        self.phase = phase
        logging.debug(f'Cell {self.cell.id} entered {phase.value}')
        action = ENTER_ACTIONS.get(phase)
        if action is not None:
            action(self)
        self.resample(rng)

    def resample(self, rng: np.random.Generator, rate_name: str | None = None):
        if rate_name is None:
            rate_name = PHASE_RATES[self.phase]
        self.timer = sample_waiting_time(rng, getattr(self.parameters, rate_name))

    def step(self, rng: np.random.Generator, sim):
        """
        Advance the state machine by one simulation step.

        Args:
            rng: The random number generator of the simulation
            sim: The simulation, used to read the substrate and to request
                division or removal of the cell
        """
        if self.removal_requested:
            return
        if self.frozen:
            # A frozen dying cell is still released once it has no voxels
            if self.state in TERMINAL_STATES:
                _check_removal(self, rng, sim)
            return

        phase = self.phase
        action = STEP_ACTIONS.get(phase)
        if action is not None:
            action(self, rng, sim)
        if self.phase != phase or self.removal_requested:
            return

        self.timer -= 1
        if self.timer <= 0:
            EXPIRE_ACTIONS[phase](self, rng, sim)

    def request_removal(self, sim):
        self.removal_requested = True
        sim.request_removal(self.cell)

    def __str__(self):
        return (f'Module(phase={self.phase.value}, timer={self.timer},'
                f' frozen={self.frozen})')

    def __repr__(self):
        return self.__str__()


def _grow(module: Module):
    parameters = module.parameters
    cell = module.cell
    cell.update_target(parameters.growth_rate, SIZE_TARGET)

    if cell.has_region(Region.NUCLEUS):
        rate = parameters.nucleus_growth_rate
        if rate is None:
            rate = parameters.growth_rate * cell.get_region_fraction(Region.NUCLEUS)
        cell.update_region_target(Region.NUCLEUS, rate, SIZE_TARGET)


def _basal_apoptosis(module: Module, rng: np.random.Generator) -> bool:
    if sample_event(rng, module.parameters.basal_apoptosis_rate):
        module.enter(CellState.APOPTOTIC, rng)
        return True
    return False


def _check_removal(module: Module, rng: np.random.Generator, sim):
    if module.cell.volume == 0:
        module.request_removal(sim)


def _step_g1(module: Module, rng: np.random.Generator, sim):
    if not _basal_apoptosis(module, rng):
        _grow(module)


def _step_s(module: Module, rng: np.random.Generator, sim):
    _grow(module)


def _step_g2(module: Module, rng: np.random.Generator, sim):
    if not _basal_apoptosis(module, rng):
        _grow(module)


def _step_autotic_early(module: Module, rng: np.random.Generator, sim):
    _check_removal(module, rng, sim)
    if not module.removal_requested:
        module.cell.update_target(module.parameters.autosis_rate,
                                  AUTOSIS_SIZE_TARGET)


def _expire_g1(module: Module, rng: np.random.Generator, sim):
    parameters = module.parameters
    cell = module.cell
    if parameters.max_age is not None and cell.age >= parameters.max_age:
        module.enter(CellState.APOPTOTIC, rng)
    elif sim.get_substrate(cell) < parameters.necrosis_threshold:
        module.enter(CellState.NECROTIC, rng)
    elif cell.volume >= GROWTH_CHECKPOINT_G1 * cell.critical_volume:
        module.set_phase(Phase.PROLIFERATIVE_S, rng)
    elif cell.volume < parameters.quiescence_fraction * cell.target_volume:
        module.enter(CellState.QUIESCENT, rng)
    else:
        module.resample(rng, 'rate_checkpoint')


def _expire_s(module: Module, rng: np.random.Generator, sim):
    module.set_phase(Phase.PROLIFERATIVE_G2, rng)


def _expire_g2(module: Module, rng: np.random.Generator, sim):
    cell = module.cell
    if cell.volume >= GROWTH_CHECKPOINT_G2 * cell.critical_volume:
        module.set_phase(Phase.PROLIFERATIVE_M, rng)
    else:
        module.resample(rng, 'rate_checkpoint')


def _expire_m(module: Module, rng: np.random.Generator, sim):
    sim.request_division(module.cell)
    module.set_phase(Phase.PROLIFERATIVE_G1, rng)


def _expire_quiescent(module: Module, rng: np.random.Generator, sim):
    parameters = module.parameters
    cell = module.cell
    substrate = sim.get_substrate(cell)
    if substrate < parameters.necrosis_threshold:
        module.enter(CellState.NECROTIC, rng)
    elif substrate < parameters.autosis_threshold:
        module.enter(CellState.AUTOTIC, rng)
    elif cell.volume >= parameters.quiescence_fraction * cell.target_volume:
        module.enter(CellState.PROLIFERATIVE, rng)
    else:
        module.resample(rng)


def _next_phase(phase: Phase) -> Callable:

    def expire(module: Module, rng: np.random.Generator, sim):
        module.set_phase(phase, rng)

    return expire


def _expire_late(module: Module, rng: np.random.Generator, sim):
    cell = module.cell
    if cell.volume <= REMOVAL_CHECKPOINT * cell.critical_volume:
        module.request_removal(sim)
    else:
        module.resample(rng)


def _release_targets(module: Module):
    module.cell.set_targets(0, 0)


def _hold_targets(module: Module):
    cell = module.cell
    cell.set_targets(cell.volume, cell.surface)


ENTER_ACTIONS: Dict[Phase, Callable] = {
    Phase.APOPTOTIC_EARLY: _release_targets,
    Phase.NECROTIC_EARLY: _hold_targets,
    Phase.NECROTIC_LATE: _release_targets,
    Phase.AUTOTIC_LATE: _release_targets,
}

STEP_ACTIONS: Dict[Phase, Callable] = {
    Phase.PROLIFERATIVE_G1: _step_g1,
    Phase.PROLIFERATIVE_S: _step_s,
    Phase.PROLIFERATIVE_G2: _step_g2,
    Phase.APOPTOTIC_EARLY: _check_removal,
    Phase.APOPTOTIC_LATE: _check_removal,
    Phase.NECROTIC_EARLY: _check_removal,
    Phase.NECROTIC_LATE: _check_removal,
    Phase.AUTOTIC_EARLY: _step_autotic_early,
    Phase.AUTOTIC_LATE: _check_removal,
}

EXPIRE_ACTIONS: Dict[Phase, Callable] = {
    Phase.PROLIFERATIVE_G1: _expire_g1,
    Phase.PROLIFERATIVE_S: _expire_s,
    Phase.PROLIFERATIVE_G2: _expire_g2,
    Phase.PROLIFERATIVE_M: _expire_m,
    Phase.QUIESCENT: _expire_quiescent,
    Phase.APOPTOTIC_EARLY: _next_phase(Phase.APOPTOTIC_LATE),
    Phase.APOPTOTIC_LATE: _expire_late,
    Phase.NECROTIC_EARLY: _next_phase(Phase.NECROTIC_LATE),
    Phase.NECROTIC_LATE: _expire_late,
    Phase.AUTOTIC_EARLY: _next_phase(Phase.AUTOTIC_LATE),
    Phase.AUTOTIC_LATE: _expire_late,
}
