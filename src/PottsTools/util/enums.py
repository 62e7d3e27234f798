from enum import Enum, IntEnum


class CellState(str, Enum):
    PROLIFERATIVE = 'proliferative'
    QUIESCENT = 'quiescent'
    APOPTOTIC = 'apoptotic'
    NECROTIC = 'necrotic'
    AUTOTIC = 'autotic'


class Phase(str, Enum):
    PROLIFERATIVE_G1 = 'proliferative_g1'
    PROLIFERATIVE_S = 'proliferative_s'
    PROLIFERATIVE_G2 = 'proliferative_g2'
    PROLIFERATIVE_M = 'proliferative_m'
    QUIESCENT = 'quiescent'
    APOPTOTIC_EARLY = 'apoptotic_early'
    APOPTOTIC_LATE = 'apoptotic_late'
    NECROTIC_EARLY = 'necrotic_early'
    NECROTIC_LATE = 'necrotic_late'
    AUTOTIC_EARLY = 'autotic_early'
    AUTOTIC_LATE = 'autotic_late'


class Region(IntEnum):
    """
    Sub-cellular compartment codes stored on the lattice.

    UNDEFINED marks Background voxels, DEFAULT is the cytoplasm.
    """
    UNDEFINED = 0
    DEFAULT = 1
    NUCLEUS = 2


class Term(str, Enum):
    ADHESION = 'adhesion'
    VOLUME = 'volume'
    SURFACE = 'surface'
    HEIGHT = 'height'
    PERSISTENCE = 'persistence'
    JUNCTION = 'junction'
    SUBSTRATE = 'substrate'


# The first phase entered for each state
INITIAL_PHASE = {
    CellState.PROLIFERATIVE: Phase.PROLIFERATIVE_G1,
    CellState.QUIESCENT: Phase.QUIESCENT,
    CellState.APOPTOTIC: Phase.APOPTOTIC_EARLY,
    CellState.NECROTIC: Phase.NECROTIC_EARLY,
    CellState.AUTOTIC: Phase.AUTOTIC_EARLY,
}

PHASE_STATE = {
    Phase.PROLIFERATIVE_G1: CellState.PROLIFERATIVE,
    Phase.PROLIFERATIVE_S: CellState.PROLIFERATIVE,
    Phase.PROLIFERATIVE_G2: CellState.PROLIFERATIVE,
    Phase.PROLIFERATIVE_M: CellState.PROLIFERATIVE,
    Phase.QUIESCENT: CellState.QUIESCENT,
    Phase.APOPTOTIC_EARLY: CellState.APOPTOTIC,
    Phase.APOPTOTIC_LATE: CellState.APOPTOTIC,
    Phase.NECROTIC_EARLY: CellState.NECROTIC,
    Phase.NECROTIC_LATE: CellState.NECROTIC,
    Phase.AUTOTIC_EARLY: CellState.AUTOTIC,
    Phase.AUTOTIC_LATE: CellState.AUTOTIC,
}


def get_region(region: str | int | Region) -> Region:
    """
    Resolve a region given by name (as used in configuration files) or code.
    """
    if isinstance(region, str):
        return Region[region.upper()]
    return Region(region)
