from typing import Dict, Type

from PottsTools.hamiltonian.base import Hamiltonian
from PottsTools.hamiltonian.adhesion import AdhesionHamiltonian
from PottsTools.hamiltonian.volume import VolumeHamiltonian
from PottsTools.hamiltonian.surface import SurfaceHamiltonian
from PottsTools.hamiltonian.height import HeightHamiltonian
from PottsTools.hamiltonian.persistence import PersistenceHamiltonian
from PottsTools.hamiltonian.junction import JunctionHamiltonian
from PottsTools.hamiltonian.substrate import SubstrateHamiltonian
from PottsTools.util.enums import Term

HAMILTONIANS: Dict[Term, Type[Hamiltonian]] = {
    Term.ADHESION: AdhesionHamiltonian,
    Term.VOLUME: VolumeHamiltonian,
    Term.SURFACE: SurfaceHamiltonian,
    Term.HEIGHT: HeightHamiltonian,
    Term.PERSISTENCE: PersistenceHamiltonian,
    Term.JUNCTION: JunctionHamiltonian,
    Term.SUBSTRATE: SubstrateHamiltonian,
}


def get_hamiltonian(term: Term | str, potts) -> Hamiltonian:
    return HAMILTONIANS[Term(term)](potts)
