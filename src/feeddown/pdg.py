"""Create `.Species` from the PDG database.

PDG info is imported from the `scikit-hep/particle
<https://github.com/scikit-hep/particle>`_ package. Only the properties that
enter the decay resolution are taken over; decay channels have to be
provided separately, for instance with `.ParticleList.set_decays`.
"""

import re
from typing import Iterable, List, Optional, Tuple

from particle import Particle as PdgDatabase

from .classification import (
    KNOWN_ELECTROMAGNETIC,
    KNOWN_STABLE,
    KNOWN_WEAK,
)
from .particle import DecayChannel, Species


def create_species(
    pid: int,
    stable: Optional[bool] = None,
    decays: Iterable[DecayChannel] = (),
) -> Species:
    """Create a `.Species` for a PDG identifier.

    Args:
        pid: PDG identifier of the species.
        stable: Stability flag. If `None`, species that are known to decay
            weakly or electromagnetically, or not at all, are flagged stable
            and all others unstable.
        decays: Decay channels of the species.
    """
    pdg_particle = PdgDatabase.from_pdgid(pid)
    if (
        pdg_particle.charge is None
        or not float(pdg_particle.charge).is_integer()
    ):
        raise ValueError(f"PDG instance has no integer charge:\n{pdg_particle}")
    if stable is None:
        stable = abs(pid) in KNOWN_STABLE | KNOWN_WEAK | KNOWN_ELECTROMAGNETIC
    strangeness, charmness = __compute_quark_numbers(pdg_particle)
    abs_strangeness, abs_charmness = __compute_quark_content(pdg_particle)
    return Species(
        name=str(pdg_particle.name),
        pid=int(pdg_particle.pdgid),
        mass=__convert_mass_width(pdg_particle.mass),
        width=__convert_mass_width(pdg_particle.width),
        charge=int(pdg_particle.charge),
        baryon_number=__compute_baryonnumber(pdg_particle),
        strangeness=strangeness,
        charmness=charmness,
        absolute_strangeness=abs_strangeness,
        absolute_charmness=abs_charmness,
        stable=stable,
        decays=decays,
    )


def load_pdg_species(pids: Iterable[int]) -> List[Species]:
    return [create_species(pid) for pid in pids]


def __convert_mass_width(value: Optional[float]) -> float:
    if value is None:
        return 0.0
    return float(value) / 1e3  # MeV to GeV


# cspell:ignore pdgid
def __compute_baryonnumber(pdg_particle: PdgDatabase) -> int:
    sign = 1 if int(pdg_particle.pdgid) > 0 else -1
    return int(sign * pdg_particle.pdgid.is_baryon)


def __compute_quark_numbers(pdg_particle: PdgDatabase) -> Tuple[int, int]:
    strangeness = 0
    charmness = 0
    if pdg_particle.pdgid.is_hadron:
        quark_content = __filter_quark_content(pdg_particle)
        strangeness = quark_content.count("S") - quark_content.count("s")
        charmness = quark_content.count("c") - quark_content.count("C")
    return strangeness, charmness


def __compute_quark_content(pdg_particle: PdgDatabase) -> Tuple[int, int]:
    if not pdg_particle.pdgid.is_hadron:
        return 0, 0
    quark_content = __filter_quark_content(pdg_particle).lower()
    return quark_content.count("s"), quark_content.count("c")


def __filter_quark_content(pdg_particle: PdgDatabase) -> str:
    matches = re.search(r"([dDuUsScCbBtT+-]{2,})", pdg_particle.quarks)
    if matches is None:
        return ""
    return matches[1]
