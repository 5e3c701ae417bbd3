"""Resolve resonance decay feeddown for hadron resonance gas models.

`feeddown` turns a list of particle species and their decay channels into the
coefficients that statistical calculations need to account for resonance
decays:

  `feeddown.particle_list`
    ― the `.ParticleList` owns the species, keeps them sorted and indexed by
    identifier, and generates antiparticles.

  `feeddown.resolver`
    ― the `.DecayGraphResolver` walks the decay cascade of every species and
    computes mean feeddown contributions (per `.Feeddown` class), cumulants
    of the produced particle numbers, and full final-state distributions.

Species and decay channels can be created by hand (see `.particle`), from the
PDG database (see `.pdg`), or loaded from YAML/JSON files with `.io`.
"""

__all__ = [
    # Main modules
    "classification",
    "io",
    "particle",
    "particle_list",
    "resolver",
    # Main classes
    "ChargeSelection",
    "ConfigurationError",
    "DecayChannel",
    "DecayGraphResolver",
    "DecayProcessingCancelled",
    "DecayTables",
    "DecayType",
    "Feeddown",
    "FinalState",
    "ParticleList",
    "ParticleListSettings",
    "SortMode",
    "Species",
    # Facade functions
    "load_particle_list",
]

from typing import Optional

from . import classification, io, particle, particle_list, resolver
from .classification import DecayType, Feeddown
from .particle import ConfigurationError, DecayChannel, Species
from .particle_list import ParticleList
from .resolver import (
    ChargeSelection,
    DecayGraphResolver,
    DecayProcessingCancelled,
    DecayTables,
    FinalState,
)
from .settings import ParticleListSettings, SortMode


def load_particle_list(
    filename: str, settings: Optional[ParticleListSettings] = None
) -> ParticleList:
    """Load a `.ParticleList` from a YAML or JSON file.

    See `.io` for the file layout.
    """
    particles = io.load(filename, settings)
    if not isinstance(particles, ParticleList):
        raise TypeError(f"File {filename} does not define a particle list")
    return particles
