"""Default configuration for a `.ParticleList`."""

from enum import Enum, auto
from typing import Callable, Dict, Tuple

import attr
from attr.validators import instance_of

from .particle import Species


class SortMode(Enum):
    """Order in which a `.ParticleList` arranges its species."""

    BY_MASS = auto()
    BY_MASS_AND_PID = auto()
    BY_BARYON_MASS_AND_PID = auto()


def _by_mass(species: Species) -> Tuple:
    return (species.mass,)


def _by_mass_and_pid(species: Species) -> Tuple:
    # a particle is placed right before its antiparticle
    return (species.mass, abs(species.pid), species.pid < 0)


def _by_baryon_mass_and_pid(species: Species) -> Tuple:
    return (
        abs(species.baryon_number),
        species.baryon_number < 0,
        species.mass,
        abs(species.pid),
        species.pid < 0,
    )


SORT_KEYS: Dict[SortMode, Callable[[Species], Tuple]] = {
    SortMode.BY_MASS: _by_mass,
    SortMode.BY_MASS_AND_PID: _by_mass_and_pid,
    SortMode.BY_BARYON_MASS_AND_PID: _by_baryon_mass_and_pid,
}

DEFAULT_MAX_FINAL_STATES = 1000


def _check_positive(  # pylint: disable=unused-argument
    instance: object, attribute: attr.Attribute, value: float
) -> None:
    if value <= 0:
        raise ValueError(f"{attribute.name} has to be positive, not {value}")


@attr.s(frozen=True, kw_only=True)
class ParticleListSettings:
    """Construction settings of a `.ParticleList`.

    Args:
        generate_antiparticles: Synthesize the antiparticles of all species
            that are not self-conjugate and have no antiparticle in the list.
        mass_cutoff: Discard species with a mass above this value (in GeV).
        sort_mode: Ordering applied by `.ParticleList.finalize`.
        max_final_states: Maximal number of distinct outcomes kept per
            final-state distribution.
    """

    generate_antiparticles: bool = attr.ib(
        default=True, validator=instance_of(bool)
    )
    mass_cutoff: float = attr.ib(
        default=1.0e9, converter=float, validator=_check_positive
    )
    sort_mode: SortMode = attr.ib(
        default=SortMode.BY_MASS_AND_PID, validator=instance_of(SortMode)
    )
    max_final_states: int = attr.ib(
        default=DEFAULT_MAX_FINAL_STATES,
        validator=[instance_of(int), _check_positive],
    )
