"""Ordered collection of species and the decay tables derived from it.

The `ParticleList` owns the species of a hadron resonance gas model. It keeps
them in a well-defined order (see `.SortMode`), provides lookup by position
and by identifier, generates antiparticles, and runs the
`.DecayGraphResolver` to obtain the feeddown tables that statistical
calculations use as precomputed coefficients.

A typical life cycle is:

>>> from feeddown import DecayChannel, ParticleList, Species
>>> pion = Species(name="pi0", pid=111, mass=0.135)
>>> rho = Species(
...     name="rho(770)0",
...     pid=113,
...     mass=0.775,
...     stable=False,
...     decays=[DecayChannel(branching_ratio=1.0, daughters=[111, 111])],
... )
>>> particles = ParticleList([rho, pion])
>>> [p.name for p in particles]
['pi0', 'rho(770)0']
>>> tables = particles.process_decays()
>>> tables.contributions[0]
{1: 2.0}
"""

import logging
from collections import Counter, abc
from typing import (
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    Union,
    overload,
)

import attr

from .classification import DecayType, Feeddown, classify_decay_type
from .conservation import check_species_conservation
from .particle import (
    ConfigurationError,
    DecayChannel,
    Species,
    create_antiparticle,
)
from .resolver import (
    ChargeSelection,
    ContributionTable,
    Cumulants,
    DecayGraphResolver,
    DecayTables,
    FinalState,
)
from .settings import SORT_KEYS, ParticleListSettings, SortMode


def _mirror_decays(
    template: Species, species_by_pid: Dict[int, Species]
) -> Tuple[DecayChannel, ...]:
    """Decay channels of the antiparticle of :code:`template`."""
    mirrored = []
    for channel in template.decays:
        daughters = []
        for pid in channel.daughters:
            daughter = species_by_pid.get(pid)
            if daughter is None:
                raise ConfigurationError(
                    f"Decay channel of {template.name} refers to unknown"
                    f" species {pid}"
                )
            if daughter.is_self_conjugate():
                daughters.append(pid)
            elif -pid in species_by_pid:
                daughters.append(-pid)
            else:
                raise ConfigurationError(
                    f"Cannot mirror decays of {template.name}: daughter"
                    f" {daughter.name} ({pid}) has no antiparticle"
                )
        mirrored.append(attr.evolve(channel, daughters=daughters))
    return tuple(mirrored)


class ParticleList(abc.Sequence):  # pylint: disable=too-many-public-methods
    """Ordered collection of `.Species` with an identifier index.

    On construction, species heavier than the
    `~.ParticleListSettings.mass_cutoff` are dropped, antiparticles are
    generated if requested, and the list is finalized.

    Mutations (`add_particle`, `remove_particle_at`, ...) invalidate the decay
    tables. Call `finalize` and `process_decays` again before relying on
    lookups and tables.
    """

    def __init__(
        self,
        species: Iterable[Species] = (),
        settings: Optional[ParticleListSettings] = None,
    ) -> None:
        if settings is None:
            settings = ParticleListSettings()
        self.__settings = settings
        self.__species: List[Species] = []
        self.__pid_to_index: Dict[int, int] = dict()
        self.__decay_types: List[DecayType] = []
        self.__is_finalized = False
        self.__tables: Optional[DecayTables] = None
        n_discarded = 0
        for item in species:
            if not isinstance(item, Species):
                raise TypeError(
                    f"Cannot add {item.__class__.__name__} to a"
                    f" {self.__class__.__name__}"
                )
            if item.mass > settings.mass_cutoff:
                n_discarded += 1
                continue
            self.__species.append(item)
        if n_discarded:
            logging.info(
                f"Discarded {n_discarded} species heavier than"
                f" {settings.mass_cutoff} GeV"
            )
        if settings.generate_antiparticles:
            self.generate_antiparticles()
        self.finalize()

    @overload
    def __getitem__(self, index: int) -> Species:
        ...

    @overload
    def __getitem__(self, index: slice) -> List[Species]:
        ...

    def __getitem__(
        self, index: Union[int, slice]
    ) -> Union[Species, List[Species]]:
        return self.__species[index]

    def __len__(self) -> int:
        return len(self.__species)

    def __iter__(self) -> Iterator[Species]:
        return iter(self.__species)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ParticleList):
            return self.__species == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        output = f"{self.__class__.__name__}(["
        for species in self:
            output += f"\n    {species},"
        output += "])"
        return output

    @property
    def settings(self) -> ParticleListSettings:
        return self.__settings

    @property
    def is_finalized(self) -> bool:
        return self.__is_finalized

    # Bookkeeping

    def add_particle(self, species: Species) -> None:
        """Append a species.

        No antiparticle is generated and the identifier index is not updated.
        Call `finalize` before relying on lookups.
        """
        if not isinstance(species, Species):
            raise TypeError(
                f"Cannot add {species.__class__.__name__} to a"
                f" {self.__class__.__name__}"
            )
        for existing in self.__species:
            if existing.pid == species.pid:
                logging.warning(
                    f"Species with PID {species.pid} already exists:"
                    f' "{existing.name}"'
                )
                break
        self.__species.append(species)
        self.__is_finalized = False
        self.__invalidate_tables()

    def remove_particle_at(self, index: int) -> Species:
        removed = self.__species.pop(index)
        self.__pid_to_index = dict()
        self.__is_finalized = False
        self.__invalidate_tables()
        return removed

    def finalize(self) -> None:
        """Sort the species, rebuild the identifier index and decay types.

        The sort is stable, so calling this method twice gives the same
        order.
        """
        pids = [species.pid for species in self.__species]
        duplicates = sorted(
            pid for pid, count in Counter(pids).items() if count > 1
        )
        if duplicates:
            raise ConfigurationError(
                f"Species identifiers have to be unique, got duplicates"
                f" {duplicates}"
            )
        self.__species.sort(key=SORT_KEYS[self.__settings.sort_mode])
        new_index = {species.pid: i for i, species in enumerate(self)}
        if new_index != self.__pid_to_index:
            self.__invalidate_tables()
        self.__pid_to_index = new_index
        self.__decay_types = [
            classify_decay_type(species) for species in self.__species
        ]
        self.__is_finalized = True

    def set_sort_mode(self, sort_mode: SortMode) -> None:
        """Change the order of the species.

        Decay tables that were already computed are recomputed for the new
        order.
        """
        had_tables = self.__tables is not None
        self.__settings = attr.evolve(self.__settings, sort_mode=sort_mode)
        self.finalize()
        if had_tables:
            self.process_decays()

    def generate_antiparticles(self) -> List[Species]:
        """Synthesize missing antiparticles, including their decays.

        An antiparticle is generated for every species that is not
        self-conjugate and whose negated identifier is not in the list yet.
        Each decay product is replaced by its antiparticle, which therefore
        has to exist (or be generated in the same pass) unless the product
        is self-conjugate.

        Returns:
            The generated antiparticles. The list is finalized afterwards.
        """
        species_by_pid = {species.pid: species for species in self}
        antiparticles = [
            create_antiparticle(species)
            for species in self
            if not species.is_self_conjugate()
            and -species.pid not in species_by_pid
        ]
        all_species = dict(species_by_pid)
        all_species.update({anti.pid: anti for anti in antiparticles})
        antiparticles = [
            attr.evolve(
                anti,
                decays=_mirror_decays(species_by_pid[-anti.pid], all_species),
            )
            for anti in antiparticles
        ]
        self.__species.extend(antiparticles)
        logging.info(f"Generated {len(antiparticles)} antiparticles")
        self.__invalidate_tables()
        self.finalize()
        return antiparticles

    def set_decays(
        self,
        records: Iterable[Tuple[int, DecayChannel]],
        mirror_to_antiparticles: Optional[bool] = None,
    ) -> None:
        """Attach decay channel records, keyed by the identifier of the parent.

        All channels of a listed parent are replaced, in record order. Unless
        disabled, the channels are mirrored to antiparticles that are not
        listed themselves, see `generate_antiparticles`.
        """
        if mirror_to_antiparticles is None:
            mirror_to_antiparticles = self.__settings.generate_antiparticles
        grouped: Dict[int, List[DecayChannel]] = dict()
        for parent_pid, channel in records:
            grouped.setdefault(int(parent_pid), []).append(channel)
        positions = {species.pid: i for i, species in enumerate(self)}
        unknown = sorted(pid for pid in grouped if pid not in positions)
        if unknown:
            raise ConfigurationError(
                f"Decay records refer to unknown parent species {unknown}"
            )
        for parent_pid, channels in grouped.items():
            position = positions[parent_pid]
            self.__species[position] = attr.evolve(
                self.__species[position], decays=channels
            )
        if mirror_to_antiparticles:
            species_by_pid = {species.pid: species for species in self}
            for parent_pid in grouped:
                parent = species_by_pid[parent_pid]
                anti_pid = -parent_pid
                if (
                    parent.is_self_conjugate()
                    or anti_pid in grouped
                    or anti_pid not in positions
                ):
                    continue
                position = positions[anti_pid]
                self.__species[position] = attr.evolve(
                    self.__species[position],
                    decays=_mirror_decays(parent, species_by_pid),
                )
        self.__invalidate_tables()

    def normalize_branching_ratios(self) -> None:
        """Rescale the branching ratios of each species to add up to one."""
        for i, species in enumerate(self.__species):
            total = species.total_branching_ratio()
            if not species.decays or total <= 0.0:
                continue
            self.__species[i] = attr.evolve(
                species,
                decays=[channel.normalized(total) for channel in species.decays],
            )
        self.__invalidate_tables()

    def restore_branching_ratios(self) -> None:
        """Reset all branching ratios to their original values."""
        for i, species in enumerate(self.__species):
            self.__species[i] = attr.evolve(
                species,
                decays=[channel.restored() for channel in species.decays],
            )
        self.__invalidate_tables()

    def fill_decay_properties(self) -> None:
        """Set the mass threshold of every decay channel.

        The threshold is the sum of the masses of the daughters.
        """
        self.check_referential_integrity()
        species_by_pid = {species.pid: species for species in self}
        for i, species in enumerate(self.__species):
            self.__species[i] = attr.evolve(
                species,
                decays=[
                    attr.evolve(
                        channel,
                        threshold=sum(
                            species_by_pid[pid].mass
                            for pid in channel.daughters
                        ),
                    )
                    for channel in species.decays
                ],
            )

    # Lookup

    def find(self, pid: int) -> Species:
        """Get the species with a certain identifier.

        The identifier has to be valid: unlike `pid_to_index`, this method
        raises a `KeyError` if there is no such species in the (finalized)
        list.
        """
        if pid not in self.__pid_to_index:
            message = f"No species with PID {pid}"
            if not self.__is_finalized:
                message += " (particle list has not been finalized)"
            raise KeyError(message)
        return self.__species[self.__pid_to_index[pid]]

    def pid_to_index(self, pid: int) -> int:
        """0-based position of a species, or :code:`-1` if not found."""
        return self.__pid_to_index.get(pid, -1)

    def index_to_pid(self, index: int) -> int:
        """Identifier of the species at a position, or :code:`0`."""
        if 0 <= index < len(self):
            return self.__species[index].pid
        return 0

    def name_from_pid(self, pid: int) -> str:
        index = self.pid_to_index(pid)
        if index < 0:
            return "???"
        return self.__species[index].name

    def decay_type(self, index: int) -> DecayType:
        return self.decay_types[index]

    @property
    def decay_types(self) -> Tuple[DecayType, ...]:
        if not self.__is_finalized:
            raise RuntimeError(
                "Decay types are outdated, call finalize() first"
            )
        return tuple(self.__decay_types)

    @property
    def has_baryons(self) -> bool:
        return any(species.baryon_number != 0 for species in self)

    @property
    def has_charged(self) -> bool:
        return any(species.charge != 0 for species in self)

    @property
    def has_strange(self) -> bool:
        return any(species.strangeness != 0 for species in self)

    @property
    def has_charmed(self) -> bool:
        return any(species.charmness != 0 for species in self)

    # Validation

    def check_decay_charges_conservation(self, index: int) -> bool:
        """Check whether all decays of a species conserve B, Q, S, and C."""
        species_by_pid = {species.pid: species for species in self}
        return check_species_conservation(self.__species[index], species_by_pid)

    def check_charges_conservation(self) -> List[bool]:
        return [
            self.check_decay_charges_conservation(i) for i in range(len(self))
        ]

    def find_missing_daughters(self) -> Dict[int, Set[int]]:
        """Identifiers of decay products that are not in the list.

        Keys are the identifiers of the decaying species.
        """
        known = {species.pid for species in self}
        missing: Dict[int, Set[int]] = dict()
        for species in self:
            for channel in species.decays:
                unknown = {pid for pid in channel.daughters if pid not in known}
                if unknown:
                    missing.setdefault(species.pid, set()).update(unknown)
        return missing

    def check_referential_integrity(self) -> None:
        missing = self.find_missing_daughters()
        if missing:
            details = ", ".join(
                f"{self.name_from_pid(parent)} ({parent}) -> {sorted(pids)}"
                for parent, pids in sorted(missing.items())
            )
            raise ConfigurationError(
                f"Decay products missing from the particle list: {details}"
            )

    # Decay tables

    def process_decays(
        self, should_stop: Optional[Callable[[], bool]] = None
    ) -> DecayTables:
        """Resolve the decay cascades of all species.

        The list is finalized first if needed. The resulting `.DecayTables`
        stay available through the accessors of this class until the list is
        modified.

        Args:
            should_stop: Optional callback for cooperative cancellation, see
                `.DecayGraphResolver.resolve`.
        """
        if not self.__is_finalized:
            self.finalize()
        self.check_referential_integrity()
        resolver = DecayGraphResolver(
            species=self.__species,
            pid_to_index=self.__pid_to_index,
            decay_types=self.__decay_types,
            max_final_states=self.__settings.max_final_states,
        )
        self.__tables = resolver.resolve(should_stop)
        return self.__tables

    @property
    def decay_tables(self) -> DecayTables:
        if self.__tables is None:
            raise RuntimeError(
                "Decay tables are not available, call process_decays() first"
            )
        return self.__tables

    @property
    def decay_contributions(self) -> ContributionTable:
        return self.decay_tables.contributions

    @property
    def decay_contributions_by_feeddown(
        self,
    ) -> Dict[Feeddown, ContributionTable]:
        return self.decay_tables.contributions_by_feeddown

    @property
    def decay_cumulants(self) -> Tuple[Dict[int, Cumulants], ...]:
        return self.decay_tables.cumulants

    @property
    def decay_number_distributions(
        self,
    ) -> Tuple[Dict[int, Tuple[float, ...]], ...]:
        return self.decay_tables.number_distributions

    @property
    def final_state_distributions(self) -> Tuple[Tuple[FinalState, ...], ...]:
        return self.decay_tables.final_state_distributions

    @property
    def charged_cumulants(
        self,
    ) -> Dict[ChargeSelection, Tuple[Cumulants, ...]]:
        return self.decay_tables.charged_cumulants

    @property
    def cyclic_species(self) -> Sequence[int]:
        return sorted(self.decay_tables.cyclic_species)

    def __invalidate_tables(self) -> None:
        self.__tables = None
