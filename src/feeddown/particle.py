"""Immutable containers for particle species and their decay channels.

A `Species` holds the intrinsic properties of one particle species: its mass,
width, the additive charges that enter conservation checks, a stability flag,
and an ordered tuple of `DecayChannel` instances. Both classes are frozen, so
any modification (normalizing branching ratios, mirroring decays onto an
antiparticle, ...) results in new instances that replace the old ones in a
`.ParticleList`.
"""

import re
from typing import Any, Iterable, Optional, SupportsFloat, Tuple

import attr
from attr.validators import instance_of

try:
    from IPython.lib.pretty import PrettyPrinter
except ImportError:
    PrettyPrinter = Any


class ConfigurationError(ValueError):
    """Species or decay records that do not form a consistent particle list."""


def _to_float(value: SupportsFloat) -> float:
    float_value = float(value)
    if float_value == -0.0:
        float_value = 0.0
    return float_value


def _to_daughters(value: Iterable[int]) -> Tuple[int, ...]:
    return tuple(int(pid) for pid in value)


def _to_decays(value: Iterable["DecayChannel"]) -> Tuple["DecayChannel", ...]:
    return tuple(value)


@attr.s(frozen=True, kw_only=True)
class DecayChannel:
    """One decay mode of a species.

    The effective `branching_ratio` is the value that enters all decay
    computations. The `original_branching_ratio` keeps the value the channel
    was created with, so that normalization can be reverted.
    """

    branching_ratio: float = attr.ib(converter=_to_float)
    daughters: Tuple[int, ...] = attr.ib(converter=_to_daughters)
    original_branching_ratio: float = attr.ib(converter=_to_float)
    released_angular_momentum: int = attr.ib(
        default=0, validator=instance_of(int)
    )
    threshold: float = attr.ib(default=0.0, converter=_to_float)

    @original_branching_ratio.default
    def __default_original(self) -> float:
        return self.branching_ratio

    @branching_ratio.validator
    def __check_non_negative(  # type: ignore  # pylint: disable=no-self-use,unused-argument
        self, _: attr.Attribute, value: float
    ) -> None:
        if value < 0.0:
            raise ValueError(f"Branching ratio cannot be negative: {value}")

    @daughters.validator
    def __check_not_empty(  # type: ignore  # pylint: disable=no-self-use,unused-argument
        self, _: attr.Attribute, value: Tuple[int, ...]
    ) -> None:
        if not value:
            raise ValueError("A decay channel needs at least one daughter")

    def multiplicity(self, pid: int) -> int:
        return self.daughters.count(pid)

    def normalized(self, total: float) -> "DecayChannel":
        return attr.evolve(self, branching_ratio=self.branching_ratio / total)

    def restored(self) -> "DecayChannel":
        return attr.evolve(
            self, branching_ratio=self.original_branching_ratio
        )


@attr.s(frozen=True, repr=True, kw_only=True)
class Species:  # pylint: disable=too-many-instance-attributes
    """Immutable description of a particle species.

    The `~Species.pid` is the identifier of the species within a
    `.ParticleList` and follows the PDG numbering scheme, with antiparticles
    carrying a negative sign. The decay type (stable, weak, electromagnetic,
    strong) is not stored here, but derived from these properties with
    `.classify_decay_type`.

    Quark content for the classification is given by
    `~Species.absolute_strangeness` and `~Species.absolute_charmness`. They
    default to the absolute values of the net quantum numbers, which is wrong
    for hidden strangeness or charm (for instance :math:`\\phi(1020)`), so
    they can be set explicitly.
    """

    name: str = attr.ib(validator=instance_of(str))
    pid: int = attr.ib(validator=instance_of(int))
    mass: float = attr.ib(converter=_to_float)
    width: float = attr.ib(default=0.0, converter=_to_float)
    baryon_number: int = attr.ib(default=0, validator=instance_of(int))
    charge: int = attr.ib(default=0, validator=instance_of(int))
    strangeness: int = attr.ib(default=0, validator=instance_of(int))
    charmness: int = attr.ib(default=0, validator=instance_of(int))
    absolute_strangeness: float = attr.ib(converter=_to_float)
    absolute_charmness: float = attr.ib(converter=_to_float)
    stable: bool = attr.ib(default=True, validator=instance_of(bool))
    decays: Tuple[DecayChannel, ...] = attr.ib(
        factory=tuple, converter=_to_decays
    )

    @absolute_strangeness.default
    def __default_absolute_strangeness(self) -> float:
        return abs(self.strangeness)

    @absolute_charmness.default
    def __default_absolute_charmness(self) -> float:
        return abs(self.charmness)

    @mass.validator
    def __check_mass(  # type: ignore  # pylint: disable=no-self-use,unused-argument
        self, _: attr.Attribute, value: float
    ) -> None:
        if value < 0.0:
            raise ValueError(f"Mass cannot be negative: {value}")

    def __neg__(self) -> "Species":
        return create_antiparticle(self)

    def is_self_conjugate(self) -> bool:
        return (
            self.baryon_number == 0
            and self.charge == 0
            and self.strangeness == 0
            and self.charmness == 0
        )

    def total_branching_ratio(self) -> float:
        return sum(channel.branching_ratio for channel in self.decays)

    def _repr_pretty_(self, p: PrettyPrinter, cycle: bool) -> None:
        class_name = type(self).__name__
        if cycle:
            p.text(f"{class_name}(...)")
        else:
            with p.group(indent=2, open=f"{class_name}("):
                for field in attr.fields(type(self)):
                    value = getattr(self, field.name)
                    if value != field.default:
                        p.breakable()
                        p.text(f"{field.name}=")
                        p.pretty(value)
                        p.text(",")
            p.breakable()
            p.text(")")


def create_antiparticle(
    template_species: Species,
    new_name: Optional[str] = None,
    decays: Iterable[DecayChannel] = (),
) -> Species:
    """Create the antiparticle of a species.

    The identifier and all additive charges are negated. Decay channels are
    **not** mirrored here, because that requires knowing which daughters have
    an antiparticle. Use `.ParticleList.generate_antiparticles` for that, or
    provide the mirrored channels through :code:`decays`.
    """
    return attr.evolve(
        template_species,
        name=new_name if new_name else antiparticle_name(template_species),
        pid=-template_species.pid,
        baryon_number=-template_species.baryon_number,
        charge=-template_species.charge,
        strangeness=-template_species.strangeness,
        charmness=-template_species.charmness,
        decays=tuple(decays),
    )


_CHARGE_SUFFIX = re.compile(r"(\++|-+)$")


def antiparticle_name(species: Species) -> str:
    """Generate the name of the antiparticle of a species.

    Charged mesons swap the charge signs at the end of their name (``pi+``
    becomes ``pi-``), everything else receives an ``anti-`` prefix, or loses
    it if the name already has one.

    >>> pion = Species(name="pi+", pid=211, mass=0.13957, charge=1)
    >>> antiparticle_name(pion)
    'pi-'
    >>> proton = Species(name="p", pid=2212, mass=0.938, charge=1, baryon_number=1)
    >>> antiparticle_name(proton)
    'anti-p'
    """
    name = species.name
    if name.startswith("anti-"):
        return name[len("anti-") :]
    if species.baryon_number == 0 and species.charge != 0:
        matches = _CHARGE_SUFFIX.search(name)
        if matches is not None:
            signs = matches[1]
            flipped = signs.translate(str.maketrans("+-", "-+"))
            return name[: matches.start()] + flipped
    return "anti-" + name
