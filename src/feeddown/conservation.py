"""Additive quantum number checks for decay channels.

A rule takes the quantum numbers of the decaying species and those of its
daughters and returns whether the quantum number is conserved. Rules for
additive quantum numbers are created with the `additive_quantum_number_rule`
decorator, which only needs the name of a `.Species` attribute.
"""

import logging
from typing import Any, Callable, Dict, List, Sequence

from .particle import Species


def additive_quantum_number_rule(
    quantum_number: str,
) -> Callable[[Any], Any]:
    r"""Class decorator for creating an additive conservation rule.

    .. math:: q_{parent} = \sum q_{daughters}

    Args:
        quantum_number: Name of the `.Species` attribute to which the additive
            conservation check applies, for instance :code:`"charge"`.
    """

    def decorator(rule_class: Any) -> Any:
        def new_call(  # type: ignore
            self,  # pylint: disable=unused-argument
            parent: Species,
            daughters: Sequence[Species],
        ) -> bool:
            return getattr(parent, quantum_number) == sum(
                getattr(daughter, quantum_number) for daughter in daughters
            )

        rule_class.__call__ = new_call
        rule_class.quantum_number = quantum_number
        rule_class.__doc__ = (
            f"""Decorated via `{additive_quantum_number_rule.__name__}`.\n\n"""
            f"""Check for `~.Species.{quantum_number}` conservation."""
        )
        return rule_class

    return decorator


@additive_quantum_number_rule("baryon_number")
class BaryonNumberConservation:
    pass


@additive_quantum_number_rule("charge")
class ChargeConservation:
    pass


@additive_quantum_number_rule("strangeness")
class StrangenessConservation:
    pass


@additive_quantum_number_rule("charmness")
class CharmConservation:
    pass


CONSERVATION_RULES = (
    BaryonNumberConservation(),
    ChargeConservation(),
    StrangenessConservation(),
    CharmConservation(),
)


def find_violations(
    parent: Species, daughters: Sequence[Species]
) -> List[str]:
    """Names of the additive quantum numbers that a decay violates."""
    return [
        rule.quantum_number
        for rule in CONSERVATION_RULES
        if not rule(parent, daughters)
    ]


def check_channel_conservation(
    parent: Species, daughters: Sequence[Species]
) -> bool:
    violations = find_violations(parent, daughters)
    if violations:
        logging.debug(
            f"Decay {parent.name} -> {[d.name for d in daughters]}"
            f" violates {violations}"
        )
    return not violations


def check_species_conservation(
    parent: Species, species_by_pid: Dict[int, Species]
) -> bool:
    """Check all decay channels of a species.

    Daughters are looked up in :code:`species_by_pid`. A daughter that cannot
    be found counts as a violation.
    """
    conserved = True
    for channel in parent.decays:
        if not all(pid in species_by_pid for pid in channel.daughters):
            logging.debug(
                f"Decay channel of {parent.name} has unknown daughters"
                f" {channel.daughters}"
            )
            conserved = False
            continue
        daughters = [species_by_pid[pid] for pid in channel.daughters]
        if not check_channel_conservation(parent, daughters):
            conserved = False
    return conserved
