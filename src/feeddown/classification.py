"""Decay-type classification and feeddown inclusiveness levels.

Each species decays through one of the interactions in `DecayType`. Which
decays are followed when resolving feeddown is controlled by a `Feeddown`
level. Both enums are ordered, so they can be compared with :code:`<` and
:code:`<=`.
"""

from enum import IntEnum
from typing import FrozenSet

from .particle import Species


class DecayType(IntEnum):
    STABLE = 0
    WEAK = 1
    ELECTROMAGNETIC = 2
    STRONG = 3


class Feeddown(IntEnum):
    """Feeddown classes, ordered by increasing inclusiveness.

    `Feeddown.WEAK` follows weak decays only, `Feeddown.ELECTROMAGNETIC`
    follows weak and electromagnetic decays, and `Feeddown.STRONG` follows all
    decays. `Feeddown.NONE` follows nothing, so only primordial yields remain.
    """

    NONE = 0
    WEAK = 1
    ELECTROMAGNETIC = 2
    STRONG = 3

    def includes(self, decay_type: DecayType) -> bool:
        if decay_type == DecayType.STABLE:
            return False
        return int(decay_type) <= int(self)


# Identifiers are compared by absolute value, so antiparticles are covered.
KNOWN_STABLE: FrozenSet[int] = frozenset(
    {
        11,  # e
        12,  # nu(e)
        13,  # mu
        14,  # nu(mu)
        16,  # nu(tau)
        22,  # gamma
        211,  # pi+
        321,  # K+
        2112,  # n
        2212,  # p
        1000010020,  # d
        1000010030,  # t
        1000020030,  # He3
        1000020040,  # He4
    }
)
KNOWN_WEAK: FrozenSet[int] = frozenset(
    {
        130,  # K(L)0
        310,  # K(S)0
        311,  # K0
        411,  # D+
        421,  # D0
        431,  # D(s)+
        3112,  # Sigma-
        3122,  # Lambda
        3222,  # Sigma+
        3312,  # Xi-
        3322,  # Xi0
        3334,  # Omega-
        4122,  # Lambda(c)+
        4132,  # Xi(c)0
        4232,  # Xi(c)+
        4332,  # Omega(c)0
        1010010030,  # hypertriton
    }
)
KNOWN_ELECTROMAGNETIC: FrozenSet[int] = frozenset(
    {
        111,  # pi0
        221,  # eta
        3212,  # Sigma0
    }
)


def classify_decay_type(species: Species) -> DecayType:
    """Determine through which interaction a species decays.

    Known long-lived species are looked up by identifier first. Any other
    species is strongly decaying if its stability flag is false. A species
    flagged stable is considered weakly decaying if it contains strange or
    charm quarks, and stable otherwise.
    """
    pid = abs(species.pid)
    if pid in KNOWN_STABLE:
        return DecayType.STABLE
    if pid in KNOWN_WEAK:
        return DecayType.WEAK
    if pid in KNOWN_ELECTROMAGNETIC:
        return DecayType.ELECTROMAGNETIC
    if not species.stable:
        return DecayType.STRONG
    if species.absolute_strangeness != 0 or species.absolute_charmness != 0:
        return DecayType.WEAK
    return DecayType.STABLE
