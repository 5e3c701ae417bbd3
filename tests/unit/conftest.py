# pylint: disable=redefined-outer-name
import logging
from typing import Callable

import pytest

from feeddown import DecayChannel, ParticleList, ParticleListSettings, Species

logging.basicConfig(level=logging.ERROR)


def _channel(branching_ratio: float, *daughters: int) -> DecayChannel:
    return DecayChannel(branching_ratio=branching_ratio, daughters=daughters)


def create_hadron_species():
    return [
        Species(name="gamma", pid=22, mass=0.0),
        Species(name="pi0", pid=111, mass=0.135),
        Species(name="pi+", pid=211, mass=0.1396, charge=1),
        Species(name="K+", pid=321, mass=0.4937, charge=1, strangeness=1),
        Species(name="K0", pid=311, mass=0.4976, strangeness=1),
        Species(
            name="eta",
            pid=221,
            mass=0.5479,
            decays=[
                _channel(0.39, 22, 22),
                _channel(0.33, 111, 111, 111),
                _channel(0.23, 211, -211, 111),
            ],
        ),
        Species(
            name="rho(770)0",
            pid=113,
            mass=0.775,
            width=0.149,
            stable=False,
            decays=[_channel(1.0, 211, -211)],
        ),
        Species(
            name="omega(782)",
            pid=223,
            mass=0.7827,
            width=0.0085,
            stable=False,
            decays=[
                _channel(0.892, 211, -211, 111),
                _channel(0.084, 111, 22),
                _channel(0.0153, 211, -211),
            ],
        ),
        Species(
            name="K*(892)+",
            pid=323,
            mass=0.8917,
            width=0.0508,
            charge=1,
            strangeness=1,
            stable=False,
            decays=[_channel(1 / 3, 321, 111), _channel(2 / 3, 311, 211)],
        ),
        Species(
            name="p", pid=2212, mass=0.9383, charge=1, baryon_number=1
        ),
        Species(name="n", pid=2112, mass=0.9396, baryon_number=1),
        Species(
            name="Lambda",
            pid=3122,
            mass=1.1157,
            baryon_number=1,
            strangeness=-1,
            decays=[_channel(0.639, 2212, -211), _channel(0.358, 2112, 111)],
        ),
        Species(
            name="Sigma0",
            pid=3212,
            mass=1.1926,
            baryon_number=1,
            strangeness=-1,
            decays=[_channel(1.0, 3122, 22)],
        ),
        Species(
            name="Delta(1232)+",
            pid=2214,
            mass=1.232,
            width=0.117,
            charge=1,
            baryon_number=1,
            stable=False,
            decays=[_channel(0.67, 2212, 111), _channel(0.33, 2112, 211)],
        ),
        Species(
            name="Sigma(1385)+",
            pid=3224,
            mass=1.3828,
            width=0.036,
            charge=1,
            baryon_number=1,
            strangeness=-1,
            stable=False,
            decays=[_channel(0.87, 3122, 211), _channel(0.117, 3212, 211)],
        ),
    ]


@pytest.fixture()
def hadron_gas() -> ParticleList:
    """Small hadron list; antiparticles are generated on construction."""
    return ParticleList(create_hadron_species())


@pytest.fixture(scope="session")
def processed_hadron_gas() -> ParticleList:
    particles = ParticleList(create_hadron_species())
    particles.normalize_branching_ratios()
    particles.process_decays()
    return particles


@pytest.fixture()
def rho_to_pions() -> ParticleList:
    """A pion and a rho decaying into two pions."""
    return ParticleList(
        [
            Species(name="pi", pid=111, mass=0.138),
            Species(
                name="rho",
                pid=113,
                mass=0.775,
                stable=False,
                decays=[_channel(1.0, 111, 111)],
            ),
        ]
    )


@pytest.fixture()
def three_generation_chain() -> ParticleList:
    """A -> B + B, B -> C, each with branching ratio one."""
    return ParticleList(
        [
            Species(
                name="A",
                pid=9001,
                mass=3.0,
                stable=False,
                decays=[_channel(1.0, 9002, 9002)],
            ),
            Species(
                name="B",
                pid=9002,
                mass=1.0,
                stable=False,
                decays=[_channel(1.0, 9003)],
            ),
            Species(name="C", pid=9003, mass=0.2),
        ]
    )


@pytest.fixture()
def cyclic_decays() -> ParticleList:
    """A -> B and B -> A."""
    return ParticleList(
        [
            Species(
                name="A",
                pid=9101,
                mass=1.0,
                stable=False,
                decays=[_channel(1.0, 9102)],
            ),
            Species(
                name="B",
                pid=9102,
                mass=1.5,
                stable=False,
                decays=[_channel(1.0, 9101)],
            ),
        ]
    )


@pytest.fixture()
def make_particle_list() -> Callable[..., ParticleList]:
    def create(*species: Species, **settings) -> ParticleList:
        return ParticleList(species, ParticleListSettings(**settings))

    return create


@pytest.fixture(scope="session")
def output_dir(tmp_path_factory) -> str:
    return str(tmp_path_factory.mktemp("output")) + "/"
