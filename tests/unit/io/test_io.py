# pylint: disable=redefined-outer-name
import json

import jsonschema
import pytest
import yaml

from feeddown import (
    ParticleList,
    ParticleListSettings,
    io,
    load_particle_list,
)
from feeddown.particle import Species


def test_not_implemented_errors(output_dir: str, hadron_gas: ParticleList):
    with pytest.raises(NotImplementedError):
        io.load(__file__)
    with pytest.raises(NotImplementedError):
        io.write(hadron_gas, output_dir + "test.py")
    with pytest.raises(ValueError):
        io.write(hadron_gas, output_dir + "no_file_extension")
    with pytest.raises(NotImplementedError):
        io.write(666, output_dir + "wont_work_anyway.yml")
    with pytest.raises(NotImplementedError):
        io.fromdict({"foo": "bar"})


@pytest.mark.parametrize("file_extension", ["json", "yml"])
def test_write_load(
    file_extension: str, output_dir: str, hadron_gas: ParticleList
):
    hadron_gas.normalize_branching_ratios()
    hadron_gas.fill_decay_properties()
    filename = output_dir + f"hadron_gas.{file_extension}"
    io.write(hadron_gas, filename)
    imported = io.load(filename)
    assert isinstance(imported, ParticleList)
    assert imported == hadron_gas
    assert imported is not hadron_gas
    assert load_particle_list(filename) == hadron_gas


def test_asdict(rho_to_pions: ParticleList):
    definition = io.asdict(rho_to_pions)
    assert definition == {
        "particles": [
            {
                "name": "pi",
                "pid": 111,
                "mass": 0.138,
                "absolute_strangeness": 0.0,
                "absolute_charmness": 0.0,
            },
            {
                "name": "rho",
                "pid": 113,
                "mass": 0.775,
                "absolute_strangeness": 0.0,
                "absolute_charmness": 0.0,
                "stable": False,
            },
        ],
        "decays": [
            {"parent": 113, "branching_ratio": 1.0, "daughters": [111, 111]}
        ],
    }
    assert io.fromdict(definition) == rho_to_pions


def test_species_fromdict():
    species = io.fromdict(
        {"name": "K+", "pid": 321, "mass": 0.494, "charge": 1}
    )
    assert species == Species(name="K+", pid=321, mass=0.494, charge=1)
    assert io.asdict(species)["charge"] == 1


def test_decays_are_mirrored(output_dir: str):
    filename = output_dir + "mirrored.yml"
    with open(filename, "w") as stream:
        stream.write(
            """
particles:
  - name: K+
    pid: 321
    mass: 0.4937
    charge: 1
    strangeness: 1
  - name: pi0
    pid: 111
    mass: 0.135
  - name: K*(892)+
    pid: 323
    mass: 0.8917
    charge: 1
    strangeness: 1
    stable: false
decays:
  - parent: 323
    branching_ratio: 1.0
    daughters: [321, 111]
"""
        )
    particles = load_particle_list(filename)
    assert particles.name_from_pid(-323) == "K*(892)-"
    assert particles.find(-323).decays[0].daughters == (-321, 111)

    settings = ParticleListSettings(generate_antiparticles=False)
    particles = load_particle_list(filename, settings)
    assert len(particles) == 3


def test_load_species_file(output_dir: str):
    filename = output_dir + "species.json"
    with open(filename, "w") as stream:
        json.dump({"name": "pi0", "pid": 111, "mass": 0.135}, stream)
    assert isinstance(io.load(filename), Species)
    with pytest.raises(TypeError):
        load_particle_list(filename)


@pytest.mark.parametrize(
    "definition",
    [
        {"particles": [{"name": "pi0", "pid": 111}]},
        {"particles": [{"name": "pi0", "pid": 111, "mass": -1.0}]},
        {"particles": [{"name": "pi0", "pid": 111, "mass": 0.1, "spin": 0}]},
        {
            "particles": [{"name": "pi0", "pid": 111, "mass": 0.135}],
            "decays": [{"parent": 111, "branching_ratio": 1.0, "daughters": []}],
        },
        {"particles": [], "channels": []},
    ],
)
def test_schema_validation(definition: dict):
    with pytest.raises(jsonschema.ValidationError):
        io.fromdict(definition)


def test_yaml_layout(output_dir: str, rho_to_pions: ParticleList):
    filename = output_dir + "layout.yaml"
    io.write(rho_to_pions, filename)
    with open(filename) as stream:
        content = stream.read()
    assert content.startswith("particles:")
    assert "  - name: pi\n" in content
    with open(filename) as stream:
        assert yaml.safe_load(stream) == io.asdict(rho_to_pions)
