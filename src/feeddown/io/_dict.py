"""Serialization from and to a `dict`."""

import json
from os.path import dirname, realpath
from typing import Any, Dict, List, Optional, Tuple

import attr
import jsonschema

from feeddown.particle import DecayChannel, Species
from feeddown.particle_list import ParticleList
from feeddown.settings import ParticleListSettings

__SCHEMA_PATH = f"{dirname(realpath(__file__))}/particle-list.json"
with open(__SCHEMA_PATH) as __stream:
    __SCHEMA_PARTICLE_LIST = json.load(__stream)


def from_particle_list(particles: ParticleList) -> dict:
    output: Dict[str, Any] = {
        "particles": [from_species(species) for species in particles],
    }
    decays = [
        from_decay_channel(species.pid, channel)
        for species in particles
        for channel in species.decays
    ]
    if decays:
        output["decays"] = decays
    return output


def from_species(species: Species) -> dict:
    return attr.asdict(
        species,
        recurse=False,
        filter=lambda a, v: a.name != "decays" and a.default != v,
    )


def from_decay_channel(parent: int, channel: DecayChannel) -> dict:
    output: Dict[str, Any] = {
        "parent": parent,
        "branching_ratio": channel.branching_ratio,
        "daughters": list(channel.daughters),
    }
    if channel.original_branching_ratio != channel.branching_ratio:
        output["original_branching_ratio"] = channel.original_branching_ratio
    if channel.released_angular_momentum:
        output["released_angular_momentum"] = channel.released_angular_momentum
    if channel.threshold:
        output["threshold"] = channel.threshold
    return output


def validate_particle_list(instance: dict) -> None:
    jsonschema.validate(instance=instance, schema=__SCHEMA_PARTICLE_LIST)


def build_particle_list(
    definition: dict,
    settings: Optional[ParticleListSettings] = None,
    do_validate: bool = True,
) -> ParticleList:
    if do_validate:
        validate_particle_list(definition)
    particles = ParticleList(
        (build_species(item) for item in definition["particles"]),
        settings=settings,
    )
    records = build_decay_records(definition.get("decays", []))
    if records:
        particles.set_decays(records)
    return particles


def build_species(definition: dict) -> Species:
    return Species(**definition)


def build_decay_records(
    definitions: List[dict],
) -> List[Tuple[int, DecayChannel]]:
    records = []
    for item in definitions:
        channel_def = dict(item)
        parent = channel_def.pop("parent")
        records.append((parent, DecayChannel(**channel_def)))
    return records
