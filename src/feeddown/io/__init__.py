"""Serialization module for `feeddown`.

The `.io` module reads and writes particle lists from and to YAML or JSON
files. A file contains a list of ``particles`` (species records) and,
separately, a list of ``decays`` (decay channel records keyed by the
identifier of the ``parent``)::

    particles:
      - name: pi0
        pid: 111
        mass: 0.135
      - name: rho(770)0
        pid: 113
        mass: 0.775
        stable: false
    decays:
      - parent: 113
        branching_ratio: 1.0
        daughters: [111, 111]

Files are validated against a JSON schema before they are built.
"""

import json
from pathlib import Path
from typing import Callable, Dict, Optional, TextIO

import yaml

from feeddown.particle import Species
from feeddown.particle_list import ParticleList
from feeddown.settings import ParticleListSettings

from . import _dict


def asdict(instance: object) -> dict:
    if isinstance(instance, Species):
        return _dict.from_species(instance)
    if isinstance(instance, ParticleList):
        return _dict.from_particle_list(instance)
    raise NotImplementedError(
        f"No conversion for dict available for class {instance.__class__.__name__}"
    )


def fromdict(
    definition: dict, settings: Optional[ParticleListSettings] = None
) -> object:
    keys = set(definition.keys())
    if "particles" in keys:
        return _dict.build_particle_list(definition, settings)
    if {"name", "pid", "mass"} <= keys:
        return _dict.build_species(definition)
    raise NotImplementedError(f"Could not determine type from keys {keys}")


class _BlockDumper(yaml.SafeDumper):
    """Indent list items and separate top-level sections by a blank line."""

    # pylint: disable=too-many-ancestors
    def increase_indent(self, flow=False, indentless=False):  # type: ignore
        return super().increase_indent(flow=flow, indentless=False)

    def write_line_break(self, data=None):  # type: ignore
        super().write_line_break(data)
        if len(self.indents) == 1:
            super().write_line_break()


def _read_yaml(stream: TextIO) -> dict:
    return yaml.load(stream, Loader=yaml.SafeLoader)


def _write_json(definition: dict, stream: TextIO) -> None:
    json.dump(definition, stream, indent=2)


def _write_yaml(definition: dict, stream: TextIO) -> None:
    yaml.dump(
        definition,
        stream,
        Dumper=_BlockDumper,
        sort_keys=False,
        default_flow_style=False,
    )


_READERS: Dict[str, Callable[[TextIO], dict]] = {
    "json": json.load,
    "yaml": _read_yaml,
    "yml": _read_yaml,
}
_WRITERS: Dict[str, Callable[[dict, TextIO], None]] = {
    "json": _write_json,
    "yaml": _write_yaml,
    "yml": _write_yaml,
}


def load(
    filename: str, settings: Optional[ParticleListSettings] = None
) -> object:
    """Read a `.ParticleList` or a `.Species` from a JSON or YAML file."""
    file_format = _file_format(filename)
    if file_format not in _READERS:
        raise NotImplementedError(
            f'No loader defined for file type "{file_format}"'
        )
    with open(filename) as stream:
        definition = _READERS[file_format](stream)
    return fromdict(definition, settings)


def write(instance: object, filename: str) -> None:
    file_format = _file_format(filename)
    if file_format not in _WRITERS:
        raise NotImplementedError(
            f'No writer defined for file type "{file_format}"'
        )
    definition = asdict(instance)
    with open(filename, "w") as stream:
        _WRITERS[file_format](definition, stream)


def _file_format(filename: str) -> str:
    suffix = Path(filename).suffix
    if not suffix:
        raise ValueError(f"No file extension in file {filename}")
    return suffix[1:].lower()
