"""Reading the YAML files under a path that contain a marker token."""

from __future__ import annotations

import io
import os
import stat
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from fleetcore.result import ObjectIdentifier

_YAML_EXTENSIONS = (".yaml", ".yml")


def _round_trip_yaml() -> YAML:
    loader = YAML(typ="rt")
    loader.preserve_quotes = True
    loader.width = 4096
    return loader


def _extension(path: str) -> str:
    base = os.path.basename(path)
    dot = base.rfind(".")
    return base[dot:] if dot >= 0 else ""


def _walk_dir(directory: str) -> Iterator[str]:
    with os.scandir(directory) as entries:
        ordered = sorted(entries, key=lambda entry: entry.name)
    for entry in ordered:
        if entry.is_dir(follow_symlinks=False):
            yield from _walk_dir(entry.path)
        else:
            yield entry.path


def _load_documents(data: bytes) -> list[Any]:
    text = data.decode("utf-8")
    return [doc for doc in _round_trip_yaml().load_all(text) if doc is not None]


@dataclass
class YamlNode:
    """One YAML document, kept with its comments, and the file it came from."""

    document: Any
    path: str
    index: int = 0

    def identifier(self) -> ObjectIdentifier:
        """Return the API version, kind, name and namespace of the document."""
        if not isinstance(self.document, Mapping):
            raise ValueError(f"document {self.index} of {self.path} is not a mapping")
        metadata = self.document.get("metadata")
        if not isinstance(metadata, Mapping):
            metadata = {}
        return ObjectIdentifier(
            api_version=str(self.document.get("apiVersion") or ""),
            kind=str(self.document.get("kind") or ""),
            name=str(metadata.get("name") or ""),
            namespace=str(metadata.get("namespace") or ""),
        )

    def dump(self) -> str:
        """Serialise the document back to YAML, comments included."""
        stream = io.StringIO()
        _round_trip_yaml().dump(self.document, stream)
        return stream.getvalue()


@dataclass
class ScreeningLocalReader:
    """Reads only the YAML files that contain a given token.

    Files that contain the token but cannot be parsed are recorded, by
    relative path, in ``problem_files``.
    """

    token: str
    path: str
    problem_files: list[str] = field(default_factory=list)

    def read(self) -> list[YamlNode]:
        """Scan ``path`` recursively and parse every YAML file containing the token."""
        if not self.path:
            raise ValueError("must supply path to scan for files")
        root = os.path.abspath(self.path)
        if stat.S_ISDIR(os.lstat(root).st_mode):
            relative_to = root
            files = _walk_dir(root)
        else:
            relative_to = os.path.dirname(root)
            files = iter([root])

        needle = self.token.encode("utf-8")
        nodes: list[YamlNode] = []
        for file_path in files:
            if _extension(file_path) not in _YAML_EXTENSIONS:
                continue
            with open(file_path, "rb") as handle:
                data = handle.read()
            if needle not in data:
                continue
            relative = os.path.relpath(file_path, relative_to)
            try:
                documents = _load_documents(data)
            except (YAMLError, UnicodeDecodeError, ValueError):
                self.problem_files.append(relative)
                continue
            nodes.extend(
                YamlNode(document=doc, path=relative, index=index)
                for index, doc in enumerate(documents)
            )
        return nodes