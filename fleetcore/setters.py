"""Setting image fields marked with setter comments in YAML files."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, MutableMapping, MutableSequence, Optional

import yaml
from ruamel.yaml.scalarstring import (
    DoubleQuotedScalarString,
    ScalarString,
    SingleQuotedScalarString,
)

from fleetcore.filereader import ScreeningLocalReader, YamlNode
from fleetcore.result import (
    FileResult,
    ImageRef,
    InvalidReferenceError,
    ObjectIdentifier,
    Result,
    parse_reference,
)

SETTER_SHORT_HAND = "$imagescan"
SETTER_DEFINITION_PREFIX = "io.k8s.cli.setters."
K8S_CLI_EXTENSION_KEY = "x-k8s-cli"

_MAP_LINE_COMMENT = 2
_SEQ_LINE_COMMENT = 0

SetterCallback = Callable[[str, str, str], None]


@dataclass
class ImageScan:
    """The parts of an image scan that drive setter updates."""

    name: str = ""
    namespace: str = ""
    tag_name: str = ""
    latest_image: str = ""
    latest_digest: str = ""


@dataclass(frozen=True)
class Setter:
    """A named value to be written into the fields that refer to it."""

    name: str
    value: str


def setter_schema(name: str, value: str) -> dict[str, Any]:
    """Return a string schema carrying a setter extension with ``name`` and ``value``."""
    return {
        "type": "string",
        K8S_CLI_EXTENSION_KEY: {"setter": {"name": name, "value": value}},
    }


def _line_comment(container: Any, key: Any, slot: int) -> str:
    comments = getattr(container, "ca", None)
    if comments is None:
        return ""
    entry = comments.items.get(key)
    if not entry or len(entry) <= slot or entry[slot] is None:
        return ""
    text = getattr(entry[slot], "value", "") or ""
    return text.strip().split("\n", 1)[0]


def _resolve_ref(ref: str, schema: Mapping[str, Any]) -> Optional[dict]:
    if not ref.startswith("#/"):
        return None
    node: Any = schema
    for raw_part in ref[2:].split("/"):
        part = raw_part.replace("~1", "/").replace("~0", "~")
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return dict(node) if isinstance(node, Mapping) else None


def _field_schema(comment: str, setters_schema: Mapping[str, Any]) -> Optional[dict]:
    if not comment:
        return None
    try:
        parsed = json.loads(comment.lstrip("#"))
    except ValueError:
        return None
    if not isinstance(parsed, dict) or not parsed:
        return None
    if SETTER_SHORT_HAND in parsed:
        target = parsed.pop(SETTER_SHORT_HAND)
        parsed["$ref"] = f"#/definitions/{SETTER_DEFINITION_PREFIX}{target}"
    ref = parsed.get("$ref")
    if isinstance(ref, str) and ref:
        resolved = _resolve_ref(ref, setters_schema)
        if resolved is not None:
            return resolved
    return parsed


def _cli_setter(schema: Mapping[str, Any]) -> Optional[Setter]:
    extension = schema.get(K8S_CLI_EXTENSION_KEY)
    if extension is None:
        return None
    if not isinstance(extension, Mapping):
        raise ValueError(f"malformed {K8S_CLI_EXTENSION_KEY} extension: {extension!r}")
    setter = extension.get("setter")
    if setter is None:
        return None
    if not isinstance(setter, Mapping):
        raise ValueError(f"malformed setter in {K8S_CLI_EXTENSION_KEY} extension: {setter!r}")
    return Setter(name=str(setter.get("name", "")), value=str(setter.get("value", "")))


def _scalar_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _is_non_string(value: str) -> bool:
    try:
        return not isinstance(yaml.safe_load(value), str)
    except yaml.YAMLError:
        return False


def _styled(old: Any, new: str, schema: Mapping[str, Any]) -> Any:
    if isinstance(old, (DoubleQuotedScalarString, SingleQuotedScalarString)):
        return type(old)(new)
    if schema.get("type") and _is_non_string(new):
        return DoubleQuotedScalarString(new)
    if isinstance(old, ScalarString):
        return type(old)(new)
    return new


def _is_collection(value: Any) -> bool:
    return isinstance(value, (MutableMapping, MutableSequence)) and not isinstance(value, str)


@dataclass
class SetAllCallback:
    """Sets every scalar field whose comment refers to a setter in the schema.

    ``callback`` is called with the setter name, the old and the new value
    for each field that is set.
    """

    setters_schema: dict[str, Any] = field(default_factory=dict)
    callback: Optional[SetterCallback] = None

    def filter(self, node: Any) -> Any:
        """Apply the setters to a document (or a ``YamlNode``) in place and return it."""
        document = node.document if isinstance(node, YamlNode) else node
        self._accept(document)
        return node

    def _accept(self, container: Any) -> None:
        if isinstance(container, MutableMapping):
            for key in list(container.keys()):
                value = container[key]
                if _is_collection(value):
                    self._accept(value)
                else:
                    self._visit(container, key, _line_comment(container, key, _MAP_LINE_COMMENT))
        elif isinstance(container, MutableSequence):
            for index, value in enumerate(list(container)):
                if _is_collection(value):
                    self._accept(value)
                else:
                    self._visit(container, index, _line_comment(container, index, _SEQ_LINE_COMMENT))

    def _visit(self, container: Any, key: Any, comment: str) -> None:
        schema = _field_schema(comment, self.setters_schema)
        if schema is None:
            return
        setter = _cli_setter(schema)
        if setter is None:
            return
        old = container[key]
        container[key] = _styled(old, setter.value, schema)
        if self.callback is not None:
            self.callback(setter.name, _scalar_text(old), setter.value)


def _definitions(scans: Iterable[ImageScan]) -> tuple[dict[str, Any], dict[str, ImageRef]]:
    definitions: dict[str, Any] = {}
    image_refs: dict[str, ImageRef] = {}
    for scan in scans:
        image = scan.latest_image
        if not image:
            continue
        try:
            ref = parse_reference(image, scan.name, scan.namespace)
        except InvalidReferenceError as exc:
            raise InvalidReferenceError(f"encountered invalid image ref {image!r}: {exc}") from exc
        tag = ref.identifier
        name = image[: len(image) - len(tag) - 1]

        image_setter = scan.tag_name
        tag_setter = image_setter + ":tag"
        name_setter = image_setter + ":name"
        digest_setter = image_setter + ":digest"

        for setter, value in (
            (image_setter, image),
            (tag_setter, tag),
            (name_setter, name),
        ):
            definitions[SETTER_DEFINITION_PREFIX + setter] = setter_schema(setter, value)
            image_refs[setter] = ref
        definitions[SETTER_DEFINITION_PREFIX + digest_setter] = setter_schema(
            digest_setter, f"{image}@{scan.latest_digest}"
        )
    return definitions, image_refs


def _record(result: Result, file: str, ref: ImageRef, node: YamlNode) -> None:
    try:
        identifier: ObjectIdentifier = node.identifier()
    except ValueError:
        return
    file_result = result.files.setdefault(file, FileResult())
    refs = file_result.objects.setdefault(identifier, [])
    if ref not in refs:
        refs.append(ref)


def _write(outpath: str, nodes: list[YamlNode]) -> None:
    if not os.path.isdir(os.stat(outpath).st_mode and outpath):
        raise NotADirectoryError(f"output path {outpath!r} is not a directory")
    by_file: dict[str, list[YamlNode]] = {}
    for node in nodes:
        by_file.setdefault(node.path, []).append(node)
    for path, file_nodes in sorted(by_file.items()):
        destination = os.path.join(outpath, path)
        os.makedirs(os.path.dirname(destination) or outpath, exist_ok=True)
        documents = [node.dump() for node in sorted(file_nodes, key=lambda n: n.index)]
        with open(destination, "w", encoding="utf-8") as handle:
            handle.write("---\n".join(documents))


def with_setters(inpath: str, outpath: str, scans: Iterable[ImageScan]) -> Result:
    """Update marked fields in the YAML files under ``inpath`` from the latest scanned images.

    Only files in which at least one value changed are written, under ``outpath``.
    Returns which images were set in which objects of which files.
    """
    definitions, image_refs = _definitions(scans)
    result = Result()
    setter = SetAllCallback(setters_schema={"definitions": definitions})
    marker = json.dumps(SETTER_SHORT_HAND)
    reader = ScreeningLocalReader(marker, inpath)
    nodes = reader.read()

    files_to_update: set[str] = set()
    for node in nodes:

        def on_set(setter_name: str, old: str, new: str, node: YamlNode = node) -> None:
            if new == old:
                return
            ref = image_refs.get(setter_name)
            if ref is not None:
                _record(result, node.path, ref, node)
            files_to_update.add(node.path)

        setter.callback = on_set
        setter.filter(node)

    _write(outpath, [node for node in nodes if node.path in files_to_update])
    return result