"""Apply overlays and patches to the resources of a manifest."""

from __future__ import annotations

import base64
import binascii
import copy
import dataclasses
import gzip
import json
import posixpath
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Union

import yaml

_OVERLAY_PREFIX = "overlays/"
_PATCH_MARKER = "_patch."

_Bytes = Union[bytes, str]


class PatchError(Exception):
    """Raised when an overlay or patch cannot be applied."""


@dataclass
class Resource:
    """A named file of a bundle, possibly encoded."""

    name: str = ""
    content: str = ""
    encoding: str = ""


@dataclass
class Manifest:
    """The resources of a bundle together with the commit they came from."""

    resources: list[Resource] = field(default_factory=list)
    commit: str = ""


def _decode(resource: Resource) -> bytes:
    encoding = resource.encoding
    try:
        if encoding == "":
            return resource.content.encode("utf-8")
        if encoding == "base64":
            return base64.b64decode(resource.content, validate=True)
        if encoding == "base64+gz":
            return gzip.decompress(base64.b64decode(resource.content, validate=True))
    except (binascii.Error, OSError, EOFError) as exc:
        raise PatchError(f"failed to decode {resource.name}: {exc}") from exc
    raise PatchError(f"unsupported encoding {encoding!r} for {resource.name}")


def _parse_json(data: _Bytes, what: str) -> Any:
    try:
        return json.loads(data)
    except ValueError as exc:
        raise PatchError(f"invalid JSON in {what}: {exc}") from exc


def _merge_patch(target: Any, patch: Any) -> Any:
    if not isinstance(patch, dict):
        return copy.deepcopy(patch)
    result = dict(target) if isinstance(target, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        else:
            result[key] = _merge_patch(result.get(key), value)
    return result


def _pointer(path: Any) -> list[str]:
    if not isinstance(path, str):
        raise PatchError(f"invalid JSON pointer {path!r}")
    if path == "":
        return []
    if not path.startswith("/"):
        raise PatchError(f"invalid JSON pointer {path!r}")
    return [token.replace("~1", "/").replace("~0", "~") for token in path[1:].split("/")]


def _index(token: str, length: int, allow_end: bool = False) -> int:
    if allow_end and token == "-":
        return length
    if not token.isdigit() or (len(token) > 1 and token.startswith("0")):
        raise PatchError(f"invalid array index {token!r}")
    index = int(token)
    if index > length or (index == length and not allow_end):
        raise PatchError(f"array index {index} out of range")
    return index


def _resolve(doc: Any, tokens: Sequence[str]) -> Any:
    node = doc
    for token in tokens:
        if isinstance(node, dict):
            if token not in node:
                raise PatchError(f"path member {token!r} does not exist")
            node = node[token]
        elif isinstance(node, list):
            node = node[_index(token, len(node))]
        else:
            raise PatchError(f"cannot traverse into a scalar at {token!r}")
    return node


def _add(doc: Any, tokens: list[str], value: Any) -> Any:
    if not tokens:
        return value
    parent = _resolve(doc, tokens[:-1])
    key = tokens[-1]
    if isinstance(parent, dict):
        parent[key] = value
    elif isinstance(parent, list):
        parent.insert(_index(key, len(parent), allow_end=True), value)
    else:
        raise PatchError(f"cannot add to a scalar at {key!r}")
    return doc


def _remove(doc: Any, tokens: list[str]) -> tuple[Any, Any]:
    if not tokens:
        raise PatchError("cannot remove the document root")
    parent = _resolve(doc, tokens[:-1])
    key = tokens[-1]
    if isinstance(parent, dict):
        if key not in parent:
            raise PatchError(f"path member {key!r} does not exist")
        return doc, parent.pop(key)
    if isinstance(parent, list):
        return doc, parent.pop(_index(key, len(parent)))
    raise PatchError(f"cannot remove from a scalar at {key!r}")


def _json_patch(doc: Any, operations: list) -> Any:
    doc = copy.deepcopy(doc)
    for operation in operations:
        if not isinstance(operation, dict) or "op" not in operation:
            raise PatchError(f"invalid patch operation {operation!r}")
        op = operation["op"]
        path = _pointer(operation.get("path"))
        if op == "add":
            doc = _add(doc, path, copy.deepcopy(operation.get("value")))
        elif op == "remove":
            doc, _ = _remove(doc, path)
        elif op == "replace":
            if not path:
                doc = copy.deepcopy(operation.get("value"))
                continue
            doc, _ = _remove(doc, path)
            doc = _add(doc, path, copy.deepcopy(operation.get("value")))
        elif op == "move":
            source = _pointer(operation.get("from"))
            doc, value = _remove(doc, source)
            doc = _add(doc, path, value)
        elif op == "copy":
            source = _pointer(operation.get("from"))
            doc = _add(doc, path, copy.deepcopy(_resolve(doc, source)))
        elif op == "test":
            if _resolve(doc, path) != operation.get("value"):
                raise PatchError(f"test operation failed at {operation.get('path')!r}")
        else:
            raise PatchError(f"unsupported patch operation {op!r}")
    return doc


def apply_patch(original: _Bytes, patch: _Bytes) -> bytes:
    """Apply a JSON patch (a list of operations) or a JSON merge patch to a JSON document."""
    document = _parse_json(original, "original document")
    patch_doc = _parse_json(patch, "patch")
    if isinstance(patch_doc, list):
        result = _json_patch(document, patch_doc)
    else:
        result = _merge_patch(document, patch_doc)
    return json.dumps(result, separators=(",", ":")).encode("utf-8")


def _convert_to_json(data: bytes) -> bytes:
    try:
        parsed = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise PatchError(str(exc)) from exc
    if parsed is None:
        parsed = {}
    if not isinstance(parsed, (dict, list)):
        raise PatchError("document is neither a map nor a list")
    return json.dumps(parsed, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")


def _patch_target(name: str) -> Optional[str]:
    directory, base = posixpath.split(name)
    if _PATCH_MARKER not in base:
        return None
    target = base.replace(_PATCH_MARKER, ".", 1)
    return posixpath.join(directory, target) if directory else target


def _patch_content(content: dict[str, bytes], overlays: Sequence[str]) -> None:
    for overlay in overlays:
        prefix = f"{_OVERLAY_PREFIX}{overlay}/"
        for full_name, data in list(content.items()):
            if not full_name.startswith(prefix):
                continue
            name = full_name[len(prefix):]
            target = _patch_target(name)
            if target is None:
                content[name] = data
                continue
            if target not in content:
                raise PatchError(f"failed to find base file {target} to patch")
            try:
                target_json = _convert_to_json(content[target])
            except PatchError as exc:
                raise PatchError(f"failed to convert {target} to json: {exc}") from exc
            try:
                patch_json = _convert_to_json(data)
            except PatchError as exc:
                raise PatchError(f"failed to convert {name} to json: {exc}") from exc
            try:
                content[target] = apply_patch(target_json, patch_json)
            except PatchError as exc:
                raise PatchError(f"failed to patch {target}: {exc}") from exc


def _patch_context(manifest: Manifest, overlays: Sequence[str]) -> Manifest:
    if not overlays:
        return manifest
    content = {resource.name: _decode(resource) for resource in manifest.resources}
    _patch_content(content, overlays)
    return Manifest(
        resources=[
            Resource(name=name, content=data.decode("utf-8", errors="replace"))
            for name, data in content.items()
        ]
    )


def process(manifest: Manifest, overlays: Optional[Sequence[str]]) -> Manifest:
    """Apply the named overlays and return the resources outside ``overlays/``, sorted by name."""
    named = [
        dataclasses.replace(resource, name=resource.name or f"manifests/file{index:03d}.yaml")
        for index, resource in enumerate(manifest.resources)
    ]
    current = _patch_context(Manifest(resources=named, commit=manifest.commit), overlays or [])
    kept = sorted(
        (r for r in current.resources if not r.name.startswith(_OVERLAY_PREFIX)),
        key=lambda r: r.name,
    )
    return Manifest(resources=kept, commit=current.commit)