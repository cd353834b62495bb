"""Image references and the outcome of automated image updates."""

from __future__ import annotations

import string
from dataclasses import dataclass, field

DEFAULT_REGISTRY = "index.docker.io"
_DOCKER_HUB_ALIAS = "docker.io"
_DEFAULT_TAG = "latest"
_OFFICIAL_NAMESPACE = "library/"

_TAG_CHARS = frozenset(string.ascii_letters + string.digits + "_-.")
_REPOSITORY_CHARS = frozenset(string.ascii_lowercase + string.digits + "_-./")
_DIGEST_CHARS = frozenset("sh:0123456789abcdef")
_DIGEST_LENGTH = 7 + 64


class InvalidReferenceError(ValueError):
    """Raised when an image reference cannot be parsed."""


def _check(kind: str, value: str, chars: frozenset, min_len: int, max_len: int) -> None:
    if not min_len <= len(value) <= max_len:
        raise InvalidReferenceError(
            f"{kind} {value!r} must be between {min_len} and {max_len} characters in length"
        )
    invalid = sorted(set(value) - chars)
    if invalid:
        raise InvalidReferenceError(
            f"{kind} {value!r} contains invalid characters: {''.join(invalid)!r}"
        )


def _normalise_registry(registry: str) -> str:
    if any(ch.isspace() or not ch.isprintable() for ch in registry):
        raise InvalidReferenceError(f"registry {registry!r} is not a valid host")
    if registry == _DOCKER_HUB_ALIAS:
        return DEFAULT_REGISTRY
    return registry or DEFAULT_REGISTRY


def _parse_repository(name: str) -> tuple[str, str]:
    if not name:
        raise InvalidReferenceError("a repository name must be given")
    registry, repository = "", name
    first, sep, rest = name.partition("/")
    if sep and ("." in first or ":" in first):
        registry, repository = first, rest
    _check("repository", repository, _REPOSITORY_CHARS, 2, 255)
    registry = _normalise_registry(registry)
    if registry == DEFAULT_REGISTRY and "/" not in repository:
        repository = _OFFICIAL_NAMESPACE + repository
    return registry, repository


def _parse_tag(name: str) -> tuple[str, str, str]:
    base, tag = name, ""
    head, sep, last = name.rpartition(":")
    if sep and "/" not in last:
        base, tag = head, last
    if not tag:
        tag = _DEFAULT_TAG
    _check("tag", tag, _TAG_CHARS, 1, 128)
    registry, repository = _parse_repository(base)
    return registry, repository, tag


def _parse_digest(name: str) -> tuple[str, str, str]:
    parts = name.split("@")
    if len(parts) != 2:
        raise InvalidReferenceError(f"a digest must contain exactly one '@' separator: {name!r}")
    base, digest = parts
    _check("digest", digest, _DIGEST_CHARS, _DIGEST_LENGTH, _DIGEST_LENGTH)
    try:
        registry, repository, _ = _parse_tag(base)
    except InvalidReferenceError:
        pass
    else:
        base = f"{registry}/{repository}"
    registry, repository = _parse_repository(base)
    return registry, repository, digest


@dataclass(frozen=True)
class ImageRef:
    """An image reference used as the new value of an updated field."""

    original: str
    registry: str
    repository: str
    identifier: str
    is_digest: bool = False
    policy_name: str = ""
    policy_namespace: str = ""

    def __str__(self) -> str:
        return self.original

    @property
    def name(self) -> str:
        """The fully qualified reference, e.g. ``index.docker.io/library/app:v1``."""
        delimiter = "@" if self.is_digest else ":"
        return f"{self.registry}/{self.repository}{delimiter}{self.identifier}"

    @property
    def policy(self) -> str:
        """The namespaced name of the policy that led to the update."""
        return f"{self.policy_namespace}/{self.policy_name}"


def parse_reference(image: str, policy_name: str = "", policy_namespace: str = "") -> ImageRef:
    """Parse an image reference leniently, filling in the default registry and tag."""
    try:
        registry, repository, tag = _parse_tag(image)
    except InvalidReferenceError:
        pass
    else:
        return ImageRef(image, registry, repository, tag, False, policy_name, policy_namespace)
    try:
        registry, repository, digest = _parse_digest(image)
    except InvalidReferenceError as exc:
        raise InvalidReferenceError(f"could not parse reference: {image}") from exc
    return ImageRef(image, registry, repository, digest, True, policy_name, policy_namespace)


@dataclass(frozen=True)
class ObjectIdentifier:
    """Identifies an object within a file; the name may be empty."""

    api_version: str = ""
    kind: str = ""
    name: str = ""
    namespace: str = ""


@dataclass
class FileResult:
    """The updates made in one file, by object."""

    objects: dict[ObjectIdentifier, list[ImageRef]] = field(default_factory=dict)


@dataclass
class Result:
    """The outcome of an automated update, by file and then by object."""

    files: dict[str, FileResult] = field(default_factory=dict)

    def images(self) -> list[ImageRef]:
        """Return every image involved in at least one update, without repeats."""
        seen: set[ImageRef] = set()
        images: list[ImageRef] = []
        for file_result in self.files.values():
            for refs in file_result.objects.values():
                for ref in refs:
                    if ref not in seen:
                        seen.add(ref)
                        images.append(ref)
        return images

    def objects(self) -> dict[ObjectIdentifier, list[ImageRef]]:
        """Return the images updated in each object, regardless of file."""
        merged: dict[ObjectIdentifier, list[ImageRef]] = {}
        for file_result in self.files.values():
            for identifier, refs in file_result.objects.items():
                merged.setdefault(identifier, []).extend(refs)
        return merged