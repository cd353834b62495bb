"""Namespace helpers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GroupVersionKind:
    """Identifies a kind of API object."""

    group: str
    version: str
    kind: str


def gvk() -> GroupVersionKind:
    """Return the group, version and kind of a core Namespace object."""
    return GroupVersionKind(group="", version="v1", kind="Namespace")


def registration_namespace(system_namespace: str) -> str:
    """Derive the cluster registration namespace from the system namespace."""
    registration = system_namespace.replace("-system", "-clusters-system")
    if registration == system_namespace:
        return system_namespace + "-clusters-system"
    return registration