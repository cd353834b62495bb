"""Bundle deployment options and how target options override bundle options."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class HelmOptions:
    """Options for deploying with Helm."""

    chart: str = ""
    release_name: str = ""
    timeout_seconds: int = 0
    values: Optional[dict[str, Any]] = None
    values_from: list[Any] = field(default_factory=list)
    force: bool = False
    take_ownership: bool = False


@dataclass
class KustomizeOptions:
    """Options for kustomize processing."""

    dir: str = ""


@dataclass
class DiffOptions:
    """Patches applied before comparing deployed resources."""

    compare_patches: list[Any] = field(default_factory=list)


@dataclass
class YAMLOptions:
    """Overlays applied to raw YAML resources."""

    overlays: list[str] = field(default_factory=list)


@dataclass
class BundleDeploymentOptions:
    """How a bundle is deployed to a cluster."""

    default_namespace: str = ""
    target_namespace: str = ""
    service_account: str = ""
    force_sync_generation: int = 0
    helm: Optional[HelmOptions] = None
    kustomize: Optional[KustomizeOptions] = None
    diff: Optional[DiffOptions] = None
    yaml: Optional[YAMLOptions] = None


def merge_maps(base: Optional[dict], overlay: Optional[dict]) -> dict:
    """Merge ``overlay`` into a copy of ``base``, recursing where both sides hold maps."""
    result = dict(base or {})
    for key, value in (overlay or {}).items():
        existing = result.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            value = merge_maps(existing, value)
        result[key] = value
    return result


def _merge_helm(result: HelmOptions, override: HelmOptions) -> None:
    if override.timeout_seconds > 0:
        result.timeout_seconds = override.timeout_seconds
    elif override.timeout_seconds < 0:
        result.timeout_seconds = 0
    if result.values is None:
        result.values = copy.deepcopy(override.values)
    elif override.values is not None:
        result.values = merge_maps(result.values, override.values)
    if override.values_from:
        result.values_from = result.values_from + copy.deepcopy(override.values_from)
    if override.chart:
        result.chart = override.chart
    if override.release_name:
        result.release_name = override.release_name
    result.force = result.force or override.force
    result.take_ownership = result.take_ownership or override.take_ownership


def merge_options(
    base: BundleDeploymentOptions, override: BundleDeploymentOptions
) -> BundleDeploymentOptions:
    """Return ``base`` with the settings of ``override`` applied; neither is modified."""
    result = copy.deepcopy(base)
    if override.default_namespace:
        result.default_namespace = override.default_namespace
    if override.target_namespace:
        result.target_namespace = override.target_namespace
    if override.service_account:
        result.service_account = override.service_account

    if override.helm is not None:
        if result.helm is None:
            result.helm = HelmOptions()
        _merge_helm(result.helm, override.helm)

    if override.kustomize is not None:
        if result.kustomize is None:
            result.kustomize = KustomizeOptions()
        if override.kustomize.dir:
            result.kustomize.dir = override.kustomize.dir

    if override.diff is not None:
        if result.diff is None:
            result.diff = DiffOptions()
        result.diff.compare_patches = result.diff.compare_patches + copy.deepcopy(
            override.diff.compare_patches
        )

    if override.yaml is not None:
        if result.yaml is None:
            result.yaml = YAMLOptions()
        result.yaml.overlays = result.yaml.overlays + list(override.yaml.overlays)

    if override.force_sync_generation > 0:
        result.force_sync_generation = override.force_sync_generation
    return result


def calculate(
    spec_options: BundleDeploymentOptions, target_options: BundleDeploymentOptions
) -> BundleDeploymentOptions:
    """Compute the effective options for a target of a bundle."""
    return merge_options(spec_options, target_options)