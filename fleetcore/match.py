"""Matching clusters by name, group and label selectors."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional

_NAME_RE = re.compile(r"^([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9]$")
_SUBDOMAIN_RE = re.compile(
    r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$"
)
_MAX_NAME = 63
_MAX_PREFIX = 253

_IN = "In"
_NOT_IN = "NotIn"
_EXISTS = "Exists"
_DOES_NOT_EXIST = "DoesNotExist"
_EQUALS = "="


class SelectorError(ValueError):
    """Raised when a label selector is invalid."""


def _validate_key(key: str) -> None:
    parts = key.split("/")
    if len(parts) == 1:
        name = parts[0]
    elif len(parts) == 2:
        prefix, name = parts
        if not prefix:
            raise SelectorError(f"invalid label key {key!r}: prefix part must be non-empty")
        if len(prefix) > _MAX_PREFIX or not _SUBDOMAIN_RE.match(prefix):
            raise SelectorError(f"invalid label key {key!r}: prefix must be a DNS subdomain")
    else:
        raise SelectorError(f"invalid label key {key!r}: too many '/' separators")
    if not name:
        raise SelectorError(f"invalid label key {key!r}: name part must be non-empty")
    if len(name) > _MAX_NAME or not _NAME_RE.match(name):
        raise SelectorError(f"invalid label key {key!r}: name part is malformed")


def _validate_value(value: str) -> None:
    if len(value) > _MAX_NAME:
        raise SelectorError(f"invalid label value {value!r}: must be at most 63 characters")
    if value and not _NAME_RE.match(value):
        raise SelectorError(f"invalid label value {value!r}")


@dataclass(frozen=True)
class _Requirement:
    key: str
    operator: str
    values: frozenset

    def matches(self, labels: Mapping[str, str]) -> bool:
        present = self.key in labels
        if self.operator in (_EQUALS, _IN):
            return present and labels[self.key] in self.values
        if self.operator == _NOT_IN:
            return not present or labels[self.key] not in self.values
        if self.operator == _EXISTS:
            return present
        return not present


@dataclass
class LabelSelectorRequirement:
    """A single expression of a label selector."""

    key: str
    operator: str
    values: list[str] = field(default_factory=list)


@dataclass
class LabelSelector:
    """Selects label sets by exact labels and set-based expressions."""

    match_labels: dict[str, str] = field(default_factory=dict)
    match_expressions: list[LabelSelectorRequirement] = field(default_factory=list)

    def _requirements(self) -> tuple[_Requirement, ...]:
        requirements = []
        for key, value in self.match_labels.items():
            _validate_key(key)
            _validate_value(value)
            requirements.append(_Requirement(key, _EQUALS, frozenset([value])))
        for expr in self.match_expressions:
            if expr.operator not in (_IN, _NOT_IN, _EXISTS, _DOES_NOT_EXIST):
                raise SelectorError(f"{expr.operator!r} is not a valid label selector operator")
            _validate_key(expr.key)
            if expr.operator in (_IN, _NOT_IN):
                if not expr.values:
                    raise SelectorError(
                        "for 'in', 'notin' operators, values set can't be empty"
                    )
            elif expr.values:
                raise SelectorError(
                    "values set must be empty for exists and does not exist"
                )
            for value in expr.values:
                _validate_value(value)
            requirements.append(_Requirement(expr.key, expr.operator, frozenset(expr.values)))
        return tuple(requirements)

    def matches(self, labels: Optional[Mapping[str, str]]) -> bool:
        """Return whether the labels satisfy every requirement of the selector."""
        labels = labels or {}
        return all(req.matches(labels) for req in self._requirements())


_Criterion = Callable[[str, str, Mapping[str, str], Mapping[str, str]], bool]


def _selector_criterion(selector: LabelSelector, use_group_labels: bool) -> _Criterion:
    requirements = selector._requirements()

    def criterion(_name, _group, group_labels, cluster_labels):
        labels = (group_labels if use_group_labels else cluster_labels) or {}
        return all(req.matches(labels) for req in requirements)

    return criterion


class ClusterMatcher:
    """Matches clusters against all of the configured criteria."""

    def __init__(
        self,
        cluster_name: str = "",
        cluster_group: str = "",
        cluster_group_selector: Optional[LabelSelector] = None,
        cluster_selector: Optional[LabelSelector] = None,
    ):
        self._criteria: list[_Criterion] = []
        if cluster_name:
            self._criteria.append(lambda name, _g, _gl, _cl: name == cluster_name)
        if cluster_group:
            self._criteria.append(lambda _n, group, _gl, _cl: group == cluster_group)
        if cluster_group_selector is not None:
            self._criteria.append(_selector_criterion(cluster_group_selector, True))
        if cluster_selector is not None:
            self._criteria.append(_selector_criterion(cluster_selector, False))

    def match(
        self,
        cluster_name: str,
        cluster_group: str,
        cluster_group_labels: Optional[Mapping[str, str]],
        cluster_labels: Optional[Mapping[str, str]],
    ) -> bool:
        """Return True when there is at least one criterion and all of them hold."""
        if not self._criteria:
            return False
        return all(
            criterion(cluster_name, cluster_group, cluster_group_labels, cluster_labels)
            for criterion in self._criteria
        )