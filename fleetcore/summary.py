"""Summaries of bundle deployment state and readiness messages."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional, Sequence

_MAX_NON_READY = 10
_MAX_STATUS_MESSAGES = 4


class BundleState(str, enum.Enum):
    """The state of a bundle deployment."""

    READY = "Ready"
    NOT_READY = "NotReady"
    WAIT_APPLIED = "WaitApplied"
    ERR_APPLIED = "ErrApplied"
    OUT_OF_SYNC = "OutOfSync"
    PENDING = "Pending"
    MODIFIED = "Modified"

    def __str__(self) -> str:
        return self.value


_STATE_RANK = {
    BundleState.ERR_APPLIED: 7,
    BundleState.WAIT_APPLIED: 6,
    BundleState.MODIFIED: 5,
    BundleState.OUT_OF_SYNC: 4,
    BundleState.PENDING: 3,
    BundleState.NOT_READY: 2,
    BundleState.READY: 1,
}

_COUNTER = {
    BundleState.MODIFIED: "modified",
    BundleState.PENDING: "pending",
    BundleState.WAIT_APPLIED: "wait_applied",
    BundleState.ERR_APPLIED: "err_applied",
    BundleState.NOT_READY: "not_ready",
    BundleState.OUT_OF_SYNC: "out_of_sync",
    BundleState.READY: "ready",
}


def _object_ref(kind: str, namespace: str, name: str) -> str:
    ref = f"{kind} "
    if namespace:
        ref += f"{namespace}/"
    return ref + name


@dataclass
class ModifiedStatus:
    """A resource that differs from what was deployed."""

    kind: str = ""
    api_version: str = ""
    namespace: str = ""
    name: str = ""
    create: bool = False
    delete: bool = False
    patch: str = ""

    def __str__(self) -> str:
        ref = _object_ref(self.kind, self.namespace, self.name)
        if self.delete:
            return f"{ref} extra"
        if self.create:
            return f"{ref} missing"
        return f"{ref} modified {self.patch}"


@dataclass
class NonReadyStatus:
    """A deployed resource that is not ready yet."""

    kind: str = ""
    api_version: str = ""
    namespace: str = ""
    name: str = ""
    summary: str = ""

    def __str__(self) -> str:
        return f"{_object_ref(self.kind, self.namespace, self.name)} {self.summary}"


@dataclass
class NonReadyResource:
    """A named object that is in a state other than ready."""

    name: str = ""
    state: Optional[BundleState] = None
    message: str = ""
    modified_status: list[ModifiedStatus] = field(default_factory=list)
    non_ready_status: list[NonReadyStatus] = field(default_factory=list)


@dataclass
class BundleSummary:
    """Counts of deployments by state."""

    not_ready: int = 0
    wait_applied: int = 0
    err_applied: int = 0
    out_of_sync: int = 0
    modified: int = 0
    ready: int = 0
    pending: int = 0
    desired_ready: int = 0
    non_ready_resources: list[NonReadyResource] = field(default_factory=list)


@dataclass
class ResourceCounts:
    """Counts of resources deployed from a repository."""

    ready: int = 0
    desired_ready: int = 0
    wait_applied: int = 0
    modified: int = 0
    orphaned: int = 0
    missing: int = 0
    unknown: int = 0
    not_ready: int = 0


@dataclass
class Condition:
    """A status condition of an object."""

    type: str
    status: str = ""
    message: str = ""


@dataclass
class BundleDeployment:
    """The parts of a bundle deployment that determine its state."""

    deployment_id: str = ""
    staged_deployment_id: str = ""
    applied_deployment_id: str = ""
    ready: bool = False
    non_modified: bool = False
    conditions: list[Condition] = field(default_factory=list)


def increment_state(
    summary: BundleSummary,
    name: str,
    state: BundleState,
    message: str = "",
    modified: Optional[Sequence[ModifiedStatus]] = None,
    non_ready: Optional[Sequence[NonReadyStatus]] = None,
) -> None:
    """Count one object in ``state`` and record it when it is not ready."""
    counter = _COUNTER.get(state)
    if counter is not None:
        setattr(summary, counter, getattr(summary, counter) + 1)
    if name and state != BundleState.READY and len(summary.non_ready_resources) < _MAX_NON_READY:
        summary.non_ready_resources.append(
            NonReadyResource(
                name=name,
                state=state,
                message=message,
                modified_status=list(modified or []),
                non_ready_status=list(non_ready or []),
            )
        )


def is_ready(summary: BundleSummary) -> bool:
    """Return whether every desired deployment is ready."""
    return summary.desired_ready == summary.ready


def increment(left: BundleSummary, right: BundleSummary) -> None:
    """Add the counts of ``right`` to ``left``."""
    left.not_ready += right.not_ready
    left.wait_applied += right.wait_applied
    left.err_applied += right.err_applied
    left.out_of_sync += right.out_of_sync
    left.modified += right.modified
    left.ready += right.ready
    left.pending += right.pending
    left.desired_ready += right.desired_ready
    if len(left.non_ready_resources) < _MAX_NON_READY:
        left.non_ready_resources.extend(right.non_ready_resources)


def increment_resource_counts(left: ResourceCounts, right: ResourceCounts) -> None:
    """Add the resource counts of ``right`` to ``left``."""
    left.ready += right.ready
    left.desired_ready += right.desired_ready
    left.wait_applied += right.wait_applied
    left.modified += right.modified
    left.orphaned += right.orphaned
    left.missing += right.missing
    left.unknown += right.unknown
    left.not_ready += right.not_ready


def get_summary_state(summary: BundleSummary) -> Optional[BundleState]:
    """Return the most severe state among the non-ready resources, or None."""
    state: Optional[BundleState] = None
    for resource in summary.non_ready_resources:
        if _STATE_RANK.get(resource.state, 0) > _STATE_RANK.get(state, 0):
            state = resource.state
    return state


def get_deployment_state(deployment: BundleDeployment) -> BundleState:
    """Derive the state of a bundle deployment from its spec and status."""
    if deployment.applied_deployment_id != deployment.deployment_id:
        deploy_failed = any(
            c.type == "Deployed" and c.status == "False" for c in deployment.conditions
        )
        return BundleState.ERR_APPLIED if deploy_failed else BundleState.WAIT_APPLIED
    if not deployment.ready:
        return BundleState.NOT_READY
    if deployment.deployment_id != deployment.staged_deployment_id:
        return BundleState.OUT_OF_SYNC
    if not deployment.non_modified:
        return BundleState.MODIFIED
    return BundleState.READY


def set_ready_conditions(
    conditions: list[Condition], referenced_kind: str, summary: BundleSummary
) -> Condition:
    """Set the Ready condition in ``conditions`` from the summary and return it."""
    message = ready_message(summary, referenced_kind)
    ready = next((c for c in conditions if c.type == "Ready"), None)
    if ready is None:
        ready = Condition(type="Ready")
        conditions.append(ready)
    ready.status = "False" if message else "True"
    ready.message = message
    return ready


def message_from_condition(condition_type: str, conditions: Sequence[Condition]) -> str:
    """Return the message of the first condition of the given type, or an empty string."""
    return next((c.message for c in conditions if c.type == condition_type), "")


def message_from_deployment(deployment: Optional[BundleDeployment]) -> str:
    """Return the Deployed condition message, falling back to the Monitored one."""
    if deployment is None:
        return ""
    return message_from_condition("Deployed", deployment.conditions) or message_from_condition(
        "Monitored", deployment.conditions
    )


def ready_message(summary: BundleSummary, referenced_kind: str) -> str:
    """Describe why the summarised objects are not ready; empty when they all are."""
    counts = {
        BundleState.OUT_OF_SYNC: summary.out_of_sync,
        BundleState.NOT_READY: summary.not_ready,
        BundleState.WAIT_APPLIED: summary.wait_applied,
        BundleState.ERR_APPLIED: summary.err_applied,
        BundleState.PENDING: summary.pending,
        BundleState.MODIFIED: summary.modified,
    }
    messages: list[str] = []
    for state, count in counts.items():
        if count <= 0:
            continue
        resource = next((r for r in summary.non_ready_resources if r.state == state), None)
        if resource is None:
            continue
        if resource.message:
            messages.append(
                f"{state}({count}) [{referenced_kind} {resource.name}: {resource.message}]"
            )
        else:
            messages.append(f"{state}({count}) [{referenced_kind} {resource.name}]")
        messages.extend(str(m) for m in resource.modified_status[:_MAX_STATUS_MESSAGES])
        messages.extend(str(m) for m in resource.non_ready_status[:_MAX_STATUS_MESSAGES])
    return "; ".join(sorted(messages))