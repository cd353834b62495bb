from fleetcore.summary import (
    BundleDeployment,
    BundleState,
    BundleSummary,
    Condition,
    ModifiedStatus,
    NonReadyResource,
    NonReadyStatus,
    ResourceCounts,
    get_deployment_state,
    get_summary_state,
    increment,
    increment_resource_counts,
    increment_state,
    is_ready,
    message_from_condition,
    message_from_deployment,
    ready_message,
    set_ready_conditions,
)


def test_increment_state_counts_and_records_non_ready():
    s = BundleSummary()
    increment_state(s, "app", BundleState.NOT_READY, "waiting", None, None)
    increment_state(s, "web", BundleState.READY, "", None, None)
    assert s.not_ready == 1
    assert s.ready == 1
    assert [r.name for r in s.non_ready_resources] == ["app"]
    assert s.non_ready_resources[0].message == "waiting"


def test_increment_state_without_name_only_counts():
    s = BundleSummary()
    increment_state(s, "", BundleState.MODIFIED, "", None, None)
    assert s.modified == 1
    assert s.non_ready_resources == []


def test_increment_state_caps_non_ready_resources():
    s = BundleSummary()
    for i in range(15):
        increment_state(s, f"r{i}", BundleState.PENDING, "", None, None)
    assert s.pending == 15
    assert len(s.non_ready_resources) == 10


def test_is_ready():
    assert is_ready(BundleSummary(desired_ready=2, ready=2))
    assert not is_ready(BundleSummary(desired_ready=2, ready=1))


def test_increment_adds_counts():
    left = BundleSummary(ready=1, desired_ready=2, err_applied=1)
    right = BundleSummary(
        ready=2,
        desired_ready=3,
        out_of_sync=4,
        non_ready_resources=[NonReadyResource(name="x", state=BundleState.OUT_OF_SYNC)],
    )
    increment(left, right)
    assert (left.ready, left.desired_ready, left.out_of_sync, left.err_applied) == (3, 5, 4, 1)
    assert [r.name for r in left.non_ready_resources] == ["x"]


def test_increment_resource_counts():
    left = ResourceCounts(ready=1, orphaned=2)
    increment_resource_counts(left, ResourceCounts(ready=1, missing=3, unknown=1, not_ready=2))
    assert left == ResourceCounts(ready=2, orphaned=2, missing=3, unknown=1, not_ready=2)


def test_get_summary_state_picks_most_severe():
    s = BundleSummary(
        non_ready_resources=[
            NonReadyResource(name="a", state=BundleState.NOT_READY),
            NonReadyResource(name="b", state=BundleState.ERR_APPLIED),
            NonReadyResource(name="c", state=BundleState.MODIFIED),
        ]
    )
    assert get_summary_state(s) is BundleState.ERR_APPLIED
    assert get_summary_state(BundleSummary()) is None


def test_deployment_states():
    wait = BundleDeployment(deployment_id="b", applied_deployment_id="a")
    assert get_deployment_state(wait) is BundleState.WAIT_APPLIED
    err = BundleDeployment(
        deployment_id="b",
        applied_deployment_id="a",
        conditions=[Condition(type="Deployed", status="False")],
    )
    assert get_deployment_state(err) is BundleState.ERR_APPLIED
    assert get_deployment_state(BundleDeployment(deployment_id="a", applied_deployment_id="a")) is BundleState.NOT_READY
    out = BundleDeployment(deployment_id="a", applied_deployment_id="a", staged_deployment_id="b", ready=True)
    assert get_deployment_state(out) is BundleState.OUT_OF_SYNC
    mod = BundleDeployment(deployment_id="a", applied_deployment_id="a", staged_deployment_id="a", ready=True)
    assert get_deployment_state(mod) is BundleState.MODIFIED
    mod.non_modified = True
    assert get_deployment_state(mod) is BundleState.READY


def test_ready_message_empty_when_ready():
    assert ready_message(BundleSummary(ready=3, desired_ready=3), "Bundle") == ""


def test_ready_message_format_and_order():
    s = BundleSummary()
    increment_state(s, "web", BundleState.MODIFIED, "changed", None, None)
    increment_state(s, "app", BundleState.NOT_READY, "", None, None)
    assert ready_message(s, "Bundle") == (
        "Modified(1) [Bundle web: changed]; NotReady(1) [Bundle app]"
    )


def test_ready_message_limits_status_entries():
    modified = [ModifiedStatus(kind="ConfigMap", name=f"cm{i}", delete=True) for i in range(6)]
    non_ready = [NonReadyStatus(kind="Pod", namespace="ns", name=f"p{i}", summary="x") for i in range(6)]
    s = BundleSummary()
    increment_state(s, "app", BundleState.MODIFIED, "", modified, non_ready)
    parts = ready_message(s, "Bundle").split("; ")
    assert len(parts) == 1 + 4 + 4
    assert str(modified[0]) in parts
    assert str(modified[4]) not in parts


def test_set_ready_conditions_adds_and_updates():
    conditions = [Condition(type="Other", status="True")]
    s = BundleSummary()
    increment_state(s, "app", BundleState.NOT_READY, "", None, None)
    cond = set_ready_conditions(conditions, "Bundle", s)
    assert cond.status == "False"
    assert cond.message == ready_message(s, "Bundle")
    assert len(conditions) == 2
    set_ready_conditions(conditions, "Bundle", BundleSummary())
    assert len(conditions) == 2
    assert (conditions[1].status, conditions[1].message) == ("True", "")


def test_message_from_condition():
    conds = [Condition(type="A", message="first"), Condition(type="A", message="second")]
    assert message_from_condition("A", conds) == "first"
    assert message_from_condition("B", conds) == ""


def test_message_from_deployment_falls_back_to_monitored():
    d = BundleDeployment(conditions=[Condition(type="Monitored", message="mon")])
    assert message_from_deployment(d) == "mon"
    d.conditions.append(Condition(type="Deployed", message="dep"))
    assert message_from_deployment(d) == "dep"
    assert message_from_deployment(None) == ""


def test_status_strings():
    assert str(ModifiedStatus(kind="Service", namespace="ns", name="svc", create=True)) == "Service ns/svc missing"
    assert str(ModifiedStatus(kind="Service", name="svc", patch="{}")) == "Service svc modified {}"
    assert str(NonReadyStatus(kind="Pod", namespace="ns", name="p", summary="x")) == "Pod ns/p x"