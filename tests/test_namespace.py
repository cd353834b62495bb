import pytest

from fleetcore.namespace import GroupVersionKind, gvk, registration_namespace


def test_gvk_is_core_namespace():
    assert gvk() == GroupVersionKind(group="", version="v1", kind="Namespace")


def test_gvk_is_immutable():
    value = gvk()
    with pytest.raises(AttributeError):
        value.kind = "Pod"
    assert value.kind == "Namespace"


def test_system_suffix_is_rewritten():
    assert registration_namespace("cattle-fleet-system") == "cattle-fleet-clusters-system"


def test_namespace_without_system_gets_suffix():
    assert registration_namespace("fleet") == "fleet" + "-clusters-system"


def test_result_always_differs_from_input():
    for name in ["a-system", "b", "x-system-y", ""]:
        assert registration_namespace(name) != name


def test_result_always_contains_clusters_system():
    for name in ["a-system", "b", "x-system-y"]:
        assert "-clusters-system" in registration_namespace(name)