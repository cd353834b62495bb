import pytest

from fleetcore.result import (
    DEFAULT_REGISTRY,
    FileResult,
    ImageRef,
    InvalidReferenceError,
    ObjectIdentifier,
    Result,
    parse_reference,
)

DIGEST = "sha256:" + "a" * 64


def test_docker_hub_short_name():
    ref = parse_reference("helloworld:v1.0.1")
    assert ref.registry == "index.docker.io"
    assert ref.repository == "library/helloworld"
    assert ref.identifier == "v1.0.1"
    assert ref.name == "index.docker.io/library/helloworld:v1.0.1"
    assert str(ref) == "helloworld:v1.0.1"


def test_explicit_registry_kept():
    ref = parse_reference("ghcr.io/org/app:1.2")
    assert ref.registry == "ghcr.io"
    assert ref.repository == "org/app"
    assert ref.identifier == "1.2"
    assert not ref.is_digest


def test_registry_with_port():
    ref = parse_reference("localhost:5000/app:dev")
    assert ref.registry == "localhost:5000"
    assert ref.repository == "app"
    assert ref.identifier == "dev"


def test_docker_io_alias_normalised():
    ref = parse_reference("docker.io/nginx:1")
    assert ref.registry == DEFAULT_REGISTRY
    assert ref.repository == "library/nginx"


def test_first_component_without_dot_is_repository():
    ref = parse_reference("org/app:v2")
    assert ref.registry == DEFAULT_REGISTRY
    assert ref.repository == "org/app"


def test_missing_tag_defaults_to_latest():
    ref = parse_reference("nginx")
    assert ref.identifier == "latest"
    assert ref.name.endswith(":latest")


def test_digest_reference():
    image = "quay.io/org/app@" + DIGEST
    ref = parse_reference(image)
    assert ref.is_digest
    assert ref.identifier == DIGEST
    assert ref.repository == "org/app"
    assert ref.name == image
    assert image[: len(image) - len(ref.identifier) - 1] == "quay.io/org/app"


def test_digest_with_tag_in_base():
    ref = parse_reference("quay.io/org/app:v1@" + DIGEST)
    assert ref.is_digest
    assert ref.repository == "org/app"
    assert ref.identifier == DIGEST


def test_policy():
    ref = parse_reference("nginx:1", policy_name="web", policy_namespace="apps")
    assert ref.policy == "apps/web"


@pytest.mark.parametrize(
    "image",
    ["", "Upper/Case:v1", "app:bad tag", "app@sha256:short", "a@b@c", "app:" + "x" * 129],
)
def test_invalid_references(image):
    with pytest.raises(InvalidReferenceError):
        parse_reference(image)


def test_refs_are_equal_by_value():
    assert parse_reference("nginx:1", "p", "ns") == parse_reference("nginx:1", "p", "ns")
    assert parse_reference("nginx:1", "p", "ns") != parse_reference("nginx:1", "q", "ns")


def test_images_deduplicated_in_order():
    first = parse_reference("nginx:1")
    second = parse_reference("redis:7")
    obj_a = ObjectIdentifier(api_version="apps/v1", kind="Deployment", name="a")
    obj_b = ObjectIdentifier(api_version="apps/v1", kind="Deployment", name="b")
    result = Result(
        files={
            "one.yaml": FileResult(objects={obj_a: [first, second]}),
            "two.yaml": FileResult(objects={obj_b: [second, first]}),
        }
    )
    assert result.images() == [first, second]


def test_objects_merged_across_files():
    first = parse_reference("nginx:1")
    second = parse_reference("redis:7")
    obj = ObjectIdentifier(kind="Kustomization")
    other = ObjectIdentifier(kind="Deployment", name="web", namespace="apps")
    result = Result(
        files={
            "one.yaml": FileResult(objects={obj: [first]}),
            "two.yaml": FileResult(objects={obj: [second], other: [first]}),
        }
    )
    objects = result.objects()
    assert objects == {obj: [first, second], other: [first]}
    assert result.files["one.yaml"].objects[obj] == [first]


def test_empty_result():
    result = Result()
    assert result.images() == []
    assert result.objects() == {}


def test_image_ref_is_hashable_key():
    ref = ImageRef("app:v1", DEFAULT_REGISTRY, "library/app", "v1")
    assert {ref: 1}[parse_reference("app:v1")] == 1