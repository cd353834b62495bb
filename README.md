# fleetcore

A library for a GitOps-style bundle deployment system. It provides these parts:

- choosing the clusters that a bundle targets
- merging deployment options
- applying overlay patches to raw manifests
- summarising deployment state
- rewriting image references in YAML files

## Installation

```
pip install fleetcore
```

To run the tests as well:

```
pip install "fleetcore[test]"
pytest
```

## Modules

### `fleetcore.version`

`friendly_version(version, git_commit)` returns `"<version> (<commit>)"`. The two arguments default to `VERSION` and `GIT_COMMIT`, which gives `"dev (HEAD)"`.

### `fleetcore.namespace`

- `gvk()` returns the `GroupVersionKind` of a core Namespace: group `""`, version `"v1"`, kind `"Namespace"`.
- `registration_namespace(system_namespace)` replaces `-system` with `-clusters-system`. If the name contains no `-system`, it appends `-clusters-system` instead. For example, `fleet-system` becomes `fleet-clusters-system`.

### `fleetcore.registration`

`secret_name(client_id, client_random)` returns `"c-"` followed by the hex SHA-256 of the two strings joined. The result is cut to 63 characters.

### `fleetcore.match`

A `LabelSelector` is made of two parts:

- `match_labels`, a dict of exact label values.
- `match_expressions`, a list of `LabelSelectorRequirement`. Each one uses the operator `In`, `NotIn`, `Exists` or `DoesNotExist`.

Keys, values and operators are checked against the usual label rules. Breaking them raises `SelectorError`, which is a `ValueError`.

`ClusterMatcher(cluster_name, cluster_group, cluster_group_selector, cluster_selector)` collects a criterion for each argument that is given. Its `match(cluster_name, cluster_group, cluster_group_labels, cluster_labels)` returns `True` only if every criterion holds. It never matches when no criterion was given.

### `fleetcore.options`

`BundleDeploymentOptions` holds namespaces, a service account and a force-sync generation. It also holds optional `HelmOptions`, `KustomizeOptions`, `DiffOptions` and `YAMLOptions`.

`merge_options(base, override)` returns a new object and leaves both inputs unchanged. `calculate(spec_options, target_options)` does the same merge. These rules apply:

- Non-empty strings in the override replace those in the base.
- A positive Helm timeout replaces the base timeout. A negative one resets it to 0.
- Helm values are merged deeply with `merge_maps`.
- Lists are appended: `values_from`, compare patches and YAML overlays.
- The `force` and `take_ownership` flags are OR-ed.
- A positive `force_sync_generation` replaces the base value.

### `fleetcore.patch`

`process(manifest, overlays)` takes a `Manifest` of `Resource`s. A resource's `encoding` is `""`, `"base64"` or `"base64+gz"`. The steps are:

1. Resources without a name are given names of the form `manifests/fileNNN.yaml`.
2. The overlays are applied in order. For each overlay, every file under `overlays/<overlay>/` is handled by its name:
   - A name containing `_patch.` (such as `deploy_patch.yaml`) patches its base file (`deploy.yaml`). The two are converted from YAML to JSON and combined with `apply_patch`.
   - Any other file is copied to its path without the overlay prefix. It replaces any file already at that path.
3. The resources outside `overlays/` are returned, sorted by name.

`apply_patch(original, patch)` applies a JSON document to a JSON document:

- A list is treated as a JSON Patch (RFC 6902) of operations.
- Anything else is treated as a JSON Merge Patch.

A missing base file, bad YAML or JSON, or a failed patch raises `PatchError`.

### `fleetcore.summary`

- `BundleState` lists the states of a deployment.
- `BundleSummary` holds counts per state, the desired ready count, and up to ten `NonReadyResource` entries.
- `increment_state` counts one object and records it if it is not ready.
- `increment` and `increment_resource_counts` add summaries together.
- `is_ready` compares the ready count with the desired ready count.
- `get_summary_state` returns the most severe recorded state, or `None`.
- `get_deployment_state(deployment)` derives a state from a `BundleDeployment`.
- `ready_message(summary, referenced_kind)` builds a sorted `"; "`-joined description of what is not ready.
- `set_ready_conditions(conditions, referenced_kind, summary)` sets or adds the `Ready` `Condition` in a list from that message, and returns it.
- `message_from_condition` and `message_from_deployment` read condition messages.

### `fleetcore.result`

`parse_reference(image, policy_name, policy_namespace)` parses an image reference into an `ImageRef`:

- The registry defaults to `index.docker.io`.
- Repositories without a namespace on that registry get `library/` in front.
- The tag defaults to `latest`.

`str(ref)` gives the image as written. `ref.name` gives the fully qualified reference. A reference that cannot be parsed raises `InvalidReferenceError`.

`Result` maps files to `FileResult`s, and each `FileResult` maps `ObjectIdentifier`s to image refs. `Result.images()` lists every image involved once. `Result.objects()` merges the objects across files.

### `fleetcore.filereader`

`ScreeningLocalReader(token, path).read()` walks `path`, which may be a single file, in name order. It parses the `.yaml` and `.yml` files that contain `token` and keeps their comments. It returns one `YamlNode` per document, and each node records the file's path relative to the scanned directory. Files that contain the token but fail to parse are listed in `problem_files`.

### `fleetcore.setters`

`with_setters(inpath, outpath, scans)` updates YAML fields marked with a line comment. The comment looks like this:

```yaml
image: registry.example.com/team/app:v1.0.0 # {"$imagescan": "app"}
```

For each `ImageScan` that has a `latest_image`, four setters are defined. In the list below, `<tag_name>` stands for the scan's `tag_name`:

- `<tag_name>` sets the full image.
- `<tag_name>:tag` sets the tag only.
- `<tag_name>:name` sets the image without its tag.
- `<tag_name>:digest` sets `<image>@<latest_digest>`.

Only the files in which some value changed are written, under `outpath`, which must be an existing directory. The function returns a `Result` of which images were set in which objects.

Two lower-level helpers are also available:

- `SetAllCallback` applies the setters of a schema to a single document.
- `setter_schema(name, value)` builds one setter definition.

## Example

```python
from fleetcore.match import ClusterMatcher, LabelSelector

matcher = ClusterMatcher(
    cluster_name="",
    cluster_group="",
    cluster_group_selector=None,
    cluster_selector=LabelSelector(match_labels={"env": "prod"}),
)
matcher.match("local", "default", {}, {"env": "prod"})  # True
```

```python
from fleetcore.setters import ImageScan, with_setters

scan = ImageScan(
    name="app",
    namespace="default",
    tag_name="app",
    latest_image="registry.example.com/team/app:v1.2.0",
)
result = with_setters("manifests", "manifests", [scan])
for ref in result.images():
    print(ref)
```

## What it does not do

This is a library only. It has none of the following:

- no command-line tool
- no controller or agent
- no connection to a cluster API
- no Helm chart rendering
- no Git or registry access

Cluster objects, image scans and bundle options are plain Python objects that the caller fills in.