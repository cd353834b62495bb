[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fleetcore"
version = "0.1.0"
description = "GitOps bundle deployment helpers: cluster matching, option merging, overlay patches, status summaries and image setters"
requires-python = ">=3.10"
keywords = ["gitops", "kubernetes", "bundles", "yaml", "deployment", "image-automation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Software Distribution",
]
dependencies = [
    "pyyaml>=6.0",
    "ruamel-yaml>=0.17",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[tool.hatch.build.targets.wheel]
packages = ["fleetcore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
