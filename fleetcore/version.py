"""Build version information."""

VERSION = "dev"
GIT_COMMIT = "HEAD"


def friendly_version(version: str = VERSION, git_commit: str = GIT_COMMIT) -> str:
    """Return the version in the form ``"<version> (<commit>)"``."""
    return f"{version} ({git_commit})"