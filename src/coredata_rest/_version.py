"""Package version lookup."""

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

DISTRIBUTION = "coredata-rest"
_SOURCE_PYPROJECT = "pyproject.toml"


def _source_checkout_version() -> str | None:
    pyproject = Path(__file__).resolve().parents[2] / _SOURCE_PYPROJECT
    if not pyproject.is_file():
        return None
    with pyproject.open("rb") as f:
        project = tomllib.load(f).get("project", {})
    if project.get("name") != DISTRIBUTION:
        return None
    return project.get("version")


def get_version() -> str:
    """Version of the running code: the source checkout first, then the installed distribution."""
    found = _source_checkout_version()
    if found:
        return found
    try:
        return version(DISTRIBUTION)
    except PackageNotFoundError:
        return "0.0.0"
