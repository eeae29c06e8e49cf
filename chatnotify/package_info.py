"""Name, version and bug tracker of the application sending notifications."""

import logging
import tomllib
from dataclasses import dataclass
from importlib import metadata
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Project-URL labels that point at an issue tracker, compared lowercased
BUG_URL_LABELS = ("bug tracker", "bugs", "issues", "issue tracker", "tracker")


@dataclass(frozen=True)
class PackageInfo:
    name: str = "Unknown"
    version: str = "0.0.0"
    bugs_url: Optional[str] = None


UNKNOWN_PACKAGE = PackageInfo()


def _pick_bugs_url(urls: dict[str, str]) -> Optional[str]:
    for label, url in urls.items():
        if label.strip().lower() in BUG_URL_LABELS and url:
            return url.rstrip("/")
    return None


def from_distribution(name: str) -> PackageInfo:
    """Read metadata of an installed distribution."""
    meta = metadata.metadata(name)
    urls = {}
    for entry in meta.get_all("Project-URL") or []:
        label, _, url = entry.partition(",")
        urls[label] = url.strip()
    return PackageInfo(
        name=meta["Name"],
        version=meta["Version"],
        bugs_url=_pick_bugs_url(urls),
    )


def from_pyproject(path: Path) -> PackageInfo:
    """Read the ``[project]`` table of a pyproject.toml file."""
    with path.open("rb") as fh:
        data = tomllib.load(fh)
    project = data.get("project", {})
    return PackageInfo(
        name=project.get("name", UNKNOWN_PACKAGE.name),
        version=str(project.get("version", UNKNOWN_PACKAGE.version)),
        bugs_url=_pick_bugs_url(project.get("urls", {})),
    )


def load_package_info(
    package_name: str = "",
    search_dir: Optional[Path] = None,
) -> PackageInfo:
    """
    Resolve package info.

    Priority:
      1. Installed distribution named *package_name*
      2. pyproject.toml in *search_dir* (default: working directory)
      3. Unknown / 0.0.0
    """
    if package_name:
        try:
            return from_distribution(package_name)
        except metadata.PackageNotFoundError:
            logger.warning("Distribution %s is not installed", package_name)

    pyproject = (search_dir or Path.cwd()) / "pyproject.toml"
    if pyproject.is_file():
        try:
            return from_pyproject(pyproject)
        except (OSError, tomllib.TOMLDecodeError):
            logger.warning("Could not read %s", pyproject, exc_info=True)

    return UNKNOWN_PACKAGE
