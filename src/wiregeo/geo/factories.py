"""Construct a geometry core from the name of a detector."""

from pathlib import Path
from typing import Dict, Optional, Union

import yaml

from .base import GeometryCore

# Get config directory relative to this module
GEO_CONFIG_DIR = Path(__file__).parent / "config"

__all__ = ["geo_factory", "geo_dict"]


def geo_dict() -> Dict[Path, Dict[str, str]]:
    """Builds a dictionary of available geometry configurations.

    Returns
    -------
    dict
        Name, tag and version of each configuration, keyed by file path
    """
    # Gather all geometry yaml files from the config directory
    options = {}
    for path in sorted(GEO_CONFIG_DIR.glob("*/*_geometry.yaml")):
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f)

        options[path] = {k: cfg.get(k, None) for k in ("name", "tag", "version")}
        options[path]["version"] = str(float(options[path]["version"]))

    return options


def _match_version(requested: str, available: str) -> bool:
    """Checks whether a requested version matches an available one.

    Only the major revision is compared if it is the only one specified,
    both the major and minor revisions otherwise.
    """
    req_parts = str(requested).split(".")
    ver_parts = available.split(".")

    return req_parts[:2] == ver_parts[: len(req_parts[:2])]


def geo_factory(
    detector: str,
    tag: Optional[str] = None,
    version: Optional[Union[str, int, float]] = None,
) -> GeometryCore:
    """Instantiates a geometry core from a detector name.

    The returned geometry is not loaded: a node tree must be provided to
    :meth:`GeometryCore.load_geometry`.

    Parameters
    ----------
    detector : str
        Name of the detector (e.g. "toy", "toy2x", etc.)
    tag : str, optional
        Geometry tag
    version : str, optional
        Geometry version (e.g. "1", "1.1", etc.)

    Returns
    -------
    GeometryCore
         Configured geometry core
    """
    # Find a geometry configuration that matches the requested parameters
    options = geo_dict()
    paths, tags, versions = [], [], []
    for path, cfg in options.items():
        if cfg["name"].lower() == detector.lower():
            paths.append(path)
            tags.append(cfg["tag"])
            versions.append(cfg["version"])

    if len(paths) == 0:
        raise ValueError(f"No geometry found for detector '{detector}'.")

    # If a tag is specified, must find the exact tag or throw
    if tag is not None:
        if tag not in tags:
            raise ValueError(
                f"No geometry found for detector '{detector}' with tag '{tag}'. "
                f"Available tags are: {set(tags)}"
            )
        index = tags.index(tag)
        if version is not None and not _match_version(version, versions[index]):
            raise ValueError(
                f"Geometry version '{version}' does not match found version "
                f"'{versions[index]}' for detector '{detector}' with tag '{tag}'."
            )
        file_path = paths[index]

    # If a version is specified, must match the major (and minor) revision
    elif version is not None:
        matches = [i for i, ver in enumerate(versions) if _match_version(version, ver)]
        if len(matches) == 0:
            raise ValueError(
                f"No geometry found for detector '{detector}' with version "
                f"'{version}'. Available versions are: {set(versions)}"
            )
        file_path = paths[matches[0]]

    # If no tag or version is specified, return the most recent version
    else:
        index = max(range(len(versions)), key=lambda i: float(versions[i]))
        file_path = paths[index]

    # Parse configuration file as a dictionary
    with open(file_path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f)

    # Instantiate the geometry core
    return GeometryCore(**cfg)
