"""package.json reading and workspace resolution."""

import asyncio
import glob
import json
from pathlib import Path
from typing import Any, Dict, List, Union

from autobump.models import ROOT_WORKSPACE, PackageEntry, get_package_name_no_scope
from autobump.utils.logger import get_logger

logger = get_logger(__name__)

MANIFEST_FILE = "package.json"

# Directories never searched for workspace packages
EXCLUDED_DIRECTORIES = {"node_modules"}


class ManifestError(Exception):
    """Package manifest is missing or invalid."""
    pass


def _load_manifest(manifest_path: Path) -> Dict[str, Any]:
    """Load and validate a manifest file.

    Raises:
        ManifestError: If the file is absent, unparsable, or invalid
    """
    if not manifest_path.is_file():
        raise ManifestError(f"package.json does not exist in directory: {manifest_path.parent}")

    try:
        with open(manifest_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ManifestError(f"package.json could not be parsed: {manifest_path}: {e}") from e
    except OSError as e:
        raise ManifestError(f"package.json could not be read: {manifest_path}: {e}") from e

    verify_manifest(data, manifest_path)
    return data


def verify_manifest(data: Any, manifest_path: Union[str, Path] = MANIFEST_FILE) -> None:
    """Check the fields every manifest must carry.

    Raises:
        ManifestError: If name or version is missing or not a string
    """
    if not isinstance(data, dict):
        raise ManifestError(f"package.json must contain a JSON object: {manifest_path}")

    for field in ("version", "name"):
        value = data.get(field)
        if value is None or value == "":
            raise ManifestError(f'package.json is missing a "{field}" attribute: {manifest_path}')
        if not isinstance(value, str):
            raise ManifestError(f'package.json "{field}" attribute must be a string: {manifest_path}')
        if not value.strip():
            raise ManifestError(f'package.json is missing a "{field}" attribute: {manifest_path}')


def read_package(directory: Union[str, Path], is_root: bool = False) -> PackageEntry:
    """Read the package manifest in a directory.

    Args:
        directory: Directory holding package.json
        is_root: Whether the directory is the repository root

    Returns:
        Package entry snapshot

    Raises:
        ManifestError: If the manifest is missing or invalid
    """
    directory = Path(directory).resolve()
    manifest_path = directory / MANIFEST_FILE
    logger.debug(f"Reading package from {manifest_path}")

    data = _load_manifest(manifest_path)
    description = data.get("description")

    return PackageEntry(
        name=data["name"],
        name_no_scope=get_package_name_no_scope(data["name"]),
        version=data["version"],
        description=description if isinstance(description, str) else None,
        directory=directory,
        manifest_path=manifest_path,
        is_root=is_root,
    )


def read_manifest_version(manifest_path: Union[str, Path]) -> str:
    """Read the current version straight from a manifest file."""
    return _load_manifest(Path(manifest_path))["version"]


def get_workspace_patterns(root: PackageEntry) -> List[str]:
    """Extract workspace glob patterns from the root manifest.

    Supports both the array form and the ``{"packages": [...]}`` form.
    """
    data = _load_manifest(root.manifest_path)
    workspaces = data.get("workspaces")

    if isinstance(workspaces, dict):
        workspaces = workspaces.get("packages")

    if not isinstance(workspaces, list):
        return []

    return [pattern for pattern in workspaces if isinstance(pattern, str) and pattern.strip()]


def resolve_workspace_directories(root_directory: Path, patterns: List[str]) -> List[Path]:
    """Expand workspace patterns to directories holding a manifest."""
    root_directory = root_directory.resolve()
    directories: List[Path] = []
    seen = {root_directory}

    for pattern in patterns:
        for match in sorted(glob.glob(str(root_directory / pattern))):
            candidate = Path(match).resolve()
            if EXCLUDED_DIRECTORIES.intersection(candidate.parts[len(root_directory.parts):]):
                continue
            if not candidate.is_dir() or not (candidate / MANIFEST_FILE).is_file():
                continue
            if candidate in seen:
                continue
            seen.add(candidate)
            directories.append(candidate)

    return directories


async def list_workspace_packages(root: PackageEntry) -> List[PackageEntry]:
    """List the root package together with all workspace packages.

    Workspace manifests are read concurrently; they are only read, never
    written, so ordering does not matter.

    Raises:
        ManifestError: If any workspace manifest is invalid
    """
    patterns = get_workspace_patterns(root)
    if not patterns:
        return [root]

    directories = resolve_workspace_directories(root.directory, patterns)
    logger.debug(f"Resolved {len(directories)} workspace package(s) from {patterns}")

    entries = await asyncio.gather(
        *(asyncio.to_thread(read_package, directory) for directory in directories)
    )
    return [root, *entries]


def resolve_workspace_directory(workspace_root: Union[str, Path], workspace: str) -> Path:
    """Resolve a CI workspace identifier to a package directory."""
    workspace_root = Path(workspace_root)
    if workspace == ROOT_WORKSPACE:
        return workspace_root.resolve()
    return (workspace_root / workspace).resolve()
