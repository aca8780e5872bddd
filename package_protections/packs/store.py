"""
Package Store

Discovers `package.yml` manifests under a repository root and reads or
writes them.
"""

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from ..governance.models import PACKAGE_YML, ROOT_PACKAGE_NAME, PackageManifest


logger = logging.getLogger(__name__)

# Directories never searched for manifests
EXCLUDED_DIRECTORIES = {
    "node_modules",
    "vendor",
    "tmp",
    "log",
    "__pycache__",
}


class PackageStore:
    """
    File-system backed collection of package manifests.

    Package names are the manifest's directory relative to the root, with
    the root manifest named '.'.
    """

    def __init__(self, root: Optional[str] = None):
        """
        Initialize the store.

        Args:
            root: Repository root. Defaults to the current working directory.
        """
        self.root = Path(root or os.getcwd()).resolve()
        self._packages: Optional[Dict[str, PackageManifest]] = None

    def all(self) -> List[PackageManifest]:
        """Return every discovered package, root first, then by name."""
        return list(self._index().values())

    def get(self, name: str) -> Optional[PackageManifest]:
        return self._index().get(name)

    def bust_cache(self) -> None:
        self._packages = None

    def read_package(self, manifest_path: Path) -> PackageManifest:
        """
        Parse a single `package.yml`.

        Args:
            manifest_path: Absolute or root-relative path of the manifest

        Returns:
            The parsed PackageManifest
        """
        path = Path(manifest_path)
        if not path.is_absolute():
            path = self.root / path

        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}

        directory = path.parent.relative_to(self.root)
        name = directory.as_posix() if directory.parts else ROOT_PACKAGE_NAME

        return PackageManifest(
            name=name,
            enforce_dependencies=bool(raw.get("enforce_dependencies", False)),
            enforce_privacy=bool(raw.get("enforce_privacy", False)),
            dependencies=tuple(raw.get("dependencies") or []),
            metadata=raw.get("metadata") or {},
            directory=Path(name),
        )

    def write_package(self, package: PackageManifest) -> Path:
        """
        Persist a manifest to `<directory>/package.yml`.

        Returns:
            Absolute path of the written file
        """
        path = self.root / package.yml
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.safe_dump(package.to_dict(), f, sort_keys=False, default_flow_style=False)

        if self._packages is not None:
            self._packages[package.name] = package

        logger.debug("Wrote %s", path)
        return path

    def _index(self) -> Dict[str, PackageManifest]:
        if self._packages is None:
            packages = [self.read_package(path) for path in self._discover()]
            packages.sort(key=lambda p: (not p.is_root, p.name))
            self._packages = {p.name: p for p in packages}
            logger.debug("Discovered %d packages under %s", len(packages), self.root)
        return self._packages

    def _discover(self) -> List[Path]:
        manifests = []
        for root, dirs, files in os.walk(self.root):
            dirs[:] = [
                d for d in dirs
                if not d.startswith(".") and d not in EXCLUDED_DIRECTORIES
            ]
            if PACKAGE_YML in files:
                manifests.append(Path(root) / PACKAGE_YML)
        return manifests
