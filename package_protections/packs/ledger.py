"""
Violation Ledger

Reads the per-package backlog of recorded violations written by the
reference extractor (`deprecated_references.yml` or `package_todo.yml`).

Layout:
    "packs/trees":
      "Trees::Tree":
        violations:
        - dependency
        files:
        - packs/apples/models/apples/apple.rb
"""

import logging
from pathlib import Path
from typing import Dict, List

import yaml

from ..governance.models import PackageManifest, RawViolation, ViolationType


logger = logging.getLogger(__name__)

LEDGER_FILENAMES = ("deprecated_references.yml", "package_todo.yml")


class ViolationLedger:
    """Cached reader for every package's recorded violations."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self._cache: Dict[str, List[RawViolation]] = {}

    def violations_for(self, package: PackageManifest) -> List[RawViolation]:
        """
        Get recorded violations of a package.

        Args:
            package: The referencing package whose ledger is read

        Returns:
            One RawViolation per (target package, constant, violation type)
        """
        if package.name not in self._cache:
            self._cache[package.name] = self._load(package)
        return self._cache[package.name]

    def bust_cache(self) -> None:
        self._cache = {}

    def _load(self, package: PackageManifest) -> List[RawViolation]:
        for filename in LEDGER_FILENAMES:
            path = self.root / package.directory / filename
            if path.exists():
                with open(path, "r") as f:
                    raw = yaml.safe_load(f) or {}
                violations = parse_ledger(raw)
                logger.debug("Loaded %d recorded violations from %s", len(violations), path)
                return violations
        return []


def parse_ledger(raw: Dict) -> List[RawViolation]:
    """Convert a parsed ledger document into RawViolation records."""
    violations = []
    if not isinstance(raw, dict):
        return violations

    for to_package_name, constants in raw.items():
        for class_name, entry in (constants or {}).items():
            entry = entry or {}
            files = tuple(entry.get("files") or [])
            for violation_type in entry.get("violations") or []:
                violations.append(RawViolation(
                    violation_type=ViolationType(violation_type),
                    class_name=class_name,
                    to_package_name=to_package_name,
                    files=files,
                ))
    return violations
