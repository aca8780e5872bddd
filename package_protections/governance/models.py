"""
Package Protections - Data Models

Data classes for representing package manifests, recorded violations,
enforcement behaviors and the offenses produced by protections.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple


ROOT_PACKAGE_NAME = "."
PACKAGE_YML = "package.yml"
README_HINT = "See the package protections README for more info"


class ConfigurationError(ValueError):
    """Raised when a package or the protection registry is misconfigured."""


class ViolationBehavior(Enum):
    """How strictly a protection is enforced for a package."""
    FAIL_ON_ANY = "fail_on_any"
    FAIL_ON_NEW = "fail_on_new"
    FAIL_NEVER = "fail_never"

    @classmethod
    def from_raw(cls, value: Any, package_name: Optional[str] = None) -> "ViolationBehavior":
        """
        Parse a raw metadata token.

        Args:
            value: Token from `metadata.protections` (e.g. 'fail_on_new')
            package_name: Package the token came from, used in the error message

        Returns:
            The matching ViolationBehavior

        Raises:
            ConfigurationError: If the token is not an acceptable value
        """
        for behavior in cls:
            if behavior.value == str(value):
                return behavior

        acceptable_values = [behavior.value for behavior in cls]
        prefix = f"Invalid configuration for package `{package_name}`. " if package_name else ""
        raise ConfigurationError(
            f"{prefix}The metadata value {value} is not a valid behavior. "
            f"Double check your spelling! Acceptable values are {json.dumps(acceptable_values)}. "
            f"{README_HINT}"
        )

    @property
    def strictness(self) -> int:
        return _STRICTNESS[self]

    def __lt__(self, other: "ViolationBehavior") -> bool:
        if not isinstance(other, ViolationBehavior):
            return NotImplemented
        return self.strictness < other.strictness

    @property
    def enabled(self) -> bool:
        return self is not ViolationBehavior.FAIL_NEVER

    @property
    def fails_on_any(self) -> bool:
        return self is ViolationBehavior.FAIL_ON_ANY

    @property
    def fails_on_new(self) -> bool:
        return self is ViolationBehavior.FAIL_ON_NEW

    @property
    def fails_never(self) -> bool:
        return self is ViolationBehavior.FAIL_NEVER


_STRICTNESS = {
    ViolationBehavior.FAIL_NEVER: 0,
    ViolationBehavior.FAIL_ON_NEW: 1,
    ViolationBehavior.FAIL_ON_ANY: 2,
}


@dataclass(frozen=True)
class PackageManifest:
    """
    Read-only view of a package's `package.yml`.

    Attributes:
        name: Unique package name ('.' for the root package)
        enforce_dependencies: Whether undeclared dependencies are reported
        enforce_privacy: Whether references to private constants are reported
        dependencies: Names of packages this package may depend on
        metadata: Free-form metadata; `protections` maps identifiers to behaviors
        directory: Package directory relative to the repository root
    """
    name: str
    enforce_dependencies: bool = False
    enforce_privacy: bool = False
    dependencies: Tuple[str, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict, hash=False)
    directory: Path = field(default=None)

    def __post_init__(self):
        if self.directory is None:
            object.__setattr__(self, "directory", Path(self.name))
        object.__setattr__(self, "dependencies", tuple(self.dependencies))

    @property
    def is_root(self) -> bool:
        return self.name == ROOT_PACKAGE_NAME

    @property
    def yml(self) -> Path:
        """Path of the manifest file, relative to the repository root."""
        return self.directory / PACKAGE_YML

    @property
    def protections_metadata(self) -> Dict[str, Any]:
        return self.metadata.get("protections") or {}

    @property
    def visible_to(self) -> Set[str]:
        """Packages allowed to depend on this one. Empty means nobody."""
        return set(self.metadata.get("visible_to") or [])

    @property
    def global_namespaces(self) -> Optional[List[str]]:
        value = self.metadata.get("global_namespaces")
        return list(value) if value is not None else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the `package.yml` document layout."""
        data: Dict[str, Any] = {
            "enforce_dependencies": self.enforce_dependencies,
            "enforce_privacy": self.enforce_privacy,
        }
        if self.dependencies:
            data["dependencies"] = list(self.dependencies)
        if self.metadata:
            data["metadata"] = self.metadata
        return data


class ViolationType(Enum):
    """Kind of cross-package reference recorded by the reference extractor."""
    DEPENDENCY = "dependency"
    PRIVACY = "privacy"


@dataclass(frozen=True)
class RawViolation:
    """
    A single ledger record: one constant, one kind, possibly many files.

    Attributes:
        violation_type: dependency or privacy
        class_name: Fully qualified constant name
        to_package_name: Package that owns the constant
        files: Referencing files, relative to the repository root
    """
    violation_type: ViolationType
    class_name: str
    to_package_name: str
    files: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PerFileViolation:
    """A recorded or newly detected violation narrowed to one referencing file."""
    class_name: str
    filepath: str
    violation_type: ViolationType
    constant_source_package: str
    reference_source_package: PackageManifest

    @classmethod
    def from_raw(
        cls,
        violation: RawViolation,
        reference_source_package: PackageManifest
    ) -> List["PerFileViolation"]:
        """Expand a ledger record into one entry per referencing file."""
        return [
            cls(
                class_name=violation.class_name,
                filepath=file,
                violation_type=violation.violation_type,
                constant_source_package=violation.to_package_name,
                reference_source_package=reference_source_package,
            )
            for file in violation.files
        ]

    @property
    def is_dependency(self) -> bool:
        return self.violation_type is ViolationType.DEPENDENCY

    @property
    def is_privacy(self) -> bool:
        return self.violation_type is ViolationType.PRIVACY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "class_name": self.class_name,
            "filepath": self.filepath,
            "type": self.violation_type.value,
            "constant_source_package": self.constant_source_package,
            "reference_source_package": self.reference_source_package.name,
        }


@dataclass(frozen=True, order=False)
class Offense:
    """
    A user-facing report of a protection being violated.

    Attributes:
        file: File the offense points at
        message: Human-readable description
        violation_type: Identifier of the protection that produced it
        package: Package the offense is attributed to
    """
    file: str
    message: str
    violation_type: str
    package: PackageManifest

    @property
    def package_name(self) -> str:
        return self.package.name

    def __lt__(self, other: "Offense") -> bool:
        if not isinstance(other, Offense):
            return NotImplemented
        return self.message < other.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file,
            "message": self.message,
            "violation_type": self.violation_type,
            "package": self.package_name,
        }
