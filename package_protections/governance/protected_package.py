"""
Package Protections - Protected Packages

Resolves each package's configured behavior for every registered
protection. The same configuration check backs both fail-fast construction
(`ProtectedPackage.from_manifest`) and collect-all validation.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, TYPE_CHECKING

from .models import (
    README_HINT,
    ConfigurationError,
    PackageManifest,
    PerFileViolation,
    RawViolation,
    ViolationBehavior,
)

if TYPE_CHECKING:
    from .configuration import Configuration
    from .protection import Protection
    from ..packs.todo import RuleTodoList


class ProblemKind(Enum):
    """Category of a package configuration problem."""
    UNKNOWN_PROTECTIONS = "unknown_protections"
    INVALID_BEHAVIOR = "invalid_behavior"
    UNMET_PRECONDITION = "unmet_precondition"
    MISSING_PROTECTION = "missing_protection"


@dataclass(frozen=True)
class ConfigurationProblem:
    """A single problem found in a package's protection configuration."""
    kind: ProblemKind
    package_name: str
    message: str
    identifiers: tuple = ()

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind.value,
            "package": self.package_name,
            "message": self.message,
            "identifiers": list(self.identifiers),
        }


@dataclass
class PackageConfigurationCheck:
    """Outcome of checking one package: resolved behaviors and any problems."""
    package: PackageManifest
    behaviors: Dict[str, ViolationBehavior] = field(default_factory=dict)
    problems: List[ConfigurationProblem] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.problems

    def problems_of(self, kind: ProblemKind) -> List[ConfigurationProblem]:
        return [p for p in self.problems if p.kind is kind]

    def raise_for_problems(self) -> None:
        """
        Raise the first problem, in the order construction reports them.

        Unknown keys come first, then invalid values and unmet
        preconditions, then every missing protection batched together.
        """
        unknown = self.problems_of(ProblemKind.UNKNOWN_PROTECTIONS)
        if unknown:
            raise ConfigurationError(unknown[0].message)

        for problem in self.problems:
            if problem.kind in (ProblemKind.INVALID_BEHAVIOR, ProblemKind.UNMET_PRECONDITION):
                raise ConfigurationError(problem.message)

        missing = self.problems_of(ProblemKind.MISSING_PROTECTION)
        if missing:
            identifiers = [p.identifiers[0] for p in missing]
            raise ConfigurationError(
                f"Invalid configuration for package `{self.package.name}`. "
                f"All protections must explicitly set unless their default behavior is `fail_never`. "
                f"Missing protections: {', '.join(identifiers)}. {README_HINT}"
            )


def check_package_configuration(
    package: PackageManifest,
    configuration: "Configuration"
) -> PackageConfigurationCheck:
    """
    Check a package's `metadata.protections` against the registry.

    Args:
        package: Manifest to check
        configuration: Active configuration holding the protection registry

    Returns:
        PackageConfigurationCheck with every problem found
    """
    check = PackageConfigurationCheck(package=package)
    metadata = package.protections_metadata
    valid_identifiers = configuration.identifiers

    invalid_identifiers = [key for key in metadata.keys() if key not in valid_identifiers]
    if invalid_identifiers:
        check.problems.append(ConfigurationProblem(
            kind=ProblemKind.UNKNOWN_PROTECTIONS,
            package_name=package.name,
            message=(
                f"Invalid configuration for package `{package.name}`. "
                f"The metadata keys {json.dumps(invalid_identifiers)} are not valid behaviors "
                f"under the `protection` metadata namespace. "
                f"Valid keys are {json.dumps(valid_identifiers)}. {README_HINT}"
            ),
            identifiers=tuple(invalid_identifiers),
        ))

    for identifier, value in metadata.items():
        if identifier not in valid_identifiers or value is None:
            continue

        try:
            behavior = ViolationBehavior.from_raw(value, package_name=package.name)
        except ConfigurationError as e:
            check.problems.append(ConfigurationProblem(
                kind=ProblemKind.INVALID_BEHAVIOR,
                package_name=package.name,
                message=str(e),
                identifiers=(identifier,),
            ))
            continue

        protection = configuration.with_identifier(identifier)
        if _check_preconditions(check, protection, behavior):
            check.behaviors[identifier] = behavior

    for protection in configuration.protections:
        identifier = protection.identifier
        if metadata.get(identifier) is not None:
            continue
        if protection.default_behavior.fails_never:
            check.behaviors[identifier] = ViolationBehavior.FAIL_NEVER
        else:
            check.problems.append(ConfigurationProblem(
                kind=ProblemKind.MISSING_PROTECTION,
                package_name=package.name,
                message=(
                    f"All protections must explicitly set unless their default behavior is `fail_never`. "
                    f"Missing protection {identifier} for package {package.name}."
                ),
                identifiers=(identifier,),
            ))

    return check


def _check_preconditions(
    check: PackageConfigurationCheck,
    protection: "Protection",
    behavior: ViolationBehavior
) -> bool:
    """Record an unmet precondition problem. Returns True when the behavior is usable."""
    package = check.package
    unmet_preconditions = protection.unmet_preconditions_for(behavior, package)
    if not unmet_preconditions:
        return True

    check.problems.append(ConfigurationProblem(
        kind=ProblemKind.UNMET_PRECONDITION,
        package_name=package.name,
        message=(
            f"{protection.identifier} protection does not have the valid preconditions in {package.name}. "
            f"{unmet_preconditions.rstrip('.')}. {README_HINT}"
        ),
        identifiers=(protection.identifier,),
    ))
    return False


@dataclass(frozen=True)
class ProtectedPackage:
    """
    A package manifest with resolved protection behaviors and its ledger.

    Attributes:
        original_package: The manifest this package was built from
        protections: Behavior for every registered protection identifier
        violations: Recorded violations from the package's ledger
    """
    original_package: PackageManifest
    protections: Dict[str, ViolationBehavior]
    violations: List[PerFileViolation] = field(default_factory=list)

    @classmethod
    def from_manifest(
        cls,
        package: PackageManifest,
        configuration: "Configuration",
        recorded_violations: Optional[List[RawViolation]] = None
    ) -> "ProtectedPackage":
        """
        Build a protected package.

        Args:
            package: Manifest to protect
            configuration: Active configuration holding the protection registry
            recorded_violations: Ledger records of the package

        Raises:
            ConfigurationError: On unknown keys, invalid values, unmet
                preconditions or protections missing explicit configuration
        """
        check = check_package_configuration(package, configuration)
        check.raise_for_problems()

        violations = []
        for raw in recorded_violations or []:
            violations.extend(PerFileViolation.from_raw(raw, package))

        return cls(
            original_package=package,
            protections=check.behaviors,
            violations=violations,
        )

    def violation_behavior_for(self, identifier: str) -> ViolationBehavior:
        return self.protections[identifier]

    @property
    def name(self) -> str:
        return self.original_package.name

    @property
    def metadata(self) -> Dict:
        return self.original_package.metadata

    @property
    def directory(self) -> Path:
        return self.original_package.directory

    @property
    def yml(self) -> Path:
        return self.original_package.yml

    @property
    def dependencies(self) -> tuple:
        return self.original_package.dependencies

    @property
    def visible_to(self) -> Set[str]:
        return self.original_package.visible_to


class ProtectedPackageIndex:
    """
    Lookup of protected packages by name.

    Packages under evaluation are found directly; any other package (for
    example the target of a new violation) is resolved through `fallback`.
    """

    def __init__(
        self,
        protected_packages: List[ProtectedPackage],
        rule_todo_list: "RuleTodoList",
        fallback: Optional[Callable[[str], ProtectedPackage]] = None
    ):
        self._packages = {p.name: p for p in protected_packages}
        self.rule_todo_list = rule_todo_list
        self._fallback = fallback

    def get(self, name: str) -> ProtectedPackage:
        if name in self._packages:
            return self._packages[name]
        if self._fallback is None:
            raise KeyError(f"Unknown package: {name}")
        package = self._fallback(name)
        self._packages[name] = package
        return package

    def __contains__(self, name: str) -> bool:
        return name in self._packages
