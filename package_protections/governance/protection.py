"""
Package Protections - Protection Interface

Every protection is one governance rule evaluated per package. Built-in
protections that operate on recorded references implement `Protection`
directly; protections whose checks are performed by the external lint-rule
engine also mix in `RuleEngineProtection`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import yaml

from .models import Offense, PackageManifest, PerFileViolation, ViolationBehavior

if TYPE_CHECKING:
    from .configuration import Configuration
    from .protected_package import ProtectedPackage, ProtectedPackageIndex


class Protection(ABC):
    """
    Abstract base class for protections.

    Subclasses decide, per enforcement behavior, which new and recorded
    violations become offenses.
    """

    @property
    @abstractmethod
    def identifier(self) -> str:
        """Key of this protection under `metadata.protections`."""
        pass

    @property
    @abstractmethod
    def humanized_name(self) -> str:
        pass

    @property
    @abstractmethod
    def humanized_description(self) -> str:
        pass

    @property
    def default_behavior(self) -> ViolationBehavior:
        """
        Behavior used when a package does not configure this protection.

        Anything other than FAIL_NEVER means packages must configure the
        protection explicitly.
        """
        return ViolationBehavior.FAIL_ON_NEW

    @abstractmethod
    def unmet_preconditions_for(
        self,
        behavior: ViolationBehavior,
        package: PackageManifest
    ) -> Optional[str]:
        """
        Explain why a behavior cannot be used with a package.

        Returns:
            None when compatible, otherwise an explanation
        """
        pass

    def supports_violation_behavior(self, behavior: ViolationBehavior, package: PackageManifest) -> bool:
        return self.unmet_preconditions_for(behavior, package) is None

    @abstractmethod
    def get_offenses_for_new_violations(
        self,
        new_violations: List[PerFileViolation],
        packages: "ProtectedPackageIndex"
    ) -> List[Offense]:
        pass

    @abstractmethod
    def get_offenses_for_existing_violations(
        self,
        protected_packages: List["ProtectedPackage"],
        packages: "ProtectedPackageIndex"
    ) -> List[Offense]:
        pass

    def get_offenses(
        self,
        protected_packages: List["ProtectedPackage"],
        new_violations: List[PerFileViolation],
        packages: "ProtectedPackageIndex"
    ) -> List[Offense]:
        """
        Collect offenses for new violations and for recorded ones.

        Args:
            protected_packages: Packages under evaluation
            new_violations: Violations introduced by the current change
            packages: Lookup of protected packages by name

        Returns:
            Offenses sorted by message
        """
        offenses = [
            *self.get_offenses_for_new_violations(new_violations, packages),
            *self.get_offenses_for_existing_violations(protected_packages, packages),
        ]
        return sorted(offenses, key=lambda offense: offense.message)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.identifier}>"


@dataclass
class RuleConfig:
    """
    Declarative configuration of one lint-engine rule.

    Attributes:
        name: Rule name in the lint engine
        enabled: Whether the rule runs at all
        include_paths: Globs the rule applies to
        exclude_paths: Globs the rule skips
        extra_metadata: Additional rule-specific keys
    """
    name: str
    enabled: bool = True
    include_paths: List[str] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)
    extra_metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        rule_config: Dict[str, Any] = {"Enabled": self.enabled}
        if self.include_paths:
            rule_config["Include"] = self.include_paths
        if self.exclude_paths:
            rule_config["Exclude"] = self.exclude_paths
        rule_config.update(self.extra_metadata)
        return {self.name: rule_config}

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, default_flow_style=False)


class RuleEngineProtection(ABC):
    """
    Mixin for protections whose checks run inside the lint-rule engine.

    The engine records files that currently break a rule in its TODO list.
    Such files are only surfaced as offenses for packages set to
    `fail_on_any`; there is no notion of a new violation.
    """

    @property
    @abstractmethod
    def rule_name(self) -> str:
        pass

    @property
    @abstractmethod
    def included_globs(self) -> List[str]:
        """Globs relative to a package directory that the rule applies to."""
        pass

    @abstractmethod
    def message_for_fail_on_any(self, file: str) -> str:
        pass

    def unmet_preconditions_for(
        self,
        behavior: ViolationBehavior,
        package: PackageManifest
    ) -> Optional[str]:
        return None

    def extra_rule_metadata(
        self,
        protected_packages: List["ProtectedPackage"],
        configuration: "Configuration"
    ) -> Dict[str, Any]:
        return {}

    def get_offenses_for_new_violations(
        self,
        new_violations: List[PerFileViolation],
        packages: "ProtectedPackageIndex"
    ) -> List[Offense]:
        return []

    def get_offenses_for_existing_violations(
        self,
        protected_packages: List["ProtectedPackage"],
        packages: "ProtectedPackageIndex"
    ) -> List[Offense]:
        offenses = []
        todo_list = packages.rule_todo_list
        root = todo_list.root

        for package in protected_packages:
            if not package.violation_behavior_for(self.identifier).fails_on_any:
                continue

            excluded = todo_list.excluded_files(self.rule_name, [package.directory])
            if not excluded:
                continue

            for file in self._files_in_package(root, package.directory):
                if file not in excluded:
                    continue
                offenses.append(Offense(
                    file=file,
                    message=self.message_for_fail_on_any(file),
                    violation_type=self.identifier,
                    package=package.original_package,
                ))

        return offenses

    def rule_configs(
        self,
        protected_packages: List["ProtectedPackage"],
        configuration: "Configuration"
    ) -> List[RuleConfig]:
        """
        Build the lint-engine configuration for this rule.

        Include paths cover every package with the protection enabled.
        """
        include_paths = []
        for package in protected_packages:
            if not package.violation_behavior_for(self.identifier).enabled:
                continue
            include_paths.extend(self._package_globs(package.directory))

        return [
            RuleConfig(
                name=self.rule_name,
                enabled=bool(include_paths),
                include_paths=include_paths,
                extra_metadata=self.extra_rule_metadata(protected_packages, configuration),
            )
        ]

    def _package_globs(self, directory: Path) -> List[str]:
        return [(directory / glob).as_posix() for glob in self.included_globs]

    def _files_in_package(self, root: Path, directory: Path) -> List[str]:
        files = set()
        for glob in self.included_globs:
            for path in (root / directory).glob(glob):
                if path.is_file():
                    files.add(path.relative_to(root).as_posix())
        return sorted(files)
