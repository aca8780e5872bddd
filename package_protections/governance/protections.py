"""
Package Protections - Reference Protections

Protections evaluated against cross-package references found by the
reference extractor: undeclared dependencies, use of private constants
and use of packages that restrict their visibility.
"""

from typing import List, Optional, Set, Tuple

from .models import Offense, PackageManifest, PerFileViolation, ViolationBehavior
from .protected_package import ProtectedPackage, ProtectedPackageIndex
from .protection import Protection


class OutgoingDependencyProtection(Protection):
    """
    Prevents a package from depending on packages it has not declared.

    The behavior of the referencing package decides the outcome, and
    offenses are attributed to it.
    """

    IDENTIFIER = "prevent_this_package_from_violating_its_stated_dependencies"

    @property
    def identifier(self) -> str:
        return self.IDENTIFIER

    @property
    def humanized_name(self) -> str:
        return "Dependency Violations"

    @property
    def humanized_description(self) -> str:
        return (
            "To resolve these violations, should you add a dependency in the client's `package.yml`?\n"
            "Is the code referencing the constant, and the referenced constant, in the right packages?\n"
        )

    def unmet_preconditions_for(
        self,
        behavior: ViolationBehavior,
        package: PackageManifest
    ) -> Optional[str]:
        if behavior.enabled and not package.enforce_dependencies:
            return f"Package {package.name} must have `enforce_dependencies: true` to use this protection"
        if not behavior.enabled and package.enforce_dependencies:
            return f"Package {package.name} must have `enforce_dependencies: false` to turn this protection off"
        return None

    def get_offenses_for_new_violations(
        self,
        new_violations: List[PerFileViolation],
        packages: ProtectedPackageIndex
    ) -> List[Offense]:
        offenses = []
        for violation in new_violations:
            if not violation.is_dependency:
                continue

            reference_source_package = packages.get(violation.reference_source_package.name)
            behavior = reference_source_package.violation_behavior_for(self.identifier)

            if behavior.fails_never:
                continue
            elif behavior.fails_on_new:
                message = self._message_for_fail_on_new(violation)
            else:
                message = self._message_for_fail_on_any(violation)

            offenses.append(Offense(
                file=violation.filepath,
                message=message,
                violation_type=self.identifier,
                package=reference_source_package.original_package,
            ))
        return offenses

    def get_offenses_for_existing_violations(
        self,
        protected_packages: List[ProtectedPackage],
        packages: ProtectedPackageIndex
    ) -> List[Offense]:
        offenses = []
        for protected_package in protected_packages:
            if not protected_package.violation_behavior_for(self.identifier).fails_on_any:
                continue

            for violation in protected_package.violations:
                if not violation.is_dependency:
                    continue
                offenses.append(Offense(
                    file=violation.filepath,
                    message=self._message_for_fail_on_any(violation),
                    violation_type=self.identifier,
                    package=protected_package.original_package,
                ))
        return offenses

    def _message_for_fail_on_any(self, violation: PerFileViolation) -> str:
        return (
            f"{self._message_for_fail_on_new(violation)} "
            f"(`{violation.reference_source_package.name}` set to `fail_on_any`)"
        )

    def _message_for_fail_on_new(self, violation: PerFileViolation) -> str:
        return (
            f"`{violation.filepath}` depends on `{violation.class_name}` "
            f"from `{violation.constant_source_package}`"
        )


class IncomingPrivacyProtection(Protection):
    """
    Prevents other packages from using this package's private constants.

    The behavior of the package that owns the constant decides the outcome,
    and offenses are attributed to that package.
    """

    IDENTIFIER = "prevent_other_packages_from_using_this_packages_internals"

    @property
    def identifier(self) -> str:
        return self.IDENTIFIER

    @property
    def humanized_name(self) -> str:
        return "Privacy Violations"

    @property
    def humanized_description(self) -> str:
        return (
            "To resolve these violations, check the `public/` folder in each pack for public constants and APIs.\n"
            "If you need help or can't find what you need to meet your use case, reach out to the owning team.\n"
        )

    def unmet_preconditions_for(
        self,
        behavior: ViolationBehavior,
        package: PackageManifest
    ) -> Optional[str]:
        if behavior.enabled and not package.enforce_privacy:
            return f"Package {package.name} must have `enforce_privacy: true` to use this protection"
        if not behavior.enabled and package.enforce_privacy:
            return f"Package {package.name} must have `enforce_privacy: false` to turn this protection off"
        return None

    def get_offenses_for_new_violations(
        self,
        new_violations: List[PerFileViolation],
        packages: ProtectedPackageIndex
    ) -> List[Offense]:
        offenses = []
        for violation in new_violations:
            if not violation.is_privacy:
                continue

            constant_source_package = packages.get(violation.constant_source_package)
            behavior = constant_source_package.violation_behavior_for(self.identifier)

            if behavior.fails_never:
                continue
            elif behavior.fails_on_new:
                message = self._message_for_fail_on_new(violation)
            else:
                message = self._message_for_fail_on_any(violation)

            offenses.append(Offense(
                file=violation.filepath,
                message=message,
                violation_type=self.identifier,
                package=constant_source_package.original_package,
            ))
        return offenses

    def get_offenses_for_existing_violations(
        self,
        protected_packages: List[ProtectedPackage],
        packages: ProtectedPackageIndex
    ) -> List[Offense]:
        offenses = []
        for protected_package in protected_packages:
            for violation in protected_package.violations:
                if not violation.is_privacy:
                    continue

                constant_source_package = packages.get(violation.constant_source_package)
                behavior = constant_source_package.violation_behavior_for(self.identifier)
                if not behavior.fails_on_any:
                    continue

                offenses.append(Offense(
                    file=violation.filepath,
                    message=self._message_for_fail_on_any(violation),
                    violation_type=self.identifier,
                    package=constant_source_package.original_package,
                ))
        return offenses

    def _message_for_fail_on_any(self, violation: PerFileViolation) -> str:
        return (
            f"{self._message_for_fail_on_new(violation)} "
            f"(`{violation.constant_source_package}` set to `fail_on_any`)"
        )

    def _message_for_fail_on_new(self, violation: PerFileViolation) -> str:
        return (
            f"`{violation.filepath}` references private `{violation.class_name}` "
            f"from `{violation.constant_source_package}`"
        )


class VisibilityProtection(Protection):
    """
    Prevents packages from using a package that does not list them in its
    `visible_to` metadata.

    Opt-in only: packages consumable by everyone are the happy path, so the
    default behavior is `fail_never`.
    """

    IDENTIFIER = "prevent_other_packages_from_using_this_package_without_explicit_visibility"

    @property
    def identifier(self) -> str:
        return self.IDENTIFIER

    @property
    def default_behavior(self) -> ViolationBehavior:
        return ViolationBehavior.FAIL_NEVER

    @property
    def humanized_name(self) -> str:
        return "Visibility Violations"

    @property
    def humanized_description(self) -> str:
        return (
            "These files are using a constant from a package that restricts its usage through the "
            "`visible_to` flag in its `package.yml`\n"
            "To resolve these violations, work with the team who owns the package you are trying to use and "
            "to figure out the\n"
            "preferred public API for the behavior you want.\n"
        )

    def unmet_preconditions_for(
        self,
        behavior: ViolationBehavior,
        package: PackageManifest
    ) -> Optional[str]:
        # Usage of a non-visible package only shows up as a privacy violation
        if behavior.enabled and not package.enforce_privacy:
            return f"Package {package.name} must have `enforce_privacy: true` to use this protection"
        if not behavior.enabled and package.visible_to:
            return (
                f"Invalid configuration for package `{package.name}`. "
                f"`{self.identifier}` must be turned on to use `visible_to` configuration"
            )
        return None

    def get_offenses_for_new_violations(
        self,
        new_violations: List[PerFileViolation],
        packages: ProtectedPackageIndex
    ) -> List[Offense]:
        offenses = []
        for violation in new_violations:
            depended_on_package = packages.get(violation.constant_source_package)
            if violation.reference_source_package.name in depended_on_package.visible_to:
                continue

            behavior = depended_on_package.violation_behavior_for(self.identifier)
            if behavior.fails_never:
                continue
            elif behavior.fails_on_new:
                message = self._message_for_fail_on_new(violation)
            else:
                message = self._message_for_fail_on_any(violation)

            offenses.append(Offense(
                file=violation.filepath,
                message=message,
                violation_type=self.identifier,
                package=depended_on_package.original_package,
            ))
        return offenses

    def get_offenses_for_existing_violations(
        self,
        protected_packages: List[ProtectedPackage],
        packages: ProtectedPackageIndex
    ) -> List[Offense]:
        return [
            *self._offenses_for_recorded_references(protected_packages, packages),
            *self._offenses_for_stated_dependencies(protected_packages, packages),
        ]

    def _offenses_for_recorded_references(
        self,
        protected_packages: List[ProtectedPackage],
        packages: ProtectedPackageIndex
    ) -> List[Offense]:
        # An edge recorded as both a dependency and a privacy violation is reported once
        seen: Set[Tuple[str, str, str]] = set()
        offenses = []

        for protected_package in protected_packages:
            for violation in protected_package.violations:
                edge = (
                    violation.reference_source_package.name,
                    violation.constant_source_package,
                    violation.class_name,
                )
                if edge in seen:
                    continue
                seen.add(edge)

                depended_on_package = packages.get(violation.constant_source_package)
                if violation.reference_source_package.name in depended_on_package.visible_to:
                    continue
                if not depended_on_package.violation_behavior_for(self.identifier).fails_on_any:
                    continue

                offenses.append(Offense(
                    file=violation.filepath,
                    message=self._message_for_fail_on_any(violation),
                    violation_type=self.identifier,
                    package=depended_on_package.original_package,
                ))
        return offenses

    def _offenses_for_stated_dependencies(
        self,
        protected_packages: List[ProtectedPackage],
        packages: ProtectedPackageIndex
    ) -> List[Offense]:
        # A stated dependency is current state, so fail_on_new reports it too
        offenses = []
        for protected_package in protected_packages:
            for dependency_name in protected_package.dependencies:
                depended_on_package = packages.get(dependency_name)
                if protected_package.name in depended_on_package.visible_to:
                    continue
                if not depended_on_package.violation_behavior_for(self.identifier).enabled:
                    continue

                offenses.append(Offense(
                    file=protected_package.yml.as_posix(),
                    message=(
                        f"`{protected_package.name}` cannot state a dependency on `{depended_on_package.name}`, "
                        f"as it violates package visibility in `{depended_on_package.yml.as_posix()}`"
                    ),
                    violation_type=self.identifier,
                    package=depended_on_package.original_package,
                ))
        return offenses

    def _message_for_fail_on_any(self, violation: PerFileViolation) -> str:
        return (
            f"{self._message_for_fail_on_new(violation)} "
            f"(`{violation.constant_source_package}` set to `fail_on_any`)"
        )

    def _message_for_fail_on_new(self, violation: PerFileViolation) -> str:
        return (
            f"`{violation.filepath}` references non-visible `{violation.class_name}` "
            f"from `{violation.constant_source_package}`"
        )
