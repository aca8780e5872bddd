"""
Package Protections - Rule Engine Protections

Protections implemented by the lint-rule engine. Each one only decides
where the rule runs and which TODO-listed files to surface as offenses.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from .models import PackageManifest, ViolationBehavior
from .protected_package import ProtectedPackage
from .protection import Protection, RuleConfig, RuleEngineProtection
from ..packs.todo import RULE_TODO_FILENAME

if TYPE_CHECKING:
    from .configuration import Configuration


EXPECTED_PACK_DIRECTORIES = ["packs", "packages", "gems", "components"]


def _todo_description(summary: str, rule_name: str, identifier: str) -> str:
    return (
        f"{summary}\n"
        f"This is failing because these files are in `{RULE_TODO_FILENAME}` under `{rule_name}`.\n"
        f"If you want to be able to ignore these files, you'll need to open the file's package's "
        f"`package.yml` file and\n"
        f"change `{identifier}` to `{ViolationBehavior.FAIL_ON_NEW.value}`\n"
    )


class TypedApiProtection(RuleEngineProtection, Protection):
    """Requires every file in a package's public API to be strictly typed."""

    IDENTIFIER = "prevent_this_package_from_exposing_an_untyped_api"

    @property
    def identifier(self) -> str:
        return self.IDENTIFIER

    @property
    def rule_name(self) -> str:
        return "PackageProtections/TypedPublicApi"

    @property
    def included_globs(self) -> List[str]:
        return ["app/public/**/*"]

    @property
    def humanized_name(self) -> str:
        return "Typed API Violations"

    @property
    def humanized_description(self) -> str:
        return _todo_description(
            "These files cannot have ANY Ruby files in the public API that are not typed strict or higher.",
            self.rule_name,
            self.identifier,
        )

    def message_for_fail_on_any(self, file: str) -> str:
        return f"{file} should be `typed: strict`"


class NamespaceProtection(RuleEngineProtection, Protection):
    """
    Requires every constant a package defines to live under its namespace
    (or one of the package's `global_namespaces`).
    """

    IDENTIFIER = "prevent_this_package_from_creating_other_namespaces"

    @property
    def identifier(self) -> str:
        return self.IDENTIFIER

    @property
    def rule_name(self) -> str:
        return "PackageProtections/NamespacedUnderPackageName"

    @property
    def included_globs(self) -> List[str]:
        return ["app/**/*", "lib/**/*"]

    @property
    def humanized_name(self) -> str:
        return "Multiple Namespaces Violations"

    @property
    def humanized_description(self) -> str:
        return _todo_description(
            "These files cannot have ANY modules/classes that are not submodules of the package's allowed namespaces.",
            self.rule_name,
            self.identifier,
        )

    def unmet_preconditions_for(
        self,
        behavior: ViolationBehavior,
        package: PackageManifest
    ) -> Optional[str]:
        if not behavior.enabled and package.global_namespaces is not None:
            return (
                f"Invalid configuration for package `{package.name}`. "
                f"`{self.identifier}` must be turned on to use `global_namespaces` configuration"
            )
        if behavior.fails_never:
            return None

        # Namespaces are derived from the directory directly below one of the pack directories
        parent_directory = Path(package.name).parent.as_posix()
        if package.is_root or parent_directory in EXPECTED_PACK_DIRECTORIES:
            return None
        return (
            f"Package {package.name} must be located in one of "
            f"{', '.join(EXPECTED_PACK_DIRECTORIES)} (or be the root) to use this protection"
        )

    def message_for_fail_on_any(self, file: str) -> str:
        return f"`{file}` should be namespaced under the package namespace"

    def allowed_namespaces(self, package: PackageManifest) -> List[str]:
        """Namespaces a package may define: its `global_namespaces` or its camelized name."""
        if package.global_namespaces:
            return package.global_namespaces
        return [camelize(package.name.split("/")[-1])]

    def rule_configs(
        self,
        protected_packages: List[ProtectedPackage],
        configuration: "Configuration"
    ) -> List[RuleConfig]:
        """
        The rule runs over every package, since a namespace collision is
        visible from either side. `IncludePacks` names the packages that
        opted in.
        """
        include_paths = []
        for package in protected_packages:
            include_paths.extend(self._package_globs(package.directory))

        return [
            RuleConfig(
                name=self.rule_name,
                enabled=bool(include_paths),
                include_paths=include_paths,
                extra_metadata=self.extra_rule_metadata(protected_packages, configuration),
            )
        ]

    def extra_rule_metadata(
        self,
        protected_packages: List[ProtectedPackage],
        configuration: "Configuration"
    ) -> Dict[str, Any]:
        enabled_packages = [
            p for p in protected_packages
            if p.violation_behavior_for(self.identifier).enabled
        ]
        return {
            "GloballyPermittedNamespaces": list(configuration.globally_permitted_namespaces),
            "IncludePacks": [p.name for p in enabled_packages],
            "PackNamespaces": {
                p.name: self.allowed_namespaces(p.original_package)
                for p in enabled_packages
            },
        }


class OnlyClassMethodsProtection(RuleEngineProtection, Protection):
    """Requires public API files to expose only class-level methods."""

    IDENTIFIER = "prevent_this_package_from_exposing_instance_method_public_apis"

    @property
    def identifier(self) -> str:
        return self.IDENTIFIER

    @property
    def default_behavior(self) -> ViolationBehavior:
        return ViolationBehavior.FAIL_NEVER

    @property
    def rule_name(self) -> str:
        return "PackageProtections/OnlyClassMethods"

    @property
    def included_globs(self) -> List[str]:
        return ["app/public/**/*"]

    @property
    def humanized_name(self) -> str:
        return "Class Method Public APIs"

    @property
    def humanized_description(self) -> str:
        return _todo_description(
            "Public API methods can only be static methods.",
            self.rule_name,
            self.identifier,
        )

    def message_for_fail_on_any(self, file: str) -> str:
        return f"`{file}` must only contain static (class or module level) methods"

    def extra_rule_metadata(
        self,
        protected_packages: List[ProtectedPackage],
        configuration: "Configuration"
    ) -> Dict[str, Any]:
        return {"AcceptableParentClasses": list(configuration.acceptable_parent_classes)}


class RequireDocumentedApisProtection(RuleEngineProtection, Protection):
    """Requires every public API method to carry a documentation comment."""

    IDENTIFIER = "prevent_this_package_from_exposing_undocumented_public_apis"

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or os.getcwd())

    @property
    def identifier(self) -> str:
        return self.IDENTIFIER

    @property
    def default_behavior(self) -> ViolationBehavior:
        return ViolationBehavior.FAIL_NEVER

    @property
    def rule_name(self) -> str:
        return "PackageProtections/RequireDocumentedPublicApis"

    @property
    def included_globs(self) -> List[str]:
        return ["app/public/**/*"]

    @property
    def humanized_name(self) -> str:
        return "Documented Public APIs"

    @property
    def humanized_description(self) -> str:
        return _todo_description(
            "All public API must have a documentation comment (between the signature and method).",
            self.rule_name,
            self.identifier,
        )

    def unmet_preconditions_for(
        self,
        behavior: ViolationBehavior,
        package: PackageManifest
    ) -> Optional[str]:
        if behavior.fails_never:
            return None
        readme_path = package.directory / "README.md"
        if not (self.root / readme_path).exists():
            return f"This package must have a readme at {readme_path.as_posix()} to use this protection"
        return None

    def message_for_fail_on_any(self, file: str) -> str:
        return f"`{file}` must contain documentation on every method (between signature and method)"


def camelize(name: str) -> str:
    """'apple_trees' -> 'AppleTrees'"""
    return "".join(part[:1].upper() + part[1:] for part in name.replace("-", "_").split("_"))
