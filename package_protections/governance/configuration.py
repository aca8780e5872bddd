"""
Package Protections - Configuration

Holds the protection registry and global settings, and the evaluation
context that owns every cache used while evaluating a repository.

Client configuration is read from YAML (default
`config/package_protections.yml` under the repository root):

    protections:
      - prevent_this_package_from_violating_its_stated_dependencies
      - prevent_other_packages_from_using_this_packages_internals
    globally_permitted_namespaces: [Ciders]
    acceptable_parent_classes: [ApplicationRecord]

Set PACKAGE_PROTECTIONS_ROOT / PACKAGE_PROTECTIONS_CONFIG (or put them in
`.env`) to point at a different repository or configuration file.
"""

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

import dotenv
import yaml

from .models import ConfigurationError
from .protected_package import ProtectedPackage
from .protection import Protection
from .protections import IncomingPrivacyProtection, OutgoingDependencyProtection, VisibilityProtection
from .rule_protections import (
    NamespaceProtection,
    OnlyClassMethodsProtection,
    RequireDocumentedApisProtection,
    TypedApiProtection,
)
from ..packs.ledger import ViolationLedger
from ..packs.store import PackageStore
from ..packs.todo import RuleTodoList


dotenv.load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join("config", "package_protections.yml")


def builtin_protections(root: Optional[str] = None) -> Dict[str, Protection]:
    """Every protection that ships with the tool, keyed by identifier."""
    protections = [
        OutgoingDependencyProtection(),
        IncomingPrivacyProtection(),
        TypedApiProtection(),
        NamespaceProtection(),
        VisibilityProtection(),
        OnlyClassMethodsProtection(),
        RequireDocumentedApisProtection(root=root),
    ]
    return {p.identifier: p for p in protections}


class Configuration:
    """
    Active protections and global settings.

    Attributes:
        protections: Ordered protection registry
        globally_permitted_namespaces: Namespaces any package may define
        acceptable_parent_classes: Parent classes allowed for public API classes
    """

    def __init__(
        self,
        root: Optional[str] = None,
        protections: Optional[List[Protection]] = None,
        globally_permitted_namespaces: Optional[List[str]] = None,
        acceptable_parent_classes: Optional[List[str]] = None
    ):
        self.root = root
        self._protections: List[Protection] = protections if protections is not None else self.default_protections()
        self._index: Optional[Dict[str, Protection]] = None
        self.globally_permitted_namespaces: List[str] = globally_permitted_namespaces or []
        self.acceptable_parent_classes: List[str] = acceptable_parent_classes or []

    @classmethod
    def from_yaml(cls, config_path: str, root: Optional[str] = None) -> "Configuration":
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the client configuration file
            root: Repository root the configuration applies to

        Returns:
            Configured Configuration instance

        Raises:
            ConfigurationError: If the file names an unknown protection
        """
        with open(config_path, "r") as f:
            raw_config = yaml.safe_load(f) or {}

        configuration = cls(root=root)

        identifiers = raw_config.get("protections")
        if identifiers is not None:
            available = builtin_protections(root)
            unknown = [i for i in identifiers if i not in available]
            if unknown:
                raise ConfigurationError(
                    f"Invalid configuration in `{config_path}`. Unknown protections {unknown}. "
                    f"Available protections are {list(available.keys())}"
                )
            configuration.protections = [available[i] for i in identifiers]

        configuration.globally_permitted_namespaces = raw_config.get("globally_permitted_namespaces") or []
        configuration.acceptable_parent_classes = raw_config.get("acceptable_parent_classes") or []

        logger.debug("Loaded configuration from %s", config_path)
        return configuration

    def default_protections(self) -> List[Protection]:
        available = builtin_protections(self.root)
        return [
            available[OutgoingDependencyProtection.IDENTIFIER],
            available[IncomingPrivacyProtection.IDENTIFIER],
            available[TypedApiProtection.IDENTIFIER],
            available[NamespaceProtection.IDENTIFIER],
            available[VisibilityProtection.IDENTIFIER],
            available[OnlyClassMethodsProtection.IDENTIFIER],
        ]

    @property
    def protections(self) -> List[Protection]:
        return self._protections

    @protections.setter
    def protections(self, protections: List[Protection]) -> None:
        identifiers = [p.identifier for p in protections]
        duplicates = sorted({i for i in identifiers if identifiers.count(i) > 1})
        if duplicates:
            raise ConfigurationError(f"Protection identifiers must be unique. Duplicated: {duplicates}")
        self._protections = list(protections)
        self._index = None

    @property
    def identifiers(self) -> List[str]:
        return [p.identifier for p in self._protections]

    def with_identifier(self, identifier: str) -> Protection:
        """Look up an active protection by identifier."""
        if self._index is None:
            self._index = {p.identifier: p for p in self._protections}
        try:
            return self._index[identifier]
        except KeyError:
            raise ConfigurationError(
                f"Unknown protection {identifier}. Valid protections are {self.identifiers}"
            ) from None

    def bust_cache(self) -> None:
        """Restore the default protections and settings."""
        self._protections = self.default_protections()
        self._index = None
        self.globally_permitted_namespaces = []
        self.acceptable_parent_classes = []


class EvaluationContext:
    """
    Owner of everything cached while evaluating one repository.

    Holds the configuration, the discovered packages, the recorded
    violation ledgers and the rule TODO lists. Nothing is refreshed
    automatically: call `invalidate()` after changing files on disk.
    """

    def __init__(
        self,
        root: Optional[str] = None,
        configuration: Optional[Configuration] = None,
        config_path: Optional[str] = None
    ):
        """
        Initialize the context.

        Args:
            root: Repository root. Defaults to PACKAGE_PROTECTIONS_ROOT or the cwd.
            configuration: Explicit configuration. If None, it is loaded lazily.
            config_path: Client configuration file. Defaults to
                PACKAGE_PROTECTIONS_CONFIG or config/package_protections.yml.
        """
        self.root = Path(root or os.getenv("PACKAGE_PROTECTIONS_ROOT") or os.getcwd()).resolve()
        self.config_path = config_path or os.getenv("PACKAGE_PROTECTIONS_CONFIG")
        self._explicit_configuration = configuration
        self._configuration = configuration
        self.store = PackageStore(str(self.root))
        self.ledger = ViolationLedger(self.root)
        self.rule_todo_list = RuleTodoList(self.root)
        self._protected_packages: Optional[Dict[str, ProtectedPackage]] = None

    @property
    def configuration(self) -> Configuration:
        if self._configuration is None:
            self._configuration = self._load_configuration()
        return self._configuration

    def protect(self, package) -> ProtectedPackage:
        """Build a ProtectedPackage with this context's registry and ledger."""
        return ProtectedPackage.from_manifest(
            package,
            self.configuration,
            self.ledger.violations_for(package),
        )

    def protected_package_named(self, name: str) -> ProtectedPackage:
        """Look up any discovered package by name, building the index once."""
        if self._protected_packages is None:
            self._protected_packages = {p.name: self.protect(p) for p in self.store.all()}
        try:
            return self._protected_packages[name]
        except KeyError:
            raise KeyError(f"No package named `{name}` under {self.root}") from None

    def refresh_packages(self) -> None:
        """Drop discovered packages after manifests were rewritten."""
        self._protected_packages = None
        self.store.bust_cache()

    def invalidate(self) -> None:
        """
        Drop cached packages, ledgers and TODO lists.

        A configuration passed to the constructor is restored to the default
        registry and settings; otherwise the configuration file is reloaded.
        """
        if self._explicit_configuration is not None:
            self._explicit_configuration.bust_cache()
        self._configuration = self._explicit_configuration
        self._protected_packages = None
        self.store.bust_cache()
        self.ledger.bust_cache()
        self.rule_todo_list.bust_cache()

    def _load_configuration(self) -> Configuration:
        config_path = Path(self.config_path) if self.config_path else self.root / DEFAULT_CONFIG_PATH
        if not config_path.is_absolute():
            config_path = self.root / config_path
        if config_path.exists():
            return Configuration.from_yaml(str(config_path), root=str(self.root))
        return Configuration(root=str(self.root))


_default_context: Optional[EvaluationContext] = None


def default_context() -> EvaluationContext:
    """Process-wide context used when callers do not pass one."""
    global _default_context
    if _default_context is None:
        _default_context = EvaluationContext()
    return _default_context


def reset_default_context() -> None:
    global _default_context
    _default_context = None
