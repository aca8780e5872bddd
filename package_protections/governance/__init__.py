"""
Package Protections Governance

Evaluates package-level protections (dependency, privacy, visibility and
the lint-engine backed API rules) and validates package configuration.

Usage:
    from package_protections.governance import EvaluationContext, get_offenses, validate

    context = EvaluationContext(root="path/to/repo")
    problems = validate(context=context)
    offenses = get_offenses(context.store.all(), new_violations=[], context=context)

    # Or load the protection registry from YAML
    context = EvaluationContext(root="path/to/repo", config_path="config/package_protections.yml")
"""

from .models import (
    ROOT_PACKAGE_NAME,
    ConfigurationError,
    ViolationBehavior,
    PackageManifest,
    ViolationType,
    RawViolation,
    PerFileViolation,
    Offense,
)

from .protection import Protection, RuleEngineProtection, RuleConfig

from .protected_package import (
    ProblemKind,
    ConfigurationProblem,
    check_package_configuration,
    ProtectedPackage,
    ProtectedPackageIndex,
)

from .protections import (
    OutgoingDependencyProtection,
    IncomingPrivacyProtection,
    VisibilityProtection,
)

from .rule_protections import (
    TypedApiProtection,
    NamespaceProtection,
    OnlyClassMethodsProtection,
    RequireDocumentedApisProtection,
)

from .configuration import (
    Configuration,
    EvaluationContext,
    builtin_protections,
    default_context,
    reset_default_context,
)

from .engine import get_offenses, rule_engine_yml, bust_cache

from .validator import (
    RepositoryValidationResult,
    validate,
    validate_repository,
    print_validation_report,
)

from .defaults import set_defaults

from .report import format_offenses, print_offenses


__all__ = [
    # Models
    "ROOT_PACKAGE_NAME",
    "ConfigurationError",
    "ViolationBehavior",
    "PackageManifest",
    "ViolationType",
    "RawViolation",
    "PerFileViolation",
    "Offense",
    # Protections
    "Protection",
    "RuleEngineProtection",
    "RuleConfig",
    "OutgoingDependencyProtection",
    "IncomingPrivacyProtection",
    "VisibilityProtection",
    "TypedApiProtection",
    "NamespaceProtection",
    "OnlyClassMethodsProtection",
    "RequireDocumentedApisProtection",
    # Protected packages
    "ProblemKind",
    "ConfigurationProblem",
    "check_package_configuration",
    "ProtectedPackage",
    "ProtectedPackageIndex",
    # Configuration
    "Configuration",
    "EvaluationContext",
    "builtin_protections",
    "default_context",
    "reset_default_context",
    # Engine
    "get_offenses",
    "rule_engine_yml",
    "bust_cache",
    # Validator
    "RepositoryValidationResult",
    "validate",
    "validate_repository",
    "print_validation_report",
    # Defaults
    "set_defaults",
    # Report
    "format_offenses",
    "print_offenses",
]
