"""
Package Protections

Governance for modular monoliths: packages declare how strictly each
protection is enforced in their `package.yml`, and the engine turns
recorded and new cross-package violations into offenses.
"""

from .governance import (
    ConfigurationError,
    Configuration,
    EvaluationContext,
    Offense,
    PackageManifest,
    PerFileViolation,
    ProtectedPackage,
    ViolationBehavior,
    ViolationType,
    bust_cache,
    default_context,
    get_offenses,
    rule_engine_yml,
    set_defaults,
    validate,
)


def configure(**settings) -> Configuration:
    """
    Update the default context's configuration.

    Example:
        configure(globally_permitted_namespaces=["Ciders"])

    Raises:
        AttributeError: If a setting is not a configuration attribute
    """
    configuration = default_context().configuration
    for key, value in settings.items():
        if key not in ("protections", "globally_permitted_namespaces", "acceptable_parent_classes"):
            raise AttributeError(f"Unknown configuration setting: {key}")
        setattr(configuration, key, value)
    return configuration


__version__ = "1.0.0"

__all__ = [
    "ConfigurationError",
    "Configuration",
    "EvaluationContext",
    "Offense",
    "PackageManifest",
    "PerFileViolation",
    "ProtectedPackage",
    "ViolationBehavior",
    "ViolationType",
    "bust_cache",
    "configure",
    "default_context",
    "get_offenses",
    "rule_engine_yml",
    "set_defaults",
    "validate",
]
