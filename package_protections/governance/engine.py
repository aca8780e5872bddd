"""
Package Protections - Evaluation Engine

Builds protected packages and runs every active protection over them.
"""

import logging
from typing import List, Optional

from .configuration import EvaluationContext, default_context
from .models import Offense, PackageManifest, PerFileViolation
from .protected_package import ProtectedPackage, ProtectedPackageIndex
from .protection import RuleEngineProtection


logger = logging.getLogger(__name__)


def protect_packages(
    packages: List[PackageManifest],
    context: EvaluationContext
) -> List[ProtectedPackage]:
    """
    Build a ProtectedPackage for each manifest.

    Raises:
        ConfigurationError: On the first misconfigured package
    """
    return [context.protect(package) for package in packages]


def package_index(
    protected_packages: List[ProtectedPackage],
    context: EvaluationContext
) -> ProtectedPackageIndex:
    return ProtectedPackageIndex(
        protected_packages,
        context.rule_todo_list,
        fallback=context.protected_package_named,
    )


def get_offenses(
    packages: List[PackageManifest],
    new_violations: List[PerFileViolation],
    context: Optional[EvaluationContext] = None
) -> List[Offense]:
    """
    Evaluate every active protection.

    Args:
        packages: Packages under evaluation
        new_violations: Violations introduced by the current change
        context: Evaluation context (defaults to the process-wide one)

    Returns:
        Offenses of each protection in registry order, each protection's
        offenses sorted by message

    Raises:
        ConfigurationError: If any package is misconfigured
    """
    context = context or default_context()
    protected_packages = protect_packages(packages, context)
    index = package_index(protected_packages, context)

    offenses = []
    for protection in context.configuration.protections:
        protection_offenses = protection.get_offenses(protected_packages, new_violations, index)
        logger.debug("%s produced %d offenses", protection.identifier, len(protection_offenses))
        offenses.extend(protection_offenses)

    logger.debug(
        "Evaluated %d packages and %d new violations: %d offenses",
        len(packages), len(new_violations), len(offenses)
    )
    return offenses


def rule_engine_yml(context: Optional[EvaluationContext] = None) -> str:
    """
    Render the lint-engine configuration for every rule-engine protection.

    Every package discovered under the context root is included.

    Returns:
        One YAML block per rule, separated by blank lines
    """
    context = context or default_context()
    configuration = context.configuration
    protected_packages = protect_packages(context.store.all(), context)

    rule_configs = []
    for protection in configuration.protections:
        if not isinstance(protection, RuleEngineProtection):
            continue
        rule_configs.extend(protection.rule_configs(protected_packages, configuration))

    return "\n\n".join(rule_config.to_yaml() for rule_config in rule_configs)


def bust_cache(context: Optional[EvaluationContext] = None) -> None:
    """Drop every cache held by the context."""
    context = context or default_context()
    context.invalidate()
