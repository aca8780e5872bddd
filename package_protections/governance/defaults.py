"""
Package Protections - Defaulting Tool

Pins every protection that requires explicit configuration to its default
behavior in each package's `package.yml`.
"""

import logging
from dataclasses import replace
from typing import List, Optional

from .configuration import EvaluationContext, default_context
from .models import PackageManifest


logger = logging.getLogger(__name__)


def package_with_defaults(
    package: PackageManifest,
    context: EvaluationContext,
    protection_identifiers: Optional[List[str]] = None
) -> PackageManifest:
    """
    Return a copy of a manifest with unset protections pinned to their defaults.

    Protections defaulting to `fail_never` and protections already set are
    left alone. Dependency and privacy enforcement are always turned on.
    """
    protections = dict(package.protections_metadata)

    for protection in context.configuration.protections:
        if protection_identifiers is not None and protection.identifier not in protection_identifiers:
            continue
        if protection.default_behavior.fails_never:
            continue
        if protections.get(protection.identifier) is not None:
            continue
        protections[protection.identifier] = protection.default_behavior.value

    metadata = dict(package.metadata)
    metadata["protections"] = protections

    return replace(
        package,
        enforce_dependencies=True,
        enforce_privacy=True,
        metadata=metadata,
    )


def set_defaults(
    packages: List[PackageManifest],
    protection_identifiers: Optional[List[str]] = None,
    verbose: bool = True,
    context: Optional[EvaluationContext] = None
) -> List[PackageManifest]:
    """
    Write default protection behaviors into package manifests.

    Packages are processed in order and each one is written before the next
    is read. A misconfigured package stops the run; packages already
    written stay written.

    Args:
        packages: Packages to update
        protection_identifiers: Restrict defaulting to these protections.
            Defaults to every active protection.
        verbose: Print progress
        context: Evaluation context (defaults to the process-wide one)

    Returns:
        The manifests that were written

    Raises:
        ConfigurationError: If an updated package is still invalid
    """
    context = context or default_context()
    written = []

    if verbose:
        print(f"We will attempt to set the defaults for {len(packages)} packages!")

    for i, package in enumerate(packages):
        if verbose:
            print(f"[{i + 1}/{len(packages)}] Setting defaults for {package.name}")

        updated = package_with_defaults(package, context, protection_identifiers)
        context.protect(updated)

        if updated == package:
            logger.debug("%s already has its defaults", package.name)
            continue

        context.store.write_package(updated)
        written.append(updated)

    if written:
        context.refresh_packages()
    return written
