"""
Package Protections - Validator

Checks every package's protection configuration and reports all
problems instead of stopping at the first one.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .configuration import EvaluationContext, default_context
from .models import PackageManifest
from .protected_package import ConfigurationProblem, check_package_configuration


logger = logging.getLogger(__name__)


@dataclass
class RepositoryValidationResult:
    """Result of validating every package of a repository."""
    root_path: str
    packages_checked: int = 0
    problems: List[ConfigurationProblem] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.problems

    @property
    def messages(self) -> List[str]:
        return [p.message for p in self.problems]

    @property
    def packages_with_problems(self) -> List[str]:
        names = []
        for problem in self.problems:
            if problem.package_name not in names:
                names.append(problem.package_name)
        return names

    def to_dict(self) -> Dict:
        return {
            "root_path": self.root_path,
            "packages_checked": self.packages_checked,
            "valid": self.valid,
            "problems": [p.to_dict() for p in self.problems],
        }


def validate_repository(
    packages: Optional[List[PackageManifest]] = None,
    context: Optional[EvaluationContext] = None
) -> RepositoryValidationResult:
    """
    Check the protection configuration of every package.

    Args:
        packages: Packages to check. Defaults to every discovered package.
        context: Evaluation context (defaults to the process-wide one)

    Returns:
        RepositoryValidationResult holding every problem found
    """
    context = context or default_context()
    if packages is None:
        packages = context.store.all()

    result = RepositoryValidationResult(root_path=str(context.root))
    for package in packages:
        check = check_package_configuration(package, context.configuration)
        result.problems.extend(check.problems)
        result.packages_checked += 1

    logger.debug(
        "Validated %d packages: %d problems",
        result.packages_checked, len(result.problems)
    )
    return result


def validate(
    packages: Optional[List[PackageManifest]] = None,
    context: Optional[EvaluationContext] = None
) -> List[str]:
    """Same checks as building protected packages, one message per problem."""
    return validate_repository(packages, context).messages


def print_validation_report(result: RepositoryValidationResult) -> None:
    """Print a human-readable validation report."""
    print(f"\n{'='*60}")
    print("PACKAGE PROTECTIONS VALIDATION REPORT")
    print(f"{'='*60}")
    print(f"Repository: {result.root_path}")
    print(f"Packages checked: {result.packages_checked}")
    print(f"{'='*60}")

    if result.valid:
        print("[OK] Every package has a valid protection configuration.")
    else:
        print(f"\n[ERROR] PROBLEMS ({len(result.problems)}):")
        for name in result.packages_with_problems:
            print(f"  {name}")
            for problem in result.problems:
                if problem.package_name == name:
                    print(f"    [{problem.kind.value.upper()}] {problem.message}")

    print(f"\n{'='*60}\n")


# CLI entrypoint
if __name__ == "__main__":
    import sys

    root = sys.argv[1] if len(sys.argv) > 1 else None
    config_path = sys.argv[2] if len(sys.argv) > 2 else None

    result = validate_repository(context=EvaluationContext(root=root, config_path=config_path))
    print_validation_report(result)

    sys.exit(0 if result.valid else 1)
