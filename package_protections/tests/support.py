"""Helpers for building throwaway repositories in tests."""

from pathlib import Path
from typing import Dict, List, Optional

import yaml


OUTGOING = "prevent_this_package_from_violating_its_stated_dependencies"
INCOMING = "prevent_other_packages_from_using_this_packages_internals"
TYPED_API = "prevent_this_package_from_exposing_an_untyped_api"
NAMESPACE = "prevent_this_package_from_creating_other_namespaces"
VISIBILITY = "prevent_other_packages_from_using_this_package_without_explicit_visibility"
ONLY_CLASS_METHODS = "prevent_this_package_from_exposing_instance_method_public_apis"
DOCUMENTED_APIS = "prevent_this_package_from_exposing_undocumented_public_apis"

REQUIRED_DEFAULTS = {
    OUTGOING: "fail_on_new",
    INCOMING: "fail_on_new",
    TYPED_API: "fail_on_new",
    NAMESPACE: "fail_on_new",
}


def write_file(root: Path, relative_path: str, content: str = "") -> Path:
    path = Path(root) / relative_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def write_package(
    root: Path,
    name: str,
    protections: Optional[Dict[str, str]] = None,
    dependencies: Optional[List[str]] = None,
    enforce_dependencies: bool = True,
    enforce_privacy: bool = True,
    **metadata
) -> Path:
    """Write a `package.yml` with every required protection set to `fail_on_new` unless overridden."""
    package_protections = dict(REQUIRED_DEFAULTS)
    package_protections.update(protections or {})

    document = {
        "enforce_dependencies": enforce_dependencies,
        "enforce_privacy": enforce_privacy,
    }
    if dependencies:
        document["dependencies"] = dependencies
    document["metadata"] = {"protections": package_protections, **metadata}

    relative = "package.yml" if name == "." else f"{name}/package.yml"
    return write_file(root, relative, yaml.safe_dump(document, sort_keys=False))


def write_ledger(root: Path, package_name: str, entries: Dict, filename: str = "deprecated_references.yml") -> Path:
    return write_file(root, f"{package_name}/{filename}", yaml.safe_dump(entries, sort_keys=False))


def offenses_of(offenses, identifier: str):
    return [o for o in offenses if o.violation_type == identifier]
