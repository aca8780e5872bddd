"""
Tests for the data model: behaviors, manifests, violations and offenses.
"""

from pathlib import Path

import pytest

from package_protections.governance import (
    ConfigurationError,
    Offense,
    PackageManifest,
    PerFileViolation,
    RawViolation,
    ViolationBehavior,
    ViolationType,
)
from package_protections.packs import parse_ledger


def test_behavior_from_raw():
    assert ViolationBehavior.from_raw("fail_on_any") is ViolationBehavior.FAIL_ON_ANY
    assert ViolationBehavior.from_raw("fail_on_new") is ViolationBehavior.FAIL_ON_NEW
    assert ViolationBehavior.from_raw("fail_never") is ViolationBehavior.FAIL_NEVER


def test_behavior_from_raw_rejects_typos():
    with pytest.raises(ConfigurationError) as e:
        ViolationBehavior.from_raw("fail_on_anyy", package_name="packs/apples")

    message = str(e.value)
    assert "Invalid configuration for package `packs/apples`" in message
    assert "The metadata value fail_on_anyy is not a valid behavior" in message
    assert '["fail_on_any", "fail_on_new", "fail_never"]' in message


def test_behavior_predicates():
    assert ViolationBehavior.FAIL_ON_ANY.enabled
    assert ViolationBehavior.FAIL_ON_ANY.fails_on_any
    assert ViolationBehavior.FAIL_ON_NEW.enabled
    assert ViolationBehavior.FAIL_ON_NEW.fails_on_new
    assert not ViolationBehavior.FAIL_NEVER.enabled
    assert ViolationBehavior.FAIL_NEVER.fails_never


def test_behavior_strictness_order():
    assert ViolationBehavior.FAIL_NEVER < ViolationBehavior.FAIL_ON_NEW < ViolationBehavior.FAIL_ON_ANY
    assert max(ViolationBehavior) is ViolationBehavior.FAIL_ON_ANY


def test_manifest_accessors():
    package = PackageManifest(
        name="packs/apples",
        enforce_privacy=True,
        dependencies=["packs/trees"],
        metadata={
            "protections": {"prevent_this_package_from_exposing_an_untyped_api": "fail_on_any"},
            "visible_to": ["packs/oranges"],
            "global_namespaces": ["Fruit"],
        },
    )

    assert package.directory == Path("packs/apples")
    assert package.yml == Path("packs/apples/package.yml")
    assert package.dependencies == ("packs/trees",)
    assert package.visible_to == {"packs/oranges"}
    assert package.global_namespaces == ["Fruit"]
    assert package.protections_metadata == {"prevent_this_package_from_exposing_an_untyped_api": "fail_on_any"}
    assert not package.is_root


def test_manifest_defaults():
    root = PackageManifest(name=".")

    assert root.is_root
    assert root.yml == Path("package.yml")
    assert root.visible_to == set()
    assert root.global_namespaces is None
    assert root.protections_metadata == {}
    assert root.to_dict() == {"enforce_dependencies": False, "enforce_privacy": False}


def test_per_file_violation_from_raw():
    apples = PackageManifest(name="packs/apples")
    raw = RawViolation(
        violation_type=ViolationType.PRIVACY,
        class_name="Trees::Tree",
        to_package_name="packs/trees",
        files=("packs/apples/a.rb", "packs/apples/b.rb"),
    )

    violations = PerFileViolation.from_raw(raw, apples)

    assert [v.filepath for v in violations] == ["packs/apples/a.rb", "packs/apples/b.rb"]
    assert all(v.is_privacy and not v.is_dependency for v in violations)
    assert violations[0].to_dict()["reference_source_package"] == "packs/apples"


def test_parse_ledger_splits_violation_kinds():
    raw = parse_ledger({
        "packs/trees": {
            "Trees::Tree": {
                "violations": ["dependency", "privacy"],
                "files": ["packs/apples/models/apples/apple.rb"],
            },
        },
    })

    assert [v.violation_type for v in raw] == [ViolationType.DEPENDENCY, ViolationType.PRIVACY]
    assert all(v.to_package_name == "packs/trees" for v in raw)
    assert parse_ledger(None) == []


def test_offenses_sort_by_message():
    package = PackageManifest(name="packs/apples")
    later = Offense(file="a.rb", message="b", violation_type="x", package=package)
    earlier = Offense(file="z.rb", message="a", violation_type="x", package=package)

    assert sorted([later, earlier]) == [earlier, later]
    assert earlier.package_name == "packs/apples"
