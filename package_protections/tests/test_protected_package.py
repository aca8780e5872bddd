"""
Tests for building protected packages and validating package configuration.
"""

import pytest

from package_protections.governance import (
    Configuration,
    ConfigurationError,
    PackageManifest,
    ProblemKind,
    ProtectedPackage,
    RequireDocumentedApisProtection,
    ViolationBehavior,
    check_package_configuration,
    get_offenses,
    validate,
)
from package_protections.tests.support import (
    DOCUMENTED_APIS,
    INCOMING,
    NAMESPACE,
    ONLY_CLASS_METHODS,
    OUTGOING,
    REQUIRED_DEFAULTS,
    TYPED_API,
    VISIBILITY,
    write_file,
    write_package,
)


def _manifest(name="packs/apples", protections=None, **kwargs):
    metadata = {"protections": {**REQUIRED_DEFAULTS, **(protections or {})}}
    metadata.update(kwargs.pop("metadata", {}))
    return PackageManifest(
        name=name,
        enforce_dependencies=kwargs.pop("enforce_dependencies", True),
        enforce_privacy=kwargs.pop("enforce_privacy", True),
        metadata=metadata,
        **kwargs
    )


def test_fail_never_defaults_need_no_configuration():
    protected = ProtectedPackage.from_manifest(_manifest(), Configuration())

    assert protected.violation_behavior_for(VISIBILITY) is ViolationBehavior.FAIL_NEVER
    assert protected.violation_behavior_for(ONLY_CLASS_METHODS) is ViolationBehavior.FAIL_NEVER
    assert protected.violation_behavior_for(OUTGOING) is ViolationBehavior.FAIL_ON_NEW
    assert set(protected.protections) == set(Configuration().identifiers)


def test_missing_protections_are_batched():
    package = PackageManifest(
        name="packs/apples",
        enforce_dependencies=True,
        enforce_privacy=True,
        metadata={"protections": {}},
    )

    with pytest.raises(ConfigurationError) as e:
        ProtectedPackage.from_manifest(package, Configuration())

    assert str(e.value) == (
        "Invalid configuration for package `packs/apples`. "
        "All protections must explicitly set unless their default behavior is `fail_never`. "
        f"Missing protections: {OUTGOING}, {INCOMING}, {TYPED_API}, {NAMESPACE}. "
        "See the package protections README for more info"
    )


def test_null_behavior_counts_as_missing():
    package = _manifest(protections={TYPED_API: None})

    with pytest.raises(ConfigurationError, match=f"Missing protections: {TYPED_API}"):
        ProtectedPackage.from_manifest(package, Configuration())


def test_unknown_keys_are_reported_before_missing_ones():
    package = PackageManifest(
        name="packs/apples",
        metadata={"protections": {"someprotection": "fail_on_any", "other": "fail_never"}},
    )

    with pytest.raises(ConfigurationError) as e:
        ProtectedPackage.from_manifest(package, Configuration())

    message = str(e.value)
    assert message.startswith("Invalid configuration for package `packs/apples`.")
    assert 'The metadata keys ["someprotection", "other"] are not valid behaviors' in message
    assert OUTGOING in message


def test_invalid_behavior_names_the_package():
    package = _manifest(protections={TYPED_API: "fail_sometimes"})

    with pytest.raises(ConfigurationError, match="Invalid configuration for package `packs/apples`"):
        ProtectedPackage.from_manifest(package, Configuration())


def test_outgoing_precondition_is_symmetric():
    turned_on = _manifest(protections={OUTGOING: "fail_on_any"}, enforce_dependencies=False)
    turned_off = _manifest(protections={OUTGOING: "fail_never"}, enforce_dependencies=True)

    with pytest.raises(ConfigurationError) as on_error:
        ProtectedPackage.from_manifest(turned_on, Configuration())
    with pytest.raises(ConfigurationError) as off_error:
        ProtectedPackage.from_manifest(turned_off, Configuration())

    assert str(on_error.value) == (
        f"{OUTGOING} protection does not have the valid preconditions in packs/apples. "
        "Package packs/apples must have `enforce_dependencies: true` to use this protection. "
        "See the package protections README for more info"
    )
    assert "must have `enforce_dependencies: false` to turn this protection off" in str(off_error.value)


def test_incoming_precondition_is_symmetric():
    turned_on = _manifest(protections={INCOMING: "fail_on_new"}, enforce_privacy=False)
    turned_off = _manifest(protections={INCOMING: "fail_never"}, enforce_privacy=True)

    assert check_package_configuration(turned_on, Configuration()).problems_of(ProblemKind.UNMET_PRECONDITION)
    assert check_package_configuration(turned_off, Configuration()).problems_of(ProblemKind.UNMET_PRECONDITION)


def test_visibility_preconditions():
    needs_privacy = _manifest(
        protections={VISIBILITY: "fail_on_any", INCOMING: "fail_never"},
        enforce_privacy=False,
    )
    dead_visible_to = _manifest(
        protections={VISIBILITY: "fail_never"},
        metadata={"visible_to": ["packs/trees"]},
    )
    empty_visible_to = _manifest(metadata={"visible_to": []})

    needs_privacy_check = check_package_configuration(needs_privacy, Configuration())
    assert [p.identifiers for p in needs_privacy_check.problems] == [(VISIBILITY,)]
    assert "must have `enforce_privacy: true`" in needs_privacy_check.problems[0].message

    dead_check = check_package_configuration(dead_visible_to, Configuration())
    assert "must be turned on to use `visible_to` configuration" in dead_check.problems[0].message

    assert check_package_configuration(empty_visible_to, Configuration()).valid


def test_namespace_preconditions():
    outside_pack_directories = _manifest(name="lib/widgets")
    nested_pack = _manifest(name="packs/fruit/apples")
    root = _manifest(name=".")
    dead_global_namespaces = _manifest(
        protections={NAMESPACE: "fail_never"},
        metadata={"global_namespaces": ["Fruit"]},
    )

    outside_check = check_package_configuration(outside_pack_directories, Configuration())
    assert "must be located in one of packs, packages, gems, components" in outside_check.problems[0].message

    nested_check = check_package_configuration(nested_pack, Configuration())
    assert nested_check.problems[0].message.startswith(
        f"{NAMESPACE} protection does not have the valid preconditions in packs/fruit/apples. "
        "Package packs/fruit/apples must be located in one of packs, packages, gems, components"
    )
    assert not check_package_configuration(_manifest(name="packs"), Configuration()).valid
    assert check_package_configuration(root, Configuration()).valid

    dead_check = check_package_configuration(dead_global_namespaces, Configuration())
    assert "must be turned on to use `global_namespaces` configuration" in dead_check.problems[0].message


def test_documented_apis_requires_readme(tmp_path):
    configuration = Configuration(
        root=str(tmp_path),
        protections=[RequireDocumentedApisProtection(root=str(tmp_path))],
    )
    package = PackageManifest(name="packs/apples", metadata={"protections": {DOCUMENTED_APIS: "fail_on_any"}})

    check = check_package_configuration(package, configuration)
    assert "must have a readme at packs/apples/README.md" in check.problems[0].message

    write_file(tmp_path, "packs/apples/README.md", "# Apples\n")
    assert check_package_configuration(package, configuration).valid


def test_unknown_key_scenario(tmp_path, context):
    write_package(tmp_path, "packs/apples", protections={"someprotection": "fail_on_any"})

    messages = validate(context=context)

    assert len(messages) == 1
    assert "Invalid configuration" in messages[0]
    assert '["someprotection"]' in messages[0]

    with pytest.raises(ConfigurationError, match="someprotection"):
        get_offenses(context.store.all(), [], context=context)


def test_unmet_precondition_scenario(tmp_path, context):
    write_package(tmp_path, "packs/apples", protections={OUTGOING: "fail_on_any"}, enforce_dependencies=False)

    messages = validate(context=context)

    assert len(messages) == 1
    assert "does not have the valid preconditions in packs/apples" in messages[0]
    with pytest.raises(ConfigurationError, match="packs/apples"):
        get_offenses(context.store.all(), [], context=context)


def test_validate_reports_every_problem_across_packages(tmp_path, context):
    write_file(tmp_path, "packs/apples/package.yml", "enforce_dependencies: true\nenforce_privacy: true\n")
    write_package(tmp_path, "packs/trees", protections={"someprotection": "fail_on_any", TYPED_API: "fail_maybe"})
    write_package(tmp_path, "packs/oranges")

    messages = validate(context=context)

    apples_messages = [m for m in messages if "package packs/apples." in m]
    assert len(apples_messages) == 4
    assert all(m.startswith("All protections must explicitly set") for m in apples_messages)
    assert any("someprotection" in m for m in messages)
    assert any("fail_maybe is not a valid behavior" in m for m in messages)
    assert not any("packs/oranges" in m for m in messages)


def test_unconfigured_visibility_defaults_to_fail_never_with_visible_to():
    package = _manifest(metadata={"visible_to": ["packs/trees"]})

    protected = ProtectedPackage.from_manifest(package, Configuration())

    assert protected.violation_behavior_for(VISIBILITY) is ViolationBehavior.FAIL_NEVER
    assert check_package_configuration(package, Configuration()).valid


def test_validate_collects_invalid_behavior_tokens(tmp_path, context):
    write_package(tmp_path, "packs/apples", protections={TYPED_API: "fail_on_anyy", NAMESPACE: "fail_sometimes"})

    messages = validate(context=context)

    assert len(messages) == 2
    assert "The metadata value fail_on_anyy is not a valid behavior" in messages[0]
    assert "The metadata value fail_sometimes is not a valid behavior" in messages[1]
    assert all(m.startswith("Invalid configuration for package `packs/apples`") for m in messages)
