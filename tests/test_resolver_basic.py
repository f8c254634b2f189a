from pathlib import Path

import pytest

from pydepmap import (
    Failed,
    FailurePolicy,
    Resolved,
    ResolverConfig,
    UnitResolutionError,
    VisibilityPolicy,
    resolve_units,
)


def test_cycle_terminates_and_each_unit_appears_once(make_metadata) -> None:
    metadata = make_metadata({"a": ["b"], "b": ["a"]})
    resolved = resolve_units(["a"], metadata)

    assert list(resolved.units) == ["a", "b"]
    assert metadata.resolved_names() == ["a", "b"]
    assert resolved.edges() == [("a", "b"), ("b", "a")]


def test_diamond_resolves_shared_unit_once(make_metadata) -> None:
    metadata = make_metadata({"a": ["b", "c"], "b": ["d"], "c": ["d"], "d": []})
    resolved = resolve_units(["a"], metadata)

    assert metadata.resolved_names().count("d") == 1
    assert sorted(resolved.units) == ["a", "b", "c", "d"]
    assert ("b", "d") in resolved.edges()
    assert ("c", "d") in resolved.edges()


def test_depth_first_visit_order(make_metadata) -> None:
    metadata = make_metadata({"a": ["b", "c"], "b": ["c", "e"], "c": ["d"], "d": [], "e": []})
    resolved = resolve_units(["a"], metadata)

    # c is reached through b before a's own reference to it
    assert list(resolved.units) == ["a", "b", "c", "d", "e"]


def test_depth_bound_truncates_silently(make_metadata) -> None:
    metadata = make_metadata({"r": ["x"], "x": ["y"], "y": []})
    resolved = resolve_units(["r"], metadata, ResolverConfig(max_depth=1))

    assert list(resolved.units) == ["r", "x"]
    assert resolved.edges() == [("r", "x")]
    assert "y" not in metadata.resolved_names()


def test_depth_zero_keeps_only_roots(make_metadata) -> None:
    metadata = make_metadata({"r": ["x"], "x": []})
    resolved = resolve_units(["r"], metadata, ResolverConfig(max_depth=0))
    assert list(resolved.units) == ["r"]
    assert resolved.edges() == []


def test_negative_depth_is_rejected(make_metadata) -> None:
    with pytest.raises(ValueError, match="max_depth"):
        resolve_units(["r"], make_metadata({"r": []}), ResolverConfig(max_depth=-1))


def test_self_import_never_becomes_a_dependency(make_metadata) -> None:
    metadata = make_metadata({"a": ["a", "b", "b"], "b": []})
    resolved = resolve_units(["a"], metadata)

    assert resolved.units["a"].dependencies == ("b",)
    assert ("a", "a") not in resolved.edges()


def test_test_imports_are_opt_in(make_metadata) -> None:
    metadata = make_metadata({"a": ["b"], "b": [], "t": []}, tests={"a": ["t", "b", "a"]})

    without = resolve_units(["a"], metadata)
    assert without.units["a"].dependencies == ("b",)
    assert "t" not in without

    metadata = make_metadata({"a": ["b"], "b": [], "t": []}, tests={"a": ["t", "b", "a"]})
    with_tests = resolve_units(["a"], metadata, ResolverConfig(include_tests=True))
    assert with_tests.units["a"].dependencies == ("b", "t")
    assert "t" in with_tests


def test_filtered_units_are_recorded_but_not_expanded(make_metadata) -> None:
    metadata = make_metadata({"app": ["requests"], "requests": ["urllib3"], "urllib3": []})
    policy = VisibilityPolicy(required=("requests",))
    resolved = resolve_units(["app"], metadata, policy=policy)

    assert "requests" in resolved
    assert resolved.units["requests"].is_declared
    assert "urllib3" not in resolved


def test_stdlib_units_are_not_expanded(make_metadata) -> None:
    metadata = make_metadata({"app": ["os"], "os": ["posix"], "posix": []}, stdlib={"os", "posix"})
    resolved = resolve_units(["app"], metadata)
    assert "os" in resolved
    assert "posix" not in resolved


def test_abort_reports_name_depth_and_importer(make_metadata) -> None:
    metadata = make_metadata({"a": ["b"], "b": ["ghost"]})
    with pytest.raises(UnitResolutionError) as excinfo:
        resolve_units(["a"], metadata, ResolverConfig(on_failure=FailurePolicy.ABORT))

    err = excinfo.value
    assert err.name == "ghost"
    assert err.depth == 2
    assert err.importer == "b"
    assert "failed to import ghost" in str(err)
    assert "by b" in str(err)


def test_abort_on_root_names_root_importer(make_metadata) -> None:
    with pytest.raises(UnitResolutionError, match="<root>"):
        resolve_units(["missing"], make_metadata({}))


def test_continue_keeps_failed_unit_as_node(make_metadata) -> None:
    metadata = make_metadata({"a": ["ghost", "b"], "b": []})
    resolved = resolve_units(["a"], metadata, ResolverConfig(on_failure=FailurePolicy.CONTINUE))

    ghost = resolved.units["ghost"]
    assert isinstance(ghost.outcome, Failed)
    assert "no such unit" in ghost.outcome.reason
    assert ghost.dependencies == ()
    assert isinstance(resolved.units["b"].outcome, Resolved)
    assert resolved.failed == ["ghost"]
    assert ("a", "ghost") in resolved.edges()


def test_abort_applies_to_hidden_declared_dependency(make_metadata) -> None:
    metadata = make_metadata({"app": ["yaml"]})
    policy = VisibilityPolicy(required=("yaml",))
    with pytest.raises(UnitResolutionError) as excinfo:
        resolve_units(["app"], metadata, ResolverConfig(on_failure=FailurePolicy.ABORT), policy)
    assert excinfo.value.name == "yaml"
    assert excinfo.value.importer == "app"


def test_allow_missing_declared_records_hidden_failure(make_metadata) -> None:
    metadata = make_metadata({"app": ["yaml.loader", "app.core"], "app.core": []})
    policy = VisibilityPolicy(required=("yaml",))
    cfg = ResolverConfig(on_failure=FailurePolicy.ABORT, allow_missing_declared=True)
    resolved = resolve_units(["app"], metadata, policy=policy)

    assert resolved.units["yaml.loader"].failed
    assert "app.core" in resolved


def test_allow_missing_declared_still_aborts_on_visible_failure(make_metadata) -> None:
    metadata = make_metadata({"app": ["yaml.loader", "ghost"]})
    policy = VisibilityPolicy(required=("yaml",))
    cfg = ResolverConfig(allow_missing_declared=True)
    with pytest.raises(UnitResolutionError, match="ghost"):
        resolve_units(["app"], metadata, cfg, policy)


def test_allow_missing_declared_ignored_when_manifest_not_honored(make_metadata) -> None:
    metadata = make_metadata({"app": ["yaml.loader"]})
    policy = VisibilityPolicy(required=("yaml",), honor_manifest=False)
    cfg = ResolverConfig(allow_missing_declared=True)
    with pytest.raises(UnitResolutionError, match="yaml.loader"):
        resolve_units(["app"], metadata, cfg, policy)


def test_continue_does_not_retry_failed_unit(make_metadata) -> None:
    metadata = make_metadata({"a": ["ghost", "b"], "b": ["ghost"]})
    resolve_units(["a"], metadata, ResolverConfig(on_failure=FailurePolicy.CONTINUE))
    assert metadata.resolved_names().count("ghost") == 1


def test_multiple_roots_share_visited_set(make_metadata) -> None:
    metadata = make_metadata({"a": ["c"], "b": ["c"], "c": []})
    resolved = resolve_units(["a", "b"], metadata)

    assert list(resolved.units) == ["a", "c", "b"]
    assert metadata.resolved_names().count("c") == 1


def test_children_are_searched_under_parent_root(make_metadata) -> None:
    metadata = make_metadata({"a": ["b"], "b": []})
    resolve_units(["a"], metadata, ResolverConfig(search_dir=Path("/project")))

    assert metadata.calls == [("a", Path("/project")), ("b", Path("/src"))]
