"""
Tests for Scope Enforcer

Classification, allowed-path derivation and artifact filtering.
"""
import pytest

from synthesis.core.scope_enforcer import ScopeEnforcer, nearest_prefixes, normalize_path
from synthesis.schemas import (
    ActionKind,
    AllowedPathSet,
    GeneratedArtifact,
    OutputContract,
    TargetArea,
    Unit,
    UnitGroup,
)


def make_group(contracts, group_id="1.1", action=ActionKind.GENERATE):
    unit = Unit(
        unit_id="mod-code-015",
        phase=1,
        action=action,
        contracts=tuple(OutputContract(template=t, output=o) for t, o in contracts),
    )
    return UnitGroup(group_id=group_id, phase=1, action=action, units=(unit,))


def artifact(path, content="class X {}", group_id="1.1"):
    return GeneratedArtifact(path=path, content=content, unit_id="mod-code-015", group_id=group_id)


BINDINGS = {"basePackagePath": "com/bank/customer", "Entity": "Customer"}


class TestClassify:
    """Test target-area classification"""

    @pytest.fixture
    def enforcer(self):
        return ScopeEnforcer()

    def test_source_file(self, enforcer):
        placement = enforcer.classify("com/bank/customer/domain/Customer.java")
        assert placement.area == TargetArea.SOURCE
        assert placement.target_path == "src/main/java/com/bank/customer/domain/Customer.java"
        assert placement.scope_path == placement.target_path

    def test_layout_prefix_is_stripped(self, enforcer):
        placement = enforcer.classify("src/main/java/com/bank/Customer.java")
        assert placement.target_path == "src/main/java/com/bank/Customer.java"

    def test_test_suffix(self, enforcer):
        placement = enforcer.classify("com/bank/CustomerServiceTest.java")
        assert placement.area == TargetArea.TEST
        assert placement.target_path == "src/test/java/com/bank/CustomerServiceTest.java"

    def test_test_directory_segment(self, enforcer):
        assert enforcer.classify("test/area/foo/Helper.java").area == TargetArea.TEST

    def test_resource_is_flattened(self, enforcer):
        placement = enforcer.classify("src/main/resources/config/application.yml")
        assert placement.area == TargetArea.RESOURCE
        assert placement.scope_path == "src/main/resources"
        assert placement.target_path == "src/main/resources/application.yml"

    def test_test_resource(self, enforcer):
        placement = enforcer.classify("src/test/resources/application-test.yml")
        assert placement.area == TargetArea.RESOURCE
        assert placement.target_path == "src/test/resources/application-test.yml"

    def test_root_file(self, enforcer):
        placement = enforcer.classify("./pom.xml")
        assert placement.area == TargetArea.ROOT
        assert placement.target_path == "pom.xml"

    def test_normalize_path(self):
        assert normalize_path("./src//main\\java/A.java") == "src/main/java/A.java"
        assert normalize_path("/abs/A.java") == "abs/A.java"


class TestDeriveAllowedPaths:
    """Test AllowedPathSet derivation from output contracts"""

    @pytest.fixture
    def enforcer(self):
        return ScopeEnforcer()

    def test_filename_is_stripped(self, enforcer):
        group = make_group([("domain/Entity.java.tpl", "{{basePackagePath}}/domain/model/{{Entity}}.java")])
        allowed = enforcer.derive_allowed_paths(group, BINDINGS)
        assert allowed.prefixes == ("src/main/java/com/bank/customer/domain/model",)

    def test_unresolved_placeholder_truncates(self, enforcer):
        group = make_group([("x.tpl", "{{basePackagePath}}/{{aggregate}}/repository/Repo.java")])
        allowed = enforcer.derive_allowed_paths(group, BINDINGS)
        assert allowed.prefixes == ("src/main/java/com/bank/customer",)

    def test_wildcard_collapses(self, enforcer):
        group = make_group([("x.tpl", "{{basePackagePath}}/.../Config.java")])
        allowed = enforcer.derive_allowed_paths(group, BINDINGS)
        assert allowed.prefixes == ("src/main/java/com/bank/customer",)

    def test_test_named_contract(self, enforcer):
        group = make_group([("test/AdapterSpec.java.tpl", "{{basePackagePath}}/adapter/Adapter.java")])
        allowed = enforcer.derive_allowed_paths(group, BINDINGS)
        assert allowed.prefixes == ("src/test/java/com/bank/customer/adapter",)

    def test_resource_and_root_contracts(self, enforcer):
        group = make_group([
            ("config/application.yml.tpl", "application.yml"),
            ("build/pom.xml.tpl", "pom.xml"),
        ])
        allowed = enforcer.derive_allowed_paths(group, BINDINGS)
        assert allowed.prefixes == ("pom.xml", "src/main/resources")

    def test_contracts_are_unioned_sorted_unique(self, enforcer):
        group = make_group([
            ("b.tpl", "{{basePackagePath}}/b/B.java"),
            ("a.tpl", "{{basePackagePath}}/a/A.java"),
            ("a2.tpl", "{{basePackagePath}}/a/A2.java"),
        ])
        allowed = enforcer.derive_allowed_paths(group, BINDINGS)
        assert allowed.prefixes == (
            "src/main/java/com/bank/customer/a",
            "src/main/java/com/bank/customer/b",
        )

    def test_existing_targets_are_allowed(self, enforcer):
        group = make_group([], action=ActionKind.TRANSFORM)
        allowed = enforcer.derive_allowed_paths(
            group, BINDINGS, ["src/main/java/com/bank/Foo.java", "pom.xml", "../outside.java"]
        )
        assert allowed.prefixes == ("pom.xml", "src/main/java/com/bank/Foo.java")

    def test_derivation_is_idempotent(self, enforcer):
        group = make_group([("a.tpl", "{{basePackagePath}}/a/A.java"), ("t.tpl", "{{basePackagePath}}/a/ATest.java")])
        assert enforcer.derive_allowed_paths(group, BINDINGS) == enforcer.derive_allowed_paths(group, BINDINGS)


class TestFilterArtifacts:
    """Test post-generation filtering"""

    @pytest.fixture
    def enforcer(self):
        return ScopeEnforcer()

    def test_leak_is_rejected(self, enforcer):
        """Two in-scope files accepted, the leak rejected with its path in the reason"""
        group = make_group([("src.tpl", "src/area/foo/Main.ext"), ("test.tpl", "test/area/foo/Check.ext")])
        allowed = enforcer.derive_allowed_paths(group, {})
        candidates = [
            artifact("src/area/foo/Main.ext"),
            artifact("test/area/foo/Check.ext"),
            artifact("other/leak.ext"),
        ]

        decision = enforcer.filter_artifacts(candidates, allowed)

        assert [a.path for a in decision.accepted] == ["src/area/foo/Main.ext", "test/area/foo/Check.ext"]
        assert len(decision.rejected) == 1
        assert "other/leak.ext" in decision.rejected[0].reason
        assert decision.rejected[0].nearest_prefixes

    def test_filter_is_total(self, enforcer):
        """Every candidate ends up in exactly one of accepted/rejected"""
        allowed = AllowedPathSet(group_id="1.1", prefixes=("src/main/java/com/bank",))
        candidates = [
            artifact("com/bank/A.java"),
            artifact(""),
            artifact("com/bank/B.java", content="   "),
            artifact("../../etc/passwd"),
            artifact("org/other/C.java"),
            artifact("src/main/java/com/bank/D.java"),
        ]

        decision = enforcer.filter_artifacts(candidates, allowed)

        assert len(decision.accepted) + len(decision.rejected) == len(candidates)
        accepted_ids = {id(a) for a in decision.accepted}
        rejected_ids = {id(r.artifact) for r in decision.rejected}
        assert not accepted_ids & rejected_ids
        assert [a.path for a in decision.accepted] == ["com/bank/A.java", "src/main/java/com/bank/D.java"]
        reasons = [r.reason for r in decision.rejected]
        assert reasons[0] == "empty output path"
        assert "empty content" in reasons[1]
        assert "escapes the project root" in reasons[2]
        assert "out of scope" in reasons[3]

    def test_empty_allowed_set_rejects_everything(self, enforcer):
        allowed = AllowedPathSet(group_id="1.1")
        decision = enforcer.filter_artifacts([artifact("com/bank/A.java")], allowed)
        assert decision.accepted == []
        assert "no allowed paths" in decision.rejected[0].reason

    def test_exact_match_is_accepted(self, enforcer):
        allowed = AllowedPathSet(group_id="1.1", prefixes=("pom.xml",))
        decision = enforcer.filter_artifacts([artifact("pom.xml", content="<project/>")], allowed)
        assert len(decision.accepted) == 1
        assert decision.placement_for(decision.accepted[0]).target_path == "pom.xml"

    def test_filter_is_idempotent(self, enforcer):
        allowed = AllowedPathSet(group_id="1.1", prefixes=("src/main/java/com/bank",))
        candidates = [artifact("com/bank/A.java"), artifact("org/B.java")]
        assert enforcer.filter_artifacts(candidates, allowed) == enforcer.filter_artifacts(candidates, allowed)

    def test_audit_record_has_no_content(self, enforcer):
        allowed = AllowedPathSet(group_id="1.1", prefixes=("src/main/java/com/bank",))
        decision = enforcer.filter_artifacts([artifact("com/bank/A.java"), artifact("org/B.java")], allowed)
        record = decision.audit_record()
        assert record["accepted"][0]["target_path"] == "src/main/java/com/bank/A.java"
        assert record["rejected"][0]["scope_path"] == "src/main/java/org/B.java"
        assert "content" not in record["accepted"][0]


class TestNearestPrefixes:
    def test_most_shared_segments_first(self):
        prefixes = ["pom.xml", "src/main/java/com/bank/a", "src/main/java/com/bank/b", "src/test/java/com"]
        nearest = nearest_prefixes("src/main/java/com/bank/c/X.java", prefixes)
        assert nearest == ["src/main/java/com/bank/a", "src/main/java/com/bank/b", "src/test/java/com"]

    def test_limit(self):
        assert len(nearest_prefixes("a/b", ["a/1", "a/2", "a/3", "a/4"])) == 3
