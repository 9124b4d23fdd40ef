"""Tests for rule models, the builder/validator, registry, and built-in rules."""

import re
from pathlib import Path

import pytest
import yaml

from leakguard.config.schema import LeakGuardConfig
from leakguard.rules.builder import RuleSpec, build, build_validated, validate
from leakguard.rules.builtin import ALL_BUILTIN_SPECS
from leakguard.rules.models import Rule, RuleError
from leakguard.rules.registry import CUSTOM_RULES_DIR, RuleRegistry, RuleSet, build_rule_set


class TestRuleModel:
    def test_needs_pattern_or_path(self):
        with pytest.raises(RuleError, match="regex, a path, or both"):
            Rule(id="empty")

    def test_secret_group_out_of_range(self):
        with pytest.raises(RuleError) as exc_info:
            Rule(id="grp", pattern=re.compile(r"key=(\w+)"), secret_group=2)
        assert exc_info.value.rule_id == "grp"

    def test_effective_group(self):
        assert Rule(id="a", pattern=re.compile(r"x")).effective_group == 0
        assert Rule(id="b", pattern=re.compile(r"(x)"), secret_group=1).effective_group == 1
        assert Rule(id="c", pattern=re.compile(r"(?P<secret>x)")).effective_group == "secret"

    def test_path_rule(self):
        assert Rule(id="p", path=re.compile(r"\.env$")).is_path_rule


class TestBuilder:
    def test_build_lowercases_keywords(self):
        rule = build(RuleSpec(id="k", regex="TOKEN-\\w+", keywords=["TOKEN-"]))
        assert rule.keywords == ("token-",)

    def test_invalid_regex(self):
        with pytest.raises(RuleError) as exc_info:
            build(RuleSpec(id="broken", regex="(unclosed"))
        assert exc_info.value.rule_id == "broken"
        assert "invalid regex" in str(exc_info.value)

    def test_keywords_must_be_list(self):
        with pytest.raises(RuleError):
            build(RuleSpec(id="kw", regex="x", keywords="token"))

    def test_from_mapping_single_allowlist(self):
        spec = RuleSpec.from_mapping({"id": "m", "regex": "x", "allowlist": {"stopwords": ["a"]}, "extra": 1})
        assert spec.allowlists == [{"stopwords": ["a"]}]

    def test_from_mapping_requires_id(self):
        with pytest.raises(RuleError):
            RuleSpec.from_mapping({"regex": "x"})

    def test_validate_reports_mismatches(self):
        rule = build(RuleSpec(id="t", regex=r"TOKEN-[a-z]{4}"))
        problems = validate(rule, ["TOKEN-ABCD"], ["TOKEN-abcd"])
        assert len(problems) == 2
        assert "true positive" in problems[0]
        assert "false positive" in problems[1]

    def test_validate_ignores_path_filter_for_content(self):
        rule = build(RuleSpec(id="t", regex=r"TOKEN-[a-z]{4}", path=r"\.js$"))
        assert validate(rule, ["TOKEN-abcd"]) == []

    def test_build_validated_raises(self):
        spec = RuleSpec(id="bad", regex=r"TOKEN-[a-z]{4}", true_positives=["nothing here"])
        with pytest.raises(RuleError, match="no finding"):
            build_validated(spec)


@pytest.mark.parametrize("spec", ALL_BUILTIN_SPECS, ids=lambda s: s.id)
class TestBuiltinRules:
    def test_compiles(self, spec):
        assert build(spec).id == spec.id

    def test_samples(self, spec):
        assert spec.true_positives, f"{spec.id} has no true positive samples"
        assert validate(build(spec), spec.true_positives, spec.false_positives) == []


class TestBuiltinCatalog:
    def test_unique_ids(self):
        ids = [s.id for s in ALL_BUILTIN_SPECS]
        assert len(ids) == len(set(ids))

    def test_rule_set_builds(self):
        assert len(RuleSet(build(s) for s in ALL_BUILTIN_SPECS)) == len(ALL_BUILTIN_SPECS)


class TestRuleSet:
    def test_duplicate_ids(self):
        rule = Rule(id="dup", pattern=re.compile("x"))
        with pytest.raises(RuleError, match="duplicate"):
            RuleSet([rule, rule])

    def test_rejects_non_rules(self):
        with pytest.raises(RuleError):
            RuleSet([RuleSpec(id="spec", regex="x")])

    def test_lookup(self):
        rs = RuleSet([Rule(id="a", pattern=re.compile("x"))])
        assert "a" in rs and rs.get("a").id == "a" and rs.get("b") is None


class TestRegistry:
    def test_duplicate_within_origin(self):
        reg = RuleRegistry()
        reg.register(RuleSpec(id="x", regex="x"), origin="config")
        with pytest.raises(RuleError):
            reg.register(RuleSpec(id="x", regex="y"), origin="config")

    def test_override_builtin(self):
        reg = RuleRegistry()
        reg.register(RuleSpec(id="x", regex="x"))
        reg.register(RuleSpec(id="x", regex="y"), origin="config")
        assert reg.get("x").regex == "y"
        assert reg.origin_of("x") == "config"

    def test_enable_disable(self):
        reg = RuleRegistry()
        reg.register_many([RuleSpec(id=i, regex="x") for i in ("a", "b", "c")])
        assert [s.id for s in reg.selected(enable=["a", "b"], disable=["b"])] == ["a"]

    def test_yaml_rules(self, tmp_path: Path):
        rules_dir = tmp_path / CUSTOM_RULES_DIR
        rules_dir.mkdir()
        (rules_dir / "internal.yaml").write_text(yaml.safe_dump([
            {"id": "internal-token", "regex": "INT-[0-9]{6}", "keywords": ["int-"]},
            {"id": "internal-key", "regex": "IKEY-[a-z]{8}"},
        ]))
        reg = RuleRegistry()
        assert reg.load_custom_rules(rules_dir) == 2
        assert reg.get("internal-token").keywords == ["int-"]

    def test_yaml_not_a_mapping(self, tmp_path: Path):
        (tmp_path / "bad.yml").write_text("- just a string\n")
        with pytest.raises(RuleError):
            RuleRegistry().load_custom_rules(tmp_path)


class TestBuildRuleSet:
    def test_defaults(self, tmp_path: Path):
        rs = build_rule_set(LeakGuardConfig(), tmp_path)
        assert "github-pat" in rs
        assert len(rs) == len(ALL_BUILTIN_SPECS)

    def test_config_rules_and_disable(self, tmp_path: Path):
        cfg = LeakGuardConfig()
        cfg.rules = [{"id": "corp-token", "regex": "CORP-[0-9]{4}"}]
        cfg.ruleset.disable = ["generic-api-key"]
        rs = build_rule_set(cfg, tmp_path)
        assert "corp-token" in rs
        assert "generic-api-key" not in rs

    def test_no_defaults(self, tmp_path: Path):
        cfg = LeakGuardConfig()
        cfg.ruleset.use_default = False
        cfg.rules = [{"id": "only", "regex": "x"}]
        assert [r.id for r in build_rule_set(cfg, tmp_path)] == ["only"]

    def test_validate_custom_rules(self, tmp_path: Path):
        cfg = LeakGuardConfig()
        cfg.ruleset.validate = True
        cfg.rules = [{"id": "corp", "regex": "CORP-[0-9]{4}", "true_positives": ["CORP-12"]}]
        with pytest.raises(RuleError):
            build_rule_set(cfg, tmp_path)

    def test_global_allowlists(self, tmp_path: Path):
        cfg = LeakGuardConfig()
        cfg.allowlists = [{"paths": ["^vendor/"]}]
        assert len(build_rule_set(cfg, tmp_path).allowlists) == 1
