"""Rule set — the validated, read-only collection a scan runs against."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

import yaml

from leakguard.config.schema import LeakGuardConfig
from leakguard.rules.builder import RuleSpec, build, build_allowlist, build_validated
from leakguard.rules.models import Allowlist, Rule, RuleError

logger = logging.getLogger(__name__)

CUSTOM_RULES_DIR = ".leakguard-rules"


class RuleSet:
    """Ordered rules plus global allowlists.

    Construction is the only validation point: duplicate ids are rejected
    here, everything else was checked when each :class:`Rule` was built.
    """

    def __init__(self, rules: Iterable[Rule], allowlists: Iterable[Allowlist] = ()) -> None:
        self._rules: Dict[str, Rule] = {}
        for rule in rules:
            if not isinstance(rule, Rule):
                raise RuleError(str(getattr(rule, "id", rule)), "not a compiled Rule")
            if rule.id in self._rules:
                raise RuleError(rule.id, "duplicate rule id")
            self._rules[rule.id] = rule
        self._allowlists = tuple(allowlists)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    @property
    def rules(self) -> List[Rule]:
        return list(self._rules.values())

    @property
    def allowlists(self) -> Sequence[Allowlist]:
        return self._allowlists

    def get(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)


class RuleRegistry:
    """Collects rule specs from every source before they are built."""

    def __init__(self) -> None:
        self._specs: Dict[str, RuleSpec] = {}
        self._origin: Dict[str, str] = {}

    # ---- registration ----

    def register(self, spec: RuleSpec, origin: str = "builtin") -> None:
        if spec.id in self._specs and origin == self._origin[spec.id]:
            raise RuleError(spec.id, f"duplicate rule id in {origin}")
        if spec.id in self._specs:
            logger.info("Rule %s from %s overrides %s", spec.id, origin, self._origin[spec.id])
        self._specs[spec.id] = spec
        self._origin[spec.id] = origin

    def register_many(self, specs: Iterable[RuleSpec], origin: str = "builtin") -> None:
        for s in specs:
            self.register(s, origin)

    # ---- queries ----

    @property
    def all_specs(self) -> List[RuleSpec]:
        return list(self._specs.values())

    def get(self, rule_id: str) -> Optional[RuleSpec]:
        return self._specs.get(rule_id)

    def origin_of(self, rule_id: str) -> Optional[str]:
        return self._origin.get(rule_id)

    def selected(self, enable: Sequence[str] = (), disable: Sequence[str] = ()) -> List[RuleSpec]:
        """Specs left after the enable-list (if any) and the disable-list."""
        out = []
        for spec in self._specs.values():
            if enable and spec.id not in enable:
                continue
            if spec.id in disable:
                continue
            out.append(spec)
        return out

    # ---- custom rule loading ----

    def load_custom_rules(self, directory: Path) -> int:
        """Load YAML rule files from *directory*. Returns count loaded."""
        count = 0
        if not directory.is_dir():
            return 0
        for path in sorted(directory.iterdir()):
            if path.suffix in (".yaml", ".yml"):
                count += self._load_yaml_rules(path)
        return count

    def _load_yaml_rules(self, path: Path) -> int:
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as exc:
            raise RuleError(path.name, f"cannot read rule file: {exc}") from exc
        if data is None:
            return 0
        if not isinstance(data, list):
            data = [data]
        for entry in data:
            if not isinstance(entry, dict):
                raise RuleError(path.name, "each rule must be a mapping")
            self.register(RuleSpec.from_mapping(entry), origin=str(path))
        return len(data)


def build_rule_set(config: LeakGuardConfig, repo_root: Path) -> RuleSet:
    """Create a compiled, config-filtered rule set.

    Custom rules (``[[rules]]`` then ``.leakguard-rules/*.yaml``) replace
    built-in rules with the same id.
    """
    from leakguard.rules.builtin import ALL_BUILTIN_SPECS

    registry = RuleRegistry()
    if config.ruleset.use_default:
        registry.register_many(ALL_BUILTIN_SPECS)

    for entry in config.rules:
        registry.register(RuleSpec.from_mapping(entry), origin="config")

    custom_dir = repo_root / CUSTOM_RULES_DIR
    loaded = registry.load_custom_rules(custom_dir)
    if loaded:
        logger.debug("Loaded %d custom rule(s) from %s", loaded, custom_dir)
    custom_ids = {s.id for s in registry.all_specs if registry.origin_of(s.id) != "builtin"}

    unknown = [r for r in config.ruleset.enable + config.ruleset.disable if registry.get(r) is None]
    if unknown:
        logger.warning("Unknown rule id(s) in [ruleset]: %s", ", ".join(sorted(set(unknown))))

    rules = []
    for spec in registry.selected(config.ruleset.enable, config.ruleset.disable):
        if config.ruleset.validate and spec.id in custom_ids:
            rules.append(build_validated(spec))
        else:
            rules.append(build(spec))

    allowlists = [build_allowlist(a) for a in config.allowlists]
    rule_set = RuleSet(rules, allowlists)
    logger.debug("Rule set ready: %d rule(s), %d global allowlist(s)", len(rule_set), len(allowlists))
    return rule_set
