"""Tests for allowlist evaluation — conditions, targets, tiers."""

import pytest

from leakguard.rules.builder import build_allowlist
from leakguard.rules.models import Allowlist, RuleError
from leakguard.scanner.allowlist import allowlist_matches, is_allowed, skips_fragment
from leakguard.scanner.matcher import Candidate
from leakguard.sources.models import CommitInfo, Fragment

LINE = 'api = "TOKEN-ab12CD34"  # test fixture'


def _candidate(secret="ab12CD34", match="TOKEN-ab12CD34", line=LINE) -> Candidate:
    return Candidate(
        match=match, secret=secret, line=line, start=13, end=21,
        start_line=1, end_line=1, start_column=14, end_column=21,
    )


@pytest.fixture
def fragment() -> Fragment:
    return Fragment.from_text("src/app.py", LINE, commit=CommitInfo(sha="deadbeef"))


class TestAnyCondition:
    def test_empty_allowlist_never_suppresses(self, fragment):
        assert allowlist_matches(Allowlist(), fragment, _candidate()) is False

    def test_commit(self, fragment):
        assert allowlist_matches(build_allowlist({"commits": ["deadbeef"]}), fragment, _candidate())
        assert not allowlist_matches(build_allowlist({"commits": ["cafe"]}), fragment, _candidate())

    def test_path(self, fragment):
        assert allowlist_matches(build_allowlist({"paths": [r"^src/"]}), fragment, _candidate())

    def test_stopword_case_insensitive(self, fragment):
        al = build_allowlist({"stopwords": ["AB12cd"]})
        assert allowlist_matches(al, fragment, _candidate())

    def test_stopword_checks_secret_only(self, fragment):
        al = build_allowlist({"stopwords": ["fixture"]})
        assert not allowlist_matches(al, fragment, _candidate())

    def test_any_one_check_suffices(self, fragment):
        al = build_allowlist({"paths": [r"^docs/"], "stopwords": ["ab12"]})
        assert allowlist_matches(al, fragment, _candidate())


class TestAllCondition:
    def test_requires_every_check(self, fragment):
        al = build_allowlist({"condition": "all", "paths": [r"^src/"], "stopwords": ["zzz"]})
        assert not allowlist_matches(al, fragment, _candidate())
        al = build_allowlist({"condition": "all", "paths": [r"^src/"], "stopwords": ["ab12"]})
        assert allowlist_matches(al, fragment, _candidate())

    def test_all_with_commit_and_regex(self, fragment):
        al = build_allowlist({"condition": "ALL", "commits": ["deadbeef"], "regexes": ["CD34$"]})
        assert allowlist_matches(al, fragment, _candidate())


class TestRegexTarget:
    def test_secret_is_default(self, fragment):
        al = build_allowlist({"regexes": ["fixture"]})
        assert not allowlist_matches(al, fragment, _candidate())

    def test_match_target(self, fragment):
        al = build_allowlist({"regexes": ["^TOKEN-"], "regex_target": "match"})
        assert allowlist_matches(al, fragment, _candidate())

    def test_line_target(self, fragment):
        al = build_allowlist({"regexes": ["# test fixture$"], "regex_target": "line"})
        assert allowlist_matches(al, fragment, _candidate())


class TestTiers:
    def test_global_then_rule(self, fragment):
        glob = [build_allowlist({"paths": [r"^other/"]})]
        rule = [build_allowlist({"stopwords": ["ab12"]})]
        assert is_allowed(fragment, _candidate(), glob, rule)
        assert not is_allowed(fragment, _candidate(), glob, [])
        assert not is_allowed(fragment, _candidate(), [], [])


class TestSkipsFragment:
    def test_path_any(self, fragment):
        assert skips_fragment(build_allowlist({"paths": [r"\.py$"]}), fragment)

    def test_content_checks_never_skip_under_all(self, fragment):
        al = build_allowlist({"condition": "all", "paths": [r"\.py$"], "stopwords": ["x"]})
        assert not skips_fragment(al, fragment)

    def test_stopwords_alone_do_not_skip(self, fragment):
        assert not skips_fragment(build_allowlist({"stopwords": ["x"]}), fragment)


class TestBuildAllowlist:
    def test_unknown_key(self):
        with pytest.raises(RuleError, match="unknown allowlist key"):
            build_allowlist({"pathz": ["x"]}, owner="my-rule")

    def test_bad_condition(self):
        with pytest.raises(RuleError):
            build_allowlist({"condition": "most"})

    def test_bad_regex_names_owner(self):
        with pytest.raises(RuleError) as exc_info:
            build_allowlist({"regexes": ["("]}, owner="my-rule")
        assert exc_info.value.rule_id == "my-rule"
