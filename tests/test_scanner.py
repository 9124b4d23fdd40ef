"""Tests for the detection engine — per-fragment detection and the scan pipeline."""

import re
import threading

import pytest

from leakguard.findings.models import ScanStatus
from leakguard.rules.builder import build_allowlist
from leakguard.rules.models import Rule, RuleError
from leakguard.rules.registry import RuleSet
from leakguard.scanner.engine import Detector, ScanError, ScanOptions, scan
from leakguard.scanner.entropy import shannon_entropy
from leakguard.scanner.suppression import IgnoreFile
from leakguard.sources.diff_parser import parse_diff
from leakguard.sources.models import CommitInfo, Fragment, LineIndex, SourceError

CONTENT = 'const key = "TOKEN-ab12CD34";'


def _frag(text: str, path: str = "app.js", **kw) -> Fragment:
    return Fragment.from_text(path, text, **kw)


class TestScenarios:
    def test_single_match_location(self, token_rules):
        result = scan([_frag(CONTENT)], token_rules)
        assert result.status is ScanStatus.COMPLETE
        assert len(result.findings) == 1
        f = result.findings[0]
        assert f.secret == "TOKEN-ab12CD34"
        assert f.start_line == f.end_line == 1
        assert f.start_column == 14
        assert CONTENT[f.start_column - 1] == "T"
        assert f.end_column == 14 + len("TOKEN-ab12CD34") - 1
        assert f.line == CONTENT
        assert f.fingerprint == "app.js:test-token:1"

    def test_global_stopword_suppresses(self, token_rule):
        rules = RuleSet([token_rule], [build_allowlist({"stopwords": ["ab12CD34"]})])
        assert scan([_frag(CONTENT)], rules).findings == []

    def test_entropy_threshold(self):
        rule = Rule(
            id="entropy-rule",
            pattern=re.compile(r"secret=(\w+)"),
            secret_group=1,
            entropy=3.5,
        )
        rules = RuleSet([rule])
        assert scan([_frag("secret=aaaaaaaa")], rules).findings == []
        found = scan([_frag("secret=aZ3kQ9mPx7Lw2VbR")], rules).findings
        assert [f.secret for f in found] == ["aZ3kQ9mPx7Lw2VbR"]

    def test_eight_distinct_chars_stay_below_threshold(self):
        # 8 distinct symbols top out at log2(8) = 3.0 bits
        rule = Rule(id="entropy-rule", pattern=re.compile(r"secret=(\w+)"), secret_group=1, entropy=3.5)
        assert shannon_entropy("aZ3kQ9mP") == pytest.approx(3.0)
        assert scan([_frag("secret=aZ3kQ9mP")], RuleSet([rule])).findings == []

    def test_overlapping_hunks_deduplicated(self, token_rules):
        commit = CommitInfo(sha="abc123")
        a = Fragment.from_lines("cfg.py", [(7, 'K = "TOKEN-ab12CD34"')], commit=commit)
        b = Fragment.from_lines("cfg.py", [(6, "x = 1"), (7, 'K = "TOKEN-ab12CD34"')], commit=commit)
        result = scan([a, b], token_rules)
        assert len(result.findings) == 1
        assert result.findings[0].fingerprint == "abc123:cfg.py:test-token:7"

    def test_empty_stream(self, token_rules):
        result = scan([], token_rules)
        assert result.findings == []
        assert result.status is ScanStatus.COMPLETE
        assert result.exit_code() == 0


class TestDetect:
    def test_keyword_prefilter_is_case_insensitive(self, token_rule):
        detector = Detector(RuleSet([token_rule]))
        assert len(detector.detect(_frag("x = TOKEN-ab12CD34")).findings) == 1
        assert detector.detect(_frag("x = token-ab12CD34")).findings == []  # regex is case-sensitive

    def test_prefilter_never_hides_a_match(self):
        # a keyword that never appears: the rule is skipped entirely
        rule = Rule(id="kw", pattern=re.compile(r"TOKEN-\w{8}"), keywords=("absent",))
        assert Detector(RuleSet([rule])).detect(_frag(CONTENT)).findings == []
        unfiltered = Rule(id="kw", pattern=re.compile(r"TOKEN-\w{8}"))
        assert len(Detector(RuleSet([unfiltered])).detect(_frag(CONTENT)).findings) == 1

    def test_rule_path_filter(self):
        rule = Rule(id="js-only", pattern=re.compile(r"TOKEN-\w{8}"), path=re.compile(r"\.js$"))
        detector = Detector(RuleSet([rule]))
        assert len(detector.detect(_frag(CONTENT, "a.js")).findings) == 1
        assert detector.detect(_frag(CONTENT, "a.py")).findings == []

    def test_path_only_rule(self):
        rule = Rule(id="env-file", path=re.compile(r"(?:^|/)\.env$"))
        findings = Detector(RuleSet([rule])).detect(_frag("A=1", "svc/.env")).findings
        assert len(findings) == 1
        f = findings[0]
        assert f.match == "file detected: svc/.env"
        assert (f.start_line, f.start_column, f.end_column) == (0, 0, 0)
        assert f.fingerprint == "svc/.env:env-file:0"

    def test_multiline_match(self):
        rule = Rule(id="block", pattern=re.compile(r"BEGIN\n\w+\nEND"))
        f = Detector(RuleSet([rule])).detect(_frag("x\nBEGIN\nabc\nEND\n")).findings[0]
        assert (f.start_line, f.end_line) == (2, 4)
        assert f.start_column == 1

    def test_missing_secret_group_skipped(self):
        rule = Rule(id="opt", pattern=re.compile(r"key(?:=(\w+))?"), secret_group=1)
        findings = Detector(RuleSet([rule])).detect(_frag("key\nkey=abc")).findings
        assert [f.secret for f in findings] == ["abc"]

    def test_named_secret_group(self):
        rule = Rule(id="named", pattern=re.compile(r"pass=(?P<secret>\w+)"))
        f = Detector(RuleSet([rule])).detect(_frag("pass=hunter2")).findings[0]
        assert f.secret == "hunter2"
        assert f.match == "pass=hunter2"
        assert f.start_column == 6

    def test_overlapping_rules_both_reported(self, token_rule):
        generic = Rule(id="generic", pattern=re.compile(r"[A-Z]+-[a-z0-9A-Z]{8}"))
        findings = Detector(RuleSet([token_rule, generic])).detect(_frag(CONTENT)).findings
        assert sorted(f.rule_id for f in findings) == ["generic", "test-token"]

    def test_none_content_is_diagnosed(self, token_rules):
        report = Detector(token_rules).detect(Fragment.from_text("broken", None))
        assert report.findings == []
        assert [d.kind for d in report.diagnostics] == ["no-content"]

    def test_empty_content(self, token_rules):
        report = Detector(token_rules).detect(_frag(""))
        assert report.findings == [] and report.diagnostics == []

    def test_bad_offset_skips_fragment(self, token_rules):
        broken = Fragment(file_path="x", raw=CONTENT, lines=LineIndex(starts=(), numbers=(), length=0))
        report = Detector(token_rules).detect(broken)
        assert report.findings == []
        assert [d.kind for d in report.diagnostics] == ["bad-offset"]

    def test_long_line_not_scanned(self, token_rules):
        text = "x" * 50 + " TOKEN-aaaaBBBB\n" + CONTENT
        report = Detector(token_rules, ScanOptions(max_line_length=40)).detect(_frag(text))
        assert [f.start_line for f in report.findings] == [2]
        assert [(d.kind, d.line_no) for d in report.diagnostics] == [("line-too-long", 1)]

    def test_line_cap_zero_disables(self, token_rules):
        text = "x" * 500 + " TOKEN-aaaaBBBB"
        report = Detector(token_rules, ScanOptions(max_line_length=0)).detect(_frag(text))
        assert len(report.findings) == 1

    def test_dollar_anchor_at_segment_end(self):
        text = "a TOKEN-ab12CD34\n" + "x" * 100 + "\nb"
        end_anchored = RuleSet([Rule(id="eol", pattern=re.compile(r"TOKEN-\w{8}$"))])
        uncapped = Detector(end_anchored, ScanOptions(max_line_length=0)).detect(_frag(text))
        capped = Detector(end_anchored, ScanOptions(max_line_length=40)).detect(_frag(text))
        assert uncapped.findings == []
        assert [f.start_line for f in capped.findings] == [1]

        multiline = RuleSet([Rule(id="eol", pattern=re.compile(r"(?m)TOKEN-\w{8}$"))])
        for cap in (0, 40):
            report = Detector(multiline, ScanOptions(max_line_length=cap)).detect(_frag(text))
            assert [f.start_line for f in report.findings] == [1]

    def test_inline_allow(self, token_rules):
        text = CONTENT + "  // leakguard:allow\n" + 'other = "TOKEN-zz98YX76";'
        report = Detector(token_rules).detect(_frag(text))
        assert [f.start_line for f in report.findings] == [2]
        assert [s.line_no for s in report.suppressed] == [1]

    def test_inline_allow_disabled(self, token_rules):
        text = CONTENT + "  // leakguard:allow"
        report = Detector(token_rules, ScanOptions(inline_allow=False)).detect(_frag(text))
        assert len(report.findings) == 1

    def test_commit_url(self, token_rules):
        commit = CommitInfo(sha="abc123", author="Ada", email="ada@example.com")
        frag = Fragment.from_lines("src/app.js", [(12, CONTENT)], commit=commit)
        opts = ScanOptions(repo_url="https://github.com/acme/app")
        f = Detector(token_rules, opts).detect(frag).findings[0]
        assert f.url == "https://github.com/acme/app/blob/abc123/src/app.js#L12"
        assert f.author == "Ada"
        assert f.fingerprint == "abc123:src/app.js:test-token:12"

    def test_global_path_allowlist_skips_fragment(self, token_rule):
        rules = RuleSet([token_rule], [build_allowlist({"paths": [r"^vendor/"]})])
        detector = Detector(rules)
        assert detector.detect(_frag(CONTENT, "vendor/lib.js")).findings == []
        assert len(detector.detect(_frag(CONTENT, "src/lib.js")).findings) == 1

    def test_ignore_file_globs(self, token_rules):
        ignore = IgnoreFile()
        ignore.add("fixtures/*")
        ignore.add("rule:test-token docs/*.md")
        detector = Detector(token_rules, ScanOptions(ignore=ignore))
        assert detector.detect(_frag(CONTENT, "fixtures/a.js")).findings == []
        assert detector.detect(_frag(CONTENT, "docs/a.md")).findings == []
        assert len(detector.detect(_frag(CONTENT, "src/a.js")).findings) == 1


class TestPipeline:
    def _fragments(self, n):
        return [_frag(f'k{i} = "TOKEN-ab12CD{i:02d}"', f"f{i:03d}.py") for i in range(n)]

    def test_deterministic_across_worker_counts(self, token_rules):
        frags = self._fragments(40)
        one = scan(frags, token_rules, ScanOptions(workers=1, queue_size=1)).findings
        many = scan(frags, token_rules, ScanOptions(workers=8, queue_size=3)).findings
        assert one == many
        assert [f.file for f in one] == sorted(f.file for f in one)
        assert len(one) == 40

    def test_canonical_order(self, token_rules):
        frags = [
            _frag('b = "TOKEN-bbbbBBBB"\nc = "TOKEN-ccccCCCC"', "b.py"),
            _frag('a = "TOKEN-aaaaAAAA"', "a.py"),
        ]
        result = scan(frags, token_rules)
        assert [(f.file, f.start_line) for f in result.findings] == [("a.py", 1), ("b.py", 1), ("b.py", 2)]

    def test_diff_pipeline(self, token_rules, sample_git_log):
        fragments = [i for i in parse_diff(sample_git_log) if isinstance(i, Fragment)]
        result = scan(fragments, token_rules)
        assert [(f.commit[:4], f.file, f.start_line) for f in result.findings] == [
            ("2222", "notes.md", 1),
            ("1111", "settings.py", 2),
        ]
        assert result.fragments_scanned == 3

    def test_baseline_split(self, token_rules):
        frags = self._fragments(3)
        known = frozenset({"f001.py:test-token:1"})
        result = scan(frags, token_rules, ScanOptions(baseline=known))
        assert [f.file for f in result.findings] == ["f000.py", "f002.py"]
        assert result.baseline_matches == 1
        assert result.known == []
        kept = scan(frags, token_rules, ScanOptions(baseline=known, keep_known=True))
        assert [f.file for f in kept.known] == ["f001.py"]

    def test_ignore_file_fingerprint(self, token_rules):
        ignore = IgnoreFile()
        ignore.add("f000.py:test-token:1")
        result = scan(self._fragments(2), token_rules, ScanOptions(ignore=ignore))
        assert [f.file for f in result.findings] == ["f001.py"]
        assert [(s.file, s.reason) for s in result.suppressed] == [("f000.py", "ignorefile")]

    def test_source_error_is_partial_failure(self, token_rules):
        def source():
            yield _frag(CONTENT, "ok.js")
            raise SourceError("fatal: bad revision")

        result = scan(source(), token_rules, ScanOptions(workers=1))
        assert result.status is ScanStatus.FAILED
        assert result.partial
        assert result.error == "fatal: bad revision"
        assert result.exit_code() == 2

    def test_failure_leaves_caller_event_alone(self, token_rules):
        cancel = threading.Event()

        def source():
            yield _frag(CONTENT)
            raise SourceError("fatal: bad revision")

        result = scan(source(), token_rules, cancel=cancel)
        assert result.status is ScanStatus.FAILED
        assert not cancel.is_set()

    def test_none_fragment_aborts(self, token_rules):
        result = scan([_frag(CONTENT), None], token_rules)
        assert result.status is ScanStatus.FAILED

    def test_cancel_before_start(self, token_rules):
        cancel = threading.Event()
        cancel.set()
        result = scan(self._fragments(5), token_rules, cancel=cancel)
        assert result.status is ScanStatus.CANCELLED
        assert result.findings == []
        assert result.exit_code() == 130

    def test_cancel_mid_stream(self, token_rules):
        cancel = threading.Event()

        def source():
            for i, frag in enumerate(self._fragments(50)):
                if i == 10:
                    cancel.set()
                yield frag

        result = scan(source(), token_rules, ScanOptions(workers=2, queue_size=2), cancel=cancel)
        assert result.status is ScanStatus.CANCELLED
        assert result.partial
        assert len(result.findings) <= 10

    def test_keyboard_interrupt_in_source(self, token_rules):
        def source():
            yield _frag(CONTENT)
            raise KeyboardInterrupt

        result = scan(source(), token_rules)
        assert result.status is ScanStatus.CANCELLED

    def test_exit_codes(self, token_rules):
        result = scan([_frag(CONTENT)], token_rules)
        assert result.exit_code() == 1
        assert result.exit_code(leak_code=42) == 42


class TestConstruction:
    def test_duplicate_ids_rejected(self, token_rule):
        with pytest.raises(RuleError):
            Detector([token_rule, token_rule])

    def test_plain_list_accepted(self, token_rule):
        assert len(Detector([token_rule]).detect(_frag(CONTENT)).findings) == 1

    def test_invalid_workers(self, token_rules):
        with pytest.raises(ScanError):
            Detector(token_rules, ScanOptions(workers=0))
