"""Rule matching — keyword prefilter, regex pass, line/column resolution.

Content is matched segment by segment: a segment is a run of lines no
longer than the configured cap. Over-long lines are left out of every
segment, which bounds the regex work on minified or generated files.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from leakguard.rules.models import Rule
from leakguard.sources.models import Fragment

Segment = Tuple[int, int]  # [start, end) offsets into fragment.raw


@dataclass(frozen=True)
class Candidate:
    """A raw regex hit, before entropy and allowlist filtering."""

    match: str
    secret: str
    line: str
    start: int  # offset of the secret
    end: int
    start_line: int
    end_line: int
    start_column: int
    end_column: int


def keyword_prefilter(rule: Rule, lowered: str) -> bool:
    """True if *rule* should run on content whose lower-cased text is *lowered*."""
    if not rule.keywords:
        return True
    return any(k in lowered for k in rule.keywords)


def scannable_segments(fragment: Fragment, max_line_length: int) -> Tuple[List[Segment], List[int]]:
    """Split the fragment around lines longer than *max_line_length*.

    Returns ``(segments, skipped_line_numbers)``. A cap of 0 disables the
    split and the whole content is one segment.

    Each segment is matched with ``pattern.finditer(raw, start, end)``, so a
    non-MULTILINE ``$`` (and ``\\Z``) also matches at the end of every
    segment, i.e. just before a skipped line. ``^`` still only matches at
    offset 0. Rules that need line anchors should use ``(?m)``, which
    behaves the same with or without a split.
    """
    raw = fragment.raw or ""
    if not raw:
        return [], []
    if max_line_length <= 0 or len(raw) <= max_line_length:
        return [(0, len(raw))], []

    segments: List[Segment] = []
    skipped: List[int] = []
    seg_start = None
    seg_end = 0
    index = fragment.lines
    for i in range(len(index)):
        start, end = index.line_span(i)
        if end - start > max_line_length:
            skipped.append(index.numbers[i])
            if seg_start is not None:
                segments.append((seg_start, seg_end))
                seg_start = None
            continue
        if seg_start is None:
            seg_start = start
        seg_end = end
    if seg_start is not None:
        segments.append((seg_start, seg_end))
    return segments, skipped


def _line_bounds(fragment: Fragment, start: int, end: int) -> Tuple[int, int]:
    """Offsets of the full line(s) covering ``[start, end)``."""
    index = fragment.lines
    first = index.index_of(start)
    last = index.index_of(max(start, end - 1))
    return index.line_span(first)[0], index.line_span(last)[1]


def find_candidates(
    rule: Rule,
    fragment: Fragment,
    segments: List[Segment],
) -> List[Candidate]:
    """Run ``rule.pattern`` over each segment and resolve positions.

    Matches whose secret group did not participate are dropped. Raises
    :class:`~leakguard.sources.models.LineLookupError` if an offset cannot
    be mapped to a line; ``IndexError`` if the secret group is missing.
    """
    assert rule.pattern is not None
    raw = fragment.raw or ""
    group = rule.effective_group
    out: List[Candidate] = []
    for seg_start, seg_end in segments:
        for m in rule.pattern.finditer(raw, seg_start, seg_end):
            secret = m.group(group)
            if secret is None:
                continue
            start, end = m.span(group)
            if end == start:
                continue
            start_line, start_col = fragment.lines.locate(start)
            end_line, end_col = fragment.lines.locate(end - 1)
            line_start, line_end = _line_bounds(fragment, start, end)
            out.append(
                Candidate(
                    match=m.group(0),
                    secret=secret,
                    line=raw[line_start:line_end],
                    start=start,
                    end=end,
                    start_line=start_line,
                    end_line=end_line,
                    start_column=start_col,
                    end_column=end_col,
                )
            )
    return out
