from __future__ import annotations

import re
from typing import Optional, Tuple

from .errors import ErrorKind, PatchError
from .gosource import find_in_code, is_comment_line, matching_brace
from .models import InsertionPoint, MutationTarget, Strategy

_WS_RE = re.compile(r"\s+")


def _squash(s: str) -> str:
    return _WS_RE.sub(" ", s.strip())


def aggregate_span(content: str, pattern: str) -> Optional[Tuple[int, int]]:
    """(body_start, close_offset) of the aggregate opened by ``pattern``, or None."""
    idx = find_in_code(content, pattern)
    if idx == -1:
        return None
    body_start = idx + len(pattern)
    close = matching_brace(content, body_start)
    if close is None:
        return None
    return body_start, close


def locate_marker(content: str, marker: str) -> Optional[InsertionPoint]:
    idx = content.find(marker)
    if idx == -1:
        return None
    return InsertionPoint(offset=idx + len(marker), strategy=Strategy.MARKER_COMMENT)


def locate_aggregate(content: str, pattern: str) -> Optional[InsertionPoint]:
    span = aggregate_span(content, pattern)
    if span is None:
        return None
    return InsertionPoint(offset=span[1], strategy=Strategy.AGGREGATE_LITERAL)


def locate(content: str, target: MutationTarget) -> InsertionPoint:
    """Marker comment first, then aggregate literal. Raises PatchError(NoInsertionPoint)."""
    if target.marker:
        point = locate_marker(content, target.marker)
        if point is not None:
            return point
    if target.aggregate:
        point = locate_aggregate(content, target.aggregate)
        if point is not None:
            return point
    anchors = [a for a in (target.marker, target.aggregate) if a]
    raise PatchError(
        ErrorKind.NO_INSERTION_POINT,
        f"no insertion point for '{target.name}' (looked for: {', '.join(repr(a) for a in anchors) or 'nothing'})",
    )


def existence_region(content: str, target: MutationTarget) -> Tuple[int, int]:
    if target.aggregate:
        span = aggregate_span(content, target.aggregate)
        if span is not None:
            return span
    return 0, len(content)


def entry_exists(content: str, region: Tuple[int, int], candidate: str) -> bool:
    """True if a live (non-blank, non-comment) line in ``region`` contains ``candidate``.

    Commented-out copies never count, so a previous run's disabled line does
    not block a real insertion.
    """
    start, end = region
    needle = _squash(candidate)
    if not needle:
        return False
    for line in content[start:end].splitlines():
        if not line.strip() or is_comment_line(line):
            continue
        if needle in _squash(line):
            return True
    return False
