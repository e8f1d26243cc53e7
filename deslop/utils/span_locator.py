# deslop/utils/span_locator.py
"""
Map approximate quotes from an annotator back onto exact offsets in a text.

Matching runs an ordered chain of strategies and stops at the first hit.
Each strategy is more permissive than the one before it:

1. exact      - trimmed substring search
2. fuzzy      - regex with flexible whitespace/quote styles, case-insensitive
3. window     - punctuation-agnostic search, gated by a local stripped window
4. anchor     - alphanumeric-only search; approximate length (best effort)

The anchor strategy guesses ``len(query) + 10`` characters for the span,
so its ``matched_text`` may over- or under-capture the intended phrase.
"""
import re
from typing import Callable, List, Optional, Sequence, Tuple

from deslop.models.schema import LocateResult, LocatedSpan, Match, Query, Segment

_WS_SPLIT_RE = re.compile(r"(\s+)")
_DOUBLE_QUOTES = '"“”'
_SINGLE_QUOTES = "'‘’"
_ALNUM = set("abcdefghijklmnopqrstuvwxyz0123456789")
_MIN_STRIPPED = 3

Matcher = Callable[[str, str, int], Optional[Tuple[int, str]]]

# ---- helpers ----

def _strip_alnum(s: str) -> Tuple[str, List[int]]:
    """소문자 ASCII 영숫자만 남긴 문자열 + 각 문자의 원문 인덱스."""
    out: List[str] = []
    positions: List[int] = []
    for i, ch in enumerate(s):
        for c in ch.lower():
            if c in _ALNUM:
                out.append(c)
                positions.append(i)
    return "".join(out), positions

def _fuzzy_pattern(target: str) -> str:
    parts = []
    for piece in _WS_SPLIT_RE.split(target):
        if not piece:
            continue
        if piece.isspace():
            parts.append(r"\s+")
            continue
        for ch in piece:
            if ch in _DOUBLE_QUOTES:
                parts.append(f"[{_DOUBLE_QUOTES}]")
            elif ch in _SINGLE_QUOTES:
                parts.append(f"[{_SINGLE_QUOTES}]")
            else:
                parts.append(re.escape(ch))
    return "".join(parts)

# ---- strategies: (text, query, start) -> (offset, matched_text) | None ----

def match_exact(text: str, query: str, start: int) -> Optional[Tuple[int, str]]:
    target = query.strip()
    if not target:
        return None
    idx = text.find(target, start)
    if idx < 0:
        return None
    return idx, target

def match_fuzzy(text: str, query: str, start: int) -> Optional[Tuple[int, str]]:
    target = query.strip()
    if not target:
        return None
    m = re.compile(_fuzzy_pattern(target), re.IGNORECASE).search(text, start)
    if not m or not m.group(0):
        return None
    return m.start(), m.group(0)

def match_window(text: str, query: str, start: int) -> Optional[Tuple[int, str]]:
    stripped, _ = _strip_alnum(query)
    if len(stripped) <= _MIN_STRIPPED:
        return None
    window_size = int(len(query) * 1.5 + 20)
    window, _ = _strip_alnum(text[start:start + window_size])
    if stripped not in window:
        return None
    words = [re.escape(w) for w in query.strip().split()]
    m = re.compile(r"\s*[^a-z0-9]*\s*".join(words), re.IGNORECASE).search(text, start)
    if not m or not m.group(0):
        return None
    return m.start(), m.group(0)

def match_anchor(text: str, query: str, start: int) -> Optional[Tuple[int, str]]:
    stripped, _ = _strip_alnum(query)
    if len(stripped) <= _MIN_STRIPPED:
        return None
    rest, positions = _strip_alnum(text[start:])
    idx = rest.find(stripped)
    if idx < 0:
        return None
    first = start + positions[idx]
    end = min(first + len(query) + 10, len(text))
    return first, text[first:end]

STRATEGIES: Sequence[Tuple[str, Matcher]] = (
    ("exact", match_exact),
    ("fuzzy", match_fuzzy),
    ("window", match_window),
    ("anchor", match_anchor),
)

# ---- public ----

def locate(base_text: str, query: str, search_from: int = 0) -> Optional[Match]:
    """Run the strategy chain; None when no strategy places the query."""
    if not isinstance(base_text, str):
        raise TypeError(f"base_text must be str, got {type(base_text).__name__}")
    if not isinstance(query, str) or not query or not base_text:
        return None
    start = max(0, search_from)
    for name, matcher in STRATEGIES:
        hit = matcher(base_text, query, start)
        if hit is None:
            continue
        offset, matched = hit
        return Match(offset=offset, length=len(matched), matched_text=matched, strategy=name)
    return None

def build_segments(base_text: str, spans: List[LocatedSpan]) -> Tuple[List[Segment], List[LocatedSpan], List[LocatedSpan]]:
    """
    offset 오름차순 정렬 후 빈 구간을 평문으로 채운다.
    커서보다 앞에서 시작하는 span은 버린다(먼저 찾은 쪽 우선).
    returns (segments, placed, dropped)
    """
    segments: List[Segment] = []
    placed: List[LocatedSpan] = []
    dropped: List[LocatedSpan] = []
    cursor = 0
    for sp in sorted(spans, key=lambda s: s.offset):
        if sp.offset < cursor:
            dropped.append(sp)
            continue
        if sp.offset > cursor:
            segments.append(Segment(kind="text", start=cursor, end=sp.offset,
                                    text=base_text[cursor:sp.offset]))
        segments.append(Segment(kind="span", start=sp.offset, end=sp.end,
                                text=sp.matched_text, span=sp))
        placed.append(sp)
        cursor = sp.end
    if cursor < len(base_text):
        segments.append(Segment(kind="text", start=cursor, end=len(base_text),
                                text=base_text[cursor:]))
    return segments, placed, dropped

def with_unique_ids(queries: List[Query]) -> List[Query]:
    """
    id가 비었거나 앞에서 이미 쓰인 query에 ann_<i>를 붙인다.
    결정(resolution)은 id로 찾으므로 span마다 id가 달라야 한다.
    """
    taken = {q.id for q in queries if q.id}
    seen = set()
    out: List[Query] = []
    for i, q in enumerate(queries):
        if q.id and q.id not in seen:
            seen.add(q.id)
            out.append(q)
            continue
        new_id, n = f"ann_{i}", 0
        while new_id in taken:
            n += 1
            new_id = f"ann_{i}_{n}"
        taken.add(new_id)
        seen.add(new_id)
        out.append(q.model_copy(update={"id": new_id}))
    return out

def locate_all(base_text: str, queries: List[Query]) -> LocateResult:
    """
    Locate every query in order. The search cursor advances past each hit so
    repeated quotes land on successive occurrences; a miss is retried once
    from the start of the text before the query is reported unlocated.
    Queries without a distinct id are given one (see with_unique_ids).
    """
    if not isinstance(base_text, str):
        raise TypeError(f"base_text must be str, got {type(base_text).__name__}")

    located: List[LocatedSpan] = []
    unlocated: List[Query] = []
    queries = with_unique_ids(queries)
    cursor = 0
    for q in queries:
        m = locate(base_text, q.text, cursor)
        if m is not None:
            cursor = m.offset + m.length
        else:
            m = locate(base_text, q.text, 0)
        if m is None:
            unlocated.append(q)
            continue
        located.append(LocatedSpan(offset=m.offset, length=m.length, matched_text=m.matched_text,
                                   strategy=m.strategy, source_query=q))

    segments, placed, dropped = build_segments(base_text, located)
    return LocateResult(
        segments=segments,
        spans=placed,
        overlapping=dropped,
        unlocated=unlocated,
        located_count=len(located),
        total=len(queries),
    )
