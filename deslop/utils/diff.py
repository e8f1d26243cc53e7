# deslop/utils/diff.py
"""
Word-level diff on top of a token LCS.

Texts are split into alternating word / whitespace tokens so that
formatting-only edits survive the round trip:

    "".join(op.token for op in ops if op.kind != "insert") == original
    "".join(op.token for op in ops if op.kind != "delete") == revised

When ``len(a) * len(b)`` exceeds ``max_cells`` the LCS table is not built.
The whole revised sequence is then taken as the common subsequence, so every
revised token comes back as ``equal`` with no deletes and no inserts, and the
result is marked ``approximate``. Only the revised side of the round trip
holds in that case.
"""
import re
from typing import List, Dict

from deslop.models.schema import DiffOp, DiffResult

MAX_LCS_CELLS = 200_000

_WS_SPLIT_RE = re.compile(r"(\s+)")

def tokenize(text: str) -> List[str]:
    # 캡처 분할: 공백 런도 토큰으로 보존. 경계의 빈 문자열은 제외
    return [t for t in _WS_SPLIT_RE.split(text) if t]

def compute_lcs(a: List[str], b: List[str]) -> List[str]:
    m, n = len(a), len(b)
    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(1, m + 1):
        ai = a[i - 1]
        row, prev = dp[i], dp[i - 1]
        for j in range(1, n + 1):
            if ai == b[j - 1]:
                row[j] = prev[j - 1] + 1
            else:
                row[j] = prev[j] if prev[j] > row[j - 1] else row[j - 1]
    lcs: List[str] = []
    i, j = m, n
    while i > 0 and j > 0:
        if a[i - 1] == b[j - 1]:
            lcs.append(a[i - 1]); i -= 1; j -= 1
        elif dp[i - 1][j] > dp[i][j - 1]:
            i -= 1
        else:
            j -= 1
    lcs.reverse()
    return lcs

def _walk(a: List[str], b: List[str], lcs: List[str]) -> List[DiffOp]:
    ops: List[DiffOp] = []
    ai = bi = li = 0
    while ai < len(a) or bi < len(b):
        if (li < len(lcs) and ai < len(a) and bi < len(b)
                and a[ai] == lcs[li] and b[bi] == lcs[li]):
            ops.append(DiffOp(kind="equal", token=a[ai]))
            ai += 1; bi += 1; li += 1
        elif bi < len(b) and (li >= len(lcs) or b[bi] != lcs[li]):
            ops.append(DiffOp(kind="insert", token=b[bi]))
            bi += 1
        else:
            ops.append(DiffOp(kind="delete", token=a[ai]))
            ai += 1
    return ops

def word_diff(original: str, revised: str, max_cells: int = MAX_LCS_CELLS) -> DiffResult:
    if not isinstance(original, str) or not isinstance(revised, str):
        raise TypeError("original and revised must both be str")
    a, b = tokenize(original), tokenize(revised)
    if len(a) * len(b) > max_cells:
        return DiffResult(ops=[DiffOp(kind="equal", token=t) for t in b], approximate=True)
    ops = _walk(a, b, compute_lcs(a, b))
    return DiffResult(ops=ops, revised_spans=compute_revised_spans(ops))

def _trim_ws(text: str, i: int, j: int):
    while i < j and text[i].isspace(): i += 1
    while j > i and text[j-1].isspace(): j -= 1
    return i, j

def compute_revised_spans(ops: List[DiffOp]) -> List[Dict]:
    """
    revised 기준 삽입 구간만 하이라이트 대상으로 산출.
    공백만 사이에 둔 인접 삽입은 하나로 병합.
    """
    revised = "".join(op.token for op in ops if op.kind != "delete")
    spans: List[Dict] = []
    pos = 0
    for op in ops:
        if op.kind == "delete":
            continue
        if op.kind == "insert":
            spans.append({"start": pos, "end": pos + len(op.token)})
        pos += len(op.token)
    trimmed = []
    for sp in spans:
        s, e = _trim_ws(revised, sp["start"], sp["end"])
        if e > s:
            trimmed.append({"start": s, "end": e})
    if not trimmed:
        return []
    merged = [trimmed[0]]
    for sp in trimmed[1:]:
        last = merged[-1]
        if not revised[last["end"]:sp["start"]].strip():
            last["end"] = max(last["end"], sp["end"])
        else:
            merged.append(sp)
    for m in merged:
        m["text"] = revised[m["start"]:m["end"]]
    return merged

def render_markdown(ops: List[DiffOp]) -> str:
    """equal → 평문, delete → ~~취소선~~, insert → **굵게**. 공백 토큰은 그대로."""
    out = []
    for op in ops:
        if op.kind == "equal" or op.token.isspace():
            out.append(op.token)
        elif op.kind == "delete":
            out.append(f"~~{op.token}~~")
        else:
            out.append(f"**{op.token}**")
    return "".join(out)
