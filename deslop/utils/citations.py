# deslop/utils/citations.py
import re
from typing import Dict, Iterable, List, Tuple

TOKEN_OPEN = "⟦"
TOKEN_CLOSE = "⟧"

def make_token(n: int) -> str:
    return f"{TOKEN_OPEN}CIT:{n:03d}{TOKEN_CLOSE}"

def unique_citations(citations: Iterable) -> List[str]:
    """문자열만, 중복 제거, 길이 내림차순([10]이 [1]보다 먼저 치환되도록)."""
    seen, out = set(), []
    for c in citations or []:
        if not isinstance(c, str) or not c or c in seen:
            continue
        if TOKEN_OPEN in c or TOKEN_CLOSE in c:
            continue
        seen.add(c)
        out.append(c)
    out.sort(key=len, reverse=True)
    return out

def protect(text: str, citations: Iterable) -> Tuple[str, Dict[str, str]]:
    """
    Swap every occurrence of each citation for a stable token.
    Replacement is a single regex pass over longest-first alternatives,
    so a token is never rewritten by a later, shorter citation.
    restore(*protect(text, c)) == text whenever text holds no token delimiters.
    """
    cites = [c for c in unique_citations(citations) if c in text]
    if not cites:
        return text, {}
    token_for = {c: make_token(i) for i, c in enumerate(cites, 1)}
    pattern = re.compile("|".join(re.escape(c) for c in cites))
    tokenized = pattern.sub(lambda m: token_for[m.group(0)], text)
    return tokenized, {tok: c for c, tok in token_for.items()}

def restore(text: str, mapping: Dict[str, str]) -> str:
    if not mapping:
        return text
    pattern = re.compile("|".join(re.escape(t) for t in mapping))
    return pattern.sub(lambda m: mapping[m.group(0)], text)
