import re
from typing import List, Optional, Protocol, Tuple, runtime_checkable

from deslop.config import settings
from deslop.models.schema import Query
from deslop.packs.loader import load_pack
from deslop.services.llm_client import LLMClient
from deslop.services.payload_parser import parse_annotations
from deslop.utils.logger import logger


@runtime_checkable
class Annotator(Protocol):
    """Anything that turns a text into flagged quotes. Only the Query shape is relied on."""

    async def annotate(self, text: str, native_language: str) -> List[Query]:
        ...


class LLMAnnotator:
    """원격 LLM으로 '기계적인' 구간을 찾아낸다. 파싱 실패 시 0건."""

    def __init__(self, client: Optional[LLMClient] = None):
        self.client = client or LLMClient()
        self.pack = load_pack(settings.prompt_pack)
        self.temperature = settings.annotate_temperature
        self.max_tokens = settings.annotate_max_tokens

    async def annotate(self, text: str, native_language: str) -> List[Query]:
        system = self.pack.voice_prompt("annotate")
        user = self.pack.render("annotate", text=text, native_language=native_language)
        raw = await self.client.complete(system, user, temperature=self.temperature, max_tokens=self.max_tokens)
        queries = parse_annotations(raw)
        logger.info(f"[annotate] llm flags={len(queries)} text_len={len(text)}")
        return queries


# ---- rule-based: offline, no model ----
# (kind, pattern, reason, suggestion)
_RULES: List[Tuple[str, str, str, str]] = [
    ("robotic", r"\b(?:Certainly|Absolutely|Of course|Great question)!", "Sycophantic opener.", ""),
    ("over-formal", r"\bIt(?:'|’)s (?:worth noting|important to (?:note|mention)) that\b", "Verbose hedging.", ""),
    ("over-formal", r"\b(?:Please note that|It should be noted that)\b", "Verbose hedging.", ""),
    ("ai-rhythm", r"(?m)(?:^|(?<=[.!?]\s))(?:In conclusion|To summarize|In essence|Needless to say),", "Filler transition.", ""),
    ("ai-rhythm", r"\bIt(?:'|’)s not (?:just|merely|only) [^,.;]+, (?:but|it(?:'|’)s|rather)[^.!?]*[.!?]", "Metalinguistic negation.", ""),
    ("robotic", r"\b(?:delve into|tapestry of|in today(?:'|’)s fast-paced world)\b", "Stock AI phrasing.", ""),
]


class RuleBasedAnnotator:
    """정규식 목록 기반 탐지기. 결과는 원문 순서(offset 오름차순)."""

    def __init__(self, rules: Optional[List[Tuple[str, str, str, str]]] = None):
        self.rules = [(k, re.compile(p, re.IGNORECASE), r, s) for k, p, r, s in (rules or _RULES)]

    async def annotate(self, text: str, native_language: str) -> List[Query]:
        hits = []
        for kind, pattern, reason, suggestion in self.rules:
            for m in pattern.finditer(text or ""):
                if m.group(0).strip():
                    hits.append((m.start(), kind, m.group(0), reason, suggestion))
        hits.sort(key=lambda h: h[0])
        return [
            Query(id=f"ann_{i}", text=t, kind=k, rationale=r, proposed_rewrite=s)
            for i, (_, k, t, r, s) in enumerate(hits)
        ]
