import json
from typing import List, Optional

from deslop.config import settings
from deslop.models.schema import PhraseHelpResponse, Query
from deslop.packs.loader import load_pack
from deslop.services.llm_client import LLMClient
from deslop.services.payload_parser import parse_json_object, parse_string_array
from deslop.utils.logger import logger

def _unquote(s: str) -> str:
    s = s.strip()
    if s.startswith('"'):
        s = s[1:]
    if s.endswith('"'):
        s = s[:-1]
    return s.strip()


class RewriterService:
    """플래그 구간의 인간적인 재작성 제안(일괄) + 선택 구절 도움말."""

    def __init__(self, client: Optional[LLMClient] = None):
        self.client = client or LLMClient()
        self.pack = load_pack(settings.prompt_pack)
        self.temperature = settings.rewrite_temperature
        self.max_tokens = settings.rewrite_max_tokens

    async def suggest_rewrites(self, queries: List[Query], mode: str = "direct") -> List[Query]:
        """
        direct: 영어 원문을 바로 재작성
        dual  : 모국어 번역을 거쳐 영어로 재작성 (번역 없는 항목은 건너뜀)
        결과 배열은 입력 순서와 1:1, 모자라면 남은 항목은 그대로 둔다.
        """
        dual = mode == "dual"
        idx = [i for i, q in enumerate(queries) if q.translation or not dual]
        if not idx:
            return list(queries)

        system = self.pack.voice_prompt("rewrite_dual" if dual else "rewrite_direct")
        payload = json.dumps([queries[i].translation if dual else queries[i].text for i in idx], ensure_ascii=False)
        raw = await self.client.complete(system, payload, temperature=self.temperature, max_tokens=self.max_tokens)
        rewrites = parse_string_array(raw)
        if len(rewrites) != len(idx):
            logger.warning(f"[rewrite] count mismatch mode={mode} expected={len(idx)} got={len(rewrites)}")

        out = list(queries)
        for i, r in zip(idx, rewrites):
            out[i] = out[i].model_copy(update={"proposed_rewrite": _unquote(r)})
        return out

    async def phrase_help(self, selection: str, context: str, native_language: str = "") -> PhraseHelpResponse:
        prompt = self.pack.render(
            "phrase_help",
            selection=selection,
            context=context or selection,
            native_language=native_language or settings.native_language,
        )
        raw = await self.client.complete("", prompt, temperature=self.temperature, max_tokens=self.max_tokens)
        data = parse_json_object(raw)
        translation = data.get("translation")
        rewrite = data.get("rewrite")
        return PhraseHelpResponse(
            translation=translation if isinstance(translation, str) and translation else "Translation unavailable",
            rewrite=_unquote(rewrite) if isinstance(rewrite, str) and rewrite else "Rewrite unavailable",
        )
